"""
Pydantic models for Datadog dashboards.
"""

from datetime import datetime

from pydantic import BaseModel, Field


class DashboardSummary(BaseModel):
    """Dashboard metadata as returned by the dashboard listing."""

    id: str = Field(description="Dashboard ID")
    title: str = Field(default="", description="Dashboard title")
    description: str | None = Field(default=None, description="Description")
    layout_type: str = Field(default="", description="ordered or free")
    url: str | None = Field(default=None, description="Dashboard URL path")
    author_handle: str | None = Field(default=None, description="Author handle")
    created_at: datetime | None = Field(default=None, description="Creation time")
    modified_at: datetime | None = Field(default=None, description="Last change")
    is_read_only: bool = Field(default=False, description="Read-only flag")


class DashboardWidget(BaseModel):
    """A widget on a dashboard, reduced to its identifying fields."""

    id: int | None = Field(default=None, description="Widget ID")
    type: str = Field(default="widget", description="Widget definition type")
    title: str | None = Field(default=None, description="Widget title")


class DashboardTemplateVariable(BaseModel):
    """A dashboard template variable."""

    name: str = Field(description="Variable name")
    prefix: str | None = Field(default=None, description="Tag prefix")
    default: str | None = Field(default=None, description="Default value")
    available_values: list[str] = Field(
        default_factory=list, description="Allowed values"
    )


class Dashboard(DashboardSummary):
    """A full dashboard definition."""

    author_name: str | None = Field(default=None, description="Author name")
    tags: list[str] = Field(default_factory=list, description="Dashboard tags")
    widgets: list[DashboardWidget] = Field(default_factory=list, description="Widgets")
    template_variables: list[DashboardTemplateVariable] = Field(
        default_factory=list, description="Template variables"
    )

    @property
    def widget_count(self) -> int:
        """Number of top-level widgets."""
        return len(self.widgets)
