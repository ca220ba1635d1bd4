"""
Pydantic models for APM spans and the service catalog.
"""

from datetime import datetime

from pydantic import BaseModel, Field


class Span(BaseModel):
    """A single APM span."""

    trace_id: str = Field(description="Trace ID")
    span_id: str = Field(description="Span ID")
    parent_id: str | None = Field(default=None, description="Parent span ID")
    service: str = Field(default="", description="Service that emitted the span")
    name: str = Field(default="", description="Operation name")
    resource: str = Field(default="", description="Resource name")
    type: str | None = Field(default=None, description="Span type (web, db, ...)")
    start: datetime | None = Field(default=None, description="Span start time")
    duration_ns: int = Field(default=0, description="Span duration in nanoseconds")
    status: str = Field(default="ok", description="Span status (ok or error)")
    tags: dict[str, str] = Field(default_factory=dict, description="Selected tags")

    @property
    def duration_ms(self) -> float:
        """Span duration in milliseconds."""
        return self.duration_ns / 1e6


class ServiceLink(BaseModel):
    """A link attached to a service definition."""

    name: str = Field(description="Link name")
    type: str = Field(description="Link type (doc, repo, runbook, ...)")
    url: str = Field(description="Link URL")


class ServiceContact(BaseModel):
    """A contact attached to a service definition."""

    name: str | None = Field(default=None, description="Contact name")
    type: str = Field(description="Contact type (email, slack, ...)")
    contact: str = Field(description="Contact address")


class ServiceInfo(BaseModel):
    """A service from the Datadog service catalog."""

    name: str = Field(description="Service name")
    description: str | None = Field(default=None, description="Description")
    team: str | None = Field(default=None, description="Owning team")
    tier: str | None = Field(default=None, description="Service tier")
    lifecycle: str | None = Field(default=None, description="Lifecycle stage")
    languages: list[str] = Field(default_factory=list, description="Languages")
    tags: list[str] = Field(default_factory=list, description="Service tags")
    links: list[ServiceLink] = Field(default_factory=list, description="Links")
    contacts: list[ServiceContact] = Field(
        default_factory=list, description="Contacts"
    )
