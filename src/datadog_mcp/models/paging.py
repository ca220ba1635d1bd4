"""
Pydantic models for paged and truncated results.
"""

from typing import Generic, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


class Page(BaseModel, Generic[T]):
    """
    A bounded slice of a list-shaped result.

    Offset-paged results carry total_count and window_start. Cursor-paged
    results carry next_cursor instead and leave total_count unset, since
    the backend does not report one.
    """

    items: list[T] = Field(description="Items in this page")
    total_count: int | None = Field(
        default=None, description="Size of the full collection (offset paging)"
    )
    window_start: int = Field(default=0, description="Offset of the first item")
    has_more: bool = Field(description="Whether more items exist past this page")
    next_cursor: str | None = Field(
        default=None, description="Opaque continuation token (cursor paging)"
    )

    @property
    def next_offset(self) -> int | None:
        """Offset of the next page, if any."""
        if self.has_more and self.next_cursor is None:
            return self.window_start + len(self.items)
        return None


class SeriesTruncation(BaseModel):
    """How much a series/point cap trimmed from a query result."""

    total_series: int = Field(description="Series returned by the backend")
    returned_series: int = Field(description="Series kept")
    series_dropped: int = Field(default=0, description="Series removed by the cap")
    points_dropped: int = Field(
        default=0, description="Data points removed across all kept series"
    )

    @property
    def truncated(self) -> bool:
        """Whether any data was dropped."""
        return self.series_dropped > 0 or self.points_dropped > 0
