"""
Result windowing and truncation.

Two paging disciplines share the Page shape:

- offset windowing, for listings this layer holds in full
  (metrics, services, dashboards);
- cursor pass-through, for backends that page themselves (span search).

Truncation is separate: it caps the size of series data even when the
caller asked for no paging, and always reports what it dropped.
"""

from typing import Sequence, TypeVar

from datadog_mcp.models.metrics import MetricSeries
from datadog_mcp.models.paging import Page, SeriesTruncation

T = TypeVar("T")

DEFAULT_PAGE_SIZE = 100
DEFAULT_MAX_SERIES = 100
DEFAULT_MAX_DATA_POINTS = 300


def clamp_limit(
    limit: int | None,
    default: int,
    maximum: int | None = None,
) -> int:
    """
    Normalize a caller-supplied page size.

    None or non-positive values fall back to the default; values above
    maximum are capped.
    """
    if limit is None or limit <= 0:
        limit = default
    if maximum is not None and limit > maximum:
        limit = maximum
    return limit


def window(
    items: Sequence[T],
    offset: int = 0,
    limit: int | None = DEFAULT_PAGE_SIZE,
) -> Page[T]:
    """
    Slice a collection into one page.

    Args:
        items: The full collection.
        offset: Index of the first item. Negative offsets are treated as 0;
            offsets past the end yield an empty page starting at the end.
        limit: Page size. None or non-positive values use DEFAULT_PAGE_SIZE.

    Returns:
        Page with total_count, window_start and has_more set.

    Example:
        ```python
        page = window(list(range(150)), offset=100, limit=50)
        # page.items == [100, ..., 149], page.has_more is False
        ```
    """
    limit = clamp_limit(limit, DEFAULT_PAGE_SIZE)
    total = len(items)
    offset = max(0, offset)

    if offset >= total:
        return Page(items=[], total_count=total, window_start=total, has_more=False)

    page_items = list(items[offset : offset + limit])
    return Page(
        items=page_items,
        total_count=total,
        window_start=offset,
        has_more=offset + len(page_items) < total,
    )


def cursor_page(items: Sequence[T], next_cursor: str | None) -> Page[T]:
    """
    Wrap a backend-paged result.

    The continuation token is passed through untouched; more data exists
    exactly when the backend returned one.
    """
    return Page(
        items=list(items),
        next_cursor=next_cursor or None,
        has_more=bool(next_cursor),
    )


def truncate_series(
    series: Sequence[MetricSeries],
    max_series: int | None = None,
    max_data_points: int | None = None,
) -> tuple[list[MetricSeries], SeriesTruncation]:
    """
    Cap the number of series and the data points per series.

    The first max_series series are kept, and each keeps its first
    max_data_points points. Input series are not modified.

    Args:
        series: Series returned by the backend.
        max_series: Series cap. None or non-positive uses DEFAULT_MAX_SERIES.
        max_data_points: Per-series point cap. None or non-positive uses
            DEFAULT_MAX_DATA_POINTS.

    Returns:
        Tuple of (kept_series, truncation_info).
    """
    max_series = clamp_limit(max_series, DEFAULT_MAX_SERIES)
    max_data_points = clamp_limit(max_data_points, DEFAULT_MAX_DATA_POINTS)

    kept = list(series[:max_series])
    points_dropped = 0
    trimmed: list[MetricSeries] = []
    for s in kept:
        if len(s.data_points) > max_data_points:
            points_dropped += len(s.data_points) - max_data_points
            s = s.model_copy(update={"data_points": s.data_points[:max_data_points]})
        trimmed.append(s)

    info = SeriesTruncation(
        total_series=len(series),
        returned_series=len(trimmed),
        series_dropped=len(series) - len(trimmed),
        points_dropped=points_dropped,
    )
    return trimmed, info
