"""
Metrics Tools.

Tools for querying Datadog metric time series and discovering metric names.
"""

from datetime import datetime, timedelta, timezone

from datadog_mcp.clients.datadog import DatadogClient
from datadog_mcp.config import Settings, get_settings
from datadog_mcp.models.metrics import MetricQueryResult
from datadog_mcp.models.responses import ToolResponse, add_execution_metadata
from datadog_mcp.paging import clamp_limit, truncate_series, window
from datadog_mcp.timeexpr import resolve_time_range
from datadog_mcp.tools.base import format_time, paging_metadata, tool_handler

ACTIVE_METRICS_LOOKBACK = timedelta(hours=24)


@tool_handler
def query_metrics(
    query: str,
    from_time: str = "",
    to_time: str = "",
    max_data_points: int | None = None,
    max_series: int | None = None,
    settings: Settings | None = None,
    client: DatadogClient | None = None,
) -> ToolResponse:
    """
    Query timeseries metrics data from Datadog.

    This is the raw access tool for custom investigations: the agent writes
    a Datadog metric query and gets the series back.

    Args:
        query: Datadog metric query, e.g. 'avg:system.cpu.user{*} by {host}'.
        from_time: Start time, RFC 3339 or relative (e.g. "now-1h").
            Defaults to one hour ago.
        to_time: End time. Defaults to now.
        max_data_points: Maximum data points per series (default 300).
        max_series: Maximum number of series (default 100).
        settings: Optional settings override for testing.
        client: Optional client override for testing.

    Returns:
        ToolResponse with result containing:
        - summary: Human-readable overview of the returned series
        - metrics: MetricQueryResult with series and truncation flags
        - truncation: How many series and points were dropped

    Example:
        ```python
        result = query_metrics(
            query="sum:trace.http.request.hits{service:checkout} by {resource_name}",
            from_time="now-4h",
            max_series=20,
        )
        ```

    Note:
        Results are capped even when no limits are passed. When a cap
        drops data the response is PARTIAL and says how much was dropped.
    """
    start_time = datetime.now(timezone.utc)
    settings = settings or get_settings()
    client = client or DatadogClient(settings)

    time_range = resolve_time_range(from_time, to_time)
    raw_series = client.query_metrics(query, time_range.start, time_range.end)

    series, truncation = truncate_series(
        raw_series,
        max_series=clamp_limit(max_series, settings.max_series),
        max_data_points=clamp_limit(max_data_points, settings.max_data_points),
    )

    result = MetricQueryResult(
        query=query,
        time_range=time_range,
        series=series,
        total_series=truncation.total_series,
        truncated=truncation.truncated,
    )

    summary = (
        f"Query: {query}\n"
        f"Time Range: {format_time(time_range.start)} to {format_time(time_range.end)}\n"
        f"Series Count: {len(series)}"
    )
    if truncation.series_dropped:
        summary += (
            f" (truncated from {truncation.total_series}, "
            f"use max_series to see more)"
        )
    summary += "\n"
    for i, s in enumerate(series, start=1):
        summary += f"\n[{i}] {s.metric} ({len(s.data_points)} data points)"
        if s.tags:
            summary += f" - Tags: {', '.join(s.tags)}"
    if truncation.points_dropped:
        summary += (
            f"\n\n{truncation.points_dropped} data points dropped, "
            f"use max_data_points to see more"
        )

    warnings = []
    if not series:
        warnings.append("Query returned no series. Check the metric name and tags.")
    if truncation.series_dropped:
        warnings.append(
            f"{truncation.series_dropped} of {truncation.total_series} series dropped"
        )
    if truncation.points_dropped:
        warnings.append(f"{truncation.points_dropped} data points dropped")

    return ToolResponse.from_warnings(
        result={
            "summary": summary,
            "metrics": result.model_dump(mode="json"),
            "truncation": truncation.model_dump(),
        },
        warnings=warnings,
        metadata=add_execution_metadata(
            {"query": query, "series_count": len(series)},
            start_time,
        ),
    )


@tool_handler
def list_metrics(
    tag_filter: str = "",
    host: str = "",
    prefix: str = "",
    offset: int = 0,
    limit: int | None = None,
    settings: Settings | None = None,
    client: DatadogClient | None = None,
) -> ToolResponse:
    """
    List metrics that reported data in the last 24 hours.

    Args:
        tag_filter: Filter by tag (e.g. "env:production").
        host: Filter by host name.
        prefix: Keep only metric names starting with this prefix.
        offset: Index of the first metric to return.
        limit: Page size (default 100).
        settings: Optional settings override for testing.
        client: Optional client override for testing.

    Returns:
        ToolResponse with result containing:
        - summary: The metric names in this page
        - metrics: Page of metric names with total_count and has_more
    """
    settings = settings or get_settings()
    client = client or DatadogClient(settings)

    since = datetime.now(timezone.utc) - ACTIVE_METRICS_LOOKBACK
    names = client.list_active_metrics(since, host=host or None, tag_filter=tag_filter or None)
    if prefix:
        names = [n for n in names if n.startswith(prefix)]

    page = window(names, offset=offset, limit=clamp_limit(limit, settings.default_page_size))

    summary = f"Found {page.total_count} metrics"
    if tag_filter:
        summary += f" (tag filter: {tag_filter})"
    if host:
        summary += f" (host: {host})"
    if prefix:
        summary += f" (prefix: {prefix})"
    if page.items:
        summary += (
            f", showing {page.window_start + 1}-{page.window_start + len(page.items)}"
        )
    summary += ":\n\n" + "\n".join(page.items)
    if page.has_more:
        summary += f"\n\nMore results available. Use offset={page.next_offset} to get the next page."

    return ToolResponse.success(
        result={"summary": summary, "metrics": page.model_dump()},
        metadata={"tag_filter": tag_filter, "host": host, "prefix": prefix, **paging_metadata(page)},
    )
