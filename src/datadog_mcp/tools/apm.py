"""
APM Tools.

Tools for the service catalog, span search and derived service health
statistics.
"""

import threading

from datadog_mcp.clients.datadog import MAX_SPAN_PAGE_SIZE, DatadogClient
from datadog_mcp.config import Settings, get_settings
from datadog_mcp.models.metrics import DerivedStats, StatSelector
from datadog_mcp.models.responses import ToolResponse
from datadog_mcp.paging import clamp_limit, cursor_page, window
from datadog_mcp.stats import StatsEngine
from datadog_mcp.timeexpr import SPAN_LOOKBACK, resolve_time_range
from datadog_mcp.tools.base import format_time, paging_metadata, tool_handler

DEFAULT_SPAN_LIMIT = 50
MAX_SPANS_IN_SUMMARY = 20


@tool_handler
def get_apm_services(
    offset: int = 0,
    limit: int | None = None,
    settings: Settings | None = None,
    client: DatadogClient | None = None,
) -> ToolResponse:
    """
    List APM services from the Datadog service catalog.

    Args:
        offset: Index of the first service to return.
        limit: Page size (default 100).
        settings: Optional settings override for testing.
        client: Optional client override for testing.

    Returns:
        ToolResponse with result containing:
        - summary: Service names with team, tier, lifecycle and languages
        - services: Page of ServiceInfo objects
    """
    settings = settings or get_settings()
    client = client or DatadogClient(settings)

    services = client.list_service_definitions()
    page = window(services, offset=offset, limit=clamp_limit(limit, settings.default_page_size))

    lines = [f"Found {page.total_count} services:", ""]
    for svc in page.items:
        lines.append(f"Service: {svc.name}")
        if svc.description:
            lines.append(f"  Description: {svc.description}")
        if svc.team:
            lines.append(f"  Team: {svc.team}")
        if svc.tier:
            lines.append(f"  Tier: {svc.tier}")
        if svc.lifecycle:
            lines.append(f"  Lifecycle: {svc.lifecycle}")
        if svc.languages:
            lines.append(f"  Languages: {', '.join(svc.languages)}")
        lines.append("")
    if page.has_more:
        lines.append(f"More results available. Use offset={page.next_offset} to get the next page.")

    return ToolResponse.success(
        result={"summary": "\n".join(lines), "services": page.model_dump()},
        metadata=paging_metadata(page),
    )


@tool_handler
def query_spans(
    query: str = "*",
    from_time: str = "",
    to_time: str = "",
    limit: int | None = None,
    cursor: str = "",
    settings: Settings | None = None,
    client: DatadogClient | None = None,
) -> ToolResponse:
    """
    Search APM spans by service, operation, status code or custom tags.

    Args:
        query: Span search query, e.g. "service:web @http.status_code:500".
            Defaults to "*" (all spans).
        from_time: Start time. Defaults to 15 minutes ago.
        to_time: End time. Defaults to now.
        limit: Spans per page (1-1000, default 50).
        cursor: Cursor from a previous response to fetch the next page.
        settings: Optional settings override for testing.
        client: Optional client override for testing.

    Returns:
        ToolResponse with result containing:
        - summary: The first spans of the page, newest first
        - spans: Page of Span objects with next_cursor and has_more

    Example:
        ```python
        first = query_spans(query="service:checkout status:error", from_time="now-1h")
        cursor = first.result["spans"]["next_cursor"]
        if cursor:
            second = query_spans(query="service:checkout status:error",
                                 from_time="now-1h", cursor=cursor)
        ```
    """
    settings = settings or get_settings()
    client = client or DatadogClient(settings)

    query = query.strip() or "*"
    time_range = resolve_time_range(from_time, to_time, default_lookback=SPAN_LOOKBACK)
    limit = clamp_limit(limit, DEFAULT_SPAN_LIMIT, maximum=MAX_SPAN_PAGE_SIZE)

    spans, next_cursor = client.search_spans(
        query, time_range.start, time_range.end, limit=limit, cursor=cursor or None
    )
    page = cursor_page(spans, next_cursor)

    lines = [f"Found {len(spans)} spans matching query: {query}", ""]
    for i, span in enumerate(spans[:MAX_SPANS_IN_SUMMARY], start=1):
        lines.append(f"[{i}] {span.service} / {span.name}")
        lines.append(f"    Resource: {span.resource}")
        lines.append(f"    Status: {span.status}, Duration: {span.duration_ms:.2f}ms")
        lines.append(f"    TraceID: {span.trace_id}, SpanID: {span.span_id}")
        lines.append("")
    if len(spans) > MAX_SPANS_IN_SUMMARY:
        lines.append(
            f"... and {len(spans) - MAX_SPANS_IN_SUMMARY} more spans "
            f"(see structured output for full results)"
        )
    if page.next_cursor:
        lines.append(f"Next page cursor: {page.next_cursor}")

    return ToolResponse.success(
        result={"summary": "\n".join(lines), "spans": page.model_dump(mode="json")},
        metadata={
            "query": query,
            "from": time_range.start.isoformat(),
            "to": time_range.end.isoformat(),
            **paging_metadata(page),
        },
    )


def format_stats_summary(stats: DerivedStats) -> str:
    """Render DerivedStats as text for the agent."""
    selector = stats.selector
    lines = [f"APM Stats for service: {selector.service}"]
    if selector.operation:
        lines.append(f"Operation: {selector.operation}")
    if selector.environment:
        lines.append(f"Environment: {selector.environment}")
    lines.append(
        f"Time Range: {format_time(stats.time_range.start)} "
        f"to {format_time(stats.time_range.end)}"
    )

    if stats.latency:
        lines += ["", "Latency:"]
        if stats.latency.avg_ms is not None:
            lines.append(f"  Avg: {stats.latency.avg_ms:.2f} ms")
        if stats.latency.p95_ms is not None:
            lines.append(f"  P95: {stats.latency.p95_ms:.2f} ms")

    if stats.error_rate:
        lines += ["", "Error Rate:"]
        if stats.error_rate.error_count is not None:
            lines.append(f"  Errors: {stats.error_rate.error_count:.0f}")
        if stats.error_rate.total_count is not None:
            lines.append(f"  Total: {stats.error_rate.total_count:.0f}")
        if stats.error_rate.error_percent is not None:
            lines.append(f"  Rate: {stats.error_rate.error_percent:.2f}%")

    if stats.throughput:
        lines += ["", "Throughput:"]
        if stats.throughput.requests_per_second is not None:
            lines.append(f"  Requests/sec: {stats.throughput.requests_per_second:.2f}")
        lines.append(f"  Total Requests: {stats.throughput.total_requests:.0f}")

    if not (stats.latency or stats.error_rate or stats.throughput):
        lines += ["", "No APM data found for this selector and time range."]

    lines += ["", stats.note]
    return "\n".join(lines)


@tool_handler
def query_apm_stats(
    service: str,
    operation: str = "",
    env: str = "",
    from_time: str = "",
    to_time: str = "",
    settings: Settings | None = None,
    client: DatadogClient | None = None,
    cancel_event: threading.Event | None = None,
) -> ToolResponse:
    """
    Get latency, error rate and throughput for a service.

    Runs four Datadog metric queries in parallel (avg latency, p95 latency,
    errors, hits). If some of them fail the others are still reported and
    the response is PARTIAL.

    Args:
        service: Service name (required).
        operation: Operation/resource name to filter by.
        env: Environment to filter by, e.g. "production".
        from_time: Start time. Defaults to one hour ago.
        to_time: End time. Defaults to now.
        settings: Optional settings override for testing.
        client: Optional client override for testing.
        cancel_event: Optional event that abandons the queries when set.

    Returns:
        ToolResponse with result containing:
        - summary: Human-readable stats
        - stats: DerivedStats

    Example:
        ```python
        result = query_apm_stats(service="checkout", env="production", from_time="now-4h")
        ```
    """
    settings = settings or get_settings()
    client = client or DatadogClient(settings)

    selector = StatSelector(service=service, operation=operation or None, environment=env or None)
    time_range = resolve_time_range(from_time, to_time)

    engine = StatsEngine(
        client,
        max_workers=settings.stats_max_workers,
        max_data_points=settings.stats_max_data_points,
    )
    stats = engine.compute_stats(selector, time_range, cancel_event=cancel_event)

    warnings = [f"{name} query failed: {error}" for name, error in stats.failed_queries.items()]
    if stats.truncated:
        warnings.append("A stats series exceeded the point cap and was truncated")

    return ToolResponse.from_warnings(
        result={"summary": format_stats_summary(stats), "stats": stats.model_dump(mode="json")},
        warnings=warnings,
        metadata={
            "service": selector.service,
            "operation": selector.operation,
            "env": selector.environment,
            "from": time_range.start.isoformat(),
            "to": time_range.end.isoformat(),
        },
    )
