"""
Dashboard Tools.

Tools for listing dashboards and inspecting a single dashboard.
"""

from datadog_mcp.clients.datadog import DatadogClient
from datadog_mcp.config import Settings, get_settings
from datadog_mcp.models.responses import ToolResponse
from datadog_mcp.paging import clamp_limit, window
from datadog_mcp.tools.base import format_time, paging_metadata, tool_handler

MAX_DASHBOARD_PAGE_SIZE = 1000
MAX_DASHBOARDS_IN_SUMMARY = 50


@tool_handler
def list_dashboards(
    filter_shared: bool = False,
    filter_deleted: bool = False,
    limit: int | None = None,
    start: int = 0,
    settings: Settings | None = None,
    client: DatadogClient | None = None,
) -> ToolResponse:
    """
    List dashboards with their titles, IDs, layout types and authors.

    Args:
        filter_shared: Only shared dashboards.
        filter_deleted: List deleted dashboards.
        limit: Page size (1-1000, default 100).
        start: 0-based offset of the first dashboard.
        settings: Optional settings override for testing.
        client: Optional client override for testing.

    Returns:
        ToolResponse with result containing:
        - summary: Dashboards in this page
        - dashboards: Page of DashboardSummary objects
    """
    settings = settings or get_settings()
    client = client or DatadogClient(settings)

    dashboards = client.list_dashboards(filter_shared=filter_shared, filter_deleted=filter_deleted)
    page = window(
        dashboards,
        offset=start,
        limit=clamp_limit(limit, settings.default_page_size, maximum=MAX_DASHBOARD_PAGE_SIZE),
    )

    if page.items:
        header = (
            f"Found {page.total_count} dashboards "
            f"(showing {page.window_start + 1}-{page.window_start + len(page.items)} "
            f"of {page.total_count} total):"
        )
    else:
        header = f"Found {page.total_count} dashboards (none in this page):"
    lines = [header, ""]

    for d in page.items[:MAX_DASHBOARDS_IN_SUMMARY]:
        lines.append(f"[{d.id}] {d.title}")
        if d.description:
            lines.append(f"  Description: {d.description}")
        lines.append(f"  Layout: {d.layout_type}")
        if d.author_handle:
            lines.append(f"  Author: {d.author_handle}")
        if d.modified_at:
            lines.append(f"  Modified: {format_time(d.modified_at)}")
        lines.append("")
    if len(page.items) > MAX_DASHBOARDS_IN_SUMMARY:
        lines.append(
            f"... and {len(page.items) - MAX_DASHBOARDS_IN_SUMMARY} more dashboards in this page"
        )
    if page.has_more:
        lines.append(f"More results available. Use start={page.next_offset} to get the next page.")

    return ToolResponse.success(
        result={"summary": "\n".join(lines), "dashboards": page.model_dump(mode="json")},
        metadata=paging_metadata(page),
    )


@tool_handler
def get_dashboard(
    dashboard_id: str,
    settings: Settings | None = None,
    client: DatadogClient | None = None,
) -> ToolResponse:
    """
    Get a dashboard's configuration, widgets and template variables.

    Args:
        dashboard_id: Dashboard ID (e.g. "abc-def-ghi").
        settings: Optional settings override for testing.
        client: Optional client override for testing.

    Returns:
        ToolResponse with result containing:
        - summary: Dashboard overview
        - dashboard: Full Dashboard object
    """
    dashboard_id = dashboard_id.strip()
    if not dashboard_id:
        return ToolResponse.failure(
            error_message="dashboard_id is required",
            error_type="ValidationError",
        )

    settings = settings or get_settings()
    client = client or DatadogClient(settings)

    dashboard = client.get_dashboard(dashboard_id)

    lines = [f"Dashboard: {dashboard.title}", f"ID: {dashboard.id}"]
    if dashboard.description:
        lines.append(f"Description: {dashboard.description}")
    lines.append(f"Layout Type: {dashboard.layout_type}")
    if dashboard.url:
        lines.append(f"URL: {dashboard.url}")
    if dashboard.author_handle:
        author = f"Author: {dashboard.author_handle}"
        if dashboard.author_name:
            author += f" ({dashboard.author_name})"
        lines.append(author)
    if dashboard.created_at:
        lines.append(f"Created: {format_time(dashboard.created_at)}")
    if dashboard.modified_at:
        lines.append(f"Modified: {format_time(dashboard.modified_at)}")
    if dashboard.is_read_only:
        lines.append("Read Only: Yes")
    if dashboard.tags:
        lines.append(f"Tags: {', '.join(dashboard.tags)}")

    lines += ["", f"Widgets: {dashboard.widget_count}"]
    for w in dashboard.widgets:
        lines.append(f"  - {w.type}" + (f": {w.title}" if w.title else ""))

    if dashboard.template_variables:
        lines += ["", "Template Variables:"]
        for tv in dashboard.template_variables:
            line = f"  - {tv.name}"
            if tv.prefix:
                line += f" (prefix: {tv.prefix})"
            if tv.default:
                line += f" [default: {tv.default}]"
            lines.append(line)

    return ToolResponse.success(
        result={
            "summary": "\n".join(lines),
            "dashboard": {
                **dashboard.model_dump(mode="json"),
                "widget_count": dashboard.widget_count,
            },
        },
        metadata={"dashboard_id": dashboard_id},
    )
