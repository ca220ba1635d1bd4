"""
Datadog MCP server.

Registers the Datadog tools with FastMCP and serves them over stdio.
Every tool returns a ToolResponse dict: status, result (with a "summary"
text), error, warnings and metadata.
"""

from typing import Any

from mcp.server.fastmcp import FastMCP

from datadog_mcp import __version__, tools
from datadog_mcp.config import get_settings
from datadog_mcp.logging import get_logger, setup_logging

logger = get_logger(__name__)

SERVER_NAME = "datadog-mcp"

mcp = FastMCP(SERVER_NAME)


@mcp.tool()
def query_metrics(
    query: str,
    from_time: str = "",
    to_time: str = "",
    max_data_points: int = 0,
    max_series: int = 0,
) -> dict[str, Any]:
    """
    Query timeseries metrics data from Datadog.

    Args:
        query: Datadog metric query, e.g. avg:system.cpu.user{*} by {host}
        from_time: Start time in RFC3339 format or relative, e.g. now-1h. Defaults to 1 hour ago
        to_time: End time in RFC3339 format or relative, e.g. now. Defaults to now
        max_data_points: Maximum data points per series. Defaults to 300
        max_series: Maximum number of series. Defaults to 100
    """
    return tools.query_metrics(
        query=query,
        from_time=from_time,
        to_time=to_time,
        max_data_points=max_data_points or None,
        max_series=max_series or None,
    ).model_dump(mode="json")


@mcp.tool()
def list_metrics(
    tag_filter: str = "",
    host: str = "",
    prefix: str = "",
    offset: int = 0,
    limit: int = 0,
) -> dict[str, Any]:
    """
    List metrics active in the last 24 hours. Can filter by tag, host, or name prefix.

    Args:
        tag_filter: Filter metrics by tag, e.g. env:production
        host: Filter metrics by host name
        prefix: Filter metrics by name prefix
        offset: Index of the first metric to return. Defaults to 0
        limit: Maximum number of metrics to return. Defaults to 100
    """
    return tools.list_metrics(
        tag_filter=tag_filter,
        host=host,
        prefix=prefix,
        offset=offset,
        limit=limit or None,
    ).model_dump(mode="json")


@mcp.tool()
def get_apm_services(offset: int = 0, limit: int = 0) -> dict[str, Any]:
    """
    List APM services from the service catalog with team, tier, lifecycle and contacts.

    Args:
        offset: Index of the first service to return. Defaults to 0
        limit: Maximum number of services to return. Defaults to 100
    """
    return tools.get_apm_services(offset=offset, limit=limit or None).model_dump(mode="json")


@mcp.tool()
def query_spans(
    query: str = "*",
    from_time: str = "",
    to_time: str = "",
    limit: int = 0,
    cursor: str = "",
) -> dict[str, Any]:
    """
    Query APM spans. Search by service, operation, status code, or custom tags.

    Args:
        query: Span search query, e.g. service:my-service or @http.status_code:500. Defaults to *
        from_time: Start time, e.g. now-15m or now-1h. Defaults to now-15m
        to_time: End time, e.g. now. Defaults to now
        limit: Maximum number of spans to return (1-1000). Defaults to 50
        cursor: Pagination cursor from a previous response
    """
    return tools.query_spans(
        query=query,
        from_time=from_time,
        to_time=to_time,
        limit=limit or None,
        cursor=cursor,
    ).model_dump(mode="json")


@mcp.tool()
def query_apm_stats(
    service: str,
    operation: str = "",
    env: str = "",
    from_time: str = "",
    to_time: str = "",
) -> dict[str, Any]:
    """
    Query APM statistics for a service: average and p95 latency, error rate, and throughput.

    Args:
        service: The service name to query stats for
        operation: Specific operation/resource name to filter by
        env: Environment to filter by, e.g. production or staging
        from_time: Start time. Defaults to 1 hour ago
        to_time: End time. Defaults to now
    """
    return tools.query_apm_stats(
        service=service,
        operation=operation,
        env=env,
        from_time=from_time,
        to_time=to_time,
    ).model_dump(mode="json")


@mcp.tool()
def list_dashboards(
    filter_shared: bool = False,
    filter_deleted: bool = False,
    limit: int = 0,
    start: int = 0,
) -> dict[str, Any]:
    """
    List dashboards with titles, IDs, layout types, and metadata.

    Args:
        filter_shared: Only shared dashboards
        filter_deleted: Include deleted dashboards
        limit: Maximum number of dashboards to return (1-1000). Defaults to 100
        start: Starting position for pagination (0-based offset). Defaults to 0
    """
    return tools.list_dashboards(
        filter_shared=filter_shared,
        filter_deleted=filter_deleted,
        limit=limit or None,
        start=start,
    ).model_dump(mode="json")


@mcp.tool()
def get_dashboard(dashboard_id: str) -> dict[str, Any]:
    """
    Get a dashboard's configuration, widgets, and template variables.

    Args:
        dashboard_id: The dashboard ID to retrieve
    """
    return tools.get_dashboard(dashboard_id=dashboard_id).model_dump(mode="json")


def main() -> None:
    """Entry point for the datadog-mcp console script."""
    settings = get_settings()
    setup_logging(settings)

    if not settings.has_credentials():
        logger.warning("missing_credentials", hint="set DD_API_KEY and DD_APP_KEY")

    logger.info("server_starting", name=SERVER_NAME, version=__version__, site=settings.site)
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
