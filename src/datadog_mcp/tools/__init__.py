"""Tools package - Datadog tool implementations."""

from datadog_mcp.tools.apm import get_apm_services, query_apm_stats, query_spans
from datadog_mcp.tools.dashboards import get_dashboard, list_dashboards
from datadog_mcp.tools.metrics import list_metrics, query_metrics

__all__ = [
    # Metrics tools
    "query_metrics",
    "list_metrics",
    # APM tools
    "get_apm_services",
    "query_spans",
    "query_apm_stats",
    # Dashboard tools
    "list_dashboards",
    "get_dashboard",
]
