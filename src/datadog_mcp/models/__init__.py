"""Models package - Pydantic models for responses and data structures."""

from datadog_mcp.models.apm import ServiceContact, ServiceInfo, ServiceLink, Span
from datadog_mcp.models.dashboards import (
    Dashboard,
    DashboardSummary,
    DashboardTemplateVariable,
    DashboardWidget,
)
from datadog_mcp.models.metrics import (
    DerivedStats,
    ErrorRateStats,
    LatencyStats,
    MetricPoint,
    MetricQueryResult,
    MetricSeries,
    StatSelector,
    ThroughputStats,
    TimeRange,
)
from datadog_mcp.models.paging import Page, SeriesTruncation
from datadog_mcp.models.responses import ToolResponse, ToolStatus

__all__ = [
    # Response models
    "ToolResponse",
    "ToolStatus",
    # Paging models
    "Page",
    "SeriesTruncation",
    # Metrics models
    "MetricPoint",
    "MetricSeries",
    "MetricQueryResult",
    "TimeRange",
    "StatSelector",
    "LatencyStats",
    "ErrorRateStats",
    "ThroughputStats",
    "DerivedStats",
    # APM models
    "Span",
    "ServiceInfo",
    "ServiceLink",
    "ServiceContact",
    # Dashboard models
    "Dashboard",
    "DashboardSummary",
    "DashboardWidget",
    "DashboardTemplateVariable",
]
