"""
Datadog MCP - Datadog Observability Tooling

A Python tooling library and MCP server that gives AI agents structured
access to Datadog metrics, APM traces, the service catalog and dashboards.
"""

from datadog_mcp.config import Settings
from datadog_mcp.models.responses import ToolResponse, ToolStatus

__version__ = "0.1.0"
__all__ = ["ToolResponse", "ToolStatus", "Settings"]
