"""Clients package - Datadog API client wrapper."""

from datadog_mcp.clients.datadog import (
    DatadogClient,
    DatadogClientError,
    DatadogNotFoundError,
    DatadogQueryError,
)

__all__ = [
    "DatadogClient",
    "DatadogClientError",
    "DatadogNotFoundError",
    "DatadogQueryError",
]
