"""
Standard response models for all tools.

Every Datadog tool returns a ToolResponse so the agent reads one shape,
whatever the endpoint behind it.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class ToolStatus(str, Enum):
    """
    Status of tool execution.

    Attributes:
        SUCCESS: Every requested piece of data was retrieved.
        PARTIAL: Data was retrieved, but some of it is missing, truncated,
            or came back empty.
        ERROR: The tool could not complete the request.
    """

    SUCCESS = "success"
    PARTIAL = "partial"
    ERROR = "error"


class ToolResponse(BaseModel):
    """
    Standardized response envelope for Datadog tools.

    Attributes:
        status: Execution status (success, partial, or error).
        result: Tool payload. Always a dict with a "summary" text plus the
            structured data for the tool.
        error: Error message if status is ERROR, otherwise None.
        warnings: Non-fatal issues (truncation, failed sub-queries, ...).
        metadata: Timing, paging and query parameters.

    Example:
        ```python
        {
            "status": "partial",
            "result": {"summary": "APM Stats for service: checkout ...", "stats": {...}},
            "error": null,
            "warnings": ["p95 query failed: Query failed (400): ..."],
            "metadata": {
                "execution_time_ms": 412,
                "service": "checkout",
                "timestamp": "2024-01-01T12:00:00+00:00"
            }
        }
        ```
    """

    status: ToolStatus = Field(
        description="Execution status: success, partial, or error"
    )
    result: Any = Field(default=None, description="The data returned by the tool")
    error: str | None = Field(
        default=None, description="Error message if status is error"
    )
    warnings: list[str] = Field(
        default_factory=list,
        description="Non-fatal issues encountered during execution",
    )
    metadata: dict[str, Any] = Field(
        default_factory=dict,
        description="Execution metadata (timing, paging, query parameters)",
    )

    @classmethod
    def success(
        cls,
        result: Any,
        metadata: dict[str, Any] | None = None,
        warnings: list[str] | None = None,
    ) -> "ToolResponse":
        """Create a successful response."""
        return cls(
            status=ToolStatus.SUCCESS,
            result=result,
            metadata=metadata or {},
            warnings=warnings or [],
        )

    @classmethod
    def partial(
        cls,
        result: Any,
        warnings: list[str],
        metadata: dict[str, Any] | None = None,
    ) -> "ToolResponse":
        """
        Create a partial success response.

        Use when data was retrieved but some of it is missing or was cut
        by a size cap.
        """
        return cls(
            status=ToolStatus.PARTIAL,
            result=result,
            warnings=warnings,
            metadata=metadata or {},
        )

    @classmethod
    def from_warnings(
        cls,
        result: Any,
        warnings: list[str],
        metadata: dict[str, Any] | None = None,
    ) -> "ToolResponse":
        """Create a PARTIAL response if there are warnings, SUCCESS otherwise."""
        if warnings:
            return cls.partial(result, warnings=warnings, metadata=metadata)
        return cls.success(result, metadata=metadata)

    @classmethod
    def failure(
        cls,
        error_message: str,
        error_type: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> "ToolResponse":
        """
        Create an error response.

        Args:
            error_message: Human-readable error description.
            error_type: Optional error category (e.g., "InvalidTimeExpression").
            metadata: Optional execution metadata.

        Returns:
            ToolResponse with ERROR status.
        """
        meta = metadata or {}
        if error_type:
            meta["error_type"] = error_type
        return cls(
            status=ToolStatus.ERROR,
            result=None,
            error=error_message,
            metadata=meta,
        )


def add_execution_metadata(
    metadata: dict[str, Any],
    start_time: datetime,
    **extra: Any,
) -> dict[str, Any]:
    """
    Add standard execution metadata to a response.

    Args:
        metadata: Existing metadata dict to extend.
        start_time: When the tool execution started (UTC).
        **extra: Additional metadata key-value pairs.

    Returns:
        Extended metadata dict with timing info.
    """
    end_time = datetime.now(timezone.utc)
    execution_time_ms = int((end_time - start_time).total_seconds() * 1000)

    return {
        **metadata,
        "execution_time_ms": execution_time_ms,
        "timestamp": end_time.isoformat(),
        **extra,
    }
