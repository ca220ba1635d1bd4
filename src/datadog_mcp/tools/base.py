"""
Base utilities for tool implementations.

Provides the error-handling decorator and small formatting helpers shared
by all tools.
"""

from datetime import datetime, timezone
from functools import wraps
from typing import Any, Callable, TypeVar

from pydantic import ValidationError

from datadog_mcp.clients.datadog import (
    DatadogClientError,
    DatadogNotFoundError,
    DatadogQueryError,
)
from datadog_mcp.logging import get_logger
from datadog_mcp.models.paging import Page
from datadog_mcp.models.responses import ToolResponse, add_execution_metadata
from datadog_mcp.stats import StatsCancelledError, StatsUnavailableError
from datadog_mcp.timeexpr import InvalidRangeError, InvalidTimeExpressionError

logger = get_logger(__name__)

F = TypeVar("F", bound=Callable[..., ToolResponse])

# Most specific first.
ERROR_TYPES: tuple[tuple[type[Exception], str], ...] = (
    (InvalidTimeExpressionError, "InvalidTimeExpression"),
    (InvalidRangeError, "InvalidRange"),
    (DatadogNotFoundError, "NotFoundError"),
    (DatadogQueryError, "DatadogQueryError"),
    (DatadogClientError, "DatadogError"),
    (StatsUnavailableError, "StatsUnavailable"),
    (StatsCancelledError, "Cancelled"),
    (ValidationError, "ValidationError"),
)


def tool_handler(func: F) -> F:
    """
    Decorator for tool functions that provides:
    - Automatic exception handling
    - Execution timing
    - Consistent error responses

    Args:
        func: Tool function to wrap.

    Returns:
        Wrapped function with error handling.
    """

    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> ToolResponse:
        start_time = datetime.now(timezone.utc)

        try:
            result = func(*args, **kwargs)

            if "execution_time_ms" not in result.metadata:
                result.metadata = add_execution_metadata(result.metadata, start_time)
            return result

        except Exception as e:
            error_type = type(e).__name__
            message = f"Unexpected error: {e}"
            for exc_type, name in ERROR_TYPES:
                if isinstance(e, exc_type):
                    error_type = name
                    message = str(e)
                    break

            logger.error(
                "tool_failed",
                tool=func.__name__,
                error_type=error_type,
                error=str(e),
                exc_info=error_type == type(e).__name__,
            )
            return ToolResponse.failure(
                error_message=message,
                error_type=error_type,
                metadata=add_execution_metadata({}, start_time),
            )

    return wrapper  # type: ignore


def paging_metadata(page: Page) -> dict[str, Any]:
    """Metadata describing a page, for ToolResponse.metadata."""
    meta: dict[str, Any] = {
        "returned": len(page.items),
        "has_more": page.has_more,
    }
    if page.next_cursor is not None:
        meta["next_cursor"] = page.next_cursor
    else:
        meta["total_count"] = page.total_count
        meta["offset"] = page.window_start
        if page.next_offset is not None:
            meta["next_offset"] = page.next_offset
    return meta


def format_time(value: datetime | None) -> str:
    """Format a timestamp for summaries (RFC 3339, second precision)."""
    if value is None:
        return "-"
    return value.replace(microsecond=0).isoformat()
