"""
Time expression resolution.

Turns user-supplied time strings into timezone-aware instants. Accepted
forms, in priority order:

1. "" or "now"
2. RFC 3339 with offset, e.g. "2024-01-01T12:00:00Z", "2024-01-01T12:00:00+02:00"
3. Relative to now, e.g. "now-15m", "now-1h30m", "now+30s"
4. Date and time without offset, e.g. "2024-01-01T12:00:00" (UTC)
5. Date only, e.g. "2024-01-01" (midnight UTC)

Each form is an independent parser. A parser either matches, does not
match (the next one is tried), or recognizes the form but finds it
malformed (resolution stops with an error).
"""

import re
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from enum import Enum
from typing import Callable, NamedTuple

from datadog_mcp.models.metrics import TimeRange

DEFAULT_LOOKBACK = timedelta(hours=1)
SPAN_LOOKBACK = timedelta(minutes=15)


class InvalidTimeExpressionError(ValueError):
    """A time string did not match any accepted form."""

    def __init__(self, expression: str, reason: str | None = None):
        self.expression = expression
        self.reason = reason
        message = f"invalid time expression: {expression!r}"
        if reason:
            message += f" ({reason})"
        super().__init__(message)


class InvalidRangeError(ValueError):
    """A resolved time range has its start after its end."""

    def __init__(self, start: datetime, end: datetime):
        self.start = start
        self.end = end
        super().__init__(
            f"'from' time must not be after 'to' time "
            f"(from={start.isoformat()}, to={end.isoformat()})"
        )


class ParseOutcome(str, Enum):
    MATCHED = "matched"
    UNMATCHED = "unmatched"
    MALFORMED = "malformed"


class ParseResult(NamedTuple):
    outcome: ParseOutcome
    value: datetime | None = None
    reason: str | None = None


_UNMATCHED = ParseResult(ParseOutcome.UNMATCHED)

_RFC3339_RE = re.compile(
    r"^(\d{4})-(\d{2})-(\d{2})[Tt](\d{2}):(\d{2}):(\d{2})(\.\d+)?([Zz]|[+-]\d{2}:\d{2})$"
)
_NAIVE_DATETIME_RE = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}$")
_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

# Go-style durations: "15m", "-1h30m", "1.5h", "300ms"
_DURATION_TERM_RE = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|μs|ms|s|m|h)")
_DURATION_RE = re.compile(r"^(?:(?:\d+(?:\.\d*)?|\.\d+)(?:ns|us|µs|μs|ms|s|m|h))+$")

_UNIT_NANOSECONDS = {
    "ns": 1,
    "us": 1_000,
    "µs": 1_000,
    "μs": 1_000,
    "ms": 1_000_000,
    "s": 1_000_000_000,
    "m": 60 * 1_000_000_000,
    "h": 3600 * 1_000_000_000,
}


def parse_signed_duration(text: str) -> timedelta:
    """
    Parse a signed duration such as "-15m", "+30s" or "-1h30m".

    A leading sign is optional. "0" is accepted on its own.

    Raises:
        ValueError: If the text is not a valid duration.
    """
    sign = 1
    body = text
    if body[:1] in ("+", "-"):
        sign = -1 if body[0] == "-" else 1
        body = body[1:]

    if body == "0":
        return timedelta(0)
    if not body or not _DURATION_RE.match(body):
        raise ValueError(f"invalid duration: {text!r}")

    total_ns = Decimal(0)
    for number, unit in _DURATION_TERM_RE.findall(body):
        total_ns += Decimal(number) * _UNIT_NANOSECONDS[unit]

    microseconds = int((total_ns / 1000).to_integral_value())
    try:
        return timedelta(microseconds=sign * microseconds)
    except OverflowError as e:
        raise ValueError(f"duration out of range: {text!r}") from e


def _parse_now(expr: str, now: datetime) -> ParseResult:
    if expr in ("", "now"):
        return ParseResult(ParseOutcome.MATCHED, now)
    return _UNMATCHED


def _parse_rfc3339(expr: str, now: datetime) -> ParseResult:
    match = _RFC3339_RE.match(expr)
    if not match:
        return _UNMATCHED

    year, month, day, hour, minute, second, fraction, offset = match.groups()
    microsecond = int((fraction[1:] + "000000")[:6]) if fraction else 0

    try:
        if offset in ("Z", "z"):
            tz = timezone.utc
        else:
            sign = -1 if offset[0] == "-" else 1
            hours, minutes = int(offset[1:3]), int(offset[4:6])
            tz = timezone(sign * timedelta(hours=hours, minutes=minutes))
        value = datetime(
            int(year), int(month), int(day),
            int(hour), int(minute), int(second),
            microsecond, tzinfo=tz,
        )
    except ValueError as e:
        return ParseResult(ParseOutcome.MALFORMED, reason=str(e))
    return ParseResult(ParseOutcome.MATCHED, value)


def _parse_relative(expr: str, now: datetime) -> ParseResult:
    if len(expr) <= 3 or not expr.startswith("now"):
        return _UNMATCHED
    try:
        offset = parse_signed_duration(expr[3:])
    except ValueError:
        return ParseResult(
            ParseOutcome.MALFORMED, reason="expected now followed by a duration like -15m"
        )
    try:
        value = now + offset
    except OverflowError:
        return ParseResult(ParseOutcome.MALFORMED, reason="offset moves the time out of range")
    return ParseResult(ParseOutcome.MATCHED, value)


def _parse_naive_datetime(expr: str, now: datetime) -> ParseResult:
    if not _NAIVE_DATETIME_RE.match(expr):
        return _UNMATCHED
    try:
        value = datetime.strptime(expr, "%Y-%m-%dT%H:%M:%S")
    except ValueError as e:
        return ParseResult(ParseOutcome.MALFORMED, reason=str(e))
    return ParseResult(ParseOutcome.MATCHED, value.replace(tzinfo=timezone.utc))


def _parse_date(expr: str, now: datetime) -> ParseResult:
    if not _DATE_RE.match(expr):
        return _UNMATCHED
    try:
        value = datetime.strptime(expr, "%Y-%m-%d")
    except ValueError as e:
        return ParseResult(ParseOutcome.MALFORMED, reason=str(e))
    return ParseResult(ParseOutcome.MATCHED, value.replace(tzinfo=timezone.utc))


TimeParser = Callable[[str, datetime], ParseResult]

# Order matters: first match wins.
TIME_PARSERS: tuple[TimeParser, ...] = (
    _parse_now,
    _parse_rfc3339,
    _parse_relative,
    _parse_naive_datetime,
    _parse_date,
)


def resolve_time(expr: str, now: datetime | None = None) -> datetime:
    """
    Resolve a time expression to an instant.

    Args:
        expr: Time expression (see module docstring for accepted forms).
        now: Reference instant for "now" and relative forms. Defaults to
            the current UTC time.

    Returns:
        Timezone-aware datetime.

    Raises:
        InvalidTimeExpressionError: If the expression matches no form or
            is a malformed instance of one.

    Example:
        ```python
        resolve_time("now-15m", now=datetime(2024, 1, 1, 12, tzinfo=timezone.utc))
        # datetime(2024, 1, 1, 11, 45, tzinfo=timezone.utc)
        ```
    """
    if now is None:
        now = datetime.now(timezone.utc)
    text = expr.strip()

    for parser in TIME_PARSERS:
        result = parser(text, now)
        if result.outcome is ParseOutcome.MATCHED:
            return result.value
        if result.outcome is ParseOutcome.MALFORMED:
            raise InvalidTimeExpressionError(expr, result.reason)

    raise InvalidTimeExpressionError(expr, "unrecognized time format")


def resolve_time_range(
    from_expr: str = "",
    to_expr: str = "",
    now: datetime | None = None,
    default_lookback: timedelta = DEFAULT_LOOKBACK,
) -> TimeRange:
    """
    Resolve a from/to pair into a TimeRange.

    An empty "from" means now minus default_lookback; an empty "to" means now.

    Raises:
        InvalidTimeExpressionError: If either expression is invalid.
        InvalidRangeError: If the resolved start is after the end.
    """
    if now is None:
        now = datetime.now(timezone.utc)

    if from_expr.strip():
        start = resolve_time(from_expr, now)
    else:
        start = now - default_lookback
    end = resolve_time(to_expr, now)

    if start > end:
        raise InvalidRangeError(start, end)
    return TimeRange(start=start, end=end)
