"""Tests for time expression resolution."""

from datetime import datetime, timedelta, timezone

import pytest

from datadog_mcp.timeexpr import (
    SPAN_LOOKBACK,
    InvalidRangeError,
    InvalidTimeExpressionError,
    parse_signed_duration,
    resolve_time,
    resolve_time_range,
)

UTC = timezone.utc


class TestResolveTime:
    """Tests for resolve_time."""

    @pytest.mark.parametrize("expr", ["", "now", "  now  "])
    def test_now(self, now, expr):
        assert resolve_time(expr, now) == now

    def test_relative_fifteen_minutes(self, now):
        assert resolve_time("now-15m", now) == datetime(2024, 1, 1, 11, 45, tzinfo=UTC)

    @pytest.mark.parametrize(
        "suffix,delta",
        [
            ("-15m", timedelta(minutes=-15)),
            ("-1h", timedelta(hours=-1)),
            ("+30s", timedelta(seconds=30)),
            ("-1h30m", timedelta(minutes=-90)),
            ("-1.5h", timedelta(minutes=-90)),
            ("-250ms", timedelta(milliseconds=-250)),
            ("-24h", timedelta(days=-1)),
            ("15m", timedelta(minutes=15)),
        ],
    )
    def test_relative_offsets_are_exact(self, now, suffix, delta):
        assert resolve_time("now" + suffix, now) == now + delta

    def test_rfc3339_utc(self, now):
        assert resolve_time("2024-01-01T10:00:00Z", now) == datetime(
            2024, 1, 1, 10, tzinfo=UTC
        )

    def test_rfc3339_offset(self, now):
        value = resolve_time("2024-01-01T10:00:00+02:00", now)
        assert value == datetime(2024, 1, 1, 8, tzinfo=UTC)
        assert value.utcoffset() == timedelta(hours=2)

    def test_rfc3339_fractional_seconds(self, now):
        value = resolve_time("2024-01-01T10:00:00.123456789Z", now)
        assert value.microsecond == 123456

    def test_naive_datetime_is_utc(self, now):
        assert resolve_time("2024-03-05T06:07:08", now) == datetime(
            2024, 3, 5, 6, 7, 8, tzinfo=UTC
        )

    def test_date_only_is_midnight_utc(self, now):
        assert resolve_time("2024-03-05", now) == datetime(2024, 3, 5, tzinfo=UTC)

    @pytest.mark.parametrize(
        "expr",
        [
            "now-",
            "now+",
            "nowhere",
            "now-15x",
            "now--15m",
            "not-a-date",
            "yesterday",
            "2024-13-01",
            "2024-02-30T00:00:00",
            "2024-01-01T25:00:00Z",
            "2024-01-01T12:00:00+25:00",
            "now-1000000000h",
            "now-99999999999999h",
            "01/02/2024",
        ],
    )
    def test_invalid_expressions_raise(self, now, expr):
        with pytest.raises(InvalidTimeExpressionError) as exc_info:
            resolve_time(expr, now)
        assert exc_info.value.expression == expr
        assert expr in str(exc_info.value)

    def test_defaults_to_current_time(self):
        before = datetime.now(UTC)
        value = resolve_time("now")
        assert before <= value <= datetime.now(UTC)
        assert value.tzinfo is not None


class TestParseSignedDuration:
    """Tests for parse_signed_duration."""

    def test_zero(self):
        assert parse_signed_duration("0") == timedelta(0)

    def test_microseconds(self):
        assert parse_signed_duration("-10us") == timedelta(microseconds=-10)

    @pytest.mark.parametrize("text", ["", "-", "m", "1", "1hh", "h1"])
    def test_invalid(self, text):
        with pytest.raises(ValueError):
            parse_signed_duration(text)


class TestResolveTimeRange:
    """Tests for resolve_time_range."""

    def test_defaults(self, now):
        time_range = resolve_time_range("", "", now=now)
        assert time_range.start == now - timedelta(hours=1)
        assert time_range.end == now
        assert time_range.duration_seconds == 3600

    def test_span_lookback(self, now):
        time_range = resolve_time_range("", "", now=now, default_lookback=SPAN_LOOKBACK)
        assert time_range.start == now - timedelta(minutes=15)

    def test_explicit_bounds(self, now):
        time_range = resolve_time_range("now-4h", "now-1h", now=now)
        assert time_range.start == datetime(2024, 1, 1, 8, tzinfo=UTC)
        assert time_range.end == datetime(2024, 1, 1, 11, tzinfo=UTC)

    def test_empty_range_allowed(self, now):
        time_range = resolve_time_range("now", "now", now=now)
        assert time_range.duration_seconds == 0

    def test_from_after_to_raises(self, now):
        with pytest.raises(InvalidRangeError):
            resolve_time_range("now", "now-1h", now=now)

    def test_invalid_to_raises(self, now):
        with pytest.raises(InvalidTimeExpressionError):
            resolve_time_range("now-1h", "later", now=now)


class TestOutOfRangeValues:
    """Recognized forms with out-of-range values report the expression."""

    def test_offset_out_of_range(self, now):
        with pytest.raises(InvalidTimeExpressionError, match=r"\+25:00"):
            resolve_time("2024-01-01T12:00:00+25:00", now)

    def test_relative_past_minimum_date(self, now):
        with pytest.raises(InvalidTimeExpressionError, match="out of range"):
            resolve_time("now-1000000000h", now)

    def test_duration_too_large(self):
        with pytest.raises(ValueError, match="out of range"):
            parse_signed_duration("-99999999999999h")
