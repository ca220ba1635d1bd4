"""Pytest fixtures."""

import threading
from datetime import datetime, timedelta, timezone

import pytest

from datadog_mcp.config import Settings
from datadog_mcp.models.metrics import MetricPoint, MetricSeries, TimeRange

NOW = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


def make_series(
    values: list[float],
    metric: str = "trace.checkout.duration",
    unit: str | None = None,
    tags: list[str] | None = None,
    start: datetime = NOW - timedelta(hours=1),
    step: timedelta = timedelta(seconds=20),
) -> MetricSeries:
    """Build a series with evenly spaced points."""
    return MetricSeries(
        metric=metric,
        unit=unit,
        tags=tags or [],
        data_points=[
            MetricPoint(timestamp=start + i * step, value=v) for i, v in enumerate(values)
        ],
    )


class FakeMetricsClient:
    """
    Deterministic metric backend keyed by exact query string.

    Each value is either a list of series or an exception to raise.
    Unknown queries return no series.
    """

    def __init__(self, responses: dict[str, list[MetricSeries] | Exception] | None = None):
        self.responses = responses or {}
        self.calls: list[tuple[str, datetime, datetime]] = []
        self._lock = threading.Lock()

    def query_metrics(self, query: str, start: datetime, end: datetime) -> list[MetricSeries]:
        with self._lock:
            self.calls.append((query, start, end))
        response = self.responses.get(query, [])
        if isinstance(response, Exception):
            raise response
        return response


@pytest.fixture
def now():
    """Fixed reference instant."""
    return NOW


@pytest.fixture
def hour_range():
    """One-hour window ending at NOW."""
    return TimeRange(start=NOW - timedelta(hours=1), end=NOW)


@pytest.fixture
def settings():
    """Settings with test credentials and no .env lookup."""
    return Settings(api_key="test-api-key", app_key="test-app-key", _env_file=None)
