"""
Derived APM statistics.

Answers "how healthy is service X over window W" from four independent
Datadog metric queries (average latency, p95 latency, error count, hit
count). The queries run in parallel and any subset of them may fail: a
failed or empty query only leaves its part of the result unset.
"""

import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from datetime import datetime
from typing import NamedTuple, Protocol

import numpy as np

from datadog_mcp.logging import get_logger
from datadog_mcp.models.metrics import (
    DerivedStats,
    ErrorRateStats,
    LatencyStats,
    MetricSeries,
    StatSelector,
    ThroughputStats,
    TimeRange,
)
from datadog_mcp.paging import truncate_series

logger = get_logger(__name__)

AVG_LATENCY = "avg"
P95_LATENCY = "p95"
ERRORS = "errors"
HITS = "hits"

# Templates take the service name and the selector's tag filter.
STAT_QUERY_TEMPLATES: dict[str, str] = {
    AVG_LATENCY: "avg:trace.{service}.duration{{{tags}}}",
    P95_LATENCY: "p95:trace.{service}.duration{{{tags}}}",
    ERRORS: "sum:trace.{service}.errors{{{tags}}}.as_count()",
    HITS: "sum:trace.{service}.hits{{{tags}}}.as_count()",
}

# Milliseconds per unit for latency series. Series without a unit are
# treated as nanoseconds.
MS_PER_UNIT: dict[str, float] = {
    "nanosecond": 1e-6,
    "microsecond": 1e-3,
    "millisecond": 1.0,
    "second": 1e3,
    "minute": 6e4,
}
DEFAULT_LATENCY_UNIT = "nanosecond"


class MetricQueryClient(Protocol):
    """Anything that can run a metric query over a time window."""

    def query_metrics(
        self, query: str, start: datetime, end: datetime
    ) -> list[MetricSeries]: ...


class StatsUnavailableError(Exception):
    """Every stats sub-query failed."""

    def __init__(self, selector: StatSelector, errors: dict[str, Exception]):
        self.selector = selector
        self.errors = errors
        details = "; ".join(f"{name}: {err}" for name, err in errors.items())
        super().__init__(
            f"All APM stats queries failed for service {selector.service!r}: {details}"
        )


class StatsCancelledError(Exception):
    """The caller cancelled a stats computation before it finished."""

    pass


class QueryOutcome(NamedTuple):
    """Result slot of one sub-query: series on success, error on failure."""

    series: list[MetricSeries] | None = None
    error: Exception | None = None


def build_stat_queries(selector: StatSelector) -> dict[str, str]:
    """Build the four stats queries for a selector, keyed by name."""
    tags = selector.tag_filter()
    return {
        name: template.format(service=selector.service, tags=tags)
        for name, template in STAT_QUERY_TEMPLATES.items()
    }


class StatsEngine:
    """
    Computes DerivedStats from four parallel metric queries.

    Args:
        client: Metric query backend (normally a DatadogClient).
        max_workers: Threads used for the sub-queries.
        max_data_points: Cap on points read from each sub-query's series.
        poll_interval: Seconds between cancellation checks while waiting.

    Example:
        ```python
        engine = StatsEngine(DatadogClient())
        stats = engine.compute_stats(
            StatSelector(service="checkout", environment="production"),
            resolve_time_range("now-1h", "now"),
        )
        ```
    """

    def __init__(
        self,
        client: MetricQueryClient,
        max_workers: int = 4,
        max_data_points: int = 5000,
        poll_interval: float = 0.1,
    ):
        self._client = client
        self._max_workers = max(1, max_workers)
        self._max_data_points = max_data_points
        self._poll_interval = poll_interval

    def compute_stats(
        self,
        selector: StatSelector,
        time_range: TimeRange,
        cancel_event: threading.Event | None = None,
    ) -> DerivedStats:
        """
        Run the stats queries and fold their results.

        Args:
            selector: Service, and optionally operation and environment.
            time_range: Window to query.
            cancel_event: Optional event; if set while queries are in
                flight, pending queries are abandoned.

        Returns:
            DerivedStats. Fields whose queries failed or returned no data
            are left unset, and failures are listed in failed_queries.

        Raises:
            StatsUnavailableError: If all four queries failed.
            StatsCancelledError: If cancel_event was set before completion.
        """
        queries = build_stat_queries(selector)
        outcomes = self._run_queries(queries, time_range, cancel_event)

        failures = {
            name: outcome.error
            for name, outcome in outcomes.items()
            if outcome.error is not None
        }
        if len(failures) == len(queries):
            raise StatsUnavailableError(selector, failures)

        truncated = False
        points: dict[str, list[float]] = {}
        units: dict[str, str | None] = {}
        for name, outcome in outcomes.items():
            if not outcome.series:
                points[name] = []
                units[name] = None
                continue
            # Only the first series is read; stats queries carry no "by" clause.
            kept, info = truncate_series(
                outcome.series[:1], max_series=1, max_data_points=self._max_data_points
            )
            truncated = truncated or info.truncated
            points[name] = [p.value for p in kept[0].data_points]
            units[name] = kept[0].unit

        latency = self._latency(points, units)
        error_rate = self._error_rate(points, failures)
        throughput = self._throughput(error_rate, time_range)

        stats = DerivedStats(
            selector=selector,
            time_range=time_range,
            latency=latency,
            error_rate=error_rate,
            throughput=throughput,
            failed_queries={name: str(err) for name, err in failures.items()},
            truncated=truncated,
        )
        logger.info(
            "apm_stats_computed",
            service=selector.service,
            failed_queries=sorted(failures),
            truncated=truncated,
        )
        return stats

    def _run_queries(
        self,
        queries: dict[str, str],
        time_range: TimeRange,
        cancel_event: threading.Event | None,
    ) -> dict[str, QueryOutcome]:
        """Fan the queries out to a thread pool and join on all of them."""
        executor = ThreadPoolExecutor(
            max_workers=min(self._max_workers, len(queries)),
            thread_name_prefix="apm-stats",
        )
        try:
            futures: dict[str, Future] = {
                name: executor.submit(
                    self._client.query_metrics, query, time_range.start, time_range.end
                )
                for name, query in queries.items()
            }

            pending = set(futures.values())
            while pending:
                if cancel_event is not None and cancel_event.is_set():
                    for future in pending:
                        future.cancel()
                    raise StatsCancelledError(
                        f"APM stats computation cancelled with {len(pending)} "
                        f"of {len(futures)} queries in flight"
                    )
                timeout = self._poll_interval if cancel_event is not None else None
                _, pending = wait(pending, timeout=timeout)
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

        outcomes: dict[str, QueryOutcome] = {}
        for name, future in futures.items():
            try:
                outcomes[name] = QueryOutcome(series=future.result())
            except Exception as e:
                logger.warning(
                    "apm_stats_query_failed",
                    query_name=name,
                    query=queries[name],
                    error=str(e),
                )
                outcomes[name] = QueryOutcome(error=e)
        return outcomes

    @staticmethod
    def _to_ms(values: list[float], unit: str | None) -> float:
        scale = MS_PER_UNIT.get(unit or DEFAULT_LATENCY_UNIT)
        if scale is None:
            logger.warning("apm_stats_unknown_latency_unit", unit=unit)
            scale = MS_PER_UNIT[DEFAULT_LATENCY_UNIT]
        return float(np.mean(values)) * scale

    def _latency(
        self,
        points: dict[str, list[float]],
        units: dict[str, str | None],
    ) -> LatencyStats | None:
        avg_ms = None
        p95_ms = None
        if points[AVG_LATENCY]:
            avg_ms = self._to_ms(points[AVG_LATENCY], units[AVG_LATENCY])
        if points[P95_LATENCY]:
            p95_ms = self._to_ms(points[P95_LATENCY], units[P95_LATENCY])

        if avg_ms is None and p95_ms is None:
            return None
        return LatencyStats(avg_ms=avg_ms, p95_ms=p95_ms)

    @staticmethod
    def _error_rate(
        points: dict[str, list[float]],
        failures: dict[str, Exception],
    ) -> ErrorRateStats | None:
        error_count = float(np.sum(points[ERRORS])) if points[ERRORS] else None
        total_count = float(np.sum(points[HITS])) if points[HITS] else None

        # An empty but successful errors query means no errors were recorded.
        if error_count is None and total_count is not None and ERRORS not in failures:
            error_count = 0.0

        if error_count is None and total_count is None:
            return None

        error_percent = None
        if error_count is not None and total_count is not None and total_count > 0:
            error_percent = error_count * 100 / total_count

        return ErrorRateStats(
            error_count=error_count,
            total_count=total_count,
            error_percent=error_percent,
        )

    @staticmethod
    def _throughput(
        error_rate: ErrorRateStats | None,
        time_range: TimeRange,
    ) -> ThroughputStats | None:
        if error_rate is None or not error_rate.total_count or error_rate.total_count <= 0:
            return None

        duration = time_range.duration_seconds
        requests_per_second = None
        if duration > 0:
            requests_per_second = error_rate.total_count / duration
        return ThroughputStats(
            total_requests=error_rate.total_count,
            requests_per_second=requests_per_second,
        )
