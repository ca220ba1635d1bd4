"""Tests for the derived APM statistics engine."""

import threading
from datetime import datetime, timedelta

import pytest

from datadog_mcp.clients.datadog import DatadogQueryError
from datadog_mcp.models.metrics import MEAN_OF_MEANS_NOTE, StatSelector, TimeRange
from datadog_mcp.stats import (
    AVG_LATENCY,
    ERRORS,
    HITS,
    P95_LATENCY,
    StatsCancelledError,
    StatsEngine,
    StatsUnavailableError,
    build_stat_queries,
)

from tests.conftest import NOW, FakeMetricsClient, make_series

SELECTOR = StatSelector(service="checkout")
QUERIES = build_stat_queries(SELECTOR)


def healthy_responses():
    return {
        QUERIES[AVG_LATENCY]: [make_series([2e6, 4e6])],
        QUERIES[P95_LATENCY]: [make_series([8e6, 12e6])],
        QUERIES[ERRORS]: [make_series([5.0, 15.0], metric="trace.checkout.errors")],
        QUERIES[HITS]: [make_series([400.0, 600.0], metric="trace.checkout.hits")],
    }


def query_error(name):
    return DatadogQueryError("Datadog API error: 500 - boom", QUERIES[name], NOW, NOW)


class TestBuildStatQueries:
    """Tests for query construction."""

    def test_service_only(self):
        queries = build_stat_queries(StatSelector(service="checkout"))

        assert queries[AVG_LATENCY] == "avg:trace.checkout.duration{service:checkout}"
        assert queries[P95_LATENCY] == "p95:trace.checkout.duration{service:checkout}"
        assert queries[ERRORS] == "sum:trace.checkout.errors{service:checkout}.as_count()"
        assert queries[HITS] == "sum:trace.checkout.hits{service:checkout}.as_count()"

    def test_tag_filter_order(self):
        selector = StatSelector(service="checkout", operation="GET /cart", environment="prod")

        queries = build_stat_queries(selector)

        for query in queries.values():
            assert "{service:checkout,resource_name:GET /cart,env:prod}" in query

    def test_environment_without_operation(self):
        selector = StatSelector(service="checkout", environment="prod")
        assert selector.tag_filter() == "service:checkout,env:prod"

    def test_blank_optional_fields_ignored(self):
        selector = StatSelector(service=" checkout ", operation="  ", environment="")

        assert selector.service == "checkout"
        assert selector.operation is None
        assert selector.tag_filter() == "service:checkout"

    def test_blank_service_rejected(self):
        with pytest.raises(ValueError):
            StatSelector(service="   ")


class TestComputeStats:
    """Tests for StatsEngine.compute_stats."""

    def test_healthy_service(self, hour_range):
        engine = StatsEngine(FakeMetricsClient(healthy_responses()))

        stats = engine.compute_stats(SELECTOR, hour_range)

        assert stats.error_rate.error_count == 20.0
        assert stats.error_rate.total_count == 1000.0
        assert stats.error_rate.error_percent == 2.0
        assert stats.throughput.total_requests == 1000.0
        assert stats.throughput.requests_per_second == pytest.approx(0.2778, abs=1e-4)
        assert stats.latency.avg_ms == pytest.approx(3.0)
        assert stats.latency.p95_ms == pytest.approx(10.0)
        assert stats.failed_queries == {}
        assert stats.truncated is False
        assert stats.note == MEAN_OF_MEANS_NOTE

    def test_queries_use_time_range(self, hour_range):
        client = FakeMetricsClient(healthy_responses())

        StatsEngine(client).compute_stats(SELECTOR, hour_range)

        assert sorted(call[0] for call in client.calls) == sorted(QUERIES.values())
        assert all(call[1:] == (hour_range.start, hour_range.end) for call in client.calls)

    def test_partial_failure(self, hour_range):
        responses = healthy_responses()
        responses[QUERIES[P95_LATENCY]] = query_error(P95_LATENCY)

        stats = StatsEngine(FakeMetricsClient(responses)).compute_stats(SELECTOR, hour_range)

        assert stats.latency.avg_ms == pytest.approx(3.0)
        assert stats.latency.p95_ms is None
        assert stats.error_rate.error_percent == 2.0
        assert stats.throughput is not None
        assert list(stats.failed_queries) == [P95_LATENCY]
        assert QUERIES[P95_LATENCY] in stats.failed_queries[P95_LATENCY]

    def test_all_queries_failed(self, hour_range):
        responses = {query: query_error(name) for name, query in QUERIES.items()}
        engine = StatsEngine(FakeMetricsClient(responses))

        with pytest.raises(StatsUnavailableError) as exc_info:
            engine.compute_stats(SELECTOR, hour_range)

        assert set(exc_info.value.errors) == {AVG_LATENCY, P95_LATENCY, ERRORS, HITS}
        assert "checkout" in str(exc_info.value)

    def test_all_queries_empty(self, hour_range):
        stats = StatsEngine(FakeMetricsClient()).compute_stats(SELECTOR, hour_range)

        assert stats.latency is None
        assert stats.error_rate is None
        assert stats.throughput is None
        assert stats.failed_queries == {}

    def test_no_errors_recorded(self, hour_range):
        responses = healthy_responses()
        responses[QUERIES[ERRORS]] = []

        stats = StatsEngine(FakeMetricsClient(responses)).compute_stats(SELECTOR, hour_range)

        assert stats.error_rate.error_count == 0.0
        assert stats.error_rate.error_percent == 0.0

    def test_errors_query_failed(self, hour_range):
        responses = healthy_responses()
        responses[QUERIES[ERRORS]] = query_error(ERRORS)

        stats = StatsEngine(FakeMetricsClient(responses)).compute_stats(SELECTOR, hour_range)

        assert stats.error_rate.error_count is None
        assert stats.error_rate.total_count == 1000.0
        assert stats.error_rate.error_percent is None
        assert stats.throughput.total_requests == 1000.0

    def test_zero_hits(self, hour_range):
        responses = healthy_responses()
        responses[QUERIES[ERRORS]] = [make_series([0.0])]
        responses[QUERIES[HITS]] = [make_series([0.0, 0.0])]

        stats = StatsEngine(FakeMetricsClient(responses)).compute_stats(SELECTOR, hour_range)

        assert stats.error_rate.total_count == 0.0
        assert stats.error_rate.error_percent is None
        assert stats.throughput is None

    def test_zero_length_window(self):
        instant = TimeRange(start=NOW, end=NOW)

        stats = StatsEngine(FakeMetricsClient(healthy_responses())).compute_stats(
            SELECTOR, instant
        )

        assert stats.throughput.total_requests == 1000.0
        assert stats.throughput.requests_per_second is None

    @pytest.mark.parametrize(
        "unit,values,expected_ms",
        [
            (None, [2e6, 4e6], 3.0),
            ("nanosecond", [2e6, 4e6], 3.0),
            ("microsecond", [1500.0, 2500.0], 2.0),
            ("millisecond", [5.0, 7.0], 6.0),
            ("second", [0.1, 0.3], 200.0),
        ],
    )
    def test_latency_units(self, hour_range, unit, values, expected_ms):
        responses = {QUERIES[AVG_LATENCY]: [make_series(values, unit=unit)]}

        stats = StatsEngine(FakeMetricsClient(responses)).compute_stats(SELECTOR, hour_range)

        assert stats.latency.avg_ms == pytest.approx(expected_ms)
        assert stats.latency.p95_ms is None

    def test_only_first_series_used(self, hour_range):
        responses = {
            QUERIES[HITS]: [make_series([10.0]), make_series([1000.0])],
        }

        stats = StatsEngine(FakeMetricsClient(responses)).compute_stats(SELECTOR, hour_range)

        assert stats.error_rate.total_count == 10.0

    def test_data_point_cap(self, hour_range):
        responses = {QUERIES[HITS]: [make_series([1.0, 2.0, 100.0, 100.0, 100.0])]}
        engine = StatsEngine(FakeMetricsClient(responses), max_data_points=2)

        stats = engine.compute_stats(SELECTOR, hour_range)

        assert stats.error_rate.total_count == 3.0
        assert stats.truncated is True

    def test_idempotent(self, hour_range):
        engine = StatsEngine(FakeMetricsClient(healthy_responses()))

        first = engine.compute_stats(SELECTOR, hour_range)
        second = engine.compute_stats(SELECTOR, hour_range)

        assert first == second


class BarrierClient:
    """Blocks each query until all four are in flight at once."""

    def __init__(self, parties: int = 4):
        self.barrier = threading.Barrier(parties, timeout=5)

    def query_metrics(self, query, start: datetime, end: datetime):
        self.barrier.wait()
        return [make_series([1.0])]


class BlockingClient:
    """Blocks every query until released."""

    def __init__(self):
        self.release = threading.Event()
        self.started = threading.Event()

    def query_metrics(self, query, start: datetime, end: datetime):
        self.started.set()
        self.release.wait(timeout=5)
        return []


class TestConcurrency:
    """Tests for parallel execution and cancellation."""

    def test_queries_run_in_parallel(self, hour_range):
        engine = StatsEngine(BarrierClient(), max_workers=4)

        stats = engine.compute_stats(SELECTOR, hour_range)

        assert stats.failed_queries == {}
        assert stats.error_rate.total_count == 1.0

    def test_cancelled_before_completion(self, hour_range):
        client = BlockingClient()
        cancel = threading.Event()
        cancel.set()
        engine = StatsEngine(client, poll_interval=0.01)

        try:
            with pytest.raises(StatsCancelledError):
                engine.compute_stats(SELECTOR, hour_range, cancel_event=cancel)
        finally:
            client.release.set()

    def test_cancelled_while_in_flight(self, hour_range):
        client = BlockingClient()
        cancel = threading.Event()
        engine = StatsEngine(client, poll_interval=0.01)

        def cancel_when_started():
            client.started.wait(timeout=5)
            cancel.set()

        canceller = threading.Thread(target=cancel_when_started)
        canceller.start()
        try:
            with pytest.raises(StatsCancelledError):
                engine.compute_stats(SELECTOR, hour_range, cancel_event=cancel)
        finally:
            client.release.set()
            canceller.join(timeout=5)

    def test_unset_cancel_event_completes(self, hour_range):
        engine = StatsEngine(FakeMetricsClient(healthy_responses()), poll_interval=0.01)

        stats = engine.compute_stats(SELECTOR, hour_range, cancel_event=threading.Event())

        assert stats.error_rate.error_percent == 2.0


class TestTimeRangeDuration:
    """Window duration feeds requests_per_second."""

    def test_duration_seconds(self):
        time_range = TimeRange(start=NOW - timedelta(minutes=30), end=NOW)
        assert time_range.duration_seconds == 1800
