"""
Pydantic models for Datadog metrics and derived APM statistics.

These models provide structured representations of metrics data
optimized for AI consumption and analysis.
"""

from datetime import datetime

from pydantic import BaseModel, Field, field_validator


class MetricPoint(BaseModel):
    """A single data point in a metric series."""

    timestamp: datetime = Field(description="Data point timestamp")
    value: float = Field(description="Metric value at this timestamp")


class MetricSeries(BaseModel):
    """A metric time series with its data points."""

    metric: str = Field(description="Datadog metric name")
    tags: list[str] = Field(default_factory=list, description="Series tag set")
    unit: str | None = Field(default=None, description="Unit name, if reported")
    data_points: list[MetricPoint] = Field(
        default_factory=list, description="Data points ordered by timestamp"
    )

    @property
    def latest_value(self) -> float | None:
        """Get the most recent value."""
        if self.data_points:
            return self.data_points[-1].value
        return None


class TimeRange(BaseModel):
    """A concrete time window. Resolution guarantees start <= end."""

    start: datetime = Field(description="Window start (from)")
    end: datetime = Field(description="Window end (to)")

    @property
    def duration_seconds(self) -> float:
        """Length of the window in seconds."""
        return (self.end - self.start).total_seconds()


class MetricQueryResult(BaseModel):
    """Result of a metric time-series query after truncation."""

    query: str = Field(description="The executed query")
    time_range: TimeRange = Field(description="Queried window")
    series: list[MetricSeries] = Field(description="Returned series")
    total_series: int = Field(description="Series count before truncation")
    truncated: bool = Field(
        default=False, description="Whether series or data points were dropped"
    )


class StatSelector(BaseModel):
    """Selects the slice of APM telemetry a stats query targets."""

    service: str = Field(description="Service name (required)")
    operation: str | None = Field(
        default=None, description="Operation/resource name to filter by"
    )
    environment: str | None = Field(
        default=None, description="Environment to filter by (e.g., production)"
    )

    @field_validator("service")
    @classmethod
    def _service_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("service must not be empty")
        return value

    @field_validator("operation", "environment")
    @classmethod
    def _blank_to_none(cls, value: str | None) -> str | None:
        if value is not None and not value.strip():
            return None
        return value

    def tag_filter(self) -> str:
        """
        Build the Datadog tag filter for this selector.

        Order is fixed: service, then resource_name, then env.
        """
        tags = f"service:{self.service}"
        if self.operation:
            tags += f",resource_name:{self.operation}"
        if self.environment:
            tags += f",env:{self.environment}"
        return tags


class LatencyStats(BaseModel):
    """Average and p95 latency in milliseconds."""

    avg_ms: float | None = Field(
        default=None, description="Mean of the average-latency series (ms)"
    )
    p95_ms: float | None = Field(
        default=None, description="Mean of the p95-latency series (ms)"
    )


class ErrorRateStats(BaseModel):
    """Error counts over the window."""

    error_count: float | None = Field(default=None, description="Errors counted")
    total_count: float | None = Field(default=None, description="Requests counted")
    error_percent: float | None = Field(
        default=None,
        description="100 * errors / total, only when total_count > 0",
    )


class ThroughputStats(BaseModel):
    """Request throughput over the window."""

    total_requests: float = Field(description="Requests counted over the window")
    requests_per_second: float | None = Field(
        default=None, description="total_requests / window seconds"
    )


MEAN_OF_MEANS_NOTE = (
    "Values average the pre-aggregated points returned by Datadog "
    "(mean of means). They are a coarse summary, not an exact percentile "
    "recomputation from raw spans."
)


class DerivedStats(BaseModel):
    """
    Health summary for a service over a time window.

    Each of latency, error_rate and throughput is present only when the
    underlying queries returned data. Absence is a valid outcome, not an
    error.
    """

    selector: StatSelector = Field(description="Service/operation/env selector")
    time_range: TimeRange = Field(description="Queried window")
    latency: LatencyStats | None = Field(default=None, description="Latency")
    error_rate: ErrorRateStats | None = Field(default=None, description="Errors")
    throughput: ThroughputStats | None = Field(default=None, description="Throughput")
    failed_queries: dict[str, str] = Field(
        default_factory=dict, description="Sub-queries that failed, with the error"
    )
    truncated: bool = Field(
        default=False, description="Whether an intermediate series was capped"
    )
    note: str = Field(default=MEAN_OF_MEANS_NOTE, description="How to read the values")
