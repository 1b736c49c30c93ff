"""Metric aggregation dataclasses for tlsforge."""

from __future__ import annotations

from dataclasses import dataclass, field

# RequestMetric lives in dsl/http_client.py; re-exported for convenience.
from tlsforge.dsl.http_client import RequestMetric

__all__ = [
    "EndpointMetrics",
    "MetricSnapshot",
    "RequestMetric",
    "TestResult",
]


@dataclass
class EndpointMetrics:
    """Aggregated metrics for one logical request name.

    Attributes:
        name: Request name (the URL unless the scenario passed ``name=``).
        request_count: Number of requests.
        error_count: Requests that failed or returned status >= 400.
        error_rate: ``error_count / request_count``.
        requests_per_second: Request rate over the aggregation interval.
        latency_min: Minimum latency in milliseconds.
        latency_max: Maximum latency in milliseconds.
        latency_avg: Mean latency in milliseconds.
        latency_p50: Median latency in milliseconds.
        latency_p90: 90th percentile latency in milliseconds.
        latency_p95: 95th percentile latency in milliseconds.
        latency_p99: 99th percentile latency in milliseconds.
    """

    name: str
    request_count: int = 0
    error_count: int = 0
    error_rate: float = 0.0
    requests_per_second: float = 0.0
    latency_min: float = 0.0
    latency_max: float = 0.0
    latency_avg: float = 0.0
    latency_p50: float = 0.0
    latency_p90: float = 0.0
    latency_p95: float = 0.0
    latency_p99: float = 0.0


@dataclass
class MetricSnapshot:
    """Aggregated metrics for one interval, or for the whole run.

    Attributes:
        timestamp: Monotonic timestamp of the snapshot.
        elapsed_seconds: Seconds since the run started.
        active_vus: Virtual users running when the snapshot was taken.
        total_requests: Requests in the interval.
        requests_per_second: Request rate in the interval.
        latency_min: Minimum latency (ms).
        latency_max: Maximum latency (ms).
        latency_avg: Mean latency (ms).
        latency_p50: Median latency (ms).
        latency_p90: 90th percentile latency (ms).
        latency_p95: 95th percentile latency (ms).
        latency_p99: 99th percentile latency (ms).
        total_errors: Failed requests in the interval.
        error_rate: ``total_errors / total_requests``.
        errors_by_status: Error counts by HTTP status code.
        errors_by_type: Error counts by exception type name.
        tls_versions: Request counts by negotiated TLS version.
        tls_ciphers: Request counts by negotiated cipher.
        iterations: Completed iterations, failed ones included.
        iterations_failed: Iterations that raised.
        endpoints: Per-request-name metrics.
    """

    timestamp: float
    elapsed_seconds: float
    active_vus: int
    total_requests: int = 0
    requests_per_second: float = 0.0
    latency_min: float = 0.0
    latency_max: float = 0.0
    latency_avg: float = 0.0
    latency_p50: float = 0.0
    latency_p90: float = 0.0
    latency_p95: float = 0.0
    latency_p99: float = 0.0
    total_errors: int = 0
    error_rate: float = 0.0
    errors_by_status: dict[int, int] = field(default_factory=dict)
    errors_by_type: dict[str, int] = field(default_factory=dict)
    tls_versions: dict[str, int] = field(default_factory=dict)
    tls_ciphers: dict[str, int] = field(default_factory=dict)
    iterations: int = 0
    iterations_failed: int = 0
    endpoints: dict[str, EndpointMetrics] = field(default_factory=dict)


@dataclass
class TestResult:
    """Complete result of a run.

    Attributes:
        scenario_name: Name of the executed scenario.
        options_description: ``TestOptions.describe()`` of the effective options.
        start_time: Monotonic start time.
        end_time: Monotonic end time.
        duration_seconds: Wall-clock duration.
        snapshots: Interval snapshots in order.
        final_summary: Snapshot covering the whole run.
        interrupted: True when the run was stopped by a signal or ``stop()``.
    """

    __test__ = False  # not a pytest test class

    scenario_name: str
    options_description: str
    start_time: float
    end_time: float
    duration_seconds: float
    snapshots: list[MetricSnapshot] = field(default_factory=list)
    final_summary: MetricSnapshot | None = None
    interrupted: bool = False
