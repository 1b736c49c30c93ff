"""In-memory metric collection for a single run."""

from __future__ import annotations

import time
from collections import defaultdict, deque
from typing import TYPE_CHECKING

import numpy as np

from tlsforge._internal.logging import get_logger
from tlsforge.metrics.models import EndpointMetrics, MetricSnapshot

if TYPE_CHECKING:
    from tlsforge.dsl.http_client import RequestMetric

logger = get_logger("metrics.collector")

_PERCENTILES = [50.0, 90.0, 95.0, 99.0]


def _latency_stats(latencies: list[float]) -> tuple[float, ...]:
    """Return ``(min, max, avg, p50, p90, p95, p99)`` in milliseconds."""
    if not latencies:
        return (0.0,) * 7

    arr = np.array(latencies, dtype=np.float64)
    p50, p90, p95, p99 = np.percentile(arr, _PERCENTILES)
    return (
        float(np.min(arr)),
        float(np.max(arr)),
        float(np.mean(arr)),
        float(p50),
        float(p90),
        float(p95),
        float(p99),
    )


def _is_error(metric: RequestMetric) -> bool:
    return metric.error is not None or metric.status_code >= 400


class MetricCollector:
    """Buffers request metrics and iteration outcomes for a run.

    ``record`` is handed to every ``HttpClient`` as its metric callback.
    ``flush`` drains the buffer into an interval snapshot; ``summary``
    covers everything seen since the collector was created.
    """

    def __init__(self) -> None:
        self._buffer: deque[RequestMetric] = deque()
        self._all_metrics: list[RequestMetric] = []
        self._last_flush_time = time.monotonic()
        self._tick_iterations = 0
        self._tick_iterations_failed = 0
        self._total_iterations = 0
        self._total_iterations_failed = 0

    @property
    def pending_count(self) -> int:
        """Number of metrics not yet flushed."""
        return len(self._buffer)

    @property
    def total_iterations(self) -> int:
        """Iterations recorded since the collector was created, failed ones included."""
        return self._total_iterations

    def record(self, metric: RequestMetric) -> None:
        """Buffer a request metric. Safe to call from any coroutine."""
        self._buffer.append(metric)

    def record_iteration(self, *, ok: bool) -> None:
        """Count one finished iteration."""
        self._tick_iterations += 1
        self._total_iterations += 1
        if not ok:
            self._tick_iterations_failed += 1
            self._total_iterations_failed += 1

    def flush(self, elapsed_seconds: float, active_vus: int) -> MetricSnapshot:
        """Drain the buffer and return a snapshot of the interval since the last flush."""
        drained: list[RequestMetric] = []
        while self._buffer:
            drained.append(self._buffer.popleft())
        self._all_metrics.extend(drained)

        now = time.monotonic()
        interval = max(now - self._last_flush_time, 0.001)
        self._last_flush_time = now

        snapshot = self._build_snapshot(
            metrics=drained,
            elapsed_seconds=elapsed_seconds,
            active_vus=active_vus,
            interval=interval,
            iterations=self._tick_iterations,
            iterations_failed=self._tick_iterations_failed,
        )
        self._tick_iterations = 0
        self._tick_iterations_failed = 0
        return snapshot

    def summary(self, elapsed_seconds: float) -> MetricSnapshot:
        """Return a cumulative snapshot of the whole run.

        Metrics still in the buffer are included without being drained.
        """
        return self._build_snapshot(
            metrics=[*self._all_metrics, *self._buffer],
            elapsed_seconds=elapsed_seconds,
            active_vus=0,
            interval=max(elapsed_seconds, 0.001),
            iterations=self._total_iterations,
            iterations_failed=self._total_iterations_failed,
        )

    def _build_snapshot(
        self,
        metrics: list[RequestMetric],
        elapsed_seconds: float,
        active_vus: int,
        interval: float,
        iterations: int,
        iterations_failed: int,
    ) -> MetricSnapshot:
        if not metrics:
            return MetricSnapshot(
                timestamp=time.monotonic(),
                elapsed_seconds=elapsed_seconds,
                active_vus=active_vus,
                iterations=iterations,
                iterations_failed=iterations_failed,
            )

        by_endpoint: dict[str, list[RequestMetric]] = defaultdict(list)
        errors_by_status: dict[int, int] = defaultdict(int)
        errors_by_type: dict[str, int] = defaultdict(int)
        tls_versions: dict[str, int] = defaultdict(int)
        tls_ciphers: dict[str, int] = defaultdict(int)
        total_errors = 0

        for metric in metrics:
            by_endpoint[metric.name].append(metric)
            if metric.tls_version is not None:
                tls_versions[metric.tls_version] += 1
            if metric.tls_cipher is not None:
                tls_ciphers[metric.tls_cipher] += 1

            if _is_error(metric):
                total_errors += 1
                if metric.status_code >= 400:
                    errors_by_status[metric.status_code] += 1
                if metric.error is not None:
                    # "ClientConnectorError: ..." -> "ClientConnectorError"
                    errors_by_type[metric.error.split(":")[0].strip()] += 1

        lat_min, lat_max, lat_avg, p50, p90, p95, p99 = _latency_stats(
            [m.latency_ms for m in metrics]
        )
        total_requests = len(metrics)

        endpoints: dict[str, EndpointMetrics] = {}
        for name, ep_metrics in by_endpoint.items():
            ep_count = len(ep_metrics)
            ep_errors = sum(1 for m in ep_metrics if _is_error(m))
            ep_min, ep_max, ep_avg, ep_p50, ep_p90, ep_p95, ep_p99 = _latency_stats(
                [m.latency_ms for m in ep_metrics]
            )
            endpoints[name] = EndpointMetrics(
                name=name,
                request_count=ep_count,
                error_count=ep_errors,
                error_rate=ep_errors / ep_count,
                requests_per_second=ep_count / interval,
                latency_min=ep_min,
                latency_max=ep_max,
                latency_avg=ep_avg,
                latency_p50=ep_p50,
                latency_p90=ep_p90,
                latency_p95=ep_p95,
                latency_p99=ep_p99,
            )

        return MetricSnapshot(
            timestamp=time.monotonic(),
            elapsed_seconds=elapsed_seconds,
            active_vus=active_vus,
            total_requests=total_requests,
            requests_per_second=total_requests / interval,
            latency_min=lat_min,
            latency_max=lat_max,
            latency_avg=lat_avg,
            latency_p50=p50,
            latency_p90=p90,
            latency_p95=p95,
            latency_p99=p99,
            total_errors=total_errors,
            error_rate=total_errors / total_requests,
            errors_by_status=dict(errors_by_status),
            errors_by_type=dict(errors_by_type),
            tls_versions=dict(tls_versions),
            tls_ciphers=dict(tls_ciphers),
            iterations=iterations,
            iterations_failed=iterations_failed,
            endpoints=endpoints,
        )
