"""Run lifecycle: virtual users, shared iterations, and signal handling."""

from __future__ import annotations

import asyncio
import contextlib
import signal
import sys
import time
from enum import Enum, auto
from typing import TYPE_CHECKING

from tlsforge._internal.errors import EngineError
from tlsforge._internal.logging import get_logger
from tlsforge.dsl.http_client import HttpClient
from tlsforge.dsl.tls import build_ssl_context
from tlsforge.metrics.collector import MetricCollector
from tlsforge.metrics.models import MetricSnapshot, TestResult

if TYPE_CHECKING:
    import ssl
    from collections.abc import Callable

    from tlsforge.dsl.options import TestOptions
    from tlsforge.dsl.scenario import ScenarioDefinition

logger = get_logger("engine.session")


class SessionState(Enum):
    """State machine for a test session."""

    CREATED = auto()
    RUNNING = auto()
    STOPPING = auto()
    COMPLETED = auto()
    FAILED = auto()


class TestSession:
    """Executes a scenario with the configured virtual users.

    Each virtual user (VU) is an asyncio task that claims iterations from a
    shared budget and awaits the scenario function once per iteration. When
    the run is duration-bound instead, every VU loops until time is up.

    Connection reuse follows the options: ``no_connection_reuse`` closes
    every connection after its response, and ``no_vu_connection_reuse``
    gives each iteration its own ``HttpClient`` (and connection pool).

    State machine: CREATED -> RUNNING -> STOPPING -> COMPLETED
                                              \\-> FAILED (on error)
    """

    __test__ = False  # not a pytest test class

    def __init__(
        self,
        scenario: ScenarioDefinition,
        options: TestOptions | None = None,
        *,
        ssl_context: ssl.SSLContext | None = None,
        timeout: float = 60.0,
        tick_interval: float = 1.0,
        graceful_stop: float = 5.0,
        on_snapshot: Callable[[MetricSnapshot], None] | None = None,
        handle_signals: bool = True,
    ) -> None:
        """Initialize a test session.

        Args:
            scenario: The scenario to execute.
            options: Effective options. Defaults to ``scenario.options``.
            ssl_context: Context for HTTPS requests. Built from the options
                when omitted.
            timeout: Request timeout used when the options do not set one.
            tick_interval: Seconds between interval snapshots.
            graceful_stop: Seconds in-flight iterations may take to finish
                once the run is stopping, before they are cancelled.
            on_snapshot: Called with every interval snapshot.
            handle_signals: Install SIGINT/SIGTERM handlers for the run.
        """
        self._scenario = scenario
        self._options = options or scenario.options
        self._ssl_context = ssl_context or build_ssl_context(self._options)
        self._timeout = self._options.request_timeout or timeout
        self._tick_interval = tick_interval
        self._graceful_stop = graceful_stop
        self._on_snapshot = on_snapshot
        self._handle_signals = handle_signals

        self._state = SessionState.CREATED
        self._collector = MetricCollector()
        self._snapshots: list[MetricSnapshot] = []
        self._next_iteration = 0
        self._active_vus = 0
        self._interrupted = False
        self._stop_event: asyncio.Event | None = None
        self._start_time = 0.0

    @property
    def state(self) -> SessionState:
        """Return the current session state."""
        return self._state

    @property
    def active_vus(self) -> int:
        """Number of virtual users currently running."""
        return self._active_vus

    async def run(self) -> TestResult:
        """Execute the run to completion.

        Returns:
            TestResult with interval snapshots and the final summary.

        Raises:
            EngineError: If a virtual user fails outside of an iteration
                (for example while opening its client).
        """
        options = self._options
        self._stop_event = asyncio.Event()
        self._state = SessionState.RUNNING
        logger.info(
            "Starting run: scenario=%s, %s",
            self._scenario.name,
            options.describe(),
        )

        if self._handle_signals:
            self._install_signal_handlers()

        self._start_time = time.monotonic()
        deadline = self._start_time + options.duration if options.duration is not None else None

        vu_tasks = [
            asyncio.create_task(self._run_vu(vu_id), name=f"vu-{vu_id}")
            for vu_id in range(options.vus)
        ]
        ticker = asyncio.create_task(self._tick_loop(), name="snapshot-ticker")
        stop_waiter = asyncio.create_task(self._stop_event.wait(), name="stop-waiter")

        try:
            pending: set[asyncio.Task[None]] = set(vu_tasks)
            while pending:
                wait_for = None if deadline is None else max(deadline - time.monotonic(), 0.0)
                done, _ = await asyncio.wait(
                    {*pending, stop_waiter},
                    timeout=wait_for,
                    return_when=asyncio.FIRST_COMPLETED,
                )
                pending -= done
                if stop_waiter in done:
                    break
                if deadline is not None and time.monotonic() >= deadline:
                    logger.info("Duration of %.1fs reached", options.duration)
                    break

            self._state = SessionState.STOPPING
            self._stop_event.set()
            await self._drain_vus(pending)
            self._raise_vu_failures(vu_tasks)
        except EngineError:
            self._state = SessionState.FAILED
            raise
        except Exception as exc:
            self._state = SessionState.FAILED
            logger.exception("Test session failed")
            raise EngineError("Test session failed") from exc
        finally:
            ticker.cancel()
            stop_waiter.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await ticker
            with contextlib.suppress(asyncio.CancelledError):
                await stop_waiter
            for task in vu_tasks:
                task.cancel()
            await asyncio.gather(*vu_tasks, return_exceptions=True)
            if self._handle_signals:
                self._remove_signal_handlers()

        end_time = time.monotonic()
        total_duration = end_time - self._start_time

        # Final interval so the last partial tick is not lost
        self._emit_snapshot(self._collector.flush(elapsed_seconds=total_duration, active_vus=0))
        final_summary = self._collector.summary(elapsed_seconds=total_duration)

        self._state = SessionState.COMPLETED
        logger.info(
            "Run completed: duration=%.1fs, iterations=%d (%d failed), requests=%d, "
            "p95=%.1fms, error_rate=%.2f%%",
            total_duration,
            final_summary.iterations,
            final_summary.iterations_failed,
            final_summary.total_requests,
            final_summary.latency_p95,
            final_summary.error_rate * 100,
        )

        return TestResult(
            scenario_name=self._scenario.name,
            options_description=options.describe(),
            start_time=self._start_time,
            end_time=end_time,
            duration_seconds=total_duration,
            snapshots=list(self._snapshots),
            final_summary=final_summary,
            interrupted=self._interrupted,
        )

    async def stop(self) -> None:
        """Request a graceful stop; in-flight iterations may still finish."""
        if self._state == SessionState.RUNNING and self._stop_event is not None:
            logger.info("Graceful stop requested")
            self._interrupted = True
            self._stop_event.set()

    def _make_client(self, vu_id: int) -> HttpClient:
        return HttpClient(
            headers=dict(self._scenario.default_headers),
            metric_callback=self._collector.record,
            vu_id=vu_id,
            timeout=self._timeout,
            ssl_context=self._ssl_context,
            force_close=self._options.no_connection_reuse,
        )

    def _claim_iteration(self) -> int | None:
        """Take the next iteration number, or None once the run is over."""
        if self._stop_event is None or self._stop_event.is_set():
            return None
        total = self._options.total_iterations
        if total is not None and self._next_iteration >= total:
            return None
        iteration = self._next_iteration
        self._next_iteration += 1
        return iteration

    async def _run_vu(self, vu_id: int) -> None:
        self._active_vus += 1
        try:
            if self._options.no_vu_connection_reuse:
                while (iteration := self._claim_iteration()) is not None:
                    async with self._make_client(vu_id) as client:
                        await self._run_iteration(client, vu_id, iteration)
            else:
                async with self._make_client(vu_id) as client:
                    while (iteration := self._claim_iteration()) is not None:
                        await self._run_iteration(client, vu_id, iteration)
        finally:
            self._active_vus -= 1

    async def _run_iteration(self, client: HttpClient, vu_id: int, iteration: int) -> None:
        client.iteration = iteration
        try:
            await self._scenario.func(client)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.warning(
                "Iteration %d failed for VU %d: %s: %s",
                iteration,
                vu_id,
                type(exc).__name__,
                exc,
            )
            logger.debug("Iteration %d traceback", iteration, exc_info=True)
            self._collector.record_iteration(ok=False)
        else:
            self._collector.record_iteration(ok=True)
        # Yield so a scenario that never suspends cannot starve the loop
        await asyncio.sleep(0)

    async def _drain_vus(self, pending: set[asyncio.Task[None]]) -> None:
        """Give running VUs ``graceful_stop`` seconds, then cancel them."""
        if not pending:
            return
        _done, still_running = await asyncio.wait(pending, timeout=self._graceful_stop)
        for task in still_running:
            task.cancel()
        if still_running:
            logger.info("Cancelled %d VUs still running after graceful stop", len(still_running))
            await asyncio.wait(still_running, timeout=2.0)

    def _raise_vu_failures(self, vu_tasks: list[asyncio.Task[None]]) -> None:
        for task in vu_tasks:
            if not task.done() or task.cancelled():
                continue
            exc = task.exception()
            if exc is not None:
                msg = f"Virtual user {task.get_name()} failed: {type(exc).__name__}: {exc}"
                raise EngineError(msg) from exc

    async def _tick_loop(self) -> None:
        while True:
            await asyncio.sleep(self._tick_interval)
            elapsed = time.monotonic() - self._start_time
            snapshot = self._collector.flush(elapsed_seconds=elapsed, active_vus=self._active_vus)
            self._emit_snapshot(snapshot)
            logger.debug(
                "Tick %.1fs: vus=%d, iterations=%d (total %d), rps=%.1f, p95=%.1fms, errors=%d",
                elapsed,
                snapshot.active_vus,
                snapshot.iterations,
                self._collector.total_iterations,
                snapshot.requests_per_second,
                snapshot.latency_p95,
                snapshot.total_errors,
            )

    def _emit_snapshot(self, snapshot: MetricSnapshot) -> None:
        self._snapshots.append(snapshot)
        if self._on_snapshot is not None:
            self._on_snapshot(snapshot)

    def _install_signal_handlers(self) -> None:
        """Route SIGINT and SIGTERM to a graceful stop."""
        loop = asyncio.get_running_loop()

        def _signal_handler() -> None:
            logger.info("Signal received, initiating graceful shutdown")
            self._interrupted = True
            if self._stop_event is not None:
                self._stop_event.set()

        if sys.platform != "win32":
            loop.add_signal_handler(signal.SIGINT, _signal_handler)
            loop.add_signal_handler(signal.SIGTERM, _signal_handler)
        else:
            # Windows doesn't support add_signal_handler
            signal.signal(signal.SIGINT, lambda _s, _f: loop.call_soon_threadsafe(_signal_handler))
            signal.signal(signal.SIGTERM, lambda _s, _f: loop.call_soon_threadsafe(_signal_handler))

    def _remove_signal_handlers(self) -> None:
        if sys.platform != "win32":
            loop = asyncio.get_running_loop()
            for sig in (signal.SIGINT, signal.SIGTERM):
                loop.remove_signal_handler(sig)
        else:
            signal.signal(signal.SIGINT, signal.default_int_handler)
            signal.signal(signal.SIGTERM, signal.SIG_DFL)
