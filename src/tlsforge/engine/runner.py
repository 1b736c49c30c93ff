"""Top-level blocking orchestrator."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any

from tlsforge._internal.config import TlsForgeConfig, load_config
from tlsforge._internal.errors import ConfigError, EngineError, TlsForgeError
from tlsforge._internal.logging import get_logger, setup_logging
from tlsforge.dsl.env import get_env_overrides, set_env_overrides
from tlsforge.dsl.loader import BUILTIN_SCENARIO, load_scenario
from tlsforge.dsl.tls import build_ssl_context
from tlsforge.engine.session import TestSession

if TYPE_CHECKING:
    import ssl
    from collections.abc import Callable, Iterator, Mapping

    from tlsforge.dsl.options import TestOptions
    from tlsforge.dsl.scenario import ScenarioDefinition
    from tlsforge.metrics.models import MetricSnapshot, TestResult

logger = get_logger("engine.runner")


@dataclass
class PreparedRun:
    """A loaded scenario with its effective options, ready to execute.

    Attributes:
        scenario: The loaded scenario.
        options: Scenario options with CLI overrides applied.
        ssl_context: TLS context built from ``options``.
        missing_env: Required environment variables that are not set.
    """

    scenario: ScenarioDefinition
    options: TestOptions
    ssl_context: ssl.SSLContext
    missing_env: list[str]


class LoadTestRunner:
    """Loads a scenario, validates its inputs, and runs it to completion.

    Attributes:
        scenario_path: Absolute path of the scenario file. The built-in
            hello-nginx probe is used when no path is given.
    """

    def __init__(
        self,
        scenario_path: str | Path | None = None,
        *,
        overrides: Mapping[str, Any] | None = None,
        env_overrides: Mapping[str, str] | None = None,
        on_snapshot: Callable[[MetricSnapshot], None] | None = None,
        log_level: int = logging.INFO,
        json_logs: bool | None = None,
        config: TlsForgeConfig | None = None,
        handle_signals: bool = True,
    ) -> None:
        """Initialize the runner.

        Args:
            scenario_path: Scenario file. None selects the built-in probe.
            overrides: Option overrides (``TestOptions`` field names); None
                values are ignored.
            env_overrides: Values layered over ``os.environ`` for the
                scenario's ``env()`` lookups.
            on_snapshot: Called with each interval snapshot.
            log_level: Logging level.
            json_logs: Force JSON log output. None defers to the config.
            config: Global settings. Loaded from the environment when omitted.
            handle_signals: Let SIGINT/SIGTERM stop the run gracefully.

        Raises:
            EngineError: If the scenario file does not exist.
            ConfigError: If the environment configuration is invalid.
        """
        path = Path(scenario_path) if scenario_path is not None else BUILTIN_SCENARIO
        self.scenario_path = str(path.resolve())
        self._overrides = dict(overrides or {})
        self._env_overrides = dict(env_overrides or {})
        self._on_snapshot = on_snapshot
        self._log_level = log_level
        self._config = config or load_config()
        self._json_logs = self._config.json_logs if json_logs is None else json_logs
        self._handle_signals = handle_signals

        if not Path(self.scenario_path).exists():
            msg = f"Scenario file not found: {self.scenario_path}"
            raise EngineError(msg)

    @contextlib.contextmanager
    def _env_layer(self) -> Iterator[None]:
        """Apply ``env_overrides`` for the duration of the block."""
        previous = get_env_overrides()
        set_env_overrides({**previous, **self._env_overrides})
        try:
            yield
        finally:
            set_env_overrides(previous)

    def inspect(self) -> PreparedRun:
        """Load and resolve the scenario without sending any traffic.

        Missing environment variables are reported in the result instead
        of raising.
        """
        with self._env_layer():
            return self._prepare()

    def _prepare(self) -> PreparedRun:
        scenario = load_scenario(self.scenario_path)
        options = scenario.options.with_overrides(**self._overrides)
        return PreparedRun(
            scenario=scenario,
            options=options,
            ssl_context=build_ssl_context(options),
            missing_env=scenario.missing_env(),
        )

    def run(self) -> TestResult:
        """Execute the scenario and return the results.

        Blocks until the iterations are used up, the duration elapses, or
        a stop signal arrives.

        Raises:
            ScenarioError: If the scenario cannot be loaded.
            ConfigError: If options are invalid or required environment
                variables are missing.
            EngineError: If the run fails unexpectedly.
        """
        setup_logging(level=self._log_level, json_format=self._json_logs)

        with self._env_layer():
            prepared = self._prepare()
            if prepared.missing_env:
                msg = (
                    f"Scenario {prepared.scenario.name!r} requires environment "
                    f"variable(s): {', '.join(prepared.missing_env)}"
                )
                raise ConfigError(msg)

            session = TestSession(
                prepared.scenario,
                prepared.options,
                ssl_context=prepared.ssl_context,
                timeout=self._config.request_timeout,
                tick_interval=self._config.tick_interval,
                on_snapshot=self._on_snapshot,
                handle_signals=self._handle_signals,
            )

            try:
                return asyncio.run(session.run())
            except TlsForgeError:
                raise
            except Exception as exc:
                logger.exception("Load test failed")
                raise EngineError("Load test failed") from exc
