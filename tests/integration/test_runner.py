"""Integration tests for the LoadTestRunner."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from tlsforge._internal.config import TlsForgeConfig
from tlsforge._internal.errors import ConfigError, EngineError
from tlsforge.dsl.env import get_env_overrides
from tlsforge.dsl.loader import BUILTIN_SCENARIO
from tlsforge.engine.runner import LoadTestRunner

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path

pytestmark = pytest.mark.timeout(30)

_FAST = TlsForgeConfig(request_timeout=5.0, tick_interval=0.1)


class TestLoadTestRunner:
    def test_runs_scenario_file(self, scenario_file: Path):
        result = LoadTestRunner(scenario_file, config=_FAST).run()

        assert result.scenario_name == "Echo Scenario"
        assert result.final_summary is not None
        assert result.final_summary.total_requests == 1
        assert result.final_summary.endpoints["Echo Test"].request_count == 1

    def test_option_overrides(self, scenario_file: Path):
        result = LoadTestRunner(
            scenario_file,
            overrides={"vus": 2, "iterations": 5, "duration": None},
            config=_FAST,
        ).run()

        assert result.final_summary is not None
        assert result.final_summary.iterations == 5
        assert "2 VUs, 5 shared iterations" in result.options_description

    def test_env_overrides_reach_scenario_and_are_restored(
        self,
        write_scenario: Callable[..., Path],
        sync_echo_server: str,
        monkeypatch: pytest.MonkeyPatch,
    ):
        monkeypatch.delenv("ECHO_BASE", raising=False)
        path = write_scenario(
            """\
from tlsforge import HttpClient, require_env, scenario


@scenario(name="Env Driven", required_env=("ECHO_BASE",))
async def default(client: HttpClient) -> None:
    await client.get(require_env("ECHO_BASE") + "/echo/env")
"""
        )
        result = LoadTestRunner(
            path, env_overrides={"ECHO_BASE": sync_echo_server}, config=_FAST
        ).run()

        assert result.final_summary is not None
        assert result.final_summary.total_requests == 1
        assert result.final_summary.total_errors == 0
        assert get_env_overrides() == {}

    def test_missing_required_env(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.delenv("HELLONGINX_SERVICE_HOST", raising=False)
        runner = LoadTestRunner(config=_FAST)
        with pytest.raises(ConfigError, match="HELLONGINX_SERVICE_HOST"):
            runner.run()

    def test_builtin_probe_is_default(self):
        runner = LoadTestRunner(config=_FAST)
        assert runner.scenario_path == str(BUILTIN_SCENARIO.resolve())

    def test_inspect_builtin_probe(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.delenv("HELLONGINX_SERVICE_HOST", raising=False)
        runner = LoadTestRunner(
            env_overrides={"HELLONGINX_SERVICE_HOST": "nginx.local"}, config=_FAST
        )
        prepared = runner.inspect()

        assert prepared.missing_env == []
        assert prepared.options.tls_cipher_suites == ("TLS_ECDHE_RSA_WITH_AES_128_CBC_SHA256",)
        assert prepared.ssl_context.check_hostname is False
        assert get_env_overrides() == {}

    def test_inspect_reports_missing_env(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.delenv("HELLONGINX_SERVICE_HOST", raising=False)
        prepared = LoadTestRunner(config=_FAST).inspect()
        assert prepared.missing_env == ["HELLONGINX_SERVICE_HOST"]

    def test_invalid_cipher_override(self, scenario_file: Path):
        runner = LoadTestRunner(
            scenario_file, overrides={"tls_cipher_suites": ("TLS_BOGUS",)}, config=_FAST
        )
        with pytest.raises(ConfigError, match="Unknown TLS cipher suite"):
            runner.run()

    def test_nonexistent_scenario(self, tmp_path: Path):
        with pytest.raises(EngineError, match="not found"):
            LoadTestRunner(tmp_path / "nonexistent.py", config=_FAST)
