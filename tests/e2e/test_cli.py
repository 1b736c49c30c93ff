"""End-to-end tests for the tlsforge CLI."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from typer.testing import CliRunner

from tlsforge import __version__
from tlsforge.cli.app import app
from tlsforge.dsl.tls import CIPHER_SUITES

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path

runner = CliRunner()

# Wide terminal so rich does not wrap table cells and help text
_WIDE = {"COLUMNS": "200"}


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def error_scenario(write_scenario: Callable[..., Path], sync_echo_server: str) -> Path:
    """Scenario whose only request returns HTTP 500."""
    return write_scenario(
        f'''\
from __future__ import annotations

from tlsforge import HttpClient, scenario


@scenario(name="Error Scenario")
async def default(client: HttpClient) -> None:
    await client.get("{sync_echo_server}/error?status=500", name="Error Endpoint")
''',
        "error_scenario.py",
    )


@pytest.fixture
def _no_probe_host(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("HELLONGINX_SERVICE_HOST", raising=False)


# ---------------------------------------------------------------------------
# Tests: version and help
# ---------------------------------------------------------------------------


def test_version_flag():
    """--version prints version and exits 0."""
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_version_short_flag():
    result = runner.invoke(app, ["-V"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_help_output():
    result = runner.invoke(app, ["--help"], env=_WIDE)
    assert result.exit_code == 0
    assert "tlsforge" in result.output.lower()


def test_run_help():
    """tlsforge run --help lists the connection and TLS flags."""
    result = runner.invoke(app, ["run", "--help"], env=_WIDE)
    assert result.exit_code == 0
    assert "--insecure-skip-tls-verify" in result.output
    assert "--no-connection-reuse" in result.output
    assert "--no-vu-connection-reuse" in result.output
    assert "--tls-cipher-suite" in result.output


# ---------------------------------------------------------------------------
# Tests: tlsforge ciphers
# ---------------------------------------------------------------------------


def test_ciphers_names_only():
    result = runner.invoke(app, ["ciphers", "--names-only"])
    assert result.exit_code == 0
    assert result.output.split() == list(CIPHER_SUITES)


def test_ciphers_table():
    result = runner.invoke(app, ["ciphers"], env=_WIDE)
    assert result.exit_code == 0
    assert "TLS_ECDHE_RSA_WITH_AES_128_CBC_SHA256" in result.output
    assert "ECDHE-RSA-AES128-SHA256" in result.output


# ---------------------------------------------------------------------------
# Tests: tlsforge init
# ---------------------------------------------------------------------------


def test_init_creates_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    """tlsforge init creates a scenario file in cwd."""
    monkeypatch.chdir(tmp_path)
    result = runner.invoke(app, ["init", "edge_proxy", "--port", "8443"])
    assert result.exit_code == 0
    content = (tmp_path / "edge_proxy.py").read_text()
    assert "@scenario" in content
    assert 'required_env=("EDGE_PROXY_HOST",)' in content
    assert ":8443" in content
    assert "TLS_ECDHE_RSA_WITH_AES_128_CBC_SHA256" in content


def test_init_default_name(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.chdir(tmp_path)
    result = runner.invoke(app, ["init"])
    assert result.exit_code == 0
    assert (tmp_path / "my_scenario.py").exists()


def test_init_rejects_existing_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    """tlsforge init refuses to overwrite an existing file."""
    monkeypatch.chdir(tmp_path)
    (tmp_path / "existing.py").write_text("# placeholder")
    result = runner.invoke(app, ["init", "existing"])
    assert result.exit_code == 1
    assert (tmp_path / "existing.py").read_text() == "# placeholder"


def test_init_force_overwrites(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.chdir(tmp_path)
    (tmp_path / "existing.py").write_text("# placeholder")
    result = runner.invoke(app, ["init", "existing", "--force"])
    assert result.exit_code == 0
    assert "@scenario" in (tmp_path / "existing.py").read_text()


# ---------------------------------------------------------------------------
# Tests: tlsforge inspect
# ---------------------------------------------------------------------------


@pytest.mark.usefixtures("_no_probe_host")
def test_inspect_builtin_probe():
    result = runner.invoke(
        app, ["inspect", "-e", "HELLONGINX_SERVICE_HOST=nginx.local"], env=_WIDE
    )
    assert result.exit_code == 0, result.output
    assert "hellonginx TLS probe" in result.output
    assert "TLS_ECDHE_RSA_WITH_AES_128_CBC_SHA256" in result.output
    assert "CERT_NONE" in result.output
    assert "nginx.local" in result.output


@pytest.mark.usefixtures("_no_probe_host")
def test_inspect_flags_missing_env():
    result = runner.invoke(app, ["inspect"], env=_WIDE)
    assert result.exit_code == 1
    assert "missing" in result.output


def test_inspect_rejects_malformed_env():
    result = runner.invoke(app, ["inspect", "-e", "NOEQUALS"], env=_WIDE)
    assert result.exit_code == 1
    assert "KEY=VALUE" in result.output


# ---------------------------------------------------------------------------
# Tests: tlsforge run
# ---------------------------------------------------------------------------


@pytest.mark.timeout(30)
def test_run_basic(scenario_file: Path):
    """tlsforge run executes a scenario and exits 0."""
    result = runner.invoke(app, ["run", str(scenario_file), "--iterations", "3"], env=_WIDE)
    assert result.exit_code == 0, f"output: {result.output}"
    assert "Run completed" in result.output
    assert "Echo Test" in result.output


@pytest.mark.timeout(30)
def test_run_with_vus_and_duration(scenario_file: Path):
    result = runner.invoke(
        app,
        ["run", str(scenario_file), "--vus", "2", "--duration", "1", "--no-connection-reuse"],
        env=_WIDE,
    )
    assert result.exit_code == 0, f"output: {result.output}"
    assert "no connection reuse" in result.output


@pytest.mark.timeout(30)
def test_fail_on_error_rate_triggers(error_scenario: Path):
    """--fail-on-error-rate exits 1 when threshold exceeded."""
    result = runner.invoke(
        app,
        ["run", str(error_scenario), "--iterations", "2", "--fail-on-error-rate", "0.5"],
        env=_WIDE,
    )
    assert result.exit_code == 1
    assert "FAIL" in result.output


@pytest.mark.timeout(30)
def test_fail_on_error_rate_passes(scenario_file: Path):
    result = runner.invoke(
        app,
        ["run", str(scenario_file), "--fail-on-error-rate", "0.01"],
        env=_WIDE,
    )
    assert result.exit_code == 0, f"output: {result.output}"


@pytest.mark.usefixtures("_no_probe_host")
def test_run_builtin_probe_requires_host():
    """Without a file the built-in probe runs and needs its host variable."""
    result = runner.invoke(app, ["run"], env=_WIDE)
    assert result.exit_code == 1
    assert "HELLONGINX_SERVICE_HOST" in result.output


def test_run_rejects_unknown_cipher(scenario_file: Path):
    result = runner.invoke(
        app, ["run", str(scenario_file), "--tls-cipher-suite", "TLS_BOGUS"], env=_WIDE
    )
    assert result.exit_code == 1
    assert "Unknown TLS cipher suite" in result.output


def test_run_nonexistent_scenario(tmp_path: Path):
    """tlsforge run with a nonexistent file exits non-zero."""
    result = runner.invoke(app, ["run", str(tmp_path / "does_not_exist.py")])
    assert result.exit_code != 0
