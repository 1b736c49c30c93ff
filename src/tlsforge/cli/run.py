"""``tlsforge run``: execute a scenario with live terminal output."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

import typer
from rich.console import Console
from rich.live import Live
from rich.panel import Panel
from rich.table import Table

from tlsforge._internal.errors import TlsForgeError
from tlsforge.dsl.env import parse_env_assignments
from tlsforge.engine.runner import LoadTestRunner

if TYPE_CHECKING:
    from tlsforge.metrics.models import MetricSnapshot, TestResult

console = Console(stderr=True)


# ---------------------------------------------------------------------------
# Rich rendering
# ---------------------------------------------------------------------------


def _make_live_table(snapshot: MetricSnapshot | None, totals: dict[str, int]) -> Table:
    """Build the table refreshed while the run is in progress."""
    table = Table(show_header=True, header_style="bold cyan", expand=True)
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")

    if snapshot is None:
        table.add_row("Status", "Starting...")
        return table

    table.add_row("Elapsed", f"{snapshot.elapsed_seconds:.0f}s")
    table.add_row("Active VUs", str(snapshot.active_vus))
    table.add_row("Iterations", str(totals["iterations"]))
    table.add_row("Requests", str(totals["requests"]))
    table.add_row("Requests/sec", f"{snapshot.requests_per_second:.1f}")
    table.add_row("p95 Latency", f"{snapshot.latency_p95:.1f}ms")
    table.add_row("Errors", str(totals["errors"]))
    return table


def _print_summary(result: TestResult) -> None:
    """Print the final summary, endpoint, and TLS tables."""
    summary = result.final_summary
    table = Table(title="Run Complete", show_header=True, header_style="bold green", expand=True)
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")

    table.add_row("Scenario", result.scenario_name)
    table.add_row("Options", result.options_description)
    table.add_row("Duration", f"{result.duration_seconds:.1f}s")

    if summary is not None:
        table.add_row("Iterations", str(summary.iterations))
        table.add_row("Failed Iterations", str(summary.iterations_failed))
        table.add_row("Total Requests", str(summary.total_requests))
        table.add_row("p50 Latency", f"{summary.latency_p50:.1f}ms")
        table.add_row("p95 Latency", f"{summary.latency_p95:.1f}ms")
        table.add_row("p99 Latency", f"{summary.latency_p99:.1f}ms")
        table.add_row("Total Errors", str(summary.total_errors))
        table.add_row("Error Rate", f"{summary.error_rate * 100:.2f}%")
        for error_type, count in sorted(summary.errors_by_type.items()):
            table.add_row(f"  {error_type}", str(count))

        if summary.endpoints:
            ep_table = Table(title="Requests", show_header=True, header_style="bold cyan", expand=True)
            ep_table.add_column("Name")
            ep_table.add_column("Requests", justify="right")
            ep_table.add_column("p50", justify="right")
            ep_table.add_column("p95", justify="right")
            ep_table.add_column("Errors", justify="right")
            for ep in summary.endpoints.values():
                ep_table.add_row(
                    ep.name,
                    str(ep.request_count),
                    f"{ep.latency_p50:.1f}ms",
                    f"{ep.latency_p95:.1f}ms",
                    str(ep.error_count),
                )
            console.print(ep_table)

        if summary.tls_ciphers or summary.tls_versions:
            tls_table = Table(title="Negotiated TLS", show_header=True, header_style="bold cyan")
            tls_table.add_column("Kind")
            tls_table.add_column("Value")
            tls_table.add_column("Requests", justify="right")
            for version, count in sorted(summary.tls_versions.items()):
                tls_table.add_row("version", version, str(count))
            for cipher, count in sorted(summary.tls_ciphers.items()):
                tls_table.add_row("cipher", cipher, str(count))
            console.print(tls_table)

    console.print(table)


# ---------------------------------------------------------------------------
# Command
# ---------------------------------------------------------------------------


def run_cmd(
    scenario_file: Path | None = typer.Argument(
        None,
        help="Scenario .py file. Omit to run the built-in hello-nginx TLS probe.",
        exists=True,
        file_okay=True,
        dir_okay=False,
        readable=True,
    ),
    vus: int | None = typer.Option(None, "--vus", "-u", help="Concurrent virtual users.", min=1),
    iterations: int | None = typer.Option(
        None, "--iterations", "-i", help="Total iterations shared by all VUs.", min=1
    ),
    duration: float | None = typer.Option(
        None, "--duration", "-d", help="Run length in seconds.", min=0.001
    ),
    insecure_skip_tls_verify: bool | None = typer.Option(
        None,
        "--insecure-skip-tls-verify/--verify-tls",
        help="Skip or enforce server certificate verification.",
    ),
    no_connection_reuse: bool | None = typer.Option(
        None,
        "--no-connection-reuse/--connection-reuse",
        help="Close every connection after its response.",
    ),
    no_vu_connection_reuse: bool | None = typer.Option(
        None,
        "--no-vu-connection-reuse/--vu-connection-reuse",
        help="Open fresh connections for every iteration.",
    ),
    cipher_suites: list[str] | None = typer.Option(
        None,
        "--tls-cipher-suite",
        help="Allowed IANA cipher suite (repeatable). Replaces the scenario's list.",
    ),
    env_pairs: list[str] | None = typer.Option(
        None,
        "--env",
        "-e",
        help="KEY=VALUE made visible to the scenario's env() lookups (repeatable).",
    ),
    fail_on_error_rate: float | None = typer.Option(
        None,
        "--fail-on-error-rate",
        help="Exit non-zero if the request error rate exceeds this fraction (e.g. 0.05).",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable DEBUG logging."),
    json_logs: bool | None = typer.Option(
        None, "--json-logs/--text-logs", help="Structured JSON log output."
    ),
) -> None:
    """Execute a scenario and print a summary."""
    overrides = {
        "vus": vus,
        "iterations": iterations,
        "duration": duration,
        "insecure_skip_tls_verify": insecure_skip_tls_verify,
        "no_connection_reuse": no_connection_reuse,
        "no_vu_connection_reuse": no_vu_connection_reuse,
        "tls_cipher_suites": tuple(cipher_suites) if cipher_suites else None,
    }

    totals = {"iterations": 0, "requests": 0, "errors": 0}

    try:
        env_overrides = parse_env_assignments(env_pairs or [])
        with Live(
            _make_live_table(None, totals),
            console=console,
            refresh_per_second=2,
            transient=True,
        ) as live:

            def _on_snapshot(snapshot: MetricSnapshot) -> None:
                totals["iterations"] += snapshot.iterations
                totals["requests"] += snapshot.total_requests
                totals["errors"] += snapshot.total_errors
                live.update(_make_live_table(snapshot, totals))

            runner = LoadTestRunner(
                scenario_file,
                overrides=overrides,
                env_overrides=env_overrides,
                on_snapshot=_on_snapshot,
                log_level=logging.DEBUG if verbose else logging.INFO,
                json_logs=json_logs,
            )
            console.print(
                Panel(
                    f"[bold]Scenario:[/bold] {Path(runner.scenario_path).name}",
                    title="tlsforge",
                    border_style="cyan",
                )
            )
            result = runner.run()
    except TlsForgeError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(code=1) from exc

    _print_summary(result)

    if result.interrupted:
        console.print("[yellow]Run was interrupted before completion.[/yellow]")

    if (
        fail_on_error_rate is not None
        and result.final_summary is not None
        and result.final_summary.error_rate > fail_on_error_rate
    ):
        console.print(
            f"[red]FAIL:[/red] Error rate {result.final_summary.error_rate * 100:.2f}% "
            f"exceeds threshold {fail_on_error_rate * 100:.2f}%"
        )
        raise typer.Exit(code=1)

    console.print("[green]Run completed.[/green]")
