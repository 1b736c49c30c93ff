"""``tlsforge inspect``: show a scenario's resolved options without running it."""

from __future__ import annotations

import dataclasses
import ssl
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from tlsforge._internal.errors import TlsForgeError
from tlsforge.dsl.env import env, parse_env_assignments
from tlsforge.engine.runner import LoadTestRunner

console = Console()


def inspect_cmd(
    scenario_file: Path | None = typer.Argument(
        None,
        help="Scenario .py file. Omit to inspect the built-in hello-nginx TLS probe.",
        exists=True,
        file_okay=True,
        dir_okay=False,
        readable=True,
    ),
    env_pairs: list[str] | None = typer.Option(
        None, "--env", "-e", help="KEY=VALUE overrides, as for 'tlsforge run'."
    ),
) -> None:
    """Print effective options, TLS context settings, and required variables."""
    try:
        env_overrides = parse_env_assignments(env_pairs or [])
        runner = LoadTestRunner(
            scenario_file,
            env_overrides=env_overrides,
            handle_signals=False,
        )
        prepared = runner.inspect()
    except TlsForgeError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(code=1) from exc

    table = Table(title=prepared.scenario.name, show_header=True, header_style="bold cyan")
    table.add_column("Setting", style="bold")
    table.add_column("Value")

    for field in dataclasses.fields(prepared.options):
        value = getattr(prepared.options, field.name)
        if isinstance(value, tuple):
            value = ", ".join(value) or "(default)"
        table.add_row(field.name, str(value))

    ctx = prepared.ssl_context
    table.add_row("ssl.verify_mode", ctx.verify_mode.name)
    table.add_row("ssl.check_hostname", str(ctx.check_hostname))
    table.add_row("ssl.maximum_version", _version_name(ctx.maximum_version))

    for name in prepared.scenario.required_env:
        value = env_overrides.get(name, env(name))
        shown = "[red]missing[/red]" if name in prepared.missing_env else str(value)
        table.add_row(f"env {name}", shown)

    console.print(table)

    if prepared.missing_env:
        raise typer.Exit(code=1)


def _version_name(version: ssl.TLSVersion) -> str:
    if version == ssl.TLSVersion.MAXIMUM_SUPPORTED:
        return "default"
    return version.name
