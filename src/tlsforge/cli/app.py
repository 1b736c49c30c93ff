"""Main Typer application: entry point for the ``tlsforge`` CLI."""

from __future__ import annotations

import typer

from tlsforge import __version__
from tlsforge.cli.ciphers_cmd import ciphers_cmd
from tlsforge.cli.init_cmd import init_cmd
from tlsforge.cli.inspect_cmd import inspect_cmd
from tlsforge.cli.run import run_cmd

app = typer.Typer(
    name="tlsforge",
    help="HTTP load-test scenarios with precise TLS and connection control.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

app.command("run", help="Run a scenario (default: the hello-nginx TLS probe).")(run_cmd)
app.command("init", help="Scaffold a new scenario file.")(init_cmd)
app.command("inspect", help="Show a scenario's resolved options without running it.")(inspect_cmd)
app.command("ciphers", help="List supported TLS cipher suites.")(ciphers_cmd)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"tlsforge {__version__}")
        raise typer.Exit


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """tlsforge: HTTP load tests with precise TLS and connection control."""
