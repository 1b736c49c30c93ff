"""``tlsforge ciphers``: list the cipher suites scenarios may name."""

from __future__ import annotations

import typer
from rich.console import Console
from rich.table import Table

from tlsforge.dsl.tls import CIPHER_SUITES, TLS13_CIPHER_SUITES

console = Console()


def ciphers_cmd(
    names_only: bool = typer.Option(False, "--names-only", help="Print IANA names only."),
) -> None:
    """List supported TLS cipher suites."""
    if names_only:
        for iana_name in CIPHER_SUITES:
            typer.echo(iana_name)
        return

    table = Table(title="Supported cipher suites", show_header=True, header_style="bold cyan")
    table.add_column("IANA name")
    table.add_column("OpenSSL name")
    table.add_column("Protocol")
    for iana_name, openssl_name in CIPHER_SUITES.items():
        protocol = "TLS 1.3" if iana_name in TLS13_CIPHER_SUITES else "TLS 1.2 and older"
        table.add_row(iana_name, openssl_name, protocol)
    console.print(table)
