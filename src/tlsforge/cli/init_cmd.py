"""``tlsforge init``: scaffold a new scenario file from a template."""

from __future__ import annotations

from pathlib import Path
from string import Template

import typer
from rich.console import Console

console = Console(stderr=True)

_SCENARIO_TEMPLATE = Template('''\
"""$title scenario.

Run with:
    tlsforge run $filename -e $host_env=example.internal
"""

from __future__ import annotations

from tlsforge import HttpClient, TestOptions, require_env, scenario

options = TestOptions(
    insecure_skip_tls_verify=True,
    no_connection_reuse=True,
    no_vu_connection_reuse=True,
    tls_cipher_suites=("TLS_ECDHE_RSA_WITH_AES_128_CBC_SHA256",),
)


@scenario(name="$title", options=options, required_env=("$host_env",))
async def default(client: HttpClient) -> None:
    await client.get(f"https://{require_env('$host_env')}:$port")
''')


def init_cmd(
    name: str = typer.Argument(
        "my_scenario",
        help="Scenario name (used for the filename).",
    ),
    port: int = typer.Option(443, "--port", help="Target HTTPS port.", min=1, max=65535),
    force: bool = typer.Option(False, "--force", help="Overwrite an existing file."),
) -> None:
    """Scaffold a scenario file in the current directory."""
    safe_name = "".join(c if c.isalnum() or c == "_" else "_" for c in name).lower()
    if not safe_name or safe_name[0].isdigit():
        safe_name = "scenario_" + safe_name

    filename = f"{safe_name}.py"
    target = Path.cwd() / filename
    if target.exists() and not force:
        console.print(f"[red]File already exists:[/red] {filename}")
        raise typer.Exit(code=1)

    content = _SCENARIO_TEMPLATE.substitute(
        title=name.replace("_", " ").replace("-", " ").title(),
        filename=filename,
        host_env=f"{safe_name.upper()}_HOST",
        port=port,
    )
    target.write_text(content)
    console.print(f"[green]Created scenario:[/green] {filename}")
