"""Shared test fixtures for the tlsforge test suite."""

from __future__ import annotations

import asyncio
import socket
import ssl
import threading
from typing import TYPE_CHECKING

import pytest
import trustme
from aiohttp import web

from tlsforge.dsl.env import clear_env_overrides

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable, Iterator
    from pathlib import Path


# =============================================================================
# Pytest configuration
# =============================================================================


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Auto-apply markers based on test directory structure."""
    for item in items:
        test_path = str(item.fspath)
        if "/unit/" in test_path:
            item.add_marker(pytest.mark.unit)
        elif "/integration/" in test_path:
            item.add_marker(pytest.mark.integration)
        elif "/e2e/" in test_path:
            item.add_marker(pytest.mark.e2e)


@pytest.fixture(autouse=True)
def _reset_env_overrides() -> Iterator[None]:
    """Keep ``-e`` overrides from leaking between tests."""
    clear_env_overrides()
    yield
    clear_env_overrides()


# =============================================================================
# Echo HTTP server
# =============================================================================


def _get_free_port() -> int:
    """Find an available port on localhost."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("", 0))
        s.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        return s.getsockname()[1]


async def _echo_handler(request: web.Request) -> web.Response:
    """Echo back request details as JSON."""
    body = await request.read()
    return web.json_response(
        {
            "method": request.method,
            "path": str(request.path),
            "headers": dict(request.headers),
            "body": body.decode("utf-8", errors="replace"),
        }
    )


async def _peer_handler(request: web.Request) -> web.Response:
    """Report the client's source port so tests can tell connections apart."""
    peer = request.transport.get_extra_info("peername") if request.transport else None
    return web.json_response({"port": peer[1] if peer else None})


async def _hello_handler(request: web.Request) -> web.Response:
    """Small static page, like nginx's welcome page but shorter."""
    return web.Response(text="hello")


async def _empty_handler(request: web.Request) -> web.Response:
    return web.Response(status=204)


async def _error_handler(request: web.Request) -> web.Response:
    """Return a configurable error status (query param: ?status=500)."""
    status = int(request.query.get("status", "500"))
    return web.json_response({"error": True}, status=status)


async def _delay_handler(request: web.Request) -> web.Response:
    """Respond after a configurable delay (query param: ?delay=0.5)."""
    delay = float(request.query.get("delay", "0.1"))
    await asyncio.sleep(delay)
    return web.json_response({"delayed_by": delay})


def _create_echo_app() -> web.Application:
    app = web.Application()
    app.router.add_route("*", "/echo{path:.*}", _echo_handler)
    app.router.add_get("/", _hello_handler)
    app.router.add_get("/empty", _empty_handler)
    app.router.add_get("/peer", _peer_handler)
    app.router.add_route("*", "/error", _error_handler)
    app.router.add_get("/delay", _delay_handler)
    return app


@pytest.fixture
async def echo_server() -> AsyncIterator[str]:
    """Aiohttp echo server running on the test's event loop.

    Returns the base URL (e.g., 'http://127.0.0.1:54321').
    """
    runner = web.AppRunner(_create_echo_app())
    await runner.setup()
    port = _get_free_port()
    site = web.TCPSite(runner, "127.0.0.1", port)
    await site.start()
    yield f"http://127.0.0.1:{port}"
    await runner.cleanup()


@pytest.fixture(scope="session")
def tls_ca() -> trustme.CA:
    """Throwaway certificate authority with an RSA key.

    RSA keys keep the ECDHE-RSA suites negotiable.
    """
    return trustme.CA(key_type=trustme.KeyType.RSA)


@pytest.fixture
async def tls_echo_server(tls_ca: trustme.CA) -> AsyncIterator[str]:
    """The echo app served over HTTPS with a certificate for 127.0.0.1.

    Returns the base URL (e.g., 'https://127.0.0.1:54321').
    """
    server_ctx = ssl.create_default_context(ssl.Purpose.CLIENT_AUTH)
    tls_ca.issue_cert("127.0.0.1", "localhost", key_type=trustme.KeyType.RSA).configure_cert(
        server_ctx
    )

    runner = web.AppRunner(_create_echo_app())
    await runner.setup()
    port = _get_free_port()
    site = web.TCPSite(runner, "127.0.0.1", port, ssl_context=server_ctx)
    await site.start()
    yield f"https://127.0.0.1:{port}"
    await runner.cleanup()


@pytest.fixture
def sync_echo_server() -> Iterator[str]:
    """Echo server on a background thread, for tests where the runner blocks.

    ``LoadTestRunner.run`` calls ``asyncio.run`` itself, so the server needs
    its own loop.
    """
    port = _get_free_port()
    ready = threading.Event()
    state: dict[str, object] = {}

    async def _serve() -> None:
        runner = web.AppRunner(_create_echo_app())
        await runner.setup()
        await web.TCPSite(runner, "127.0.0.1", port).start()
        stopped = asyncio.Event()
        state["loop"] = asyncio.get_running_loop()
        state["stopped"] = stopped
        ready.set()
        try:
            await stopped.wait()
        finally:
            await runner.cleanup()

    thread = threading.Thread(target=asyncio.run, args=(_serve(),), daemon=True)
    thread.start()
    assert ready.wait(timeout=5.0), "echo server did not start"

    yield f"http://127.0.0.1:{port}"

    loop = state["loop"]
    stopped = state["stopped"]
    loop.call_soon_threadsafe(stopped.set)  # type: ignore[attr-defined]
    thread.join(timeout=5.0)


# =============================================================================
# Scenario files
# =============================================================================


@pytest.fixture
def write_scenario(tmp_path: Path) -> Callable[[str, str], Path]:
    """Return a helper that writes scenario source into ``tmp_path``."""

    def _write(code: str, filename: str = "scenario_under_test.py") -> Path:
        path = tmp_path / filename
        path.write_text(code)
        return path

    return _write


@pytest.fixture
def scenario_file(write_scenario: Callable[[str, str], Path], sync_echo_server: str) -> Path:
    """Scenario that GETs the sync echo server once per iteration."""
    return write_scenario(
        f'''\
from __future__ import annotations

from tlsforge import HttpClient, scenario


@scenario(name="Echo Scenario")
async def default(client: HttpClient) -> None:
    await client.get("{sync_echo_server}/echo/test", name="Echo Test")
''',
        "echo_scenario.py",
    )
