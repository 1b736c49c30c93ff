"""Instrumented HTTP client with TLS and connection-reuse controls."""

from __future__ import annotations

import ssl
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING

import aiohttp

if TYPE_CHECKING:
    from collections.abc import Callable

    from tlsforge._internal.types import Headers

_ABSOLUTE_PREFIXES = ("http://", "https://")


def _noop_callback(metric: RequestMetric) -> None:
    """Default no-op metric callback."""


@dataclass
class RequestMetric:
    """Raw metric emitted for every HTTP request.

    Attributes:
        timestamp: Monotonic timestamp when the request started.
        name: Logical name for metric grouping. Defaults to the URL.
        method: HTTP method (GET, POST, etc.).
        url: Full request URL.
        status_code: HTTP response status code (0 if the request failed).
        latency_ms: Time to the fully read response body, in milliseconds.
        content_length: Response body size in bytes.
        error: Error message if the request failed, None otherwise.
        vu_id: Virtual user that made the request.
        iteration: Iteration number within the run.
        tls_version: Negotiated protocol, e.g. ``"TLSv1.2"``. None for
            plain HTTP or when the request failed before the handshake.
        tls_cipher: Negotiated OpenSSL cipher name.
    """

    timestamp: float
    name: str
    method: str
    url: str
    status_code: int
    latency_ms: float
    content_length: int
    error: str | None = None
    vu_id: int = 0
    iteration: int = 0
    tls_version: str | None = None
    tls_cipher: str | None = None


class _TlsClientResponse(aiohttp.ClientResponse):
    """Response that records the negotiated TLS parameters of its connection.

    aiohttp releases the connection as soon as the payload hits EOF, which
    for small bodies happens before the caller ever sees the response. The
    SSL object is therefore read in ``start``, while the connection is held.
    """

    tls_version: str | None = None
    tls_cipher: str | None = None

    async def start(self, connection: aiohttp.connector.Connection) -> aiohttp.ClientResponse:
        transport = connection.transport
        ssl_object = transport.get_extra_info("ssl_object") if transport is not None else None
        if ssl_object is not None:
            cipher = ssl_object.cipher()
            self.tls_version = ssl_object.version()
            self.tls_cipher = cipher[0] if cipher else None
        return await super().start(connection)


def _tls_details(resp: aiohttp.ClientResponse) -> tuple[str | None, str | None]:
    """Return the negotiated TLS version and cipher captured for ``resp``."""
    return getattr(resp, "tls_version", None), getattr(resp, "tls_cipher", None)


class HttpClient:
    """Instrumented async HTTP client wrapping ``aiohttp.ClientSession``.

    Every request is timed, its body is read, and a ``RequestMetric`` is
    passed to ``metric_callback``. The connector is built from the TLS
    context and reuse policy handed in by the engine.

    Attributes:
        base_url: Prefix for relative request paths.
        headers: Mutable headers applied to every request.
        iteration: Iteration number stamped onto emitted metrics. The engine
            updates it before each run of the scenario function.
    """

    def __init__(
        self,
        base_url: str = "",
        headers: Headers | None = None,
        metric_callback: Callable[[RequestMetric], None] | None = None,
        vu_id: int = 0,
        timeout: float = 60.0,
        *,
        ssl_context: ssl.SSLContext | None = None,
        force_close: bool = False,
    ) -> None:
        """Initialize the HTTP client.

        Args:
            base_url: Prefix for relative request paths.
            headers: Default headers applied to every request.
            metric_callback: Called with a ``RequestMetric`` after each
                request. Defaults to a no-op.
            vu_id: Virtual user identifier for metric tagging.
            timeout: Total request timeout in seconds.
            ssl_context: Context for HTTPS connections. None uses aiohttp's
                default verification.
            force_close: Close each connection once its response is read.
        """
        self.base_url = base_url.rstrip("/")
        self.headers: Headers = dict(headers or {})
        self.iteration = 0
        self._metric_callback = metric_callback or _noop_callback
        self._vu_id = vu_id
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._ssl_context = ssl_context
        self._force_close = force_close
        self._session: aiohttp.ClientSession | None = None

    @property
    def force_close(self) -> bool:
        """Whether connections are closed after every response."""
        return self._force_close

    async def __aenter__(self) -> HttpClient:
        """Open the underlying aiohttp session."""
        connector = aiohttp.TCPConnector(
            ssl=self._ssl_context if self._ssl_context is not None else True,
            force_close=self._force_close,
        )
        self._session = aiohttp.ClientSession(
            connector=connector,
            timeout=self._timeout,
            response_class=_TlsClientResponse,
        )
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object | None,
    ) -> None:
        """Close the session and its connector."""
        if self._session is not None:
            await self._session.close()
            self._session = None

    async def get(self, url: str, *, name: str | None = None, **kwargs: object) -> aiohttp.ClientResponse:
        """Send a GET request."""
        return await self.request("GET", url, name=name, **kwargs)

    async def head(self, url: str, *, name: str | None = None, **kwargs: object) -> aiohttp.ClientResponse:
        """Send a HEAD request."""
        return await self.request("HEAD", url, name=name, **kwargs)

    async def post(self, url: str, *, name: str | None = None, **kwargs: object) -> aiohttp.ClientResponse:
        """Send a POST request."""
        return await self.request("POST", url, name=name, **kwargs)

    async def put(self, url: str, *, name: str | None = None, **kwargs: object) -> aiohttp.ClientResponse:
        """Send a PUT request."""
        return await self.request("PUT", url, name=name, **kwargs)

    async def patch(self, url: str, *, name: str | None = None, **kwargs: object) -> aiohttp.ClientResponse:
        """Send a PATCH request."""
        return await self.request("PATCH", url, name=name, **kwargs)

    async def delete(self, url: str, *, name: str | None = None, **kwargs: object) -> aiohttp.ClientResponse:
        """Send a DELETE request."""
        return await self.request("DELETE", url, name=name, **kwargs)

    def resolve_url(self, url: str) -> str:
        """Return ``url`` unchanged if absolute, else joined to ``base_url``."""
        if url.startswith(_ABSOLUTE_PREFIXES):
            return url
        return f"{self.base_url}{url}"

    async def request(
        self,
        method: str,
        url: str,
        *,
        name: str | None = None,
        **kwargs: object,
    ) -> aiohttp.ClientResponse:
        """Send an HTTP request with timing and metric emission.

        The response body is read before returning, so ``await resp.text()``
        and ``await resp.json()`` work on the cached body afterwards.

        Args:
            method: HTTP method.
            url: Absolute URL, or a path appended to ``base_url``.
            name: Logical name for metric grouping. Defaults to the full URL.
            **kwargs: Passed through to ``aiohttp.ClientSession.request``.

        Returns:
            The aiohttp response object.

        Raises:
            RuntimeError: If the client is used outside ``async with``.
            aiohttp.ClientError: On connection, TLS, or protocol failure.
        """
        if self._session is None:
            msg = "HttpClient must be used as an async context manager"
            raise RuntimeError(msg)

        full_url = self.resolve_url(url)
        metric_name = name or full_url

        start = time.monotonic()
        status_code = 0
        content_length = 0
        tls_version: str | None = None
        tls_cipher: str | None = None
        error: str | None = None

        try:
            resp = await self._session.request(
                method,
                full_url,
                headers={**self.headers},
                **kwargs,  # type: ignore[arg-type]
            )
            status_code = resp.status
            tls_version, tls_cipher = _tls_details(resp)
            body = await resp.read()
            content_length = len(body)
        except Exception as exc:
            error = f"{type(exc).__name__}: {exc}"
            raise
        finally:
            self._metric_callback(
                RequestMetric(
                    timestamp=start,
                    name=metric_name,
                    method=method,
                    url=full_url,
                    status_code=status_code,
                    latency_ms=(time.monotonic() - start) * 1000,
                    content_length=content_length,
                    error=error,
                    vu_id=self._vu_id,
                    iteration=self.iteration,
                    tls_version=tls_version,
                    tls_cipher=tls_cipher,
                )
            )

        return resp
