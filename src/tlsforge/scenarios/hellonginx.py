"""Hello-nginx TLS probe.

Sends one GET to ``https://$HELLONGINX_SERVICE_HOST:9000`` with certificate
checks off, no connection reuse, and the handshake limited to
``TLS_ECDHE_RSA_WITH_AES_128_CBC_SHA256``. This is what ``tlsforge run``
executes when no scenario file is given.
"""

from __future__ import annotations

from tlsforge import HttpClient, TestOptions, require_env, scenario

HOST_ENV = "HELLONGINX_SERVICE_HOST"
HELLONGINX_PORT = 9000

options = TestOptions(
    insecure_skip_tls_verify=True,
    no_connection_reuse=True,
    no_vu_connection_reuse=True,
    tls_cipher_suites=("TLS_ECDHE_RSA_WITH_AES_128_CBC_SHA256",),
)


def target_url() -> str:
    """Build the probe URL from the service host variable."""
    return f"https://{require_env(HOST_ENV)}:{HELLONGINX_PORT}"


@scenario(name="hellonginx TLS probe", options=options, required_env=(HOST_ENV,))
async def default(client: HttpClient) -> None:
    await client.get(target_url())
