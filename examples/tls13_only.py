"""Verified TLS 1.3 check with a pinned suite.

Certificate checks stay on, and the handshake must settle on TLS 1.3 with
AES-256-GCM. The summary's "Negotiated TLS" table confirms what the server
actually picked. Run with:

    tlsforge run examples/tls13_only.py -e TARGET_HOST=www.example.com
"""

from __future__ import annotations

from tlsforge import HttpClient, TestOptions, env, scenario

options = TestOptions(
    tls_cipher_suites=("TLS_AES_256_GCM_SHA384",),
    tls_version_min="tls1.3",
    iterations=3,
)


@scenario(name="TLS 1.3 only", options=options, required_env=("TARGET_HOST",))
async def default(client: HttpClient) -> None:
    port = env("TARGET_PORT", "443")
    await client.get(f"https://{env('TARGET_HOST')}:{port}/", name="GET /")
