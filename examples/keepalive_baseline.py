"""Keep-alive baseline against the same nginx service.

The hello-nginx probe disables every form of connection reuse. This
scenario keeps connections alive and sends several requests per
iteration, so comparing the two runs shows what the handshake costs.
Run with:

    tlsforge run examples/keepalive_baseline.py --vus 5 --duration 30 \\
        -e HELLONGINX_SERVICE_HOST=hellonginx.default.svc
"""

from __future__ import annotations

from tlsforge import HttpClient, TestOptions, require_env, scenario

options = TestOptions(
    insecure_skip_tls_verify=True,
    tls_cipher_suites=("TLS_ECDHE_RSA_WITH_AES_128_CBC_SHA256",),
    vus=5,
    duration=30.0,
)


@scenario(
    name="hellonginx keep-alive baseline",
    options=options,
    required_env=("HELLONGINX_SERVICE_HOST",),
)
async def default(client: HttpClient) -> None:
    url = f"https://{require_env('HELLONGINX_SERVICE_HOST')}:9000"
    for _ in range(5):
        await client.get(url, name="GET /")
