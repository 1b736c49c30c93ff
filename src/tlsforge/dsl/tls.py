"""TLS cipher-suite catalogue and ``ssl.SSLContext`` construction.

Scenario options name cipher suites by their IANA identifiers (for example
``TLS_ECDHE_RSA_WITH_AES_128_CBC_SHA256``). OpenSSL knows them by different
names, so the catalogue below maps one to the other.

OpenSSL's cipher string only governs TLS 1.2 and older. The TLS 1.3 suites
cannot be narrowed through ``set_ciphers``, so when the configured list holds
no TLS 1.3 suite the context is capped at TLS 1.2; otherwise a server
preferring 1.3 would negotiate a suite outside the list.
"""

from __future__ import annotations

import ssl
from typing import TYPE_CHECKING

from tlsforge._internal.errors import ConfigError
from tlsforge._internal.logging import get_logger

if TYPE_CHECKING:
    from tlsforge._internal.types import CipherSuites
    from tlsforge.dsl.options import TestOptions

logger = get_logger("dsl.tls")

# IANA name -> OpenSSL name, in the order they are listed to users.
CIPHER_SUITES: dict[str, str] = {
    "TLS_RSA_WITH_RC4_128_SHA": "RC4-SHA",
    "TLS_RSA_WITH_3DES_EDE_CBC_SHA": "DES-CBC3-SHA",
    "TLS_RSA_WITH_AES_128_CBC_SHA": "AES128-SHA",
    "TLS_RSA_WITH_AES_256_CBC_SHA": "AES256-SHA",
    "TLS_RSA_WITH_AES_128_CBC_SHA256": "AES128-SHA256",
    "TLS_RSA_WITH_AES_128_GCM_SHA256": "AES128-GCM-SHA256",
    "TLS_RSA_WITH_AES_256_GCM_SHA384": "AES256-GCM-SHA384",
    "TLS_ECDHE_ECDSA_WITH_RC4_128_SHA": "ECDHE-ECDSA-RC4-SHA",
    "TLS_ECDHE_ECDSA_WITH_AES_128_CBC_SHA": "ECDHE-ECDSA-AES128-SHA",
    "TLS_ECDHE_ECDSA_WITH_AES_256_CBC_SHA": "ECDHE-ECDSA-AES256-SHA",
    "TLS_ECDHE_RSA_WITH_RC4_128_SHA": "ECDHE-RSA-RC4-SHA",
    "TLS_ECDHE_RSA_WITH_3DES_EDE_CBC_SHA": "ECDHE-RSA-DES-CBC3-SHA",
    "TLS_ECDHE_RSA_WITH_AES_128_CBC_SHA": "ECDHE-RSA-AES128-SHA",
    "TLS_ECDHE_RSA_WITH_AES_256_CBC_SHA": "ECDHE-RSA-AES256-SHA",
    "TLS_ECDHE_ECDSA_WITH_AES_128_CBC_SHA256": "ECDHE-ECDSA-AES128-SHA256",
    "TLS_ECDHE_RSA_WITH_AES_128_CBC_SHA256": "ECDHE-RSA-AES128-SHA256",
    "TLS_ECDHE_RSA_WITH_AES_128_GCM_SHA256": "ECDHE-RSA-AES128-GCM-SHA256",
    "TLS_ECDHE_ECDSA_WITH_AES_128_GCM_SHA256": "ECDHE-ECDSA-AES128-GCM-SHA256",
    "TLS_ECDHE_RSA_WITH_AES_256_GCM_SHA384": "ECDHE-RSA-AES256-GCM-SHA384",
    "TLS_ECDHE_ECDSA_WITH_AES_256_GCM_SHA384": "ECDHE-ECDSA-AES256-GCM-SHA384",
    "TLS_ECDHE_RSA_WITH_CHACHA20_POLY1305_SHA256": "ECDHE-RSA-CHACHA20-POLY1305",
    "TLS_ECDHE_ECDSA_WITH_CHACHA20_POLY1305_SHA256": "ECDHE-ECDSA-CHACHA20-POLY1305",
    "TLS_AES_128_GCM_SHA256": "TLS_AES_128_GCM_SHA256",
    "TLS_AES_256_GCM_SHA384": "TLS_AES_256_GCM_SHA384",
    "TLS_CHACHA20_POLY1305_SHA256": "TLS_CHACHA20_POLY1305_SHA256",
}

TLS13_CIPHER_SUITES = frozenset(
    {
        "TLS_AES_128_GCM_SHA256",
        "TLS_AES_256_GCM_SHA384",
        "TLS_CHACHA20_POLY1305_SHA256",
    }
)

TLS_VERSIONS: dict[str, ssl.TLSVersion] = {
    "tls1.0": ssl.TLSVersion.TLSv1,
    "tls1.1": ssl.TLSVersion.TLSv1_1,
    "tls1.2": ssl.TLSVersion.TLSv1_2,
    "tls1.3": ssl.TLSVersion.TLSv1_3,
}


def supported_cipher_suites() -> list[str]:
    """Return the IANA names of every cipher suite tlsforge accepts."""
    return list(CIPHER_SUITES)


def openssl_cipher_string(suites: CipherSuites | list[str]) -> str:
    """Translate IANA suite names to an OpenSSL cipher string.

    TLS 1.3 suites are skipped since OpenSSL's cipher string does not
    cover them.

    Args:
        suites: Ordered IANA cipher-suite identifiers.

    Returns:
        Colon-separated OpenSSL cipher names, preserving order.

    Raises:
        ConfigError: If a name is not in :data:`CIPHER_SUITES`.
    """
    names: list[str] = []
    for suite in suites:
        try:
            openssl_name = CIPHER_SUITES[suite]
        except KeyError:
            msg = f"Unknown TLS cipher suite: {suite!r}"
            raise ConfigError(msg) from None
        if suite not in TLS13_CIPHER_SUITES:
            names.append(openssl_name)
    return ":".join(names)


def build_ssl_context(options: TestOptions) -> ssl.SSLContext:
    """Build the client ``SSLContext`` described by scenario options.

    Args:
        options: Scenario options carrying the TLS settings.

    Returns:
        A configured client-side context.

    Raises:
        ConfigError: If OpenSSL cannot honour the requested suites or
            version bounds.
    """
    ctx = ssl.create_default_context(ssl.Purpose.SERVER_AUTH)

    if options.insecure_skip_tls_verify:
        # check_hostname has to be turned off before verify_mode can drop
        ctx.check_hostname = False
        ctx.verify_mode = ssl.CERT_NONE

    min_version = TLS_VERSIONS[options.tls_version_min] if options.tls_version_min else None
    max_version = TLS_VERSIONS[options.tls_version_max] if options.tls_version_max else None

    suites = options.tls_cipher_suites
    if suites:
        cipher_string = openssl_cipher_string(suites)
        has_tls13 = any(s in TLS13_CIPHER_SUITES for s in suites)

        if cipher_string:
            try:
                ctx.set_ciphers(cipher_string)
            except ssl.SSLError as exc:
                msg = f"OpenSSL rejected cipher suites {list(suites)}: {exc}"
                raise ConfigError(msg) from exc
        else:
            # Only TLS 1.3 suites listed
            min_version = ssl.TLSVersion.TLSv1_3

        if not has_tls13:
            if max_version is None or max_version > ssl.TLSVersion.TLSv1_2:
                max_version = ssl.TLSVersion.TLSv1_2

    if min_version is not None and max_version is not None and min_version > max_version:
        msg = (
            f"TLS version range is empty: minimum {min_version.name} is above "
            f"maximum {max_version.name} (cipher suites: {list(suites)})"
        )
        raise ConfigError(msg)

    try:
        if min_version is not None:
            ctx.minimum_version = min_version
        if max_version is not None:
            ctx.maximum_version = max_version
    except ValueError as exc:
        msg = f"TLS version bounds not supported by this OpenSSL build: {exc}"
        raise ConfigError(msg) from exc

    logger.debug(
        "SSL context: verify=%s, ciphers=%s, min=%s, max=%s",
        ctx.verify_mode != ssl.CERT_NONE,
        list(suites) or "default",
        min_version.name if min_version else "default",
        max_version.name if max_version else "default",
    )
    return ctx
