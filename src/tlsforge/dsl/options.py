"""Scenario options: connection, TLS, and execution settings."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from typing import Any

from tlsforge._internal.errors import ConfigError
from tlsforge.dsl.tls import CIPHER_SUITES, TLS_VERSIONS


@dataclass(frozen=True)
class TestOptions:
    """Options declared by a scenario and optionally overridden on the CLI.

    Attributes:
        insecure_skip_tls_verify: Skip server certificate and hostname checks.
        no_connection_reuse: Close every connection after its response.
        no_vu_connection_reuse: Open a fresh client for every iteration so
            no connection survives from one iteration of a virtual user to
            the next.
        tls_cipher_suites: Ordered IANA cipher-suite names allowed in the
            handshake. Empty keeps the OpenSSL defaults.
        tls_version_min: Lowest TLS version (``"tls1.0"`` .. ``"tls1.3"``).
        tls_version_max: Highest TLS version.
        vus: Number of concurrent virtual users.
        iterations: Total iterations shared across all virtual users.
        duration: Run length in seconds. Caps ``iterations`` when both are set.
        request_timeout: Per-request timeout in seconds. None falls back to
            the global configuration.
    """

    __test__ = False  # not a pytest test class

    insecure_skip_tls_verify: bool = False
    no_connection_reuse: bool = False
    no_vu_connection_reuse: bool = False
    tls_cipher_suites: tuple[str, ...] = ()
    tls_version_min: str | None = None
    tls_version_max: str | None = None
    vus: int = 1
    iterations: int | None = None
    duration: float | None = None
    request_timeout: float | None = None

    def __post_init__(self) -> None:
        # Accept any sequence from callers but store an immutable tuple
        object.__setattr__(self, "tls_cipher_suites", tuple(self.tls_cipher_suites))

        for suite in self.tls_cipher_suites:
            if suite not in CIPHER_SUITES:
                msg = (
                    f"Unknown TLS cipher suite: {suite!r}. "
                    f"Run 'tlsforge ciphers' to list supported names."
                )
                raise ConfigError(msg)

        for field_name in ("tls_version_min", "tls_version_max"):
            value = getattr(self, field_name)
            if value is not None and value not in TLS_VERSIONS:
                msg = f"{field_name} must be one of {sorted(TLS_VERSIONS)}, got {value!r}"
                raise ConfigError(msg)

        if (
            self.tls_version_min is not None
            and self.tls_version_max is not None
            and TLS_VERSIONS[self.tls_version_min] > TLS_VERSIONS[self.tls_version_max]
        ):
            msg = (
                f"tls_version_min ({self.tls_version_min}) is above "
                f"tls_version_max ({self.tls_version_max})"
            )
            raise ConfigError(msg)

        if self.vus < 1:
            msg = f"vus must be >= 1, got {self.vus}"
            raise ConfigError(msg)
        if self.iterations is not None and self.iterations < 1:
            msg = f"iterations must be >= 1, got {self.iterations}"
            raise ConfigError(msg)
        if self.duration is not None and self.duration <= 0:
            msg = f"duration must be positive, got {self.duration}"
            raise ConfigError(msg)
        if self.request_timeout is not None and self.request_timeout <= 0:
            msg = f"request_timeout must be positive, got {self.request_timeout}"
            raise ConfigError(msg)

    @property
    def total_iterations(self) -> int | None:
        """Shared iteration budget, or None when the run is duration-bound."""
        if self.iterations is None and self.duration is None:
            return 1
        return self.iterations

    def with_overrides(self, **changes: Any) -> TestOptions:
        """Return a copy with every non-None value in ``changes`` applied.

        Raises:
            ConfigError: If a key is not an option name or a value is invalid.
        """
        valid = {f.name for f in dataclasses.fields(self)}
        unknown = sorted(set(changes) - valid)
        if unknown:
            msg = f"Unknown option(s): {', '.join(unknown)}"
            raise ConfigError(msg)
        applied = {k: v for k, v in changes.items() if v is not None}
        if not applied:
            return self
        return dataclasses.replace(self, **applied)

    def describe(self) -> str:
        """Return a one-line summary for logs and the CLI banner."""
        total = self.total_iterations
        if total is not None and self.duration is not None:
            execution = f"{self.vus} VUs, {total} shared iterations, max {self.duration:g}s"
        elif total is not None:
            execution = f"{self.vus} VUs, {total} shared iterations"
        else:
            execution = f"{self.vus} VUs for {self.duration:g}s"

        flags: list[str] = []
        if self.insecure_skip_tls_verify:
            flags.append("insecure TLS")
        if self.no_connection_reuse:
            flags.append("no connection reuse")
        elif self.no_vu_connection_reuse:
            flags.append("no VU connection reuse")
        if self.tls_cipher_suites:
            flags.append(f"ciphers={','.join(self.tls_cipher_suites)}")

        return execution if not flags else f"{execution} ({'; '.join(flags)})"
