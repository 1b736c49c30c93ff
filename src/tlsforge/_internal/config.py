"""Global configuration loaded from the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass

from tlsforge._internal.errors import ConfigError

_TRUE_WORDS = frozenset({"1", "true", "yes", "on"})
_FALSE_WORDS = frozenset({"0", "false", "no", "off", ""})


@dataclass(frozen=True)
class TlsForgeConfig:
    """Process-wide tlsforge settings.

    Attributes:
        request_timeout: Default per-request timeout in seconds.
        tick_interval: Seconds between live metric snapshots.
        json_logs: Emit structured JSON logs instead of plain text.
    """

    request_timeout: float = 60.0
    tick_interval: float = 1.0
    json_logs: bool = False


def _positive_float(name: str, default: str) -> float:
    raw = os.environ.get(name, default)
    try:
        value = float(raw)
    except ValueError:
        msg = f"{name} must be a number, got: {raw!r}"
        raise ConfigError(msg) from None
    if value <= 0:
        msg = f"{name} must be positive, got: {value}"
        raise ConfigError(msg)
    return value


def _bool(name: str) -> bool:
    raw = os.environ.get(name, "").strip().lower()
    if raw in _TRUE_WORDS:
        return True
    if raw in _FALSE_WORDS:
        return False
    msg = f"{name} must be a boolean (true/false), got: {raw!r}"
    raise ConfigError(msg)


def load_config() -> TlsForgeConfig:
    """Load configuration from environment variables with defaults.

    Environment variables:
        TLSFORGE_TIMEOUT: Request timeout in seconds (default: 60.0).
        TLSFORGE_TICK_INTERVAL: Snapshot interval in seconds (default: 1.0).
        TLSFORGE_LOG_JSON: ``true``/``false`` (default: false).

    Returns:
        Populated TlsForgeConfig instance.

    Raises:
        ConfigError: If an environment variable has an invalid value.
    """
    return TlsForgeConfig(
        request_timeout=_positive_float("TLSFORGE_TIMEOUT", "60.0"),
        tick_interval=_positive_float("TLSFORGE_TICK_INTERVAL", "1.0"),
        json_logs=_bool("TLSFORGE_LOG_JSON"),
    )
