"""Scenario environment lookup.

Scenarios read their inputs through :func:`env` and :func:`require_env`
rather than ``os.environ`` directly, so values given with ``tlsforge run
-e KEY=VALUE`` take precedence over the process environment.
"""

from __future__ import annotations

import os
from typing import TYPE_CHECKING

from tlsforge._internal.errors import ConfigError

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

_overrides: dict[str, str] = {}


def set_env_overrides(values: Mapping[str, str]) -> None:
    """Replace the current override layer with ``values``."""
    _overrides.clear()
    _overrides.update(values)


def clear_env_overrides() -> None:
    """Drop all overrides so lookups fall through to ``os.environ``."""
    _overrides.clear()


def get_env_overrides() -> dict[str, str]:
    """Return a copy of the current override layer."""
    return dict(_overrides)


def env(name: str, default: str | None = None) -> str | None:
    """Look up ``name``, preferring CLI overrides over the process environment."""
    if name in _overrides:
        return _overrides[name]
    return os.environ.get(name, default)


def require_env(name: str) -> str:
    """Look up ``name`` and insist on a non-blank value.

    Raises:
        ConfigError: If the variable is unset or only whitespace.
    """
    value = env(name)
    if value is None or not value.strip():
        msg = f"Environment variable {name} is required but not set"
        raise ConfigError(msg)
    return value.strip()


def parse_env_assignments(pairs: Iterable[str]) -> dict[str, str]:
    """Parse ``KEY=VALUE`` strings as given to ``tlsforge run -e``.

    The value may itself contain ``=``; only the first one splits.

    Raises:
        ConfigError: If an entry has no ``=`` or an empty key.
    """
    parsed: dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        key = key.strip()
        if not sep or not key:
            msg = f"Expected KEY=VALUE, got: {pair!r}"
            raise ConfigError(msg)
        parsed[key] = value
    return parsed
