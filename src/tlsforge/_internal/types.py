"""Shared type aliases for tlsforge."""

from __future__ import annotations

# HTTP headers dictionary.
Headers = dict[str, str]

# Ordered IANA cipher-suite identifiers.
CipherSuites = tuple[str, ...]
