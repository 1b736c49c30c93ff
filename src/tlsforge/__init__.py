"""tlsforge: HTTP load-test scenarios with precise TLS and connection control."""

from __future__ import annotations

from tlsforge.dsl.decorators import scenario
from tlsforge.dsl.env import env, require_env
from tlsforge.dsl.http_client import HttpClient, RequestMetric
from tlsforge.dsl.options import TestOptions

__version__ = "0.1.0"

__all__ = [
    "HttpClient",
    "RequestMetric",
    "TestOptions",
    "env",
    "require_env",
    "scenario",
]
