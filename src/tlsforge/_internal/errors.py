"""Custom exception hierarchy for tlsforge."""

from __future__ import annotations


class TlsForgeError(Exception):
    """Base exception for all tlsforge errors.

    Everything raised deliberately by the library derives from this class,
    so callers such as the CLI can report any tlsforge failure with a single
    except clause.
    """


class ScenarioError(TlsForgeError):
    """Raised when a scenario definition is invalid.

    Examples:
        - The function decorated with @scenario is not a coroutine function.
        - A scenario file cannot be loaded or defines no scenario.
    """


class ConfigError(TlsForgeError):
    """Raised when configuration or scenario options are invalid.

    Examples:
        - A required environment variable is missing or blank.
        - An unknown TLS cipher suite name is listed in the options.
        - An environment variable holds a value that cannot be parsed.
    """


class EngineError(TlsForgeError):
    """Raised when a test run fails for a reason outside the scenario itself."""
