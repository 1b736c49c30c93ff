"""The ``@scenario`` decorator."""

from __future__ import annotations

import inspect
from typing import TYPE_CHECKING

from tlsforge._internal.errors import ScenarioError
from tlsforge.dsl.options import TestOptions
from tlsforge.dsl.scenario import ScenarioDefinition, ScenarioFunction

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from tlsforge._internal.types import Headers


def scenario(
    *,
    name: str,
    options: TestOptions | None = None,
    required_env: Iterable[str] = (),
    default_headers: Headers | None = None,
) -> Callable[[ScenarioFunction], ScenarioDefinition]:
    """Turn an async default function into a tlsforge scenario.

    Example::

        @scenario(
            name="Health",
            options=TestOptions(insecure_skip_tls_verify=True),
            required_env=("API_HOST",),
        )
        async def default(client: HttpClient) -> None:
            await client.get(f"https://{env('API_HOST')}/health")

    Args:
        name: Human-readable scenario name.
        options: Scenario options. Defaults to ``TestOptions()``.
        required_env: Environment variables checked before the run starts.
        default_headers: Headers applied to every request.

    Returns:
        A decorator producing a ``ScenarioDefinition``.

    Raises:
        ScenarioError: If the name is blank, the options are not a
            ``TestOptions``, or the function is not a coroutine function.
    """
    if not name.strip():
        msg = "Scenario name must not be blank"
        raise ScenarioError(msg)
    if options is not None and not isinstance(options, TestOptions):
        msg = f"options must be a TestOptions instance, got {type(options).__name__}"
        raise ScenarioError(msg)

    def decorator(func: ScenarioFunction) -> ScenarioDefinition:
        if not inspect.iscoroutinefunction(func):
            msg = f"Scenario function {func.__name__} must be an async function"
            raise ScenarioError(msg)

        return ScenarioDefinition(
            name=name,
            func=func,
            options=options or TestOptions(),
            required_env=tuple(required_env),
            default_headers=dict(default_headers or {}),
        )

    return decorator
