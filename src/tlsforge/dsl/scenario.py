"""Scenario definition dataclass."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol

from tlsforge.dsl.env import env
from tlsforge.dsl.options import TestOptions

if TYPE_CHECKING:
    from tlsforge._internal.types import Headers


class ScenarioFunction(Protocol):
    """An ``async def fn(client)`` run once per iteration."""

    @property
    def __name__(self) -> str: ...

    async def __call__(self, client: object) -> None: ...


@dataclass
class ScenarioDefinition:
    """Everything needed to execute a scenario.

    Created by the ``@scenario`` decorator.

    Attributes:
        name: Human-readable scenario name.
        func: The default function, awaited once per iteration.
        options: Connection, TLS, and execution options.
        required_env: Environment variables that must be set (and non-blank)
            before the run starts.
        default_headers: Headers applied to every request.
    """

    name: str
    func: ScenarioFunction
    options: TestOptions = field(default_factory=TestOptions)
    required_env: tuple[str, ...] = ()
    default_headers: Headers = field(default_factory=dict)

    def missing_env(self) -> list[str]:
        """Return required variables that are unset or blank, in declared order."""
        missing: list[str] = []
        for name in self.required_env:
            value = env(name)
            if value is None or not value.strip():
                missing.append(name)
        return missing
