# tests/fakes.py

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from sampleapp.core.cancellation import CancellationToken


class Widget:
    """Dummy scoped dependency; each instance gets a serial number."""

    _next = 0

    def __init__(self) -> None:
        Widget._next += 1
        self.serial = Widget._next
        self.closed = False

    async def aclose(self) -> None:
        self.closed = True


class FakeScope:
    """
    Scope double for worker tests.

    Counts aclose() calls so tests can assert "released exactly once".
    """

    def __init__(self, factories: dict[type, Callable[[], Any]]) -> None:
        self._factories = factories
        self.instances: dict[type, Any] = {}
        self.close_calls = 0

    def resolve(self, service_type: type) -> Any:
        if service_type not in self._factories:
            raise LookupError(f"not registered: {service_type!r}")
        if service_type not in self.instances:
            self.instances[service_type] = self._factories[service_type]()
        return self.instances[service_type]

    async def aclose(self) -> None:
        self.close_calls += 1

    async def __aenter__(self) -> FakeScope:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()


class FakeScopeFactory:
    def __init__(self, factories: dict[type, Callable[[], Any]] | None = None) -> None:
        self.factories = factories if factories is not None else {Widget: Widget}
        self.scopes: list[FakeScope] = []

    def create_scope(self) -> FakeScope:
        scope = FakeScope(self.factories)
        self.scopes.append(scope)
        return scope


@dataclass(slots=True)
class RecordingNotifier:
    sent: list[tuple[str, dict[str, Any]]] = field(default_factory=list)
    closed: bool = False

    async def notify(self, event: str, payload: dict[str, Any]) -> None:
        self.sent.append((event, payload))

    async def aclose(self) -> None:
        self.closed = True


async def noop(_token: CancellationToken) -> None:
    return None


async def wait_until(predicate: Callable[[], bool], timeout: float = 2.0, interval: float = 0.005) -> None:
    deadline = time.monotonic() + timeout
    while not predicate():
        if time.monotonic() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(interval)
