# src/sampleapp/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The background worker depends on Protocols instead of concrete implementations.
This keeps the DI container, notifiers and storage swappable and makes testing easier.
"""

from types import TracebackType
from typing import Any, Protocol, TypeVar

T = TypeVar("T")


class ServiceScope(Protocol):
    """
    A lifetime boundary for resolved dependencies.

    Resolving the same type twice inside one scope yields the same instance;
    aclose() releases everything the scope created, even after a failure.
    """

    def resolve(self, service_type: type[T]) -> T: ...

    async def aclose(self) -> None: ...

    async def __aenter__(self) -> ServiceScope: ...

    async def __aexit__(
            self,
            exc_type: type[BaseException] | None,
            exc: BaseException | None,
            tb: TracebackType | None,
    ) -> None: ...


class ScopeFactory(Protocol):
    """What the worker needs from the composition layer: fresh scopes on demand."""

    def create_scope(self) -> ServiceScope: ...


class Notifier(Protocol):
    """Outbound fire-and-forget notifications (webhook, log, ...)."""

    async def notify(self, event: str, payload: dict[str, Any]) -> None: ...


class TodoRepo(Protocol):
    def add(self, item: Any) -> None: ...
    def get(self, item_id: str) -> Any | None: ...
    def list(self, *, limit: int = 50) -> list[Any]: ...
