# src/sampleapp/services/provider.py

"""
Minimal service container.

ServiceCollection is filled by the composition root (cli/bootstrap.py), then
frozen into a ServiceProvider. Background work never touches the provider
directly: it asks for a ServiceScope, resolves what it needs, and the scope
disposes everything it created when the `async with` block exits.

Lifetimes:
- singleton: one instance per provider, disposed by ServiceProvider.aclose()
- scoped:    one instance per scope, disposed with the scope
- transient: new instance per resolve; inside a scope it is disposed with the scope
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum
from types import TracebackType
from typing import Any, TypeVar, cast

logger = logging.getLogger(__name__)

T = TypeVar("T")

Factory = Callable[["ServiceScope"], Any]


class ServiceResolutionError(LookupError):
    """A service could not be resolved (unknown type, wrong lifetime, closed scope)."""


class Lifetime(StrEnum):
    SINGLETON = "singleton"
    SCOPED = "scoped"
    TRANSIENT = "transient"


@dataclass(slots=True, frozen=True)
class ServiceDescriptor:
    service_type: type
    lifetime: Lifetime
    factory: Factory | None = None
    instance: Any = None


def _type_name(t: type) -> str:
    return getattr(t, "__qualname__", repr(t))


async def _dispose(instance: Any) -> None:
    aclose = getattr(instance, "aclose", None)
    if callable(aclose):
        await aclose()
        return
    close = getattr(instance, "close", None)
    if callable(close):
        result = close()
        if inspect.isawaitable(result):
            await result


async def _dispose_all(instances: list[Any], owner: str) -> None:
    """Dispose in reverse creation order; one failure does not skip the rest."""
    for instance in reversed(instances):
        try:
            await _dispose(instance)
        except Exception:
            logger.exception("Failed to dispose %s owned by %s", type(instance).__name__, owner)


class ServiceCollection:
    def __init__(self) -> None:
        self._descriptors: dict[type, ServiceDescriptor] = {}

    def add_singleton(
            self,
            service_type: type[T],
            factory: Callable[[ServiceScope], T] | None = None,
            *,
            instance: T | None = None,
    ) -> ServiceCollection:
        if (factory is None) == (instance is None):
            raise ValueError("add_singleton needs exactly one of factory or instance")
        self._descriptors[service_type] = ServiceDescriptor(
            service_type, Lifetime.SINGLETON, factory=factory, instance=instance
        )
        return self

    def add_scoped(self, service_type: type[T], factory: Callable[[ServiceScope], T]) -> ServiceCollection:
        self._descriptors[service_type] = ServiceDescriptor(service_type, Lifetime.SCOPED, factory=factory)
        return self

    def add_transient(self, service_type: type[T], factory: Callable[[ServiceScope], T]) -> ServiceCollection:
        self._descriptors[service_type] = ServiceDescriptor(service_type, Lifetime.TRANSIENT, factory=factory)
        return self

    def __contains__(self, service_type: object) -> bool:
        return service_type in self._descriptors

    def build_provider(self) -> ServiceProvider:
        return ServiceProvider(dict(self._descriptors))


class ServiceProvider:
    """Root container: owns singletons and hands out scopes."""

    def __init__(self, descriptors: dict[type, ServiceDescriptor]) -> None:
        self._descriptors = descriptors
        self._singletons: dict[type, Any] = {}
        # Only singletons built by a factory are ours to dispose; given instances belong to the caller.
        self._owned: list[Any] = []
        self._root = ServiceScope(self, root=True)
        self._closed = False

    def descriptor(self, service_type: type) -> ServiceDescriptor:
        d = self._descriptors.get(service_type)
        if d is None:
            raise ServiceResolutionError(f"No service registered for {_type_name(service_type)}")
        return d

    def create_scope(self) -> ServiceScope:
        if self._closed:
            raise ServiceResolutionError("ServiceProvider is closed")
        return ServiceScope(self)

    def resolve(self, service_type: type[T]) -> T:
        """Resolve from the root. Scoped services need a scope and are rejected here."""
        return self._root.resolve(service_type)

    def _get_singleton(self, d: ServiceDescriptor) -> Any:
        if d.service_type in self._singletons:
            return self._singletons[d.service_type]
        if d.factory is None:
            instance = d.instance
        else:
            # Built against the root so a singleton never captures scoped instances.
            instance = d.factory(self._root)
            self._owned.append(instance)
        self._singletons[d.service_type] = instance
        return instance

    @property
    def closed(self) -> bool:
        return self._closed

    async def aclose(self) -> None:
        if self._closed:
            return
        self._closed = True
        await self._root.aclose()
        owned, self._owned = self._owned, []
        self._singletons.clear()
        await _dispose_all(owned, "ServiceProvider")


class ServiceScope:
    def __init__(self, provider: ServiceProvider, *, root: bool = False) -> None:
        self._provider = provider
        self._root = root
        self._scoped: dict[type, Any] = {}
        self._owned: list[Any] = []
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def resolve(self, service_type: type[T]) -> T:
        if self._closed:
            raise ServiceResolutionError(f"Cannot resolve {_type_name(service_type)}: scope is closed")

        d = self._provider.descriptor(service_type)

        if d.lifetime is Lifetime.SINGLETON:
            return cast(T, self._provider._get_singleton(d))

        if d.lifetime is Lifetime.SCOPED:
            if self._root:
                raise ServiceResolutionError(
                    f"Scoped service {_type_name(service_type)} cannot be resolved from the root provider"
                )
            if service_type in self._scoped:
                return cast(T, self._scoped[service_type])
            assert d.factory is not None
            instance = d.factory(self)
            self._scoped[service_type] = instance
            self._owned.append(instance)
            return cast(T, instance)

        assert d.factory is not None
        instance = d.factory(self)
        self._owned.append(instance)
        return cast(T, instance)

    async def aclose(self) -> None:
        if self._closed:
            return
        self._closed = True
        owned, self._owned = self._owned, []
        self._scoped.clear()
        await _dispose_all(owned, "ServiceScope")

    async def __aenter__(self) -> ServiceScope:
        return self

    async def __aexit__(
            self,
            exc_type: type[BaseException] | None,
            exc: BaseException | None,
            tb: TracebackType | None,
    ) -> None:
        await self.aclose()
