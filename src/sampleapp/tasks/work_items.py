# src/sampleapp/tasks/work_items.py

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from ..core.cancellation import CancellationToken

T = TypeVar("T")

WorkAction = Callable[[CancellationToken], Awaitable[None]]
ScopedWorkAction = Callable[[T, CancellationToken], Awaitable[None]]


def action_name(action: Callable[..., Any]) -> str:
    return getattr(action, "__qualname__", None) or getattr(action, "__name__", None) or repr(action)


@dataclass(slots=True, frozen=True)
class UnscopedWorkItem:
    """Plain background work: action(token)."""

    action: WorkAction
    name: str = "work"

    @property
    def kind(self) -> str:
        return "unscoped"


@dataclass(slots=True, frozen=True)
class ScopedWorkItem(Generic[T]):
    """
    Background work that needs a dependency: action(instance, token).

    The instance is resolved from a fresh scope at execution time, never at
    enqueue time, and the scope is released when the action returns or raises.
    """

    dependency: type[T]
    action: ScopedWorkAction[T]
    name: str = "scoped-work"

    @property
    def kind(self) -> str:
        return f"scoped[{getattr(self.dependency, '__name__', self.dependency)}]"


WorkItem = UnscopedWorkItem | ScopedWorkItem[Any]
