# src/sampleapp/core/state.py

from __future__ import annotations

from collections.abc import Coroutine
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, TypeVar

if TYPE_CHECKING:
    from ..hosting import BackgroundHost, HostBackgroundRunner
    from ..services.provider import ServiceProvider
    from ..todo.service import TodoService

T = TypeVar("T")


@dataclass
class AppState:
    # Store Settings on the state for easy access in connectors/commands.
    settings: Any

    services: ServiceProvider
    host: BackgroundHost
    todos: TodoService

    # Set once the host runs on its background thread.
    runner: HostBackgroundRunner | None = None

    def run(self, coro: Coroutine[Any, Any, T], timeout: float | None = None) -> T:
        """
        Run a coroutine on the host loop from a sync caller (console thread).

        timeout=None uses settings.enqueue_timeout_seconds. On TimeoutError the
        coroutine has been cancelled, so nothing it was waiting to queue lands.
        """
        if timeout is None:
            timeout = float(getattr(self.settings, "enqueue_timeout_seconds", 10.0))
        if self.runner is None:
            coro.close()
            raise RuntimeError("Host is not running")
        return self.runner.call(coro, timeout=timeout)
