# src/sampleapp/hosting.py

"""
Host lifecycle.

BackgroundHost owns the long-running pieces and starts/stops them in order:

start: startup tasks (once, each in its own scope) -> worker -> scheduler
stop:  close queue intake -> scheduler -> worker drain (bounded) -> singletons

HostBackgroundRunner runs a host on its own event loop thread, so a blocking
console (input()) can live in the main thread and still queue work.
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import contextlib
import logging
import threading
from collections.abc import Awaitable, Callable, Coroutine, Sequence
from dataclasses import dataclass, field
from typing import Any, TypeVar

from .services.provider import ServiceProvider, ServiceScope
from .tasks.job_scheduler import JobSchedulerService
from .tasks.task_queue import BackgroundTaskQueue
from .tasks.task_service import BackgroundTaskService
from .tasks.work_items import ScopedWorkAction, WorkAction, action_name

logger = logging.getLogger(__name__)

T = TypeVar("T")

StartupTask = Callable[[ServiceScope], Awaitable[None]]


class BackgroundHost:
    def __init__(
            self,
            services: ServiceProvider,
            queue: BackgroundTaskQueue,
            worker: BackgroundTaskService,
            scheduler: JobSchedulerService | None = None,
            *,
            startup_tasks: Sequence[StartupTask] = (),
            shutdown_timeout_seconds: float | None = None,
    ) -> None:
        self.services = services
        self.queue = queue
        self.worker = worker
        self.scheduler = scheduler
        self._startup_tasks = list(startup_tasks)
        self._shutdown_timeout = shutdown_timeout_seconds
        self._started = False

    @property
    def started(self) -> bool:
        return self._started

    async def _run_startup_tasks(self) -> None:
        for task in self._startup_tasks:
            name = action_name(task)
            logger.info("Running startup task %s", name)
            async with self.services.create_scope() as scope:
                await task(scope)

    async def start(self) -> None:
        if self._started:
            raise RuntimeError("BackgroundHost is already started")

        try:
            await self._run_startup_tasks()
        except Exception:
            logger.exception("Startup task failed; host will not start.")
            await self.services.aclose()
            raise

        await self.worker.start()
        if self.scheduler is not None:
            await self.scheduler.start()

        self._started = True
        logger.info("Host started.")

    async def stop(self) -> bool:
        """Stop everything. Returns False if the worker had to be force-stopped."""
        if not self._started:
            await self.services.aclose()
            return True

        logger.info("Host stopping...")
        self.queue.close()

        if self.scheduler is not None:
            await self.scheduler.stop()

        graceful = await self.worker.stop(self._shutdown_timeout)
        await self.services.aclose()

        self._started = False
        logger.info("Host stopped (graceful=%s).", graceful)
        return graceful

    async def run(self, stop_event: asyncio.Event) -> bool:
        """Start, wait for `stop_event`, stop."""
        await self.start()
        try:
            await stop_event.wait()
        finally:
            graceful = await self.stop()
        return graceful

    async def __aenter__(self) -> BackgroundHost:
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.stop()


@dataclass
class HostBackgroundRunner:
    thread: threading.Thread
    loop: asyncio.AbstractEventLoop
    stop_event: asyncio.Event
    host: BackgroundHost
    _outcome: dict[str, Any] = field(default_factory=dict, repr=False)

    def call(self, coro: Coroutine[Any, Any, T], timeout: float | None = 10.0) -> T:
        """
        Run `coro` on the host loop and wait for its result from this thread.

        On timeout the coroutine is cancelled before TimeoutError is raised, so a
        producer stuck on a full queue does not enqueue after the caller gave up.
        """
        fut = asyncio.run_coroutine_threadsafe(coro, self.loop)
        try:
            return fut.result(timeout=timeout)
        except TimeoutError:
            fut.cancel()
            raise

    def queue_work(self, action: WorkAction, *, name: str | None = None) -> concurrent.futures.Future[None]:
        """Thread-safe enqueue. The future resolves once the item is in the buffer (not when it ran)."""
        return asyncio.run_coroutine_threadsafe(self.host.queue.queue_work(action, name=name), self.loop)

    def queue_scoped_work(
            self,
            dependency: type[T],
            action: ScopedWorkAction[T],
            *,
            name: str | None = None,
    ) -> concurrent.futures.Future[None]:
        return asyncio.run_coroutine_threadsafe(
            self.host.queue.queue_scoped_work(dependency, action, name=name), self.loop
        )

    @property
    def graceful(self) -> bool | None:
        """None until the host has stopped."""
        return self._outcome.get("graceful")

    def stop(self) -> None:
        try:
            self.loop.call_soon_threadsafe(self.stop_event.set)
        except RuntimeError:
            logger.debug("Host loop already closed.", exc_info=True)

    def join(self, timeout: float | None = None) -> None:
        self.thread.join(timeout=timeout)


def start_host_in_background(host: BackgroundHost, *, ready_timeout: float = 30.0) -> HostBackgroundRunner:
    """
    Start `host` on a dedicated event loop thread and return once it is running.

    Raises RuntimeError if the host fails to start (e.g. a startup task raised)
    or does not come up within `ready_timeout`.
    """
    ready = threading.Event()
    holder: dict[str, Any] = {}
    outcome: dict[str, Any] = {}

    async def _main(stop_event: asyncio.Event) -> None:
        try:
            await host.start()
        except BaseException as e:
            holder["error"] = e
            ready.set()
            raise
        ready.set()
        try:
            await stop_event.wait()
        finally:
            outcome["graceful"] = await host.stop()

    def runner() -> None:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        stop_event = asyncio.Event()
        holder["loop"] = loop
        holder["stop_event"] = stop_event

        try:
            loop.run_until_complete(_main(stop_event))
        except Exception:
            logger.exception("Host loop crashed.")
        finally:
            with contextlib.suppress(Exception):
                loop.run_until_complete(loop.shutdown_asyncgens())
            loop.close()

    t = threading.Thread(target=runner, name="sampleapp-host", daemon=True)
    t.start()

    if not ready.wait(timeout=ready_timeout):
        raise RuntimeError(f"Host did not start within {ready_timeout:.0f}s")
    if "error" in holder:
        t.join(timeout=5.0)
        raise RuntimeError("Host failed to start") from holder["error"]

    logger.info("Host background thread started.")
    return HostBackgroundRunner(
        thread=t,
        loop=holder["loop"],
        stop_event=holder["stop_event"],
        host=host,
        _outcome=outcome,
    )
