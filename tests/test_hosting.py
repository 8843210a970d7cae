# tests/test_hosting.py

from __future__ import annotations

import asyncio
import threading
import time

import pytest

from sampleapp.core.cancellation import CancellationToken
from sampleapp.core.ports import Notifier
from sampleapp.hosting import BackgroundHost, start_host_in_background
from sampleapp.services.provider import ServiceCollection, ServiceScope
from sampleapp.tasks.job_scheduler import JobSchedulerService
from sampleapp.tasks.task_queue import BackgroundTaskQueue, QueueClosedError
from sampleapp.tasks.task_service import BackgroundTaskService, WorkerState

from .fakes import RecordingNotifier, noop


class Cache:
    def __init__(self) -> None:
        self.loaded = False
        self.closed = False

    async def aclose(self) -> None:
        self.closed = True


def _host(*, startup_tasks=(), shutdown_timeout: float = 2.0, capacity: int = 8) -> tuple[BackgroundHost, Cache]:
    cache = Cache()
    services = ServiceCollection()
    services.add_singleton(Cache, lambda _s: cache)
    services.add_scoped(Notifier, lambda _s: RecordingNotifier())
    provider = services.build_provider()

    queue = BackgroundTaskQueue(capacity)
    worker = BackgroundTaskService(queue, provider, shutdown_timeout_seconds=shutdown_timeout)
    host = BackgroundHost(
        provider,
        queue,
        worker,
        JobSchedulerService(queue),
        startup_tasks=startup_tasks,
        shutdown_timeout_seconds=shutdown_timeout,
    )
    return host, cache


async def _load_cache(scope: ServiceScope) -> None:
    scope.resolve(Cache).loaded = True


async def _broken_startup(_scope: ServiceScope) -> None:
    raise RuntimeError("cache unavailable")


@pytest.mark.asyncio
async def test_startup_tasks_run_before_worker_and_stop_releases_singletons() -> None:
    host, cache = _host(startup_tasks=[_load_cache])

    async with host:
        assert cache.loaded
        assert host.started
        assert host.worker.state is WorkerState.RUNNING
        await host.queue.queue_work(noop)

    assert not host.started
    assert host.queue.closed
    assert host.worker.state is WorkerState.STOPPED
    assert cache.closed
    assert host.services.closed


@pytest.mark.asyncio
async def test_failing_startup_task_keeps_worker_idle(caplog) -> None:
    host, cache = _host(startup_tasks=[_broken_startup])

    with pytest.raises(RuntimeError, match="cache unavailable"):
        await host.start()

    assert not host.started
    assert host.worker.state is WorkerState.IDLE
    assert host.services.closed
    assert "Startup task failed" in caplog.text


@pytest.mark.asyncio
async def test_producers_are_refused_after_stop() -> None:
    host, _cache = _host()
    await host.start()
    assert await host.stop() is True

    with pytest.raises(QueueClosedError):
        await host.queue.queue_work(noop)


def test_background_runner_accepts_work_from_another_thread() -> None:
    host, _cache = _host()
    runner = start_host_in_background(host, ready_timeout=5.0)
    done = threading.Event()

    async def mark(_token: CancellationToken) -> None:
        done.set()

    try:
        runner.queue_work(mark, name="mark").result(timeout=2.0)
        assert done.wait(timeout=2.0)
    finally:
        runner.stop()
        runner.join(timeout=5.0)

    assert not runner.thread.is_alive()
    assert runner.graceful is True
    assert host.worker.completed == 1


def test_background_runner_reports_startup_failure() -> None:
    host, _cache = _host(startup_tasks=[_broken_startup])

    with pytest.raises(RuntimeError, match="Host failed to start"):
        start_host_in_background(host, ready_timeout=5.0)


def test_timed_out_call_does_not_enqueue_later() -> None:
    host, _cache = _host(capacity=1)
    runner = start_host_in_background(host, ready_timeout=5.0)
    gate = threading.Event()
    ran: list[str] = []

    def record(name: str):
        async def action(_token: CancellationToken) -> None:
            ran.append(name)

        return action

    async def blocker(_token: CancellationToken) -> None:
        while not gate.is_set():
            await asyncio.sleep(0.01)
        ran.append("blocker")

    try:
        runner.queue_work(blocker, name="blocker").result(timeout=2.0)
        deadline = time.monotonic() + 2.0
        while host.worker.current_item != "blocker" and time.monotonic() < deadline:
            time.sleep(0.005)
        runner.queue_work(record("second"), name="second").result(timeout=2.0)

        # Buffer is full and the worker is busy: the caller gives up.
        with pytest.raises(TimeoutError):
            runner.call(host.queue.queue_work(record("third"), name="third"), timeout=0.2)

        gate.set()
        deadline = time.monotonic() + 2.0
        while host.worker.completed < 2 and time.monotonic() < deadline:
            time.sleep(0.005)
        time.sleep(0.1)
    finally:
        runner.stop()
        runner.join(timeout=5.0)

    assert ran == ["blocker", "second"]
    assert host.worker.completed == 2
