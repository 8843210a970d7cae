# tests/test_commands.py

from __future__ import annotations

import asyncio
import threading
import time

import pytest

from sampleapp.cli.bootstrap import create_initial_state
from sampleapp.cli.commands import CommandRegistry, registry
from sampleapp.core.cancellation import CancellationToken
from sampleapp.hosting import start_host_in_background


@pytest.fixture()
def state(settings):
    return create_initial_state(settings=settings)


def test_command_registry_routes_and_aliases(state) -> None:
    reg = CommandRegistry()
    called: list[list[str]] = []

    def handler(_state, args):
        called.append(args)
        return "ok"

    reg.register("ping", handler, "ping", aliases=["p"])

    assert reg.handle(state, "/ping a b") == "ok"
    assert reg.handle(state, "/P") == "ok"
    assert called == [["a", "b"], []]
    assert "/ping - ping" in reg.build_help()


def test_command_registry_unknown_and_non_command(state) -> None:
    reg = CommandRegistry()
    assert reg.handle(state, "hello") is None
    assert "Unknown command" in (reg.handle(state, "/nope") or "")
    assert "Empty command" in (reg.handle(state, "/") or "")


def test_status_on_a_host_that_has_not_started(state) -> None:
    reply = registry.handle(state, "/status") or ""

    assert "Worker: idle" in reply
    assert "Queue: 0/8 pending, overflow=wait" in reply
    assert "Jobs: none" in reply


def test_todo_needs_a_running_host_and_a_name(state) -> None:
    assert registry.handle(state, "/todo") == "Usage: /todo <name>"
    assert registry.handle(state, "/todos") == "No todos yet."
    with pytest.raises(RuntimeError, match="Host is not running"):
        registry.handle(state, "/todo buy milk")


def test_todo_and_failing_work_through_the_background_host(state) -> None:
    state.runner = start_host_in_background(state.host, ready_timeout=5.0)
    worker = state.host.worker
    try:
        reply = registry.handle(state, "/todo buy milk") or ""
        assert reply.startswith("Added todo ")
        assert "(buy milk)" in reply

        assert registry.handle(state, "/fail nope") == (
            "Queued failing work; watch the log, the worker keeps going."
        )
        assert "Invalid todo" in (registry.handle(state, "/todo " + "x" * 101) or "")

        deadline = time.monotonic() + 5.0
        while worker.completed + worker.failed < 3 and time.monotonic() < deadline:
            time.sleep(0.01)

        assert worker.completed == 2
        assert worker.failed == 1
        assert "buy milk" in (registry.handle(state, "/todos") or "")
    finally:
        state.runner.stop()
        state.runner.join(timeout=5.0)

    assert state.runner.graceful is True


def test_sleep_reports_full_queue_and_queues_nothing(settings) -> None:
    settings.task_queue_capacity = 1
    settings.enqueue_timeout_seconds = 0.2
    state = create_initial_state(settings=settings)
    state.runner = start_host_in_background(state.host, ready_timeout=5.0)
    worker = state.host.worker
    gate = threading.Event()

    async def blocker(_token: CancellationToken) -> None:
        while not gate.is_set():
            await asyncio.sleep(0.01)

    async def filler(_token: CancellationToken) -> None:
        return None

    try:
        state.runner.queue_work(blocker, name="blocker").result(timeout=2.0)
        deadline = time.monotonic() + 2.0
        while worker.current_item != "blocker" and time.monotonic() < deadline:
            time.sleep(0.005)
        state.runner.queue_work(filler, name="filler").result(timeout=2.0)

        assert registry.handle(state, "/sleep 0") == "Not queued (queue full)."

        gate.set()
        deadline = time.monotonic() + 2.0
        while worker.completed < 2 and time.monotonic() < deadline:
            time.sleep(0.005)
        time.sleep(0.1)
        assert worker.completed == 2
        assert state.host.queue.pending == 0
    finally:
        gate.set()
        state.runner.stop()
        state.runner.join(timeout=5.0)
