# src/sampleapp/cli/commands.py

from __future__ import annotations

import logging
from collections.abc import Callable

from ..core.state import AppState
from ..tasks.task_api import queue_failure, queue_sleep
from ..tasks.task_queue import QueueClosedError, QueueFullError
from ..todo.service import TodoValidationError

CommandHandler = Callable[[AppState, list[str]], str]

logger = logging.getLogger(__name__)

# Reply when a blocking enqueue outlived settings.enqueue_timeout_seconds.
_NOT_QUEUED_FULL = "Not queued (queue full)."


class CommandRegistry:
    """Simple slash-command registry used by the console connector (/help, /todo, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    def handle(self, state: AppState, line: str) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        """
        if not line.startswith("/"):
            return None

        parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        return handler(state, args)

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


def cmd_status(state: AppState, args: list[str]) -> str:
    host = state.host
    worker = host.worker
    queue = host.queue
    scheduler = host.scheduler
    jobs = ", ".join(j.name for j in scheduler.jobs) if scheduler is not None else ""
    return (
        "Status:\n"
        f"  Worker: {worker.state.value} (current: {worker.current_item or '-'})\n"
        f"  Queue: {queue.pending}/{queue.capacity} pending, overflow={queue.overflow.value}"
        f"{' (closed)' if queue.closed else ''}\n"
        f"  Completed: {worker.completed}, failed: {worker.failed}\n"
        f"  Jobs: {jobs or 'none'}"
    )


def cmd_todo(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /todo <name>"
    try:
        item = state.run(state.todos.add_item(" ".join(args)))
    except TodoValidationError as e:
        return f"Invalid todo: {e}"
    except TimeoutError:
        return "Todo saved but follow-up work was not queued (queue full)."
    except (QueueFullError, QueueClosedError) as e:
        return f"Todo saved but follow-up work was not queued: {e}"
    return f"Added todo {item.id} ({item.name}); background work queued."


def cmd_todos(state: AppState, args: list[str]) -> str:
    items = state.todos.list_items()
    if not items:
        return "No todos yet."
    lines = [f"Todos ({len(items)}):"]
    for it in items:
        lines.append(f"  {it.id[:8]}  [{it.status.value}]  {it.name}")
    return "\n".join(lines)


def cmd_sleep(state: AppState, args: list[str]) -> str:
    try:
        seconds = float(args[0]) if args else 1.0
    except ValueError:
        return "Usage: /sleep <seconds>"
    try:
        state.run(queue_sleep(state.host.queue, seconds))
    except TimeoutError:
        return _NOT_QUEUED_FULL
    except (QueueFullError, QueueClosedError) as e:
        return f"Not queued: {e}"
    return f"Queued sleep for {seconds:g}s."


def cmd_fail(state: AppState, args: list[str]) -> str:
    message = " ".join(args) or "boom"
    try:
        state.run(queue_failure(state.host.queue, message))
    except TimeoutError:
        return _NOT_QUEUED_FULL
    except (QueueFullError, QueueClosedError) as e:
        return f"Not queued: {e}"
    return "Queued failing work; watch the log, the worker keeps going."


registry.register("help", cmd_help, "show this help", aliases=["h", "?"])
registry.register("status", cmd_status, "worker/queue status")
registry.register("todo", cmd_todo, "add a todo item: /todo <name>")
registry.register("todos", cmd_todos, "list todo items")
registry.register("sleep", cmd_sleep, "queue work that sleeps: /sleep <seconds>")
registry.register("fail", cmd_fail, "queue work that raises: /fail [message]")
