# src/sampleapp/todo/service.py

from __future__ import annotations

import asyncio
import logging
import time

from ..core.cancellation import CancellationToken
from ..core.ports import Notifier, TodoRepo
from ..tasks.task_queue import BackgroundTaskQueue
from .models import TodoItem

logger = logging.getLogger(__name__)

NAME_MAX_LENGTH = 100


class TodoValidationError(ValueError):
    pass


def validate_name(raw: str) -> str:
    name = (raw or "").strip()
    if not name:
        raise TodoValidationError("Todo name must not be empty")
    if len(name) > NAME_MAX_LENGTH:
        raise TodoValidationError(f"Todo name must be at most {NAME_MAX_LENGTH} characters")
    return name


class TodoService:
    """
    Small producer of background work.

    add_item() stores the item and returns right away; the follow-up work
    (audit log line, outbound notification) is queued fire-and-forget.
    """

    def __init__(self, repo: TodoRepo, tasks: BackgroundTaskQueue, *, work_delay_seconds: float = 0.2) -> None:
        self._repo = repo
        self._tasks = tasks
        self._work_delay = max(0.0, float(work_delay_seconds))

    async def add_item(self, name: str) -> TodoItem:
        item = TodoItem(name=validate_name(name), created_at=time.time())
        self._repo.add(item)
        logger.info("AddItemAsync - id=%s name=%s", item.id, item.name)

        snapshot = item.to_dict()
        delay = self._work_delay

        async def log_created(token: CancellationToken) -> None:
            if delay:
                await asyncio.sleep(delay)
            token.raise_if_cancelled()
            logger.info("Some non-scoped work done for todo %s", snapshot["id"])

        async def notify_created(notifier: Notifier, token: CancellationToken) -> None:
            token.raise_if_cancelled()
            await notifier.notify("todo.created", snapshot)

        await self._tasks.queue_work(log_created, name=f"todo-created-log:{item.id[:8]}")
        await self._tasks.queue_scoped_work(Notifier, notify_created, name=f"todo-created-notify:{item.id[:8]}")
        return item

    def get_item(self, item_id: str) -> TodoItem | None:
        return self._repo.get(item_id)

    def list_items(self, *, limit: int = 50) -> list[TodoItem]:
        return list(self._repo.list(limit=limit))
