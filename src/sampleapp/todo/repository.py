# src/sampleapp/todo/repository.py

from __future__ import annotations

import threading

from .models import TodoItem


class InMemoryTodoRepository:
    """Process-local TodoItem store (insertion ordered). Registered as a singleton."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._items: dict[str, TodoItem] = {}

    def add(self, item: TodoItem) -> None:
        with self._lock:
            if item.id in self._items:
                raise ValueError(f"TodoItem {item.id} already exists")
            self._items[item.id] = item

    def get(self, item_id: str) -> TodoItem | None:
        with self._lock:
            return self._items.get(item_id)

    def list(self, *, limit: int = 50) -> list[TodoItem]:
        with self._lock:
            items = list(self._items.values())
        return items[: max(0, int(limit))]

    def count(self) -> int:
        with self._lock:
            return len(self._items)
