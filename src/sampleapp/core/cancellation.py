# src/sampleapp/core/cancellation.py

"""
Cooperative cancellation.

A CancellationToken is a one-shot signal: once cancelled it stays cancelled.
Background work receives one so it can stop early, and the queue uses one to
abort waits (blocked enqueue, idle dequeue) without raising into the worker.

Tokens are loop-bound like any asyncio primitive: cancel() them from the
event loop thread (use loop.call_soon_threadsafe from other threads).
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable
from typing import TypeVar

T = TypeVar("T")


class OperationCancelledError(Exception):
    """A wait was aborted because its CancellationToken was cancelled."""


class CancellationToken:
    __slots__ = ("_event",)

    def __init__(self) -> None:
        self._event = asyncio.Event()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        self._event.set()

    async def wait(self) -> None:
        """Suspend until the token is cancelled."""
        await self._event.wait()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise OperationCancelledError("operation was cancelled")

    def __repr__(self) -> str:
        return f"CancellationToken(cancelled={self.is_cancelled})"


async def wait_or_cancel(aw: Awaitable[T], *tokens: CancellationToken) -> T:
    """
    Await `aw` unless one of `tokens` is cancelled first.

    On cancellation the pending operation is cancelled and OperationCancelledError
    is raised. If the operation finished in the same step, its result wins, so a
    completed queue get/put is never thrown away.
    """
    if not tokens:
        return await aw

    if any(t.is_cancelled for t in tokens):
        if asyncio.iscoroutine(aw):
            aw.close()
        raise OperationCancelledError("operation was cancelled")

    op = asyncio.ensure_future(aw)
    stops = [asyncio.ensure_future(t.wait()) for t in tokens]
    try:
        await asyncio.wait({op, *stops}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        for s in stops:
            s.cancel()
        if not op.done():
            op.cancel()

    try:
        return await op
    except asyncio.CancelledError:
        if any(t.is_cancelled for t in tokens):
            raise OperationCancelledError("operation was cancelled") from None
        raise
