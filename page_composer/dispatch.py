"""Scheduling of UI mutations onto the single UI execution context.

Background workers never touch UI state directly; they enqueue zero-argument
callbacks that the UI loop runs in FIFO order.
"""

from __future__ import annotations

import queue
from typing import Callable, Protocol

from loguru import logger

Callback = Callable[[], None]


class UIDispatcher(Protocol):
    def schedule(self, callback: Callback) -> None:
        ...


class QueueDispatcher:
    """Single-consumer work queue drained by the UI's own event loop."""

    def __init__(self) -> None:
        self._queue: "queue.SimpleQueue[Callback]" = queue.SimpleQueue()

    def schedule(self, callback: Callback) -> None:
        self._queue.put(callback)

    def pending(self) -> bool:
        return not self._queue.empty()

    def drain(self, limit: int = 0) -> int:
        """Run queued callbacks on the calling (UI) thread.

        ``limit`` caps how many run in one pass; 0 means until empty.
        Returns the number of callbacks run.
        """
        ran = 0
        while limit <= 0 or ran < limit:
            try:
                callback = self._queue.get_nowait()
            except queue.Empty:
                break
            try:
                callback()
            except Exception:
                logger.exception("UI callback failed")
            ran += 1
        return ran


class ImmediateDispatcher:
    """Runs callbacks inline; for headless use where caller thread is the UI."""

    def schedule(self, callback: Callback) -> None:
        callback()
