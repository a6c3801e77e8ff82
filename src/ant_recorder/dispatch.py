"""Delivery of actor callbacks onto the consumer's execution context."""

from __future__ import annotations

import asyncio
import logging
import queue
from typing import Any, Callable, Optional, Protocol

logger = logging.getLogger(__name__)

Callback = Callable[..., None]


class Dispatcher(Protocol):
    def dispatch(self, callback: Callback, *args: Any) -> None:
        ...


class ImmediateDispatcher:
    """Runs callbacks directly on the publishing thread."""

    def dispatch(self, callback: Callback, *args: Any) -> None:
        _invoke(callback, args)


class QueueDispatcher:
    """Message channel drained by the consumer on its own thread.

    The publisher only enqueues; nothing runs until the owner calls
    :meth:`run_pending` or :meth:`run_next`.
    """

    def __init__(self) -> None:
        self._messages: queue.SimpleQueue[tuple[Callback, tuple[Any, ...]]] = (
            queue.SimpleQueue()
        )

    def dispatch(self, callback: Callback, *args: Any) -> None:
        self._messages.put((callback, args))

    @property
    def pending(self) -> int:
        return self._messages.qsize()

    def run_pending(self) -> int:
        """Run every queued callback without blocking; return how many ran."""
        count = 0
        while True:
            try:
                callback, args = self._messages.get_nowait()
            except queue.Empty:
                return count
            _invoke(callback, args)
            count += 1

    def run_next(self, timeout: Optional[float] = None) -> bool:
        """Block until one callback is available and run it."""
        try:
            callback, args = self._messages.get(timeout=timeout)
        except queue.Empty:
            return False
        _invoke(callback, args)
        return True


class AsyncioDispatcher:
    """Schedules callbacks on an asyncio event loop from any thread."""

    def __init__(self, loop: asyncio.AbstractEventLoop) -> None:
        self._loop = loop

    def dispatch(self, callback: Callback, *args: Any) -> None:
        if self._loop.is_closed():
            logger.warning("Event loop closed; dropping callback %r", callback)
            return
        self._loop.call_soon_threadsafe(_invoke, callback, args)


def _invoke(callback: Callback, args: tuple[Any, ...]) -> None:
    try:
        callback(*args)
    except Exception:
        logger.exception("Callback %r failed", callback)
