"""Single-writer background task that applies file actions to the event log."""

from __future__ import annotations

import logging
import queue
import threading
from pathlib import Path
from typing import Callable, Optional

from .dispatch import Dispatcher, ImmediateDispatcher
from .durable_log import DurableLog
from .errors import MalformedRecord, QueueOverloadAdvisory
from .models import Append, DeleteLast, Event, EventType, FileAction, Shutdown

logger = logging.getLogger(__name__)

CountsCallback = Callable[[int, int], None]
ErrorCallback = Callable[[Exception], None]

DEFAULT_BACKLOG_THRESHOLD = 256


class LogActor:
    """Owns one :class:`DurableLog` and applies queued actions in FIFO order.

    Producers call :meth:`submit` (or the helpers) from any thread. Counts and
    errors are published through ``dispatcher`` so the consumer decides which
    thread runs ``on_counts_changed`` and ``on_error``.
    """

    def __init__(
        self,
        path: Path,
        on_counts_changed: CountsCallback,
        on_error: ErrorCallback,
        *,
        dispatcher: Optional[Dispatcher] = None,
        backlog_threshold: int = DEFAULT_BACKLOG_THRESHOLD,
    ) -> None:
        self.path = Path(path)
        self._on_counts_changed = on_counts_changed
        self._on_error = on_error
        self._dispatcher = dispatcher or ImmediateDispatcher()
        self._backlog_threshold = backlog_threshold
        self._actions: queue.Queue[FileAction] = queue.Queue()
        self._lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None
        self._running = threading.Event()
        self._in_count = 0
        self._out_count = 0

    def start(self) -> None:
        """Open the log and start the processing thread.

        Raises ``OSError`` on this thread when the file cannot be opened.
        """
        with self._lock:
            if self._thread and self._thread.is_alive():
                return
            log = DurableLog.open(self.path)
            thread = threading.Thread(
                target=self._run,
                args=(log,),
                name=f"log-actor:{self.path.name}",
                daemon=True,
            )
            self._running.set()
            self._thread = thread
            thread.start()
            logger.info("Log actor started for %s", self.path)

    @property
    def is_running(self) -> bool:
        return self._running.is_set()

    @property
    def queue_depth(self) -> int:
        return self._actions.qsize()

    def submit(self, action: FileAction) -> None:
        self._actions.put_nowait(action)

    def append(self, event: Event) -> None:
        self.submit(Append(event))

    def delete_last(self) -> None:
        self.submit(DeleteLast())

    def shutdown(self) -> None:
        self.submit(Shutdown())

    def check_backlog(self) -> Optional[QueueOverloadAdvisory]:
        """Return an advisory when queued actions exceed the threshold."""
        depth = self.queue_depth
        if depth <= self._backlog_threshold:
            return None
        advisory = QueueOverloadAdvisory(depth, self._backlog_threshold)
        logger.warning("%s", advisory)
        return advisory

    def join(self, timeout: Optional[float] = None) -> bool:
        """Wait for the thread to finish; return ``True`` if it has stopped."""
        with self._lock:
            thread = self._thread
        if thread is None:
            return True
        thread.join(timeout)
        return not thread.is_alive()

    def _run(self, log: DurableLog) -> None:
        try:
            try:
                self._in_count, self._out_count = log.count_types()
            except (OSError, MalformedRecord) as exc:
                logger.error("Cannot count existing records in %s: %s", self.path, exc)
                self._publish_error(exc)
                return
            self._publish_counts()
            self._process(log)
        finally:
            self._running.clear()
            try:
                log.close()
            except OSError as exc:
                logger.error("Failed to close %s: %s", self.path, exc)
                self._publish_error(exc)
            logger.info("Log actor stopped for %s", self.path)

    def _process(self, log: DurableLog) -> None:
        while True:
            action = self._actions.get()
            if isinstance(action, Shutdown):
                logger.debug("Shutdown received with %d actions unread", self.queue_depth)
                return
            if isinstance(action, Append):
                self._apply_append(log, action.event)
            elif isinstance(action, DeleteLast):
                self._apply_delete_last(log)
            else:
                logger.error("Ignoring unknown file action %r", action)

    def _apply_append(self, log: DurableLog, event: Event) -> None:
        try:
            log.append(event)
        except OSError as exc:
            logger.error("Failed to append %s event: %s", event.type.value, exc)
            self._publish_error(exc)
            return
        if event.type is EventType.IN:
            self._in_count += 1
        else:
            self._out_count += 1
        self._publish_counts()

    def _apply_delete_last(self, log: DurableLog) -> None:
        try:
            if not log.truncate_last():
                logger.debug("No record to delete in %s", self.path)
                return
            self._in_count, self._out_count = log.count_types()
        except (OSError, MalformedRecord) as exc:
            logger.error("Failed to delete last record: %s", exc)
            self._publish_error(exc)
            return
        self._publish_counts()

    def _publish_counts(self) -> None:
        logger.debug("Counts: in=%d out=%d", self._in_count, self._out_count)
        self._dispatcher.dispatch(self._on_counts_changed, self._in_count, self._out_count)

    def _publish_error(self, error: Exception) -> None:
        self._dispatcher.dispatch(self._on_error, error)
