"""A recording session for one dataset: live models plus durable persistence."""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from .actor import CountsCallback, ErrorCallback, LogActor
from .config import RecorderSettings
from .dispatch import Dispatcher
from .durable_log import read_events
from .errors import OutOfOrderEvent, QueueOverloadAdvisory
from .models import Event, EventType
from .rate_model import BlockModel, SlidingWindowModel, Status, build_models
from .series import RateSeries

logger = logging.getLogger(__name__)


def _ignore_counts(in_count: int, out_count: int) -> None:
    pass


def _log_error(error: Exception) -> None:
    logger.error("Event log error: %s", error)


class RecordingSession:
    """Feeds each tap to the in-memory models and to the log actor.

    The models are updated synchronously for display; persistence happens on
    the actor thread and reports back through ``on_counts_changed`` and
    ``on_error`` on the dispatcher's execution context. Each operation holds
    the session lock across both models and the actor submit, so concurrent
    callers see the models and the log in the same order.
    """

    def __init__(
        self,
        path: Path,
        settings: Optional[RecorderSettings] = None,
        *,
        on_counts_changed: Optional[CountsCallback] = None,
        on_error: Optional[ErrorCallback] = None,
        dispatcher: Optional[Dispatcher] = None,
    ) -> None:
        self.path = Path(path)
        self.settings = settings or RecorderSettings()
        self._lock = threading.Lock()
        self.window_model = SlidingWindowModel()
        self.block_model = BlockModel(
            self.settings.block_duration, fill_gaps=self.settings.fill_gaps
        )
        self._actor = LogActor(
            self.path,
            on_counts_changed or _ignore_counts,
            on_error or _log_error,
            dispatcher=dispatcher,
            backlog_threshold=self.settings.backlog_threshold,
        )

    def open(self) -> "RecordingSession":
        """Rebuild the models from the existing log, then start persisting.

        ``MalformedRecord`` and ``OSError`` propagate and leave the session closed.
        """
        events = read_events(self.path)
        with self._lock:
            self.window_model, self.block_model = build_models(
                events, self.settings.block_duration, fill_gaps=self.settings.fill_gaps
            )
            logger.info("Loaded %d events from %s", len(events), self.path)
            self._actor.start()
        return self

    def __enter__(self) -> "RecordingSession":
        return self.open()

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @property
    def is_persisting(self) -> bool:
        return self._actor.is_running

    @property
    def counts(self) -> tuple[int, int]:
        with self._lock:
            return (
                self.window_model.count(EventType.IN),
                self.window_model.count(EventType.OUT),
            )

    def record(self, event_type: EventType, time: Optional[datetime] = None) -> Event:
        """Record one tap; raises ``OutOfOrderEvent`` without queuing anything."""
        with self._lock:
            if time is None:
                event = Event.now(event_type)
            else:
                event = Event(time=time, type=event_type)
            self.window_model.add(event)
            try:
                self.block_model.add(event)
            except OutOfOrderEvent:
                self.window_model.remove(event)
                raise
            if not self._actor.is_running:
                logger.warning("Log actor is not running; %s will not be saved", event)
            self._actor.append(event)
            return event

    def delete_last(self) -> Optional[Event]:
        """Remove the latest event from the models and from the log."""
        with self._lock:
            removed = self.window_model.delete_last()
            if removed is None:
                return None
            self.block_model.remove_last()
            self._actor.delete_last()
            return removed

    def status(self, now: Optional[datetime] = None) -> Status:
        return self.window_model.status(
            now or datetime.now(timezone.utc), self.settings.rate_window
        )

    def series(self) -> RateSeries:
        return RateSeries(self.block_model)

    def check_backlog(self) -> Optional[QueueOverloadAdvisory]:
        return self._actor.check_backlog()

    def close(self, timeout: Optional[float] = 10.0) -> bool:
        """Stop the log actor after the queued actions; return whether it stopped."""
        self._actor.shutdown()
        stopped = self._actor.join(timeout)
        if not stopped:
            logger.warning("Log actor for %s did not stop within %s s", self.path, timeout)
        return stopped
