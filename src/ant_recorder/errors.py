"""Exceptions raised by the recorder core."""

from __future__ import annotations

from datetime import datetime


class MalformedRecord(ValueError):
    """A log line could not be decoded into an event."""

    def __init__(self, line_number: int, reason: str) -> None:
        super().__init__(f"Malformed record on line {line_number}: {reason}")
        self.line_number = line_number
        self.reason = reason


class OutOfOrderEvent(ValueError):
    """An event was older than the most recently recorded event."""

    def __init__(self, time: datetime, latest: datetime) -> None:
        super().__init__(
            f"Event at {time.isoformat()} is older than the latest event at "
            f"{latest.isoformat()}"
        )
        self.time = time
        self.latest = latest


class QueueOverloadAdvisory(UserWarning):
    """The log actor is falling behind its producers."""

    def __init__(self, depth: int, threshold: int) -> None:
        super().__init__(
            f"{depth} file actions are waiting (advisory threshold {threshold})"
        )
        self.depth = depth
        self.threshold = threshold
