"""Domain models for recorded ant traffic."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Union


class EventType(str, Enum):
    """Direction of an observed ant; values are the on-disk tokens."""

    IN = "In"
    OUT = "Out"


def normalize_time(value: datetime) -> datetime:
    """Return ``value`` in UTC, truncated to millisecond precision."""
    if value.tzinfo is None or value.utcoffset() is None:
        raise ValueError(f"Event time must be timezone-aware, got {value!r}")
    utc = value.astimezone(timezone.utc)
    return utc.replace(microsecond=utc.microsecond - utc.microsecond % 1000)


@dataclass(frozen=True, slots=True, order=True)
class Event:
    """A single timestamped in/out observation.

    Events compare and sort by ``time`` only.
    """

    time: datetime
    type: EventType = field(compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "type", EventType(self.type))
        object.__setattr__(self, "time", normalize_time(self.time))

    @classmethod
    def now(cls, event_type: EventType) -> "Event":
        return cls(time=datetime.now(timezone.utc), type=event_type)


@dataclass(frozen=True, slots=True)
class Append:
    event: Event


@dataclass(frozen=True, slots=True)
class DeleteLast:
    pass


@dataclass(frozen=True, slots=True)
class Shutdown:
    pass


FileAction = Union[Append, DeleteLast, Shutdown]
