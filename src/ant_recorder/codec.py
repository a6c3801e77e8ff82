"""Line codec for the event log."""

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Iterable, Iterator

from .errors import MalformedRecord
from .models import Event, EventType

FIELD_SEPARATOR = ","
RECORD_TERMINATOR = "\n"

_TIMESTAMP_PATTERN = re.compile(
    r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}(\.\d{1,6})?(Z|[+-]\d{2}:\d{2})"
)
_TYPES_BY_TOKEN = {member.value: member for member in EventType}


def format_timestamp(value: datetime) -> str:
    """Format an aware datetime as UTC with millisecond precision and offset."""
    return value.astimezone(timezone.utc).isoformat(timespec="milliseconds")


def parse_timestamp(text: str) -> datetime:
    if not _TIMESTAMP_PATTERN.fullmatch(text):
        raise ValueError(f"not an ISO-8601 timestamp with offset: {text!r}")
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return datetime.fromisoformat(text).astimezone(timezone.utc)


def encode(event: Event) -> str:
    """Return the log line for ``event``, including its terminator."""
    return (
        f"{format_timestamp(event.time)}{FIELD_SEPARATOR}{event.type.value}"
        f"{RECORD_TERMINATOR}"
    )


def decode(line: str, line_number: int) -> Event:
    """Decode one log line (with or without its terminator)."""
    if line.endswith(RECORD_TERMINATOR):
        line = line[: -len(RECORD_TERMINATOR)]
    parts = line.split(FIELD_SEPARATOR)
    if len(parts) != 2:
        raise MalformedRecord(
            line_number, f"expected two comma-separated fields, found {len(parts)}"
        )
    time_text, type_text = parts
    event_type = _TYPES_BY_TOKEN.get(type_text)
    if event_type is None:
        raise MalformedRecord(line_number, f"invalid event type {type_text!r}")
    try:
        time = parse_timestamp(time_text)
    except ValueError as exc:
        raise MalformedRecord(line_number, f"invalid date/time format ({exc})") from exc
    return Event(time=time, type=event_type)


def iter_records(lines: Iterable[str]) -> Iterator[Event]:
    """Decode ``lines`` in order, numbering them from 1.

    A single empty line at the end of input marks end of file, not a bad record.
    """
    blank_line: int | None = None
    for line_number, line in enumerate(lines, start=1):
        if blank_line is not None:
            raise MalformedRecord(blank_line, "empty line")
        if line == "":
            blank_line = line_number
            continue
        yield decode(line, line_number)
