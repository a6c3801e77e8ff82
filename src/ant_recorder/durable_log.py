"""Append-only event log stored as one text record per line."""

from __future__ import annotations

import logging
import os
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import BinaryIO, Iterator

from .codec import RECORD_TERMINATOR, encode, iter_records
from .models import Event, EventType

logger = logging.getLogger(__name__)

ENCODING = "utf-8"
_NEWLINE = b"\n"


class DurableLog:
    """Random-access handle on an event log file.

    Between operations the file position is at end of file and the file holds
    only complete, newline-terminated records. All operations on one handle are
    serialized; the file must not be written through any other handle.
    """

    def __init__(self, path: Path, handle: BinaryIO) -> None:
        self.path = Path(path)
        self._handle = handle
        self._lock = threading.Lock()

    @classmethod
    def open(cls, path: Path) -> "DurableLog":
        """Open ``path`` for reading and writing, creating it if absent."""
        path = Path(path)
        fd = os.open(path, os.O_RDWR | os.O_CREAT, 0o644)
        handle = os.fdopen(fd, "r+b")
        handle.seek(0, os.SEEK_END)
        logger.debug("Opened event log %s (%d bytes)", path, handle.tell())
        return cls(path, handle)

    @property
    def closed(self) -> bool:
        return self._handle.closed

    @property
    def size(self) -> int:
        with self._lock:
            return self._handle.seek(0, os.SEEK_END)

    def read_all(self) -> list[Event]:
        """Decode every record from the start of the file."""
        with self._lock:
            self._handle.seek(0)
            try:
                data = self._handle.read()
            finally:
                self._handle.seek(0, os.SEEK_END)
        return decode_bytes(data)

    def count_types(self) -> tuple[int, int]:
        """Return ``(in_count, out_count)`` from a full scan of the file."""
        events = self.read_all()
        in_count = sum(1 for event in events if event.type is EventType.IN)
        return in_count, len(events) - in_count

    def append(self, event: Event) -> None:
        record = encode(event).encode(ENCODING)
        with self._lock:
            self._handle.seek(0, os.SEEK_END)
            self._handle.write(record)
            self._sync()

    def truncate_last(self) -> bool:
        """Remove the final record, including its newline.

        Scans backwards byte by byte from the byte before the final newline.
        Returns ``False`` when the file is too short to hold a record.
        """
        with self._lock:
            handle = self._handle
            length = handle.seek(0, os.SEEK_END)
            if length < 2:
                return False
            offset = length - 2
            new_length = 0
            while offset >= 0:
                handle.seek(offset)
                if handle.read(1) == _NEWLINE:
                    new_length = offset + 1
                    break
                offset -= 1
            handle.truncate(new_length)
            handle.seek(0, os.SEEK_END)
            self._sync()
            logger.debug("Truncated %s from %d to %d bytes", self.path, length, new_length)
            return True

    def close(self) -> None:
        with self._lock:
            if not self._handle.closed:
                self._handle.close()

    def __enter__(self) -> "DurableLog":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _sync(self) -> None:
        self._handle.flush()
        os.fsync(self._handle.fileno())


def decode_bytes(data: bytes) -> list[Event]:
    """Decode raw log contents, failing at the first malformed line.

    Records are pure ASCII, so undecodable bytes become replacement characters
    that fail validation on the line where they appear.
    """
    text = data.decode(ENCODING, errors="replace")
    return list(iter_records(text.split(RECORD_TERMINATOR)))


def read_events(path: Path) -> list[Event]:
    """Decode an existing log without creating or modifying it."""
    path = Path(path)
    if not path.exists():
        return []
    return decode_bytes(path.read_bytes())


@contextmanager
def open_log(path: Path) -> Iterator[DurableLog]:
    log = DurableLog.open(path)
    try:
        yield log
    finally:
        log.close()
