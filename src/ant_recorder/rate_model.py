"""In-memory counts and rates over recorded events."""

from __future__ import annotations

import heapq
import threading
from bisect import bisect_left, bisect_right
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Iterable, Iterator, Optional

from .errors import OutOfOrderEvent
from .models import Event, EventType


@dataclass(frozen=True, slots=True)
class Status:
    """Snapshot of counts and trailing-window rates for display."""

    in_count: int
    out_count: int
    out_ratio: Optional[float]
    out_difference: int
    in_rate: float
    out_rate: float


@dataclass(frozen=True, slots=True)
class BlockRates:
    start: datetime
    in_rate: float
    out_rate: float


def _window_seconds(duration: timedelta) -> float:
    seconds = duration.total_seconds()
    if seconds <= 0:
        raise ValueError(f"duration must be positive, got {duration}")
    return seconds


class SlidingWindowModel:
    """Per-type ordered timestamps answering count and sliding-window rate queries."""

    def __init__(self, events: Iterable[Event] = ()) -> None:
        self._lock = threading.Lock()
        self._times: dict[EventType, list[datetime]] = {kind: [] for kind in EventType}
        # Types in insertion order; breaks ties between equal tail timestamps.
        self._order: list[EventType] = []
        for event in events:
            self.add(event)

    def add(self, event: Event) -> None:
        with self._lock:
            latest = self._latest_time()
            if latest is not None and event.time < latest:
                raise OutOfOrderEvent(event.time, latest)
            self._times[event.type].append(event.time)
            self._order.append(event.type)

    def count(self, event_type: EventType) -> int:
        with self._lock:
            return len(self._times[event_type])

    def rate(self, event_type: EventType, end: datetime, duration: timedelta) -> float:
        """Events per second of ``event_type`` in the window ``[end - duration, end]``.

        An event exactly at the window start still counts, matching the one-minute
        trim that keeps events not strictly older than the cutoff.
        """
        seconds = _window_seconds(duration)
        if end.tzinfo is None:
            raise ValueError(f"window end must be timezone-aware, got {end!r}")
        start = end - duration
        with self._lock:
            times = self._times[event_type]
            inside = bisect_right(times, end) - bisect_left(times, start)
        return inside / seconds

    def delete_last(self) -> Optional[Event]:
        """Remove and return the latest event, or ``None`` when empty."""
        with self._lock:
            ins = self._times[EventType.IN]
            outs = self._times[EventType.OUT]
            if not ins and not outs:
                return None
            if not ins:
                kind = EventType.OUT
            elif not outs:
                kind = EventType.IN
            elif ins[-1] != outs[-1]:
                kind = EventType.IN if ins[-1] > outs[-1] else EventType.OUT
            else:
                kind = self._order[-1]
            time = self._times[kind].pop()
            self._remove_last_order(kind)
            return Event(time=time, type=kind)

    def remove(self, event: Event) -> bool:
        """Remove the newest occurrence of ``event``; return whether it was found."""
        with self._lock:
            times = self._times[event.type]
            index = bisect_right(times, event.time) - 1
            if index < 0 or times[index] != event.time:
                return False
            del times[index]
            self._remove_last_order(event.type)
            return True

    @property
    def last_event(self) -> Optional[Event]:
        with self._lock:
            if not self._order:
                return None
            kind = self._order[-1]
            return Event(time=self._times[kind][-1], type=kind)

    @property
    def first_time(self) -> Optional[datetime]:
        with self._lock:
            heads = [times[0] for times in self._times.values() if times]
        return min(heads) if heads else None

    def events(self) -> list[Event]:
        """All events in chronological order."""
        with self._lock:
            streams = [
                [Event(time=time, type=kind) for time in times]
                for kind, times in self._times.items()
            ]
        return list(heapq.merge(*streams))

    def status(self, now: datetime, window: timedelta) -> Status:
        in_count = self.count(EventType.IN)
        out_count = self.count(EventType.OUT)
        return Status(
            in_count=in_count,
            out_count=out_count,
            out_ratio=out_count / in_count if in_count else None,
            out_difference=out_count - in_count,
            in_rate=self.rate(EventType.IN, now, window),
            out_rate=self.rate(EventType.OUT, now, window),
        )

    def __len__(self) -> int:
        with self._lock:
            return len(self._order)

    def _latest_time(self) -> Optional[datetime]:
        tails = [times[-1] for times in self._times.values() if times]
        return max(tails) if tails else None

    def _remove_last_order(self, kind: EventType) -> None:
        for index in range(len(self._order) - 1, -1, -1):
            if self._order[index] is kind:
                del self._order[index]
                return


@dataclass(slots=True)
class _Block:
    start: datetime
    events: deque[Event] = field(default_factory=deque)
    in_count: int = 0
    out_count: int = 0

    def push(self, event: Event) -> None:
        self.events.append(event)
        if event.type is EventType.IN:
            self.in_count += 1
        else:
            self.out_count += 1

    def pop(self) -> Event:
        event = self.events.pop()
        if event.type is EventType.IN:
            self.in_count -= 1
        else:
            self.out_count -= 1
        return event


class BlockModel:
    """Events grouped into contiguous fixed-length blocks for rate charts.

    The first block starts at the first event's time and later blocks stay
    aligned to it. Only blocks holding events are stored; when ``fill_gaps`` is
    set, :meth:`blocks` reports the skipped aligned periods as zero-rate blocks.
    """

    def __init__(
        self,
        block_duration: timedelta,
        *,
        fill_gaps: bool = True,
        events: Iterable[Event] = (),
    ) -> None:
        self._block_seconds = _window_seconds(block_duration)
        self.block_duration = block_duration
        self.fill_gaps = fill_gaps
        self._blocks: deque[_Block] = deque()
        self._lock = threading.Lock()
        for event in events:
            self.add(event)

    def add(self, event: Event) -> None:
        with self._lock:
            if not self._blocks:
                block = _Block(start=event.time)
                self._blocks.append(block)
                block.push(event)
                return
            last_block = self._blocks[-1]
            latest = last_block.events[-1].time
            if event.time < latest:
                raise OutOfOrderEvent(event.time, latest)
            last_end = last_block.start + self.block_duration
            if event.time < last_end:
                last_block.push(event)
                return
            skipped = (event.time - last_end) // self.block_duration
            block = _Block(start=last_end + skipped * self.block_duration)
            self._blocks.append(block)
            block.push(event)

    def remove_last(self) -> Optional[Event]:
        with self._lock:
            if not self._blocks:
                return None
            last_block = self._blocks[-1]
            event = last_block.pop()
            if not last_block.events:
                self._blocks.pop()
            return event

    def count(self, event_type: EventType) -> int:
        with self._lock:
            if event_type is EventType.IN:
                return sum(block.in_count for block in self._blocks)
            return sum(block.out_count for block in self._blocks)

    @property
    def block_count(self) -> int:
        with self._lock:
            if not self._blocks:
                return 0
            if not self.fill_gaps:
                return len(self._blocks)
            span = self._blocks[-1].start - self._blocks[0].start
            return span // self.block_duration + 1

    @property
    def last_event(self) -> Optional[Event]:
        with self._lock:
            return self._blocks[-1].events[-1] if self._blocks else None

    def events(self) -> Iterator[Event]:
        with self._lock:
            snapshot = [event for block in self._blocks for event in block.events]
        return iter(snapshot)

    def blocks(self) -> Iterator[BlockRates]:
        """Lazily yield rates per block, from a snapshot of the current state."""
        with self._lock:
            snapshot = [
                (block.start, block.in_count, block.out_count) for block in self._blocks
            ]
        return self._iter_rates(snapshot)

    def __iter__(self) -> Iterator[BlockRates]:
        return self.blocks()

    def _iter_rates(
        self, snapshot: list[tuple[datetime, int, int]]
    ) -> Iterator[BlockRates]:
        expected: Optional[datetime] = None
        for start, in_count, out_count in snapshot:
            if self.fill_gaps and expected is not None:
                while expected < start:
                    yield BlockRates(start=expected, in_rate=0.0, out_rate=0.0)
                    expected += self.block_duration
            yield BlockRates(
                start=start,
                in_rate=in_count / self._block_seconds,
                out_rate=out_count / self._block_seconds,
            )
            expected = start + self.block_duration


def build_models(
    events: Iterable[Event], block_duration: timedelta, *, fill_gaps: bool = True
) -> tuple[SlidingWindowModel, BlockModel]:
    """Rebuild both models from events in log order."""
    window_model = SlidingWindowModel()
    block_model = BlockModel(block_duration, fill_gaps=fill_gaps)
    for event in events:
        window_model.add(event)
        block_model.add(event)
    return window_model, block_model
