from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from ant_recorder.models import Event, EventType

T0 = datetime(2024, 3, 1, 22, 5, 22, 123000, tzinfo=timezone.utc)


def at(seconds: float, event_type: EventType = EventType.IN) -> Event:
    return Event(time=T0 + timedelta(seconds=seconds), type=event_type)


def as_pairs(events):
    return [(event.time, event.type) for event in events]


@pytest.fixture
def log_path(tmp_path):
    return tmp_path / "Ant events test.csv"
