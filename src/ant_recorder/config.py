"""Configuration models and helpers for the ant recorder."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta

from .actor import DEFAULT_BACKLOG_THRESHOLD


@dataclass(slots=True)
class RecorderSettings:
    """Runtime configuration for a recording session."""

    block_duration: timedelta = timedelta(minutes=1)
    rate_window: timedelta = timedelta(minutes=1)
    backlog_threshold: int = DEFAULT_BACKLOG_THRESHOLD
    fill_gaps: bool = True

    @classmethod
    def from_values(
        cls,
        block_seconds: float,
        window_seconds: float | None = None,
        backlog_threshold: int | None = None,
        fill_gaps: bool = True,
    ) -> "RecorderSettings":
        window = window_seconds if window_seconds is not None else block_seconds
        return cls(
            block_duration=timedelta(seconds=block_seconds),
            rate_window=timedelta(seconds=window),
            backlog_threshold=(
                backlog_threshold
                if backlog_threshold is not None
                else DEFAULT_BACKLOG_THRESHOLD
            ),
            fill_gaps=fill_gaps,
        )
