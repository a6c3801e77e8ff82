"""Simple reporting utilities for CLI output."""

from __future__ import annotations

from datetime import datetime, timedelta
from pathlib import Path
from typing import Iterable, Optional

from .config import RecorderSettings
from .durable_log import read_events
from .rate_model import BlockRates, Status, build_models


class SummaryPrinter:
    """Render human-readable dataset summaries in the console."""

    def __init__(self, path: Path, settings: Optional[RecorderSettings] = None) -> None:
        self.path = Path(path)
        self.settings = settings or RecorderSettings()

    def print_summary(self, now: Optional[datetime] = None) -> None:
        events = read_events(self.path)
        if not events:
            print("No events recorded for the selected dataset.")
            return

        window_model, block_model = build_models(
            events, self.settings.block_duration, fill_gaps=self.settings.fill_gaps
        )
        status = window_model.status(
            now or events[-1].time, self.settings.rate_window
        )
        first = window_model.first_time
        last = window_model.last_event.time
        print(f"Summary for {self.path.name}")
        print("-" * 40)
        print(f"First event: {first.astimezone().isoformat(timespec='seconds')}")
        print(f"Last event:  {last.astimezone().isoformat(timespec='seconds')}")
        print(f"Elapsed:     {format_duration((last - first).total_seconds())}")
        for line in format_status(status, self.settings.rate_window):
            print(line)

        rows = list(block_model.blocks())
        if rows:
            print()
            print(f"Rates per {format_duration(self.settings.block_duration.total_seconds())} block:")
            for line in format_blocks(rows):
                print(f"  {line}")


def format_status(status: Status, window: timedelta) -> list[str]:
    ratio = f"{status.out_ratio:.2f}" if status.out_ratio is not None else "n/a"
    return [
        f"In:          {status.in_count}",
        f"Out:         {status.out_count}",
        f"Out/In:      {ratio}",
        f"Out - In:    {status.out_difference:+d}",
        f"In rate:     {format_rate(status.in_rate)} (last {format_duration(window.total_seconds())})",
        f"Out rate:    {format_rate(status.out_rate)} (last {format_duration(window.total_seconds())})",
    ]


def format_blocks(rows: Iterable[BlockRates]) -> list[str]:
    lines = []
    for row in rows:
        start = row.start.astimezone().strftime("%H:%M:%S")
        lines.append(
            f"{start}  in {format_rate(row.in_rate):>12}  out {format_rate(row.out_rate):>12}"
        )
    return lines


def format_rate(per_second: float) -> str:
    return f"{per_second * 60:.2f}/min"


def format_duration(seconds: float) -> str:
    total_seconds = int(round(seconds))
    hours, remainder = divmod(total_seconds, 3600)
    minutes, secs = divmod(remainder, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"
