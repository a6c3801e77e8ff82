"""Command-line interface for the ant recorder."""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Optional

import typer

from .config import RecorderSettings
from .dispatch import QueueDispatcher
from .errors import MalformedRecord, OutOfOrderEvent
from .models import EventType
from .paths import get_data_dir, get_dataset_path, list_datasets
from .reporting import SummaryPrinter, format_status
from .session import RecordingSession

app = typer.Typer(help="Record ant traffic and report rates.")

_COMMANDS = {
    "i": "in",
    "in": "in",
    "o": "out",
    "out": "out",
    "u": "undo",
    "undo": "undo",
    "s": "status",
    "status": "status",
    "q": "quit",
    "quit": "quit",
}


@app.callback(no_args_is_help=True)
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logs.")) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


def _resolve_path(dataset: str, data_dir: Optional[Path]) -> Path:
    try:
        return get_dataset_path(dataset, data_dir)
    except ValueError as exc:
        typer.echo(f"Invalid dataset name: {exc}", err=True)
        raise typer.Exit(code=2) from exc


def _settings(block_seconds: float, window_seconds: Optional[float]) -> RecorderSettings:
    return RecorderSettings.from_values(
        block_seconds=block_seconds, window_seconds=window_seconds
    )


@app.command()
def record(
    dataset: str = typer.Argument(..., help="Dataset name; selects the event file."),
    data_dir: Optional[Path] = typer.Option(
        None, "--data-dir", path_type=Path, help="Directory holding event files."
    ),
    block_seconds: float = typer.Option(
        60.0, "--block", min=1.0, help="Rate block length in seconds."
    ),
    window_seconds: Optional[float] = typer.Option(
        None, "--window", min=1.0, help="Sliding rate window in seconds."
    ),
) -> None:
    """Record taps read from stdin: i(n), o(ut), u(ndo), s(tatus), q(uit)."""
    path = _resolve_path(dataset, data_dir)
    settings = _settings(block_seconds, window_seconds)
    dispatcher = QueueDispatcher()

    def on_counts_changed(in_count: int, out_count: int) -> None:
        typer.echo(f"saved: in={in_count} out={out_count}")

    def on_error(error: Exception) -> None:
        typer.echo(f"error: {error}", err=True)

    session = RecordingSession(
        path,
        settings,
        on_counts_changed=on_counts_changed,
        on_error=on_error,
        dispatcher=dispatcher,
    )
    try:
        session.open()
    except (OSError, MalformedRecord) as exc:
        typer.echo(f"Cannot open {path}: {exc}", err=True)
        raise typer.Exit(code=1) from exc

    typer.echo(f"Recording to {path}")
    try:
        for raw in sys.stdin:
            command = _COMMANDS.get(raw.strip().lower())
            if command is None:
                if raw.strip():
                    typer.echo(f"unknown command {raw.strip()!r}", err=True)
                continue
            if command == "quit":
                break
            _run_command(session, command)
            dispatcher.run_pending()
            if session.check_backlog() is not None:
                typer.echo("warning: the event file is falling behind", err=True)
    finally:
        session.close()
        dispatcher.run_pending()


def _run_command(session: RecordingSession, command: str) -> None:
    if command in ("in", "out"):
        event_type = EventType.IN if command == "in" else EventType.OUT
        try:
            session.record(event_type)
        except OutOfOrderEvent as exc:
            typer.echo(f"rejected: {exc}", err=True)
            return
    elif command == "undo":
        removed = session.delete_last()
        if removed is None:
            typer.echo("nothing to delete")
            return
        typer.echo(f"deleted {removed.type.value} at {removed.time.isoformat()}")
    in_count, out_count = session.counts
    if command == "status":
        for line in format_status(session.status(), session.settings.rate_window):
            typer.echo(line)
    else:
        typer.echo(f"in={in_count} out={out_count}")


@app.command()
def summary(
    dataset: str = typer.Argument(..., help="Dataset name to summarize."),
    data_dir: Optional[Path] = typer.Option(
        None, "--data-dir", path_type=Path, help="Directory holding event files."
    ),
    block_seconds: float = typer.Option(
        60.0, "--block", min=1.0, help="Rate block length in seconds."
    ),
    window_seconds: Optional[float] = typer.Option(
        None, "--window", min=1.0, help="Sliding rate window in seconds."
    ),
) -> None:
    """Print counts, the trailing rate and per-block rates for a dataset."""
    path = _resolve_path(dataset, data_dir)
    printer = SummaryPrinter(path, _settings(block_seconds, window_seconds))
    try:
        printer.print_summary()
    except (MalformedRecord, OutOfOrderEvent) as exc:
        typer.echo(f"Cannot read {path}: {exc}", err=True)
        raise typer.Exit(code=1) from exc


@app.command()
def datasets(
    data_dir: Optional[Path] = typer.Option(
        None, "--data-dir", path_type=Path, help="Directory holding event files."
    ),
) -> None:
    """List datasets with an event file."""
    for name in list_datasets(data_dir or get_data_dir()):
        typer.echo(name)


@app.command()
def web(
    dataset: str = typer.Argument(..., help="Dataset name; selects the event file."),
    host: str = typer.Option("127.0.0.1", "--host", help="Interface to bind the dashboard."),
    port: int = typer.Option(
        8766, "--port", min=1, max=65535, help="TCP port for the dashboard."
    ),
    data_dir: Optional[Path] = typer.Option(
        None, "--data-dir", path_type=Path, help="Directory holding event files."
    ),
    block_seconds: float = typer.Option(
        60.0, "--block", min=1.0, help="Rate block length in seconds."
    ),
    window_seconds: Optional[float] = typer.Option(
        None, "--window", min=1.0, help="Sliding rate window in seconds."
    ),
    open_browser: bool = typer.Option(
        True,
        "--open-browser/--no-open-browser",
        help="Automatically launch the dashboard in your default browser.",
    ),
) -> None:
    """Serve the recording dashboard for a dataset."""
    from .server_runner import run_dashboard

    run_dashboard(
        host=host,
        port=port,
        path=_resolve_path(dataset, data_dir),
        settings=_settings(block_seconds, window_seconds),
        open_browser=open_browser,
    )
