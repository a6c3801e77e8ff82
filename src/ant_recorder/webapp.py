"""FastAPI application that exposes a local recording dashboard and API."""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, AsyncIterator, Dict, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel, ConfigDict

from .config import RecorderSettings
from .dispatch import AsyncioDispatcher
from .errors import MalformedRecord, OutOfOrderEvent
from .models import Event, EventType
from .series import ONE_TO_ONE
from .session import RecordingSession

logger = logging.getLogger(__name__)


class PersistenceState:
    """Latest counts and error reported by the log actor."""

    def __init__(self) -> None:
        self.in_count: Optional[int] = None
        self.out_count: Optional[int] = None
        self.last_error: Optional[str] = None

    def on_counts_changed(self, in_count: int, out_count: int) -> None:
        self.in_count = in_count
        self.out_count = out_count

    def on_error(self, error: Exception) -> None:
        logger.error("Event log error: %s", error)
        self.last_error = f"{type(error).__name__}: {error}"


class EventPayload(BaseModel):
    type: EventType
    time: Optional[datetime] = None

    model_config = ConfigDict(extra="forbid")


def create_app(
    *,
    path: Path,
    settings: Optional[RecorderSettings] = None,
) -> FastAPI:
    """Instantiate the FastAPI application for one dataset file."""
    resolved_path = Path(path)
    resolved_settings = settings or RecorderSettings()
    persistence = PersistenceState()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logging.basicConfig(
            level=logging.INFO,
            format="%(asctime)s %(levelname)s %(name)s %(message)s",
        )
        session = RecordingSession(
            resolved_path,
            resolved_settings,
            on_counts_changed=persistence.on_counts_changed,
            on_error=persistence.on_error,
            dispatcher=AsyncioDispatcher(asyncio.get_running_loop()),
        )
        try:
            session.open()
        except (OSError, MalformedRecord, OutOfOrderEvent) as exc:
            logger.error("Cannot open %s: %s", resolved_path, exc)
            app.state.load_error = f"{type(exc).__name__}: {exc}"
            yield
            return
        app.state.session = session
        try:
            yield
        finally:
            await asyncio.to_thread(session.close)

    app = FastAPI(title="Ant Recorder", version="0.1.0", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.state.path = resolved_path
    app.state.session = None
    app.state.load_error = None
    app.state.persistence = persistence

    static_dir = Path(__file__).parent / "static"
    if static_dir.exists():
        app.mount("/static", StaticFiles(directory=static_dir), name="static")

    @app.get("/api/status")
    def status(request: Request) -> Dict[str, Any]:
        session = _require_session(request)
        snapshot = session.status()
        return {
            "dataset_path": str(request.app.state.path),
            "persisting": session.is_persisting,
            "in_count": snapshot.in_count,
            "out_count": snapshot.out_count,
            "out_ratio": snapshot.out_ratio,
            "out_difference": snapshot.out_difference,
            "in_rate": snapshot.in_rate,
            "out_rate": snapshot.out_rate,
            "rate_window_seconds": resolved_settings.rate_window.total_seconds(),
            "saved": {
                "in_count": persistence.in_count,
                "out_count": persistence.out_count,
            },
            "last_error": persistence.last_error,
        }

    @app.post("/api/events")
    def record_event(payload: EventPayload, request: Request) -> Dict[str, Any]:
        session = _require_session(request)
        if payload.time is not None and payload.time.tzinfo is None:
            raise HTTPException(status_code=400, detail="time must include an offset")
        try:
            event = session.record(payload.type, payload.time)
        except OutOfOrderEvent as exc:
            raise HTTPException(status_code=409, detail=str(exc)) from exc
        advisory = session.check_backlog()
        in_count, out_count = session.counts
        return {
            "event": _event_payload(event),
            "in_count": in_count,
            "out_count": out_count,
            "backlog_warning": str(advisory) if advisory else None,
        }

    @app.post("/api/events/delete-last")
    def delete_last(request: Request) -> Dict[str, Any]:
        session = _require_session(request)
        removed = session.delete_last()
        in_count, out_count = session.counts
        return {
            "deleted": _event_payload(removed) if removed else None,
            "in_count": in_count,
            "out_count": out_count,
        }

    @app.get("/api/series/blocks")
    def series_blocks(request: Request) -> Dict[str, Any]:
        session = _require_session(request)
        return {
            "block_seconds": resolved_settings.block_duration.total_seconds(),
            "blocks": [
                {
                    "start": sample.start.isoformat(),
                    "in_rate": sample.in_rate,
                    "out_rate": sample.out_rate,
                }
                for sample in session.series().samples()
            ],
        }

    @app.get("/api/series/points")
    def series_points(request: Request) -> Dict[str, Any]:
        session = _require_session(request)
        series = session.series()
        return {
            "title": series.title,
            "points": [list(point) for point in series.points()],
            "reference": [list(point) for point in ONE_TO_ONE],
        }

    @app.get("/")
    def index(request: Request):
        index_path = (Path(__file__).parent / "static" / "index.html").resolve()
        if not index_path.exists():
            raise HTTPException(status_code=404, detail="UI not found")
        return FileResponse(index_path)

    return app


def _event_payload(event: Event) -> Dict[str, Any]:
    return {"type": event.type.value, "time": event.time.isoformat()}


def _require_session(request: Request) -> RecordingSession:
    session: Optional[RecordingSession] = request.app.state.session
    if session is None:
        detail = request.app.state.load_error or "Recording session is not open"
        raise HTTPException(status_code=500, detail=detail)
    return session
