"""Serve one dataset's recording dashboard with uvicorn."""

from __future__ import annotations

import logging
import socket
import threading
import time
import webbrowser
from pathlib import Path
from typing import Optional

import uvicorn

from .config import RecorderSettings
from .webapp import create_app

logger = logging.getLogger(__name__)

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8766


def _local_host(host: str) -> str:
    # A wildcard bind is not a browsable address.
    return "127.0.0.1" if host in ("0.0.0.0", "::", "") else host


def dashboard_url(host: str, port: int) -> str:
    host = _local_host(host)
    if ":" in host:
        host = f"[{host}]"
    return f"http://{host}:{port}/"


def run_dashboard(
    *,
    path: Path,
    host: str = DEFAULT_HOST,
    port: int = DEFAULT_PORT,
    settings: Optional[RecorderSettings] = None,
    open_browser: bool = True,
    log_level: str = "info",
) -> None:
    """Record into ``path`` from the dashboard until uvicorn is stopped.

    The recording session lives in the app's lifespan, so queued writes are
    flushed when the server shuts down.
    """
    app = create_app(path=path, settings=settings or RecorderSettings())
    url = dashboard_url(host, port)
    logger.info("Dashboard for %s at %s", Path(path).name, url)

    if open_browser:
        threading.Thread(
            target=_open_when_listening, args=(url, host, port), daemon=True
        ).start()

    logging.getLogger("uvicorn.error").setLevel(log_level.upper())
    uvicorn.run(app, host=host, port=port, log_level=log_level)


def _open_when_listening(url: str, host: str, port: int, timeout: float = 10.0) -> None:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        try:
            with socket.create_connection((_local_host(host), port), timeout=0.5):
                break
        except OSError:
            time.sleep(0.2)
    else:
        logger.warning("Dashboard did not start listening on port %d", port)
        return
    try:
        webbrowser.open(url)
    except Exception:
        logger.exception("Failed to launch browser for %s", url)
