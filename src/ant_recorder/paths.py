"""Helpers for locating application directories and dataset files."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from platformdirs import PlatformDirs


APP_NAME = "AntRecorder"
APP_AUTHOR = "AntRecorder"
DATASET_PREFIX = "Ant events "
DATASET_SUFFIX = ".csv"


def get_data_dir() -> Path:
    """Return the base directory for persistent data."""
    dirs = PlatformDirs(appname=APP_NAME, appauthor=APP_AUTHOR, roaming=True)
    path = Path(dirs.user_data_path)
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_dataset_path(name: str, data_dir: Optional[Path] = None) -> Path:
    """Return the event log path for dataset ``name``."""
    cleaned = name.strip()
    if not cleaned:
        raise ValueError("dataset name must not be empty")
    if any(sep in cleaned for sep in ("/", "\\")) or cleaned in (".", ".."):
        raise ValueError(f"dataset name must not contain path separators: {name!r}")
    return (data_dir or get_data_dir()) / f"{DATASET_PREFIX}{cleaned}{DATASET_SUFFIX}"


def list_datasets(data_dir: Optional[Path] = None) -> list[str]:
    directory = data_dir or get_data_dir()
    names = []
    for path in sorted(directory.glob(f"{DATASET_PREFIX}*{DATASET_SUFFIX}")):
        names.append(path.name[len(DATASET_PREFIX) : -len(DATASET_SUFFIX)])
    return names
