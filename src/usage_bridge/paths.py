"""Helpers for locating the usage store and log files."""

from __future__ import annotations

import os
from pathlib import Path

from platformdirs import PlatformDirs


APP_NAME = "UsageBridge"
APP_AUTHOR = "UsageBridge"
HOME_ENV = "USAGE_BRIDGE_HOME"


def get_data_dir() -> Path:
    """Return the data directory, honouring ``USAGE_BRIDGE_HOME`` when set."""
    override = os.environ.get(HOME_ENV)
    if override:
        path = Path(override).expanduser()
    else:
        dirs = PlatformDirs(appname=APP_NAME, appauthor=APP_AUTHOR, roaming=True)
        path = Path(dirs.user_data_path)
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_db_path() -> Path:
    return get_data_dir() / "usage.sqlite3"


def get_log_path() -> Path:
    return get_data_dir() / "recorder.log"
