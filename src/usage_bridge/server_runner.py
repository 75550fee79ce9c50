"""Helpers to launch the local HTTP API."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import uvicorn

from .config import BridgeSettings
from .paths import get_db_path
from .webapp import create_app


def run_server(
    *,
    host: str = "127.0.0.1",
    port: int = 8766,
    db_path: Optional[Path] = None,
    settings: Optional[BridgeSettings] = None,
    start_recorder: bool = True,
    log_level: str = "info",
) -> None:
    """Start the FastAPI app, optionally with the recorder in the background."""
    app = create_app(
        db_path=db_path or get_db_path(),
        settings=settings or BridgeSettings(),
        start_recorder=start_recorder,
    )

    logging.getLogger("uvicorn.error").setLevel(log_level.upper())
    uvicorn.run(app, host=host, port=port, log_level=log_level)
