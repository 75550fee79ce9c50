"""FastAPI application exposing the bridge operations over a local HTTP API."""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Any, Dict, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, ConfigDict

from .bridge import UsageStatsBridge
from .config import BridgeSettings
from .errors import ProviderUnavailable
from .paths import get_db_path
from .providers import SQLiteUsageProvider, UsageProvider

logger = logging.getLogger(__name__)


class RecorderRunner:
    """Manage the usage recorder in a background thread."""

    def __init__(self, db_path: Path, settings: BridgeSettings) -> None:
        self._db_path = Path(db_path)
        self._settings = settings
        self._lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None
        self._stop_event: Optional[threading.Event] = None

    def start(self) -> None:
        with self._lock:
            if self._thread and self._thread.is_alive():
                return
            stop_event = threading.Event()
            thread = threading.Thread(
                target=self._run_recorder,
                args=(self._db_path, self._settings, stop_event),
                daemon=True,
            )
            self._thread = thread
            self._stop_event = stop_event
            thread.start()
            logger.info("Recorder background thread started.")

    def stop(self) -> None:
        thread: Optional[threading.Thread] = None
        with self._lock:
            if not self._thread or not self._thread.is_alive() or not self._stop_event:
                return
            self._stop_event.set()
            thread = self._thread
            self._thread = None
            self._stop_event = None
        if thread:
            thread.join(timeout=10)
            logger.info("Recorder background thread stopped.")

    def is_running(self) -> bool:
        with self._lock:
            return bool(self._thread and self._thread.is_alive())

    @staticmethod
    def _run_recorder(
        db_path: Path, settings: BridgeSettings, stop_event: threading.Event
    ) -> None:
        from .recorder import UsageRecorder

        try:
            recorder = UsageRecorder(db_path=db_path, settings=settings)
        except OSError:
            logger.exception("Usage recorder unavailable on this platform.")
            return
        recorder.run_until_stopped(stop_event)


class InstalledAppPayload(BaseModel):
    application_id: str
    display_name: str

    model_config = ConfigDict(extra="forbid")


class ForegroundPayload(BaseModel):
    status: str
    application_id: Optional[str] = None
    window_start_ms: int
    window_end_ms: int
    record_count: int


def create_app(
    *,
    db_path: Optional[Path] = None,
    settings: Optional[BridgeSettings] = None,
    provider: Optional[UsageProvider] = None,
    start_recorder: bool = True,
) -> FastAPI:
    """Instantiate the FastAPI application."""
    resolved_db_path = Path(db_path or get_db_path())
    resolved_settings = settings or BridgeSettings()
    bridge = UsageStatsBridge(
        provider or SQLiteUsageProvider(resolved_db_path), resolved_settings
    )
    runner = RecorderRunner(resolved_db_path, resolved_settings)

    app = FastAPI(title="Usage Bridge", version="0.1.0")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    app.state.db_path = resolved_db_path
    app.state.bridge = bridge
    app.state.recorder_runner = runner

    @app.on_event("startup")
    async def _startup() -> None:
        if start_recorder:
            runner.start()

    @app.on_event("shutdown")
    async def _shutdown() -> None:
        runner.stop()

    @app.get("/api/status")
    def status(request: Request) -> Dict[str, Any]:
        return {
            "recorder_running": request.app.state.recorder_runner.is_running(),
            "database_path": str(request.app.state.db_path),
            "foreground_window_seconds": resolved_settings.foreground_window.total_seconds(),
            "permission_window_seconds": resolved_settings.permission_window.total_seconds(),
            "sample_seconds": resolved_settings.sample_interval.total_seconds(),
        }

    @app.get("/api/foreground", response_model=ForegroundPayload)
    def foreground(request: Request) -> Dict[str, Any]:
        report = request.app.state.bridge.foreground_report()
        return report.to_dict()

    @app.get("/api/permission")
    def permission(request: Request) -> Dict[str, bool]:
        return {"granted": request.app.state.bridge.check_permission()}

    @app.get("/api/apps", response_model=list[InstalledAppPayload])
    def installed_apps(request: Request) -> list[Dict[str, str]]:
        try:
            apps = request.app.state.bridge.get_installed_apps()
        except ProviderUnavailable as exc:
            raise HTTPException(status_code=503, detail=str(exc)) from exc
        return [
            {"application_id": app.application_id, "display_name": app.display_name}
            for app in apps
        ]

    return app
