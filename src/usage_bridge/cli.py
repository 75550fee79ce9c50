"""Command-line interface for the usage bridge."""

from __future__ import annotations

import json
import logging
from datetime import timedelta
from pathlib import Path
from typing import Optional

import typer

from .bridge import UsageStatsBridge
from .config import BridgeSettings
from .errors import ProviderUnavailable
from .models import ForegroundStatus
from .paths import get_db_path, get_log_path
from .providers import SQLiteUsageProvider

app = typer.Typer(help="Foreground-app detection backed by a local usage store.")

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"

EXIT_DENIED = 1
EXIT_NO_PERMISSION = 2


@app.callback(no_args_is_help=True)
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logs.")) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format=LOG_FORMAT,
    )


def _settings(**kwargs: Optional[float]) -> BridgeSettings:
    try:
        return BridgeSettings.from_seconds(**kwargs)
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc


def _bridge(db_path: Optional[Path], foreground_seconds: float = 10.0) -> UsageStatsBridge:
    settings = _settings(foreground_seconds=foreground_seconds)
    return UsageStatsBridge(SQLiteUsageProvider(db_path or get_db_path()), settings)


@app.command()
def record(
    db_path: Optional[Path] = typer.Option(
        None,
        "--db",
        path_type=Path,
        help="Location of the usage SQLite database.",
    ),
    sample_seconds: float = typer.Option(
        5.0,
        "--interval",
        min=1.0,
        help="Sampling interval in seconds.",
    ),
    window_seconds: float = typer.Option(
        10.0,
        "--window",
        min=2.0,
        help="Foreground window readers query; writes are flushed within it.",
    ),
    retention_days: float = typer.Option(
        7.0,
        "--retention-days",
        min=1.0,
        help="Days of usage records to keep.",
    ),
    log_file: bool = typer.Option(
        False,
        "--log-file/--no-log-file",
        help="Also write logs to the data directory.",
    ),
) -> None:
    """Run the usage recorder until interrupted."""
    from .recorder import UsageRecorder

    settings = _settings(
        foreground_seconds=window_seconds,
        sample_seconds=sample_seconds,
        retention_days=retention_days,
    )
    if log_file:
        handler = logging.FileHandler(get_log_path(), encoding="utf-8")
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logging.getLogger().addHandler(handler)

    try:
        recorder = UsageRecorder(db_path=db_path or get_db_path(), settings=settings)
    except OSError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=1) from exc
    recorder.run_forever()


@app.command()
def foreground(
    db_path: Optional[Path] = typer.Option(
        None, "--db", path_type=Path, help="Location of the usage SQLite database."
    ),
    window_seconds: float = typer.Option(
        10.0,
        "--window",
        min=10.0,
        help="Seconds of recent usage to consider (at least the recorder's cadence).",
    ),
) -> None:
    """Print the most recent foreground application, or 'unknown'."""
    report = _bridge(db_path, window_seconds).foreground_report()
    if report.status is ForegroundStatus.NO_PERMISSION:
        typer.echo("Usage data is not accessible; start the recorder first.", err=True)
        raise typer.Exit(code=EXIT_NO_PERMISSION)
    typer.echo(report.application_id or "unknown")


@app.command("check-permission")
def check_permission(
    db_path: Optional[Path] = typer.Option(
        None, "--db", path_type=Path, help="Location of the usage SQLite database."
    ),
) -> None:
    """Report whether usage data can be read."""
    granted = _bridge(db_path).check_permission()
    typer.echo("granted" if granted else "denied")
    if not granted:
        raise typer.Exit(code=EXIT_DENIED)


@app.command()
def apps(
    db_path: Optional[Path] = typer.Option(
        None, "--db", path_type=Path, help="Location of the usage SQLite database."
    ),
    as_json: bool = typer.Option(False, "--json", help="Emit JSON instead of a table."),
) -> None:
    """List non-system applications known to the usage store."""
    try:
        installed = _bridge(db_path).get_installed_apps()
    except ProviderUnavailable as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=EXIT_NO_PERMISSION) from exc

    if as_json:
        payload = [
            {"application_id": item.application_id, "display_name": item.display_name}
            for item in installed
        ]
        typer.echo(json.dumps(payload, indent=2))
        return

    if not installed:
        typer.echo("No applications recorded yet.")
        return
    for item in installed:
        typer.echo(f"{item.application_id:<32} {item.display_name}")


@app.command()
def watch(
    tracked: list[str] = typer.Option(
        ..., "--track", "-t", help="Application id to report; repeat for several."
    ),
    db_path: Optional[Path] = typer.Option(
        None, "--db", path_type=Path, help="Location of the usage SQLite database."
    ),
    poll_seconds: float = typer.Option(
        5.0, "--interval", min=1.0, help="Polling interval in seconds."
    ),
    once: bool = typer.Option(False, "--once", help="Check a single time and exit."),
) -> None:
    """Print a line each time a different tracked application takes focus."""
    from .watcher import AppWatcher, Detection

    def _report(detection: Detection) -> None:
        typer.echo(f"{detection.application_id}\t{detection.display_name}")

    watcher = AppWatcher(
        _bridge(db_path),
        tracked,
        _report,
        poll_interval=timedelta(seconds=poll_seconds),
    )
    if once:
        watcher.check_once()
        return
    watcher.run_forever()


@app.command()
def prune(
    db_path: Optional[Path] = typer.Option(
        None, "--db", path_type=Path, help="Location of the usage SQLite database."
    ),
    retention_days: float = typer.Option(
        7.0, "--retention-days", min=1.0, help="Days of usage records to keep."
    ),
) -> None:
    """Delete usage records older than the retention period."""
    from .bridge import current_time_ms
    from .db import database_connection, prune_usage_before

    settings = _settings(retention_days=retention_days)
    cutoff_ms = current_time_ms() - settings.retention_ms
    with database_connection(db_path or get_db_path()) as conn:
        removed = prune_usage_before(conn, cutoff_ms)
    typer.echo(f"Removed {removed} usage records.")


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", "--host", help="Interface to bind the API."),
    port: int = typer.Option(
        8766, "--port", min=1, max=65535, help="TCP port for the API."
    ),
    db_path: Optional[Path] = typer.Option(
        None, "--db", path_type=Path, help="Location of the usage SQLite database."
    ),
    sample_seconds: float = typer.Option(
        5.0,
        "--interval",
        min=1.0,
        help="Sampling interval in seconds.",
    ),
    window_seconds: float = typer.Option(
        10.0,
        "--window",
        min=2.0,
        help="Foreground window in seconds.",
    ),
    flush_seconds: Optional[float] = typer.Option(
        None,
        "--flush-interval",
        min=1.0,
        help="Recorder flush interval in seconds (defaults to the window minus the interval).",
    ),
    with_recorder: bool = typer.Option(
        True,
        "--with-recorder/--no-recorder",
        help="Run the usage recorder alongside the API.",
    ),
) -> None:
    """Start the local HTTP API."""
    from .server_runner import run_server

    settings = _settings(
        foreground_seconds=window_seconds,
        sample_seconds=sample_seconds,
        flush_seconds=flush_seconds,
    )
    run_server(
        host=host,
        port=port,
        db_path=db_path or get_db_path(),
        settings=settings,
        start_recorder=with_recorder,
    )
