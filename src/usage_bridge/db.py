"""SQLite database layer for the usage store."""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, Iterator

from .models import ForegroundSample, InstalledApp, UsageRecord


BUCKET_FMT = "%Y-%m-%d"


def open_database(path: Path, *, check_same_thread: bool = True) -> sqlite3.Connection:
    """Open (and initialize) the usage store for writing."""
    conn = sqlite3.connect(
        path,
        isolation_level=None,
        check_same_thread=check_same_thread,
    )
    conn.row_factory = sqlite3.Row
    initialize_schema(conn)
    return conn


def open_readonly(path: Path) -> sqlite3.Connection:
    """Open an existing usage store without creating or migrating it."""
    uri = Path(path).resolve().as_uri() + "?mode=ro"
    conn = sqlite3.connect(uri, uri=True)
    conn.row_factory = sqlite3.Row
    return conn


@contextmanager
def database_connection(
    path: Path, *, readonly: bool = False, check_same_thread: bool = True
) -> Iterator[sqlite3.Connection]:
    if readonly:
        conn = open_readonly(path)
    else:
        conn = open_database(path, check_same_thread=check_same_thread)
    try:
        yield conn
    finally:
        conn.close()


def initialize_schema(conn: sqlite3.Connection) -> None:
    conn.executescript(
        """
        CREATE TABLE IF NOT EXISTS usage_records (
            id INTEGER PRIMARY KEY,
            application_id TEXT NOT NULL,
            bucket_day TEXT NOT NULL,
            last_used_ms INTEGER NOT NULL,
            UNIQUE (application_id, bucket_day)
        );

        CREATE INDEX IF NOT EXISTS idx_usage_last_used
            ON usage_records(last_used_ms);

        CREATE TABLE IF NOT EXISTS applications (
            application_id TEXT PRIMARY KEY,
            display_name TEXT NOT NULL,
            is_system INTEGER NOT NULL DEFAULT 0,
            first_seen_ms INTEGER NOT NULL,
            last_seen_ms INTEGER NOT NULL
        );
        """
    )


def bucket_for(timestamp_ms: int) -> str:
    """Return the UTC day bucket a timestamp is aggregated into."""
    moment = datetime.fromtimestamp(timestamp_ms / 1000, tz=timezone.utc)
    return moment.strftime(BUCKET_FMT)


def upsert_usage(conn: sqlite3.Connection, samples: Iterable[ForegroundSample]) -> None:
    """Record samples, keeping the latest timestamp per application and day."""
    conn.executemany(
        """
        INSERT INTO usage_records (application_id, bucket_day, last_used_ms)
        VALUES (?, ?, ?)
        ON CONFLICT (application_id, bucket_day) DO UPDATE SET
            last_used_ms = MAX(last_used_ms, excluded.last_used_ms)
        """,
        [
            (sample.application_id, bucket_for(sample.timestamp_ms), sample.timestamp_ms)
            for sample in samples
        ],
    )


def upsert_applications(
    conn: sqlite3.Connection, samples: Iterable[ForegroundSample]
) -> None:
    conn.executemany(
        """
        INSERT INTO applications (
            application_id,
            display_name,
            is_system,
            first_seen_ms,
            last_seen_ms
        ) VALUES (?, ?, ?, ?, ?)
        ON CONFLICT (application_id) DO UPDATE SET
            display_name = excluded.display_name,
            is_system = excluded.is_system,
            last_seen_ms = MAX(last_seen_ms, excluded.last_seen_ms)
        """,
        [
            (
                sample.application_id,
                sample.display_name,
                1 if sample.is_system else 0,
                sample.timestamp_ms,
                sample.timestamp_ms,
            )
            for sample in samples
        ],
    )


def fetch_usage_between(
    conn: sqlite3.Connection, start_ms: int, end_ms: int
) -> list[UsageRecord]:
    """Return usage records whose last use falls in ``[start_ms, end_ms)``.

    Rows come back in insertion order so that equal timestamps resolve the
    same way on every query.
    """
    rows = conn.execute(
        """
        SELECT application_id, last_used_ms
        FROM usage_records
        WHERE last_used_ms >= ? AND last_used_ms < ?
        ORDER BY id;
        """,
        (start_ms, end_ms),
    )
    return [UsageRecord(row["application_id"], int(row["last_used_ms"])) for row in rows]


def fetch_applications(conn: sqlite3.Connection) -> list[InstalledApp]:
    rows = conn.execute(
        """
        SELECT application_id, display_name, is_system
        FROM applications
        ORDER BY application_id;
        """
    )
    return [
        InstalledApp(
            application_id=row["application_id"],
            display_name=row["display_name"],
            is_system=bool(row["is_system"]),
        )
        for row in rows
    ]


def prune_usage_before(conn: sqlite3.Connection, cutoff_ms: int) -> int:
    """Delete usage records last used before ``cutoff_ms``; return the count."""
    cur = conn.execute(
        "DELETE FROM usage_records WHERE last_used_ms < ?",
        (cutoff_ms,),
    )
    return cur.rowcount
