"""Shared fixtures for usage bridge tests."""

from __future__ import annotations

from pathlib import Path

import pytest

from usage_bridge.db import open_database, upsert_applications, upsert_usage
from usage_bridge.models import ForegroundSample

BASE_MS = 1_700_000_000_000


def make_sample(app_id: str, timestamp_ms: int, *, display_name: str | None = None,
                is_system: bool = False) -> ForegroundSample:
    return ForegroundSample(
        application_id=app_id,
        display_name=display_name or app_id.title(),
        is_system=is_system,
        timestamp_ms=timestamp_ms,
    )


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "usage.sqlite3"


@pytest.fixture
def seed_store(db_path: Path):
    """Write samples into a fresh usage store and return its path."""

    def _seed(*samples: ForegroundSample) -> Path:
        conn = open_database(db_path)
        try:
            upsert_applications(conn, samples)
            upsert_usage(conn, samples)
        finally:
            conn.close()
        return db_path

    return _seed
