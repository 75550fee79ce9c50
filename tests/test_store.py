"""Tests for the SQLite usage store and the provider that reads it."""

import sqlite3

import pytest

from conftest import BASE_MS, make_sample
from usage_bridge.db import (
    bucket_for,
    database_connection,
    fetch_applications,
    fetch_usage_between,
    open_database,
    prune_usage_before,
    upsert_usage,
)
from usage_bridge.errors import ProviderUnavailable
from usage_bridge.models import InstalledApp, UsageRecord
from usage_bridge.providers import SQLiteUsageProvider

DAY_MS = 24 * 60 * 60 * 1000


def test_schema_is_created(db_path):
    with database_connection(db_path) as conn:
        tables = {
            row[0]
            for row in conn.execute("SELECT name FROM sqlite_master WHERE type='table'")
        }
    assert {"usage_records", "applications"} <= tables


def test_open_database_is_idempotent(db_path):
    open_database(db_path).close()
    open_database(db_path).close()


def test_upsert_keeps_latest_timestamp_per_bucket(seed_store):
    path = seed_store(
        make_sample("editor", BASE_MS + 10),
        make_sample("editor", BASE_MS + 5),
    )
    with database_connection(path) as conn:
        upsert_usage(conn, [make_sample("editor", BASE_MS + 1)])
        records = fetch_usage_between(conn, BASE_MS, BASE_MS + 100)
    assert records == [UsageRecord("editor", BASE_MS + 10)]


def test_same_app_appears_once_per_day_bucket(seed_store):
    path = seed_store(
        make_sample("editor", BASE_MS),
        make_sample("editor", BASE_MS + DAY_MS),
    )
    assert bucket_for(BASE_MS) != bucket_for(BASE_MS + DAY_MS)
    with database_connection(path) as conn:
        records = fetch_usage_between(conn, BASE_MS, BASE_MS + 2 * DAY_MS)
    assert [record.application_id for record in records] == ["editor", "editor"]


def test_fetch_window_is_half_open(seed_store):
    path = seed_store(
        make_sample("before", BASE_MS - 1),
        make_sample("start", BASE_MS),
        make_sample("end", BASE_MS + 100),
    )
    with database_connection(path) as conn:
        records = fetch_usage_between(conn, BASE_MS, BASE_MS + 100)
    assert [record.application_id for record in records] == ["start"]


def test_fetch_applications_keeps_system_flag(seed_store):
    path = seed_store(
        make_sample("svchost", BASE_MS, is_system=True),
        make_sample("editor", BASE_MS, display_name="Editor"),
    )
    with database_connection(path) as conn:
        apps = fetch_applications(conn)
    assert apps == [
        InstalledApp("editor", "Editor", False),
        InstalledApp("svchost", "Svchost", True),
    ]


def test_prune_removes_old_records(seed_store):
    path = seed_store(
        make_sample("old", BASE_MS - 3 * DAY_MS),
        make_sample("new", BASE_MS),
    )
    with database_connection(path) as conn:
        removed = prune_usage_before(conn, BASE_MS - DAY_MS)
        remaining = fetch_usage_between(conn, 0, BASE_MS + 1)
    assert removed == 1
    assert [record.application_id for record in remaining] == ["new"]


class TestSQLiteUsageProvider:
    def test_missing_store_is_unavailable(self, db_path):
        provider = SQLiteUsageProvider(db_path)
        with pytest.raises(ProviderUnavailable):
            provider.query_usage(0, BASE_MS)
        with pytest.raises(ProviderUnavailable):
            provider.list_applications()
        assert not db_path.exists()

    def test_corrupt_store_is_unavailable(self, db_path):
        db_path.write_bytes(b"this is not a sqlite database" * 10)
        with pytest.raises(ProviderUnavailable) as excinfo:
            SQLiteUsageProvider(db_path).query_usage(0, BASE_MS)
        assert isinstance(excinfo.value.__cause__, sqlite3.Error)

    def test_reads_records_in_insertion_order(self, seed_store):
        path = seed_store(
            make_sample("first", BASE_MS + 50),
            make_sample("second", BASE_MS + 50),
        )
        records = SQLiteUsageProvider(path).query_usage(BASE_MS, BASE_MS + 100)
        assert records == [
            UsageRecord("first", BASE_MS + 50),
            UsageRecord("second", BASE_MS + 50),
        ]

    def test_empty_store_returns_no_records(self, seed_store):
        path = seed_store()
        assert SQLiteUsageProvider(path).query_usage(0, BASE_MS) == []

    def test_lists_applications(self, seed_store):
        path = seed_store(make_sample("editor", BASE_MS, display_name="Editor"))
        assert SQLiteUsageProvider(path).list_applications() == [
            InstalledApp("editor", "Editor", False)
        ]
