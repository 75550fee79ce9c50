"""Tests for the HTTP API."""

from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from usage_bridge.bridge import current_time_ms
from usage_bridge.config import BridgeSettings
from usage_bridge.models import InstalledApp, UsageRecord
from usage_bridge.providers import StaticUsageProvider
from usage_bridge.webapp import RecorderRunner, create_app


def make_client(db_path, provider=None):
    app = create_app(db_path=db_path, provider=provider, start_recorder=False)
    return TestClient(app)


@pytest.fixture
def recent_provider():
    now = current_time_ms()
    return StaticUsageProvider(
        [UsageRecord("editor", now - 2_000), UsageRecord("browser", now - 1_000)],
        [
            InstalledApp("editor", "Editor"),
            InstalledApp("svchost", "Svchost", is_system=True),
            InstalledApp("browser", "Browser"),
        ],
    )


def test_status(db_path):
    response = make_client(db_path).get("/api/status")
    assert response.status_code == 200
    body = response.json()
    assert body["recorder_running"] is False
    assert body["database_path"] == str(db_path)
    assert body["foreground_window_seconds"] == 10.0


def test_foreground_resolved(db_path, recent_provider):
    response = make_client(db_path, recent_provider).get("/api/foreground")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "resolved"
    assert body["application_id"] == "browser"
    assert body["record_count"] == 2


def test_foreground_no_data(db_path):
    body = make_client(db_path, StaticUsageProvider()).get("/api/foreground").json()
    assert body["status"] == "no_data"
    assert body["application_id"] is None


def test_foreground_without_store_reports_no_permission(db_path):
    body = make_client(db_path).get("/api/foreground").json()
    assert body["status"] == "no_permission"


def test_permission(db_path, recent_provider):
    assert make_client(db_path, recent_provider).get("/api/permission").json() == {
        "granted": True
    }
    assert make_client(db_path).get("/api/permission").json() == {"granted": False}


def test_apps_filters_system(db_path, recent_provider):
    response = make_client(db_path, recent_provider).get("/api/apps")
    assert response.status_code == 200
    assert response.json() == [
        {"application_id": "browser", "display_name": "Browser"},
        {"application_id": "editor", "display_name": "Editor"},
    ]


def test_apps_unavailable(db_path):
    response = make_client(db_path).get("/api/apps")
    assert response.status_code == 503


def test_recorder_runner_stops_when_platform_unsupported(db_path):
    runner = RecorderRunner(db_path, BridgeSettings())
    with patch("usage_bridge.recorder.create_source", side_effect=OSError("unsupported")):
        runner.start()
        runner._thread.join(timeout=5)
    assert runner.is_running() is False
    assert not db_path.exists()
