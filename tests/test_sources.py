"""Tests for foreground sources and the source factory."""

import os
import subprocess
import sys
from unittest.mock import MagicMock, patch

import psutil
import pytest

from usage_bridge.sources import (
    ForegroundSource,
    XdotoolForegroundSource,
    create_source,
    is_system_process,
    sample_for_pid,
)


class TestForegroundSourceABC:
    def test_cannot_instantiate_abstract_class(self):
        with pytest.raises(TypeError):
            ForegroundSource()  # type: ignore[abstract]

    def test_no_pid_means_no_sample(self):
        class NoWindow(ForegroundSource):
            def foreground_pid(self):
                return None

        assert NoWindow().get_foreground(123) is None


class TestSampleForPid:
    def test_current_process(self):
        sample = sample_for_pid(os.getpid(), 42)
        assert sample is not None
        assert sample.timestamp_ms == 42
        assert sample.application_id == sample.application_id.lower()

    def test_vanished_process(self):
        with patch("usage_bridge.sources.psutil.Process", side_effect=psutil.NoSuchProcess(999)):
            assert sample_for_pid(999, 1) is None

    def test_normalizes_process_name(self):
        process = MagicMock()
        process.name.return_value = "Code.exe"
        process.username.return_value = "DESKTOP\\alice"
        with patch("usage_bridge.sources.psutil.Process", return_value=process):
            sample = sample_for_pid(10, 5)
        assert sample.application_id == "code"
        assert sample.display_name == "Code"
        assert sample.is_system is False


class TestIsSystemProcess:
    @pytest.mark.parametrize("owner", ["root", "NT AUTHORITY\\SYSTEM", "SYSTEM"])
    def test_service_accounts(self, owner):
        process = MagicMock()
        process.username.return_value = owner
        assert is_system_process(process) is True

    def test_regular_user(self):
        process = MagicMock()
        process.username.return_value = "alice"
        assert is_system_process(process) is False

    def test_access_denied_counts_as_system(self):
        process = MagicMock()
        process.username.side_effect = psutil.AccessDenied(1)
        assert is_system_process(process) is True


class TestXdotoolSource:
    def test_parses_pid(self):
        with patch("usage_bridge.sources.subprocess.check_output", return_value=b"4242\n"):
            assert XdotoolForegroundSource().foreground_pid() == 4242

    def test_missing_binary(self):
        with patch("usage_bridge.sources.subprocess.check_output", side_effect=FileNotFoundError):
            assert XdotoolForegroundSource().foreground_pid() is None

    def test_command_failure(self):
        error = subprocess.CalledProcessError(1, XdotoolForegroundSource.COMMAND)
        with patch("usage_bridge.sources.subprocess.check_output", side_effect=error):
            assert XdotoolForegroundSource().foreground_pid() is None

    def test_garbage_output(self):
        with patch("usage_bridge.sources.subprocess.check_output", return_value=b"nope"):
            assert XdotoolForegroundSource().foreground_pid() is None


class TestCreateSource:
    @patch.object(sys, "platform", "darwin")
    def test_unsupported_platform_raises(self):
        with pytest.raises(OSError, match="Unsupported platform.*darwin"):
            create_source()

    @patch.object(sys, "platform", "linux")
    def test_linux_without_display_raises(self, monkeypatch):
        monkeypatch.delenv("DISPLAY", raising=False)
        with pytest.raises(OSError):
            create_source()

    @patch.object(sys, "platform", "linux")
    def test_linux_x11_uses_xdotool(self, monkeypatch):
        monkeypatch.setenv("DISPLAY", ":0")
        assert isinstance(create_source(), XdotoolForegroundSource)
