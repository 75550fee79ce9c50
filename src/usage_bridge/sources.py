"""Platform sources that report the currently focused application."""

from __future__ import annotations

import ctypes
import logging
import os
import subprocess
import sys
from abc import ABC, abstractmethod
from typing import Optional

import psutil

from .models import ForegroundSample
from .normalization import display_name_for, normalize_application_id

logger = logging.getLogger(__name__)

SYSTEM_ACCOUNTS = frozenset(
    {
        "root",
        "system",
        "nt authority\\system",
        "nt authority\\local service",
        "nt authority\\network service",
    }
)


class ForegroundSource(ABC):
    """Abstract base for platform-specific foreground lookups."""

    @abstractmethod
    def foreground_pid(self) -> Optional[int]:
        """Return the pid owning the focused window, if any."""

    def get_foreground(self, timestamp_ms: int) -> Optional[ForegroundSample]:
        pid = self.foreground_pid()
        if not pid:
            return None
        return sample_for_pid(pid, timestamp_ms)


def sample_for_pid(pid: int, timestamp_ms: int) -> Optional[ForegroundSample]:
    """Build a sample from a running process, or None if it vanished."""
    try:
        process = psutil.Process(pid)
        process_name = process.name()
    except (psutil.Error, ProcessLookupError):
        return None

    application_id = normalize_application_id(process_name)
    if application_id is None:
        return None
    return ForegroundSample(
        application_id=application_id,
        display_name=display_name_for(process_name),
        is_system=is_system_process(process),
        timestamp_ms=timestamp_ms,
    )


def is_system_process(process: psutil.Process) -> bool:
    """Return True for processes owned by root or a service account."""
    try:
        owner = process.username()
    except psutil.AccessDenied:
        # Unprivileged users cannot inspect service-owned processes.
        return True
    except psutil.Error:
        return False
    return owner.strip().lower() in SYSTEM_ACCOUNTS


class WindowsForegroundSource(ForegroundSource):
    """Retrieves the foreground window's process through Win32 APIs."""

    def __init__(self) -> None:
        from ctypes import wintypes

        self._wintypes = wintypes
        self._user32 = ctypes.windll.user32  # type: ignore[attr-defined]

    def foreground_pid(self) -> Optional[int]:
        hwnd = self._user32.GetForegroundWindow()
        if not hwnd:
            return None
        pid = self._wintypes.DWORD()
        self._user32.GetWindowThreadProcessId(hwnd, ctypes.byref(pid))
        return pid.value or None


class XdotoolForegroundSource(ForegroundSource):
    """Reads the active X11 window's pid with xdotool."""

    COMMAND = ["xdotool", "getactivewindow", "getwindowpid"]

    def foreground_pid(self) -> Optional[int]:
        try:
            output = subprocess.check_output(self.COMMAND, stderr=subprocess.DEVNULL)
        except (subprocess.CalledProcessError, FileNotFoundError):
            return None
        try:
            return int(output.decode().strip())
        except ValueError:
            return None


def create_source() -> ForegroundSource:
    """Return the foreground source for the current platform.

    Raises:
        OSError: If the current platform is not supported.
    """
    if sys.platform == "win32":
        return WindowsForegroundSource()

    if sys.platform.startswith("linux") and os.environ.get("DISPLAY"):
        return XdotoolForegroundSource()

    raise OSError(
        f"Unsupported platform: {sys.platform!r}. "
        "Foreground recording needs Windows or an X11 session with xdotool."
    )
