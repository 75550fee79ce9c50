"""Domain models for usage records and foreground resolution."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

UNKNOWN_APP = "unknown"


@dataclass(frozen=True, slots=True)
class UsageRecord:
    """Last moment an application held foreground focus within a queried window."""

    application_id: str
    last_used_ms: int


@dataclass(frozen=True, slots=True)
class InstalledApp:
    application_id: str
    display_name: str
    is_system: bool = False


@dataclass(frozen=True, slots=True)
class Resolved:
    application_id: str

    def __str__(self) -> str:
        return self.application_id


class _Unknown:
    """No usage data was available in the window."""

    _instance: Optional["_Unknown"] = None

    def __new__(cls) -> "_Unknown":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "Unknown"

    def __str__(self) -> str:
        return UNKNOWN_APP

    def __bool__(self) -> bool:
        return False


UNKNOWN = _Unknown()

ResolutionResult = Union[Resolved, _Unknown]


class ForegroundStatus(str, Enum):
    RESOLVED = "resolved"
    NO_DATA = "no_data"
    NO_PERMISSION = "no_permission"


@dataclass(frozen=True, slots=True)
class ForegroundReport:
    """Classified outcome of a foreground query, for callers that prompt users."""

    status: ForegroundStatus
    application_id: Optional[str]
    window_start_ms: int
    window_end_ms: int
    record_count: int = 0

    def to_dict(self) -> dict[str, object]:
        return {
            "status": self.status.value,
            "application_id": self.application_id,
            "window_start_ms": self.window_start_ms,
            "window_end_ms": self.window_end_ms,
            "record_count": self.record_count,
        }


@dataclass(slots=True)
class ForegroundSample:
    """A single observation of the focused application taken by a foreground source."""

    application_id: str
    display_name: str
    is_system: bool
    timestamp_ms: int
