"""Configuration models and helpers for the usage bridge."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta


@dataclass(slots=True)
class BridgeSettings:
    """Query windows for the bridge and runtime settings for the recorder.

    The recorder writes a sample at most ``flush_interval + sample_interval``
    after taking it, so that sum must fit inside ``foreground_window`` or a
    foreground query would miss an application that is still focused.
    """

    foreground_window: timedelta = timedelta(seconds=10)
    permission_window: timedelta = timedelta(seconds=1000)
    sample_interval: timedelta = timedelta(seconds=5)
    flush_interval: timedelta = timedelta(seconds=5)
    retention: timedelta = timedelta(days=7)

    def __post_init__(self) -> None:
        for name in (
            "foreground_window",
            "permission_window",
            "sample_interval",
            "flush_interval",
            "retention",
        ):
            if getattr(self, name) <= timedelta(0):
                raise ValueError(f"{name} must be positive")
        if self.flush_interval + self.sample_interval > self.foreground_window:
            raise ValueError(
                "flush_interval plus sample_interval must not exceed foreground_window "
                f"({self.flush_interval.total_seconds():g}s + "
                f"{self.sample_interval.total_seconds():g}s > "
                f"{self.foreground_window.total_seconds():g}s)"
            )

    @property
    def foreground_window_ms(self) -> int:
        return int(self.foreground_window.total_seconds() * 1000)

    @property
    def permission_window_ms(self) -> int:
        return int(self.permission_window.total_seconds() * 1000)

    @property
    def flush_interval_ms(self) -> int:
        return int(self.flush_interval.total_seconds() * 1000)

    @property
    def retention_ms(self) -> int:
        return int(self.retention.total_seconds() * 1000)

    @classmethod
    def from_seconds(
        cls,
        foreground_seconds: float = 10.0,
        permission_seconds: float = 1000.0,
        sample_seconds: float = 5.0,
        flush_seconds: float | None = None,
        retention_days: float = 7.0,
    ) -> "BridgeSettings":
        if flush_seconds is None:
            # Batch writes, but never longer than the foreground window allows.
            flush_seconds = min(max(sample_seconds * 6, 30.0), foreground_seconds - sample_seconds)
        return cls(
            foreground_window=timedelta(seconds=foreground_seconds),
            permission_window=timedelta(seconds=permission_seconds),
            sample_interval=timedelta(seconds=sample_seconds),
            flush_interval=timedelta(seconds=flush_seconds),
            retention=timedelta(days=retention_days),
        )
