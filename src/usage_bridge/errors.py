"""Failure conditions raised by usage-record providers."""

from __future__ import annotations


class ProviderError(Exception):
    """Base class for upstream usage provider failures."""


class ProviderUnavailable(ProviderError):
    """The provider cannot be queried (no access, store missing or unreadable)."""


class ProviderEmpty(ProviderError):
    """The provider was reachable but returned no records for the window."""

    def __init__(self, start_ms: int, end_ms: int) -> None:
        super().__init__(f"No usage records between {start_ms} and {end_ms}")
        self.start_ms = start_ms
        self.end_ms = end_ms
