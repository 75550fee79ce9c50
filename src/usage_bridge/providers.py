"""Usage-record providers backing the bridge."""

from __future__ import annotations

import logging
import sqlite3
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Iterable, Optional

from .db import database_connection, fetch_applications, fetch_usage_between
from .errors import ProviderUnavailable
from .models import InstalledApp, UsageRecord

logger = logging.getLogger(__name__)


class UsageProvider(ABC):
    """Source of usage records and application metadata."""

    @abstractmethod
    def query_usage(self, start_ms: int, end_ms: int) -> list[UsageRecord]:
        """Return records last used within ``[start_ms, end_ms)``.

        Raises:
            ProviderUnavailable: If the provider cannot currently be queried.
        """

    @abstractmethod
    def list_applications(self) -> list[InstalledApp]:
        """Return every application known to the provider, system ones included."""


class SQLiteUsageProvider(UsageProvider):
    """Reads the usage store written by the recorder."""

    def __init__(self, db_path: Path) -> None:
        self.db_path = Path(db_path)

    def query_usage(self, start_ms: int, end_ms: int) -> list[UsageRecord]:
        self._ensure_store()
        try:
            with database_connection(self.db_path, readonly=True) as conn:
                records = fetch_usage_between(conn, start_ms, end_ms)
        except sqlite3.Error as exc:
            raise ProviderUnavailable(
                f"Usage store {self.db_path} could not be read: {exc}"
            ) from exc
        logger.debug(
            "Fetched %d usage records between %d and %d", len(records), start_ms, end_ms
        )
        return records

    def list_applications(self) -> list[InstalledApp]:
        self._ensure_store()
        try:
            with database_connection(self.db_path, readonly=True) as conn:
                return fetch_applications(conn)
        except sqlite3.Error as exc:
            raise ProviderUnavailable(
                f"Usage store {self.db_path} could not be read: {exc}"
            ) from exc

    def _ensure_store(self) -> None:
        if not self.db_path.is_file():
            raise ProviderUnavailable(
                f"Usage store {self.db_path} does not exist; start the recorder first."
            )


class StaticUsageProvider(UsageProvider):
    """Serves a fixed set of records, e.g. ones already fetched by the caller."""

    def __init__(
        self,
        records: Iterable[UsageRecord] = (),
        applications: Optional[Iterable[InstalledApp]] = None,
    ) -> None:
        self._records = tuple(records)
        self._applications = tuple(applications or ())

    def query_usage(self, start_ms: int, end_ms: int) -> list[UsageRecord]:
        return [
            record
            for record in self._records
            if start_ms <= record.last_used_ms < end_ms
        ]

    def list_applications(self) -> list[InstalledApp]:
        return list(self._applications)
