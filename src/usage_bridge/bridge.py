"""Device-facing operations: foreground app, permission check, installed apps."""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional

from .config import BridgeSettings
from .errors import ProviderEmpty, ProviderUnavailable
from .models import (
    ForegroundReport,
    ForegroundStatus,
    InstalledApp,
    Resolved,
    ResolutionResult,
    UsageRecord,
)
from .providers import UsageProvider
from .resolver import resolve_foreground

logger = logging.getLogger(__name__)


def current_time_ms() -> int:
    return int(time.time() * 1000)


class UsageStatsBridge:
    """Answers foreground, permission and installed-app queries from a provider."""

    def __init__(
        self,
        provider: UsageProvider,
        settings: Optional[BridgeSettings] = None,
        clock: Callable[[], int] = current_time_ms,
    ) -> None:
        self.provider = provider
        self.settings = settings or BridgeSettings()
        self._clock = clock

    def get_foreground_app(self) -> ResolutionResult:
        """Resolve the most recent foreground app over the foreground window.

        Raises:
            ProviderUnavailable: If the provider cannot be queried.
        """
        _, _, records = self._query_foreground_window()
        return resolve_foreground(records)

    def require_foreground_app(self) -> str:
        """Like :meth:`get_foreground_app` but raises instead of returning unknown.

        Raises:
            ProviderUnavailable: If the provider cannot be queried.
            ProviderEmpty: If the window holds no records.
        """
        start_ms, end_ms, records = self._query_foreground_window()
        result = resolve_foreground(records)
        if not isinstance(result, Resolved):
            raise ProviderEmpty(start_ms, end_ms)
        return result.application_id

    def foreground_report(self) -> ForegroundReport:
        """Resolve the foreground app and classify why it may be missing."""
        end_ms = self._clock()
        start_ms = end_ms - self.settings.foreground_window_ms
        try:
            records = self.provider.query_usage(start_ms, end_ms)
        except ProviderUnavailable as exc:
            logger.info("Usage provider unavailable: %s", exc)
            return ForegroundReport(
                status=ForegroundStatus.NO_PERMISSION,
                application_id=None,
                window_start_ms=start_ms,
                window_end_ms=end_ms,
            )

        result = resolve_foreground(records)
        if isinstance(result, Resolved):
            status = ForegroundStatus.RESOLVED
            application_id: Optional[str] = result.application_id
        else:
            status = ForegroundStatus.NO_DATA
            application_id = None
        logger.debug(
            "Foreground report: status=%s app=%s records=%d",
            status.value,
            application_id,
            len(records),
        )
        return ForegroundReport(
            status=status,
            application_id=application_id,
            window_start_ms=start_ms,
            window_end_ms=end_ms,
            record_count=len(records),
        )

    def check_permission(self) -> bool:
        """Check whether usage data can be read at all.

        Queries the wide permission window; any record means access works.
        """
        end_ms = self._clock()
        start_ms = end_ms - self.settings.permission_window_ms
        try:
            records = self.provider.query_usage(start_ms, end_ms)
        except ProviderUnavailable as exc:
            logger.debug("Permission check failed: %s", exc)
            return False
        return bool(records)

    def get_installed_apps(self) -> list[InstalledApp]:
        """Return non-system applications sorted by display name.

        Raises:
            ProviderUnavailable: If the provider cannot be queried.
        """
        apps = [app for app in self.provider.list_applications() if not app.is_system]
        apps.sort(key=lambda app: (app.display_name.casefold(), app.application_id))
        return apps

    def _query_foreground_window(self) -> tuple[int, int, list[UsageRecord]]:
        end_ms = self._clock()
        start_ms = end_ms - self.settings.foreground_window_ms
        records = self.provider.query_usage(start_ms, end_ms)
        return start_ms, end_ms, records
