"""Polls the foreground application and reports when a tracked app comes up."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import timedelta
from typing import Callable, Iterable, Mapping, Optional

from .bridge import UsageStatsBridge, current_time_ms
from .errors import ProviderUnavailable
from .models import Resolved

logger = logging.getLogger(__name__)

KNOWN_APP_NAMES: dict[str, str] = {
    "com.instagram.android": "Instagram",
    "com.zhiliaoapp.musically": "TikTok",
    "com.snapchat.android": "Snapchat",
    "com.twitter.android": "Twitter",
    "com.facebook.katana": "Facebook",
    "com.google.android.youtube": "YouTube",
    "com.android.chrome": "Chrome",
    "com.apple.mobilesafari": "Safari",
    "com.burbn.instagram": "Instagram",
    "com.atebits.Tweetie2": "Twitter",
    "com.toyopagroup.picaboo": "Snapchat",
}


def app_display_name(
    application_id: str, names: Optional[Mapping[str, str]] = None
) -> str:
    """Return a friendly name for an application id, or the id itself."""
    lookup = KNOWN_APP_NAMES if names is None else names
    return lookup.get(application_id, application_id)


@dataclass(frozen=True, slots=True)
class Detection:
    application_id: str
    display_name: str
    detected_ms: int


class AppWatcher:
    """Emits a :class:`Detection` each time a different tracked app takes focus.

    Only detections update the remembered app: switching from a tracked app to
    an untracked one and back does not report the tracked app again.
    """

    def __init__(
        self,
        bridge: UsageStatsBridge,
        tracked_apps: Iterable[str],
        on_detect: Callable[[Detection], None],
        *,
        poll_interval: timedelta = timedelta(seconds=5),
        app_names: Optional[Mapping[str, str]] = None,
        clock: Callable[[], int] = current_time_ms,
    ) -> None:
        self.bridge = bridge
        self.tracked_apps = frozenset(tracked_apps)
        self.poll_interval = poll_interval
        self._on_detect = on_detect
        self._app_names = app_names
        self._clock = clock
        self.current_app: Optional[str] = None
        self.last_detected: Optional[str] = None

    def check_once(self) -> Optional[Detection]:
        """Poll the bridge once and report a detection if one occurred."""
        try:
            result = self.bridge.get_foreground_app()
        except ProviderUnavailable as exc:
            logger.warning("Cannot check the foreground app: %s", exc)
            return None

        self.current_app = str(result)
        if not isinstance(result, Resolved):
            return None
        app_id = result.application_id
        if app_id not in self.tracked_apps or app_id == self.last_detected:
            return None

        self.last_detected = app_id
        detection = Detection(
            application_id=app_id,
            display_name=app_display_name(app_id, self._app_names),
            detected_ms=self._clock(),
        )
        logger.info("Detected tracked app %s", app_id)
        self._on_detect(detection)
        return detection

    def run_until_stopped(self, stop_event: threading.Event) -> None:
        if not self.tracked_apps:
            logger.info("No tracked apps; watcher not started.")
            return
        interval = self.poll_interval.total_seconds()
        while not stop_event.is_set():
            self.check_once()
            stop_event.wait(interval)

    def run_forever(self) -> None:
        try:
            self.run_until_stopped(threading.Event())
        except KeyboardInterrupt:
            logger.info("Watcher interrupted.")
