"""Usage recorder that samples the foreground app and writes the usage store."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional

from .config import BridgeSettings
from .db import (
    bucket_for,
    open_database,
    prune_usage_before,
    upsert_applications,
    upsert_usage,
)
from .models import ForegroundSample
from .sources import ForegroundSource, create_source

logger = logging.getLogger(__name__)


def _wall_clock_ms() -> int:
    return int(time.time() * 1000)


@dataclass(slots=True)
class RecorderState:
    # Keyed by (application_id, day bucket) so a batch spanning midnight
    # still closes out the earlier day.
    pending: dict[tuple[str, str], ForegroundSample] = field(default_factory=dict)
    last_flush_ms: Optional[int] = None
    last_sample: Optional[ForegroundSample] = None


class UsageRecorder:
    """Samples the foreground application at a fixed interval and writes to SQLite."""

    def __init__(
        self,
        db_path: Path,
        settings: BridgeSettings,
        source: Optional[ForegroundSource] = None,
        clock: Callable[[], int] = _wall_clock_ms,
    ) -> None:
        self.db_path = Path(db_path)
        self.settings = settings
        self._source = source or create_source()
        self._clock = clock
        self._conn = open_database(self.db_path, check_same_thread=False)
        self._state = RecorderState()
        self._lock = threading.Lock()

    @property
    def last_sample(self) -> Optional[ForegroundSample]:
        with self._lock:
            return self._state.last_sample

    def run_forever(self) -> None:
        stop_event = threading.Event()
        try:
            self._run_loop(stop_event)
        except KeyboardInterrupt:
            logger.info("Recorder interrupted; flushing pending samples.")
        finally:
            self._shutdown()

    def run_until_stopped(self, stop_event: threading.Event) -> None:
        """Run the recorder until the provided event is set."""
        try:
            self._run_loop(stop_event)
        finally:
            self._shutdown()

    def sample_once(self) -> Optional[ForegroundSample]:
        now_ms = self._clock()
        try:
            sample = self._source.get_foreground(now_ms)
        except Exception:  # pragma: no cover - platform failures vary
            logger.exception("Failed to query the foreground application.")
            return None
        if sample is None:
            return None

        key = (sample.application_id, bucket_for(sample.timestamp_ms))
        with self._lock:
            self._state.pending[key] = sample
            self._state.last_sample = sample
        logger.debug(
            "Sampled foreground app=%s system=%s", sample.application_id, sample.is_system
        )
        return sample

    def flush_if_needed(self) -> bool:
        """Flush when the flush interval has elapsed since the last write.

        The first call always flushes so a fresh recorder becomes visible to
        readers without waiting a full interval.
        """
        now_ms = self._clock()
        with self._lock:
            last = self._state.last_flush_ms
            due = last is None or now_ms - last >= self.settings.flush_interval_ms
            if due and self._state.pending:
                self._flush_locked(now_ms)
                return True
        return False

    def flush(self) -> None:
        now_ms = self._clock()
        with self._lock:
            self._flush_locked(now_ms)

    def prune(self) -> int:
        cutoff_ms = self._clock() - self.settings.retention_ms
        with self._lock:
            removed = prune_usage_before(self._conn, cutoff_ms)
        if removed:
            logger.info("Pruned %d usage records older than retention.", removed)
        return removed

    def _flush_locked(self, now_ms: int) -> None:
        if not self._state.pending:
            return
        samples = list(self._state.pending.values())
        self._conn.execute("BEGIN")
        try:
            upsert_applications(self._conn, samples)
            upsert_usage(self._conn, samples)
        except Exception:
            self._conn.execute("ROLLBACK")
            raise
        self._conn.execute("COMMIT")
        logger.debug("Flushed %d usage samples.", len(samples))
        self._state.pending.clear()
        self._state.last_flush_ms = now_ms

    def _run_loop(self, stop_event: threading.Event) -> None:
        logger.info("Starting usage recorder; writing to %s", self.db_path)
        self.prune()
        interval = self.settings.sample_interval.total_seconds()
        while not stop_event.is_set():
            self.sample_once()
            self.flush_if_needed()
            stop_event.wait(interval)

    def _shutdown(self) -> None:
        try:
            self.flush()
        finally:
            self._conn.close()
            logger.info("Usage recorder stopped.")
