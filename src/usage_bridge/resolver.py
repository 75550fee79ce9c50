"""Foreground application resolution over a window of usage records."""

from __future__ import annotations

from typing import Iterable, Optional

from .models import UNKNOWN, ResolutionResult, Resolved, UsageRecord


def resolve_foreground(records: Iterable[UsageRecord]) -> ResolutionResult:
    """Return the application that was most recently in the foreground.

    The record with the greatest ``last_used_ms`` wins. When several records
    share that timestamp, the first one in input order is chosen. An empty
    input resolves to ``UNKNOWN``; absence of data is not an error.

    The input is only iterated, never mutated, so the call is safe to repeat
    and to run concurrently on shared sequences.
    """
    latest: Optional[UsageRecord] = None
    for record in records:
        # Strict comparison keeps the earliest record on ties.
        if latest is None or record.last_used_ms > latest.last_used_ms:
            latest = record
    if latest is None:
        return UNKNOWN
    return Resolved(latest.application_id)
