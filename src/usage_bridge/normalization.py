"""Utilities to normalize process names into application ids."""

from __future__ import annotations

import re
from typing import Optional

_EXECUTABLE_SUFFIXES: tuple[str, ...] = (".exe", ".bin", ".appimage")

_WHITESPACE_PATTERN = re.compile(r"\s+")


def normalize_application_id(process_name: Optional[str]) -> Optional[str]:
    """Return a stable, lower-cased id for a process, or None when blank."""
    if not process_name:
        return None
    normalized = process_name.strip().lower()
    for suffix in _EXECUTABLE_SUFFIXES:
        if normalized.endswith(suffix):
            normalized = normalized[: -len(suffix)]
            break
    normalized = _WHITESPACE_PATTERN.sub("-", normalized.strip())
    return normalized or None


def display_name_for(process_name: str) -> str:
    """Derive a human-readable label from an executable name."""
    label = process_name.strip()
    lowered = label.lower()
    for suffix in _EXECUTABLE_SUFFIXES:
        if lowered.endswith(suffix):
            label = label[: -len(suffix)]
            break
    if label.islower():
        label = label[:1].upper() + label[1:]
    return label or process_name
