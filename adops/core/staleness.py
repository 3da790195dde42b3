"""Utilities for computing how long ago data was last synced."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def seconds_since(timestamp: Optional[datetime], *, now: Optional[datetime] = None) -> int:
    """Whole seconds elapsed since ``timestamp``; 0 when it is unset or in the future."""

    if timestamp is None:
        return 0

    now = now or utc_now()
    elapsed = (now - timestamp).total_seconds()
    if elapsed <= 0:
        return 0
    return int(elapsed)


def format_sync_label(seconds: int) -> str:
    """Render a staleness value the way the dashboard header shows it."""

    if seconds <= 0:
        return "just now"
    if seconds < 60:
        return f"{seconds}s ago"
    if seconds < 3600:
        return f"{seconds // 60}m ago"
    return f"{seconds // 3600}h ago"


__all__ = ["utc_now", "seconds_since", "format_sync_label"]
