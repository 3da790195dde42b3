"""Refresh interval defaults and the optional failure backoff."""

from __future__ import annotations

from dataclasses import dataclass

from adops.core.config import Config
from adops.core.errors import ConfigError

DEFAULT_INTERVAL_SECONDS = 5.0
DEFAULT_BROADCAST_INTERVAL_SECONDS = 120.0
MAX_BACKOFF_SECONDS = 5 * 60


def validate_interval(value, *, key: str = "interval_seconds") -> float:
    try:
        interval = float(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Refresh interval must be a number, got {value!r}", key=key, section="refresh") from exc
    if interval <= 0:
        raise ConfigError(f"Refresh interval must be positive, got {interval}", key=key, section="refresh")
    return interval


def next_delay(interval: float, failures: int, *, max_backoff: float = MAX_BACKOFF_SECONDS) -> float:
    """Delay before the next automatic tick after ``failures`` consecutive failures."""
    multiplier = max(failures, 0)
    if multiplier == 0:
        return interval
    return min((2 ** multiplier) * interval, max(max_backoff, interval))


@dataclass(slots=True)
class RefreshOptions:
    interval: float = DEFAULT_INTERVAL_SECONDS
    immediate: bool = True
    discard_stale: bool = True
    backoff: bool = False
    max_backoff: float = MAX_BACKOFF_SECONDS

    def __post_init__(self) -> None:
        self.interval = validate_interval(self.interval)
        self.max_backoff = validate_interval(self.max_backoff, key="max_backoff_seconds")

    @classmethod
    def from_config(cls) -> "RefreshOptions":
        section = Config.get("refresh", default={}) or {}
        return cls(
            interval=section.get("interval_seconds", DEFAULT_INTERVAL_SECONDS),
            immediate=bool(section.get("immediate", True)),
            discard_stale=bool(section.get("discard_stale", True)),
            backoff=bool(section.get("backoff", False)),
            max_backoff=section.get("max_backoff_seconds", MAX_BACKOFF_SECONDS),
        )


def broadcast_interval() -> float:
    return validate_interval(
        Config.get("refresh", "broadcast_interval_seconds", default=DEFAULT_BROADCAST_INTERVAL_SECONDS),
        key="broadcast_interval_seconds",
    )


__all__ = [
    "DEFAULT_INTERVAL_SECONDS",
    "DEFAULT_BROADCAST_INTERVAL_SECONDS",
    "MAX_BACKOFF_SECONDS",
    "RefreshOptions",
    "broadcast_interval",
    "next_delay",
    "validate_interval",
]
