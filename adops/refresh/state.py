"""State records owned by the refresh coordinator."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Generic, Optional, TypeVar

from adops.core.errors import FetchOperationError
from adops.core.staleness import format_sync_label, seconds_since

T = TypeVar("T")


@dataclass(slots=True)
class RefreshState(Generic[T]):
    data: Optional[T] = None
    loading: bool = False
    last_sync_time: Optional[datetime] = None
    error: Optional[FetchOperationError] = None
    is_paused: bool = False

    def seconds_ago(self, now: datetime) -> int:
        return seconds_since(self.last_sync_time, now=now)


@dataclass(frozen=True, slots=True)
class RefreshSnapshot(Generic[T]):
    """Read-only view handed to consumers."""

    data: Optional[T]
    loading: bool
    last_sync_time: Optional[datetime]
    seconds_ago: int
    error: Optional[FetchOperationError]
    is_paused: bool

    @property
    def sync_label(self) -> str:
        if self.last_sync_time is None:
            return "never"
        return format_sync_label(self.seconds_ago)

    def as_dict(self) -> dict[str, Any]:
        return {
            "data": self.data,
            "loading": self.loading,
            "last_sync_time": self.last_sync_time.isoformat() if self.last_sync_time else None,
            "seconds_ago": self.seconds_ago,
            "error": self.error.as_dict() if self.error else None,
            "is_paused": self.is_paused,
        }


class ActivationToken:
    """Liveness marker for one activation of a coordinator.

    Every fetch attempt captures the token current at its start and checks it
    before touching state, so attempts settling after teardown are inert.
    """

    __slots__ = ("_cancelled",)

    def __init__(self) -> None:
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True


__all__ = ["RefreshState", "RefreshSnapshot", "ActivationToken"]
