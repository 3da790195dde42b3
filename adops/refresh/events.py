"""Typed event stream for observers of a refresh coordinator."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, List, Optional

from adops.core.errors import FetchOperationError
from adops.core.staleness import utc_now
from adops.utils.logger import get_logger

log = get_logger(__name__)

DEFAULT_QUEUE_SIZE = 100


class RefreshEventKind(str, Enum):
    STARTED = "started"
    UPDATED = "updated"
    FAILED = "failed"
    DISCARDED = "discarded"
    PAUSED = "paused"
    RESUMED = "resumed"
    STALENESS = "staleness"


@dataclass(frozen=True, slots=True)
class RefreshEvent:
    kind: RefreshEventKind
    name: str
    seq: Optional[int] = None
    data: Any = None
    error: Optional[FetchOperationError] = None
    seconds_ago: Optional[int] = None
    at: datetime = field(default_factory=utc_now)


_CLOSED = object()


class Subscription:
    """Async iterator over events published after it was created."""

    def __init__(self, channel: "EventChannel", maxsize: int) -> None:
        self._channel = channel
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def _offer(self, item: Any) -> bool:
        try:
            self._queue.put_nowait(item)
        except asyncio.QueueFull:
            return False
        return True

    def _end(self) -> None:
        if self._closed:
            return
        self._closed = True
        # Make room for the sentinel so a blocked reader always wakes up.
        while not self._offer(_CLOSED):
            self._queue.get_nowait()

    def close(self) -> None:
        self._channel._remove(self)
        self._end()

    def pending(self) -> int:
        return self._queue.qsize()

    def __aiter__(self) -> "Subscription":
        return self

    async def __anext__(self) -> RefreshEvent:
        item = await self._queue.get()
        if item is _CLOSED:
            raise StopAsyncIteration
        return item

    async def get(self, timeout: Optional[float] = None) -> RefreshEvent:
        """Next event; raises ``StopAsyncIteration`` once the subscription ended."""
        if timeout is None:
            return await self.__anext__()
        return await asyncio.wait_for(self.__anext__(), timeout)

    async def __aenter__(self) -> "Subscription":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


class EventChannel:
    """Fan-out of refresh events to any number of subscriptions."""

    def __init__(self, maxsize: int = DEFAULT_QUEUE_SIZE) -> None:
        self.maxsize = maxsize
        self._subscribers: List[Subscription] = []

    def __len__(self) -> int:
        return len(self._subscribers)

    def subscribe(self) -> Subscription:
        subscription = Subscription(self, self.maxsize)
        self._subscribers.append(subscription)
        return subscription

    def _remove(self, subscription: Subscription) -> None:
        if subscription in self._subscribers:
            self._subscribers.remove(subscription)

    def publish(self, event: RefreshEvent) -> None:
        for subscription in list(self._subscribers):
            if not subscription._offer(event):
                log.warning(f"Subscriber queue full, dropping {event.kind.value} event for {event.name}")

    def close(self) -> None:
        """End every current subscription; new ones may still be created."""
        subscribers, self._subscribers = self._subscribers, []
        for subscription in subscribers:
            subscription._end()


__all__ = ["RefreshEventKind", "RefreshEvent", "Subscription", "EventChannel"]
