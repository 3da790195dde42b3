"""
Refresh Coordinator
===================

Periodically invokes an async fetch operation and keeps track of:
- the latest payload and the latest failure
- whether a fetch is currently in flight
- how long ago the last successful sync completed

Callers can force a refresh, pause and resume the timer, and observe
results through callbacks or an event subscription. Fetch failures never
escape ``refresh()`` and never stop the timer.
"""

from __future__ import annotations

import asyncio
import inspect
from datetime import datetime
from typing import Any, Awaitable, Callable, Generic, Optional, Set, TypeVar

from adops.core.errors import ConfigError, FetchOperationError
from adops.core.staleness import utc_now
from adops.refresh.events import EventChannel, RefreshEvent, RefreshEventKind, Subscription
from adops.refresh.policy import (
    DEFAULT_INTERVAL_SECONDS,
    MAX_BACKOFF_SECONDS,
    RefreshOptions,
    next_delay,
    validate_interval,
)
from adops.refresh.state import ActivationToken, RefreshSnapshot, RefreshState
from adops.utils.logger import get_logger

log = get_logger(__name__)

T = TypeVar("T")

FetchOperation = Callable[[], Awaitable[T]]
Callback = Callable[[Any], Any]

STALENESS_TICK_SECONDS = 1.0


class RefreshCoordinator(Generic[T]):
    """
    Polls ``fetch`` every ``interval`` seconds while active and not paused.

    Args:
        fetch: Zero-argument callable returning an awaitable payload
        interval: Seconds between automatic refreshes
        immediate: Fetch once as soon as the coordinator starts
        on_update: Called with the payload after each applied success
        on_error: Called with the FetchOperationError after each applied failure
        discard_stale: Drop results of attempts older than the last applied one
        backoff: Stretch the tick interval exponentially while fetches keep failing
        max_backoff: Upper bound for the stretched interval, in seconds
        clock: Returns the current aware datetime
        name: Label used in logs and events
    """

    def __init__(
        self,
        fetch: FetchOperation[T],
        *,
        interval: float = DEFAULT_INTERVAL_SECONDS,
        immediate: bool = True,
        on_update: Optional[Callback] = None,
        on_error: Optional[Callback] = None,
        discard_stale: bool = True,
        backoff: bool = False,
        max_backoff: float = MAX_BACKOFF_SECONDS,
        clock: Callable[[], datetime] = utc_now,
        name: str = "refresh",
    ) -> None:
        if not callable(fetch):
            raise ConfigError("Fetch operation must be callable", key="fetch", section="refresh")

        self.name = name
        self.immediate = immediate
        self.on_update = on_update
        self.on_error = on_error
        self.discard_stale = discard_stale
        self.backoff = backoff
        self.max_backoff = validate_interval(max_backoff, key="max_backoff_seconds")

        self._fetch = fetch
        self._interval = validate_interval(interval)
        self._clock = clock
        self._state: RefreshState[T] = RefreshState()
        self._events = EventChannel()

        self._token: Optional[ActivationToken] = None
        self._tick_task: Optional[asyncio.Task] = None
        self._staleness_task: Optional[asyncio.Task] = None
        self._spawned: Set[asyncio.Task] = set()

        self._seq = 0
        self._applied_seq = 0
        self._in_flight = 0
        self._failures = 0
        self._tick_anchor: Optional[float] = None

    @classmethod
    def from_options(
        cls,
        fetch: FetchOperation[T],
        options: Optional[RefreshOptions] = None,
        **kwargs: Any,
    ) -> "RefreshCoordinator[T]":
        """Build a coordinator from ``RefreshOptions`` (settings.yaml when omitted)."""
        options = options or RefreshOptions.from_config()
        return cls(
            fetch,
            interval=options.interval,
            immediate=options.immediate,
            discard_stale=options.discard_stale,
            backoff=options.backoff,
            max_backoff=options.max_backoff,
            **kwargs,
        )

    # ------------------------------------------------------------------
    # Read-only surface
    # ------------------------------------------------------------------

    @property
    def data(self) -> Optional[T]:
        return self._state.data

    @property
    def loading(self) -> bool:
        return self._state.loading

    @property
    def last_sync_time(self) -> Optional[datetime]:
        return self._state.last_sync_time

    @property
    def seconds_ago(self) -> int:
        return self._state.seconds_ago(self._clock())

    @property
    def error(self) -> Optional[FetchOperationError]:
        return self._state.error

    @property
    def is_paused(self) -> bool:
        return self._state.is_paused

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def active(self) -> bool:
        return self._token is not None and not self._token.cancelled

    @property
    def consecutive_failures(self) -> int:
        return self._failures

    def snapshot(self) -> RefreshSnapshot[T]:
        state = self._state
        return RefreshSnapshot(
            data=state.data,
            loading=state.loading,
            last_sync_time=state.last_sync_time,
            seconds_ago=self.seconds_ago,
            error=state.error,
            is_paused=state.is_paused,
        )

    def subscribe(self) -> Subscription:
        return self._events.subscribe()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Activate: optional immediate fetch, then the automatic timer."""
        if self.active:
            return

        token = ActivationToken()
        self._token = token
        self._in_flight = 0
        self._state.loading = False
        log.info(f"[{self.name}] Coordinator started (interval={self._interval}s, immediate={self.immediate})")

        if self.immediate:
            self._spawn_refresh(token, "immediate")
        if not self._state.is_paused:
            self._start_ticker()
        self._staleness_task = asyncio.create_task(
            self._run_staleness(token), name=f"{self.name}-staleness"
        )

    async def stop(self) -> None:
        """Tear down: cancel all timers and ignore fetches that settle later."""
        token = self._token
        if token is None:
            return

        token.cancel()
        self._token = None
        timers = [task for task in (self._tick_task, self._staleness_task) if task is not None]
        self._tick_task = None
        self._staleness_task = None
        for task in timers:
            task.cancel()
        await asyncio.gather(*timers, return_exceptions=True)

        self._events.close()
        log.info(f"[{self.name}] Coordinator stopped ({len(self._spawned)} fetches still in flight)")

    async def __aenter__(self) -> "RefreshCoordinator[T]":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.stop()

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def refresh(self) -> None:
        """Fetch once now, whatever the timer state. Failures are captured, not raised."""
        token = self._token
        if token is None or token.cancelled:
            log.debug(f"[{self.name}] refresh() ignored: coordinator is not active")
            return

        seq = self._begin(token, "manual")
        await self._complete(token, seq)

    def pause(self) -> None:
        if self._state.is_paused:
            return
        self._state.is_paused = True
        self._cancel_ticker()
        log.info(f"[{self.name}] Auto-refresh paused")
        self._events.publish(RefreshEvent(RefreshEventKind.PAUSED, self.name))

    def resume(self) -> None:
        if not self._state.is_paused:
            return
        self._state.is_paused = False
        if self.active:
            self._start_ticker()
        log.info(f"[{self.name}] Auto-refresh resumed (interval={self._interval}s)")
        self._events.publish(RefreshEvent(RefreshEventKind.RESUMED, self.name))

    def set_interval(self, seconds: float) -> None:
        """Change the interval; a running timer restarts from now."""
        self._interval = validate_interval(seconds)
        if self.active and not self._state.is_paused:
            self._start_ticker()

    # ------------------------------------------------------------------
    # Fetch attempts
    # ------------------------------------------------------------------

    def _begin(self, token: ActivationToken, trigger: str) -> int:
        self._seq += 1
        seq = self._seq
        self._in_flight += 1
        self._state.loading = True
        self._state.error = None
        log.debug(f"[{self.name}] Fetch #{seq} started ({trigger})")
        self._events.publish(RefreshEvent(RefreshEventKind.STARTED, self.name, seq=seq))
        return seq

    async def _complete(self, token: ActivationToken, seq: int) -> None:
        try:
            result = await self._fetch()
        except Exception as exc:
            if not token.cancelled:
                await self._settle_failure(seq, exc)
        else:
            if not token.cancelled:
                await self._settle_success(seq, result)
        finally:
            if not token.cancelled:
                self._in_flight -= 1
                self._state.loading = self._in_flight > 0

    def _superseded(self, seq: int) -> bool:
        return self.discard_stale and seq <= self._applied_seq

    def _discard(self, seq: int) -> None:
        log.debug(f"[{self.name}] Fetch #{seq} settled after #{self._applied_seq}, result discarded")
        self._events.publish(RefreshEvent(RefreshEventKind.DISCARDED, self.name, seq=seq))

    async def _settle_success(self, seq: int, result: T) -> None:
        if self._superseded(seq):
            self._discard(seq)
            return

        self._applied_seq = max(self._applied_seq, seq)
        self._failures = 0
        self._state.data = result
        self._state.last_sync_time = self._clock()
        self._restretch_ticker()
        log.debug(f"[{self.name}] Fetch #{seq} succeeded")
        self._events.publish(RefreshEvent(RefreshEventKind.UPDATED, self.name, seq=seq, data=result, seconds_ago=0))
        await self._notify(self.on_update, result, "on_update")

    async def _settle_failure(self, seq: int, exc: Exception) -> None:
        if self._superseded(seq):
            self._discard(seq)
            return

        error = FetchOperationError.wrap(exc, source=self.name)
        self._applied_seq = max(self._applied_seq, seq)
        self._failures += 1
        self._state.error = error
        self._restretch_ticker()
        log.warning(f"[{self.name}] Fetch #{seq} failed: {error}")
        self._events.publish(RefreshEvent(RefreshEventKind.FAILED, self.name, seq=seq, error=error))
        await self._notify(self.on_error, error, "on_error")

    async def _notify(self, callback: Optional[Callback], value: Any, label: str) -> None:
        if callback is None:
            return
        try:
            outcome = callback(value)
            if inspect.isawaitable(outcome):
                await outcome
        except Exception:
            log.exception(f"[{self.name}] {label} callback raised")

    def _spawn_refresh(self, token: ActivationToken, trigger: str) -> None:
        seq = self._begin(token, trigger)
        task = asyncio.create_task(self._complete(token, seq), name=f"{self.name}-fetch-{seq}")
        self._spawned.add(task)
        task.add_done_callback(self._spawned.discard)

    # ------------------------------------------------------------------
    # Timers
    # ------------------------------------------------------------------

    def _tick_delay(self) -> float:
        if not self.backoff:
            return self._interval
        return next_delay(self._interval, self._failures, max_backoff=self.max_backoff)

    def _start_ticker(self, anchor: Optional[float] = None) -> None:
        self._cancel_ticker()
        token = self._token
        if token is None:
            return
        if anchor is None:
            anchor = asyncio.get_running_loop().time()
        self._tick_anchor = anchor
        self._tick_task = asyncio.create_task(self._run_ticks(token, anchor), name=f"{self.name}-ticker")

    def _cancel_ticker(self) -> None:
        if self._tick_task is not None:
            self._tick_task.cancel()
            self._tick_task = None

    def _restretch_ticker(self) -> None:
        """With backoff on, re-plan the pending tick from the last one using the settled failure count."""
        if not self.backoff or self._tick_task is None or self._tick_anchor is None:
            return
        if not self.active or self._state.is_paused:
            return
        self._start_ticker(anchor=self._tick_anchor)

    async def _run_ticks(self, token: ActivationToken, anchor: float) -> None:
        loop = asyncio.get_running_loop()
        deadline = anchor
        while not token.cancelled:
            # Fixed-rate schedule; a stalled loop gets one late tick, never a burst.
            deadline = max(deadline + self._tick_delay(), loop.time())
            await asyncio.sleep(deadline - loop.time())
            if token.cancelled or self._state.is_paused:
                return
            self._tick_anchor = deadline
            self._spawn_refresh(token, "tick")

    async def _run_staleness(self, token: ActivationToken) -> None:
        while not token.cancelled:
            await asyncio.sleep(STALENESS_TICK_SECONDS)
            if token.cancelled or self._state.last_sync_time is None:
                continue
            self._events.publish(
                RefreshEvent(RefreshEventKind.STALENESS, self.name, seconds_ago=self.seconds_ago)
            )


__all__ = ["RefreshCoordinator", "FetchOperation", "STALENESS_TICK_SECONDS"]
