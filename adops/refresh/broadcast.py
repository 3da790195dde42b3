import inspect
from datetime import datetime
from typing import Any, Callable, List, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from adops.core.staleness import utc_now
from adops.refresh.policy import broadcast_interval, validate_interval
from adops.utils.logger import get_logger

log = get_logger(__name__)

Listener = Callable[[datetime], Any]


class RefreshBroadcaster:
    """
    App-wide "last refresh" signal shared by every dashboard view.

    Ticks on a fixed schedule and on demand; listeners receive the new
    refresh timestamp each time.
    """

    JOB_ID = "broadcast_refresh"

    def __init__(self, interval: Optional[float] = None, *, clock: Callable[[], datetime] = utc_now):
        self.interval = validate_interval(interval) if interval is not None else broadcast_interval()
        self._clock = clock
        self.last_refresh: datetime = clock()
        self._listeners: List[Listener] = []
        self._scheduler: Optional[AsyncIOScheduler] = None

    @property
    def running(self) -> bool:
        return self._scheduler is not None and self._scheduler.running

    def add_listener(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener``; returns a function that unregisters it."""
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    async def start(self) -> None:
        """Initialize and start the background scheduler."""
        if self.running:
            return

        self._scheduler = AsyncIOScheduler()
        self._scheduler.add_job(
            self.trigger,
            'interval',
            seconds=self.interval,
            id=self.JOB_ID,
            replace_existing=True,
            coalesce=True,
            max_instances=1,
        )
        self._scheduler.start()
        log.info(f"Refresh broadcaster started (every {self.interval:.0f}s)")

    async def stop(self) -> None:
        """Shut the scheduler down without waiting for running jobs."""
        if self._scheduler is not None:
            if self._scheduler.running:
                self._scheduler.shutdown(wait=False)
            self._scheduler = None
            log.info("Refresh broadcaster stopped")

    async def manual_refresh(self) -> datetime:
        log.info("Manual refresh requested")
        return await self.trigger()

    async def trigger(self) -> datetime:
        self.last_refresh = self._clock()
        for listener in list(self._listeners):
            try:
                outcome = listener(self.last_refresh)
                if inspect.isawaitable(outcome):
                    await outcome
            except Exception:
                log.exception("Refresh listener raised")
        return self.last_refresh

    async def __aenter__(self):
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.stop()
