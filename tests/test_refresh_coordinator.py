import asyncio

import pytest

from adops.core.errors import ConfigError, FetchOperationError
from adops.refresh.coordinator import RefreshCoordinator
from adops.refresh.events import RefreshEventKind


class CountingFetch:
    """Fetch operation returning {"v": n} on the n-th call, or raising a queued error."""

    def __init__(self, failures=None):
        self.calls = 0
        self.failures = failures or {}

    async def __call__(self):
        self.calls += 1
        if self.calls in self.failures:
            raise self.failures[self.calls]
        return {"v": self.calls}


class GatedFetch:
    """Each call blocks until its gate is opened, then returns {"v": call number}."""

    def __init__(self, count: int):
        self.gates = [asyncio.Event() for _ in range(count)]
        self.started = asyncio.Event()
        self.calls = 0

    async def __call__(self):
        index = self.calls
        self.calls += 1
        self.started.set()
        await self.gates[index].wait()
        return {"v": index + 1}


def test_immediate_fetch_happens_once_before_first_tick():
    async def scenario():
        fetch = CountingFetch()
        coordinator = RefreshCoordinator(fetch, interval=0.5)
        await coordinator.start()
        loading_right_after_start = coordinator.loading
        await asyncio.sleep(0.1)
        calls = fetch.calls
        await coordinator.stop()
        return loading_right_after_start, calls

    loading, calls = asyncio.run(scenario())
    assert loading is True
    assert calls == 1


def test_no_fetch_on_start_when_not_immediate():
    async def scenario():
        fetch = CountingFetch()
        async with RefreshCoordinator(fetch, interval=0.5, immediate=False) as coordinator:
            await asyncio.sleep(0.1)
            return fetch.calls, coordinator.data

    calls, data = asyncio.run(scenario())
    assert calls == 0
    assert data is None


def test_ticks_deliver_latest_payload():
    async def scenario():
        fetch = CountingFetch()
        async with RefreshCoordinator(fetch, interval=0.2) as coordinator:
            await asyncio.sleep(0.5)
            return fetch.calls, coordinator.data, coordinator.loading

    calls, data, loading = asyncio.run(scenario())
    assert calls == 3
    assert data == {"v": 3}
    assert loading is False


def test_seconds_ago_resets_on_success_and_tracks_clock(clock):
    async def scenario():
        coordinator = RefreshCoordinator(CountingFetch(), interval=60, immediate=False, clock=clock)
        await coordinator.start()
        readings = [coordinator.seconds_ago]

        await coordinator.refresh()
        readings.append(coordinator.seconds_ago)
        clock.advance(1)
        readings.append(coordinator.seconds_ago)
        clock.advance(1.5)
        readings.append(coordinator.seconds_ago)

        await coordinator.refresh()
        readings.append(coordinator.seconds_ago)
        await coordinator.stop()
        return readings, coordinator.last_sync_time

    readings, last_sync = asyncio.run(scenario())
    assert readings == [0, 0, 1, 2, 0]
    assert last_sync == clock.now


def test_pause_stops_ticks_and_resume_restarts_from_resume_point():
    async def scenario():
        fetch = CountingFetch()
        coordinator = RefreshCoordinator(fetch, interval=0.2, immediate=False)
        await coordinator.start()
        coordinator.pause()
        await asyncio.sleep(0.3)
        while_paused = fetch.calls

        coordinator.resume()
        await asyncio.sleep(0.1)
        before_first_tick = fetch.calls
        await asyncio.sleep(0.2)
        after_first_tick = fetch.calls

        await coordinator.stop()
        return while_paused, before_first_tick, after_first_tick

    assert asyncio.run(scenario()) == (0, 0, 1)


def test_manual_refresh_while_paused():
    async def scenario():
        fetch = CountingFetch()
        async with RefreshCoordinator(fetch, interval=0.1, immediate=False) as coordinator:
            coordinator.pause()
            await coordinator.refresh()
            await asyncio.sleep(0.25)
            return fetch.calls, coordinator.data, coordinator.is_paused, coordinator.loading

    calls, data, paused, loading = asyncio.run(scenario())
    assert calls == 1
    assert data == {"v": 1}
    assert paused is True
    assert loading is False


def test_fetch_settling_after_teardown_changes_nothing():
    async def scenario():
        fetch = GatedFetch(1)
        updates, errors = [], []
        coordinator = RefreshCoordinator(fetch, interval=10, on_update=updates.append, on_error=errors.append)
        await coordinator.start()
        await fetch.started.wait()
        await coordinator.stop()

        fetch.gates[0].set()
        await asyncio.sleep(0.05)
        await coordinator.refresh()
        return coordinator.snapshot(), updates, errors, fetch.calls, coordinator.active

    snapshot, updates, errors, calls, active = asyncio.run(scenario())
    assert snapshot.data is None
    assert snapshot.last_sync_time is None
    assert snapshot.error is None
    assert updates == []
    assert errors == []
    assert calls == 1
    assert active is False


def test_network_error_keeps_data_and_timer():
    async def scenario():
        fetch = CountingFetch(failures={2: RuntimeError("network error")})
        errors = []
        async with RefreshCoordinator(fetch, interval=0.2, on_error=errors.append) as coordinator:
            await asyncio.sleep(0.3)
            after_failure = (coordinator.data, coordinator.error, coordinator.consecutive_failures)
            await asyncio.sleep(0.2)
            return after_failure, errors, fetch.calls, coordinator.data, coordinator.error

    (data, error, failures), errors, calls, final_data, final_error = asyncio.run(scenario())
    assert data == {"v": 1}
    assert isinstance(error, FetchOperationError)
    assert str(error) == "network error"
    assert isinstance(error.__cause__, RuntimeError)
    assert failures == 1
    assert errors == [error]
    assert calls == 3
    assert final_data == {"v": 3}
    assert final_error is None


def test_error_cleared_when_next_attempt_starts():
    async def scenario():
        fetch = CountingFetch(failures={1: ValueError("bad payload")})
        async with RefreshCoordinator(fetch, interval=60, immediate=False) as coordinator:
            await coordinator.refresh()
            failed = coordinator.error
            pending = asyncio.create_task(coordinator.refresh())
            await asyncio.sleep(0)
            in_flight_error = coordinator.error
            await pending
            return failed, in_flight_error, coordinator.error

    failed, in_flight_error, final_error = asyncio.run(scenario())
    assert str(failed) == "bad payload"
    assert in_flight_error is None
    assert final_error is None


def test_loading_spans_the_whole_fetch():
    async def scenario():
        fetch = GatedFetch(1)
        async with RefreshCoordinator(fetch, interval=60, immediate=False) as coordinator:
            before = coordinator.loading
            pending = asyncio.create_task(coordinator.refresh())
            await fetch.started.wait()
            during = coordinator.loading
            fetch.gates[0].set()
            await pending
            return before, during, coordinator.loading

    assert asyncio.run(scenario()) == (False, True, False)


def test_stale_result_is_discarded():
    async def scenario():
        fetch = GatedFetch(2)
        updates = []
        async with RefreshCoordinator(fetch, interval=60, immediate=False, on_update=updates.append) as coordinator:
            first = asyncio.create_task(coordinator.refresh())
            await asyncio.sleep(0)
            second = asyncio.create_task(coordinator.refresh())
            await asyncio.sleep(0)

            fetch.gates[1].set()
            await second
            loading_with_first_pending = coordinator.loading

            fetch.gates[0].set()
            await first
            return coordinator.data, updates, loading_with_first_pending, coordinator.loading

    data, updates, loading_mid, loading_end = asyncio.run(scenario())
    assert data == {"v": 2}
    assert updates == [{"v": 2}]
    assert loading_mid is True
    assert loading_end is False


def test_last_settler_wins_without_stale_guard():
    async def scenario():
        fetch = GatedFetch(2)
        updates = []
        coordinator = RefreshCoordinator(
            fetch, interval=60, immediate=False, discard_stale=False, on_update=updates.append
        )
        async with coordinator:
            first = asyncio.create_task(coordinator.refresh())
            await asyncio.sleep(0)
            second = asyncio.create_task(coordinator.refresh())
            await asyncio.sleep(0)
            fetch.gates[1].set()
            await second
            fetch.gates[0].set()
            await first
            return coordinator.data, updates

    data, updates = asyncio.run(scenario())
    assert data == {"v": 1}
    assert updates == [{"v": 2}, {"v": 1}]


def test_callback_failure_does_not_break_coordinator():
    def explode(_):
        raise ValueError("consumer bug")

    async def scenario():
        fetch = CountingFetch()
        async with RefreshCoordinator(fetch, interval=60, immediate=False, on_update=explode) as coordinator:
            await coordinator.refresh()
            await coordinator.refresh()
            return coordinator.data, coordinator.error, coordinator.loading

    assert asyncio.run(scenario()) == ({"v": 2}, None, False)


def test_async_callbacks_are_awaited():
    async def scenario():
        seen = []

        async def on_update(data):
            await asyncio.sleep(0)
            seen.append(data)

        async with RefreshCoordinator(CountingFetch(), interval=60, immediate=False, on_update=on_update) as coordinator:
            await coordinator.refresh()
            return seen

    assert asyncio.run(scenario()) == [{"v": 1}]


def test_set_interval_restarts_timer():
    async def scenario():
        fetch = CountingFetch()
        async with RefreshCoordinator(fetch, interval=30, immediate=False) as coordinator:
            coordinator.set_interval(0.2)
            await asyncio.sleep(0.5)
            return fetch.calls, coordinator.interval

    assert asyncio.run(scenario()) == (2, 0.2)


def test_events_follow_refresh_lifecycle():
    async def scenario():
        fetch = CountingFetch(failures={2: ConnectionError("reset")})
        async with RefreshCoordinator(fetch, interval=60, immediate=False, name="telemetry") as coordinator:
            subscription = coordinator.subscribe()
            await coordinator.refresh()
            await coordinator.refresh()
            coordinator.pause()
            coordinator.resume()
        return [event async for event in subscription]

    events = asyncio.run(scenario())
    assert [event.kind for event in events] == [
        RefreshEventKind.STARTED,
        RefreshEventKind.UPDATED,
        RefreshEventKind.STARTED,
        RefreshEventKind.FAILED,
        RefreshEventKind.PAUSED,
        RefreshEventKind.RESUMED,
    ]
    assert {event.name for event in events} == {"telemetry"}
    assert events[1].data == {"v": 1}
    assert str(events[3].error) == "reset"


def test_snapshot_reflects_state(clock):
    async def scenario():
        async with RefreshCoordinator(CountingFetch(), interval=60, immediate=False, clock=clock) as coordinator:
            await coordinator.refresh()
            clock.advance(42)
            coordinator.pause()
            return coordinator.snapshot()

    snapshot = asyncio.run(scenario())
    assert snapshot.data == {"v": 1}
    assert snapshot.seconds_ago == 42
    assert snapshot.sync_label == "42s ago"
    assert snapshot.is_paused is True
    assert snapshot.as_dict()["error"] is None


def test_invalid_configuration_rejected():
    with pytest.raises(ConfigError):
        RefreshCoordinator(CountingFetch(), interval=0)
    with pytest.raises(ConfigError):
        RefreshCoordinator("not callable")


class TimedFetch:
    """Records when each call starts, then fails or succeeds after a short delay."""

    def __init__(self, fail_on):
        self.fail_on = set(fail_on)
        self.started_at = []
        self.origin = None

    async def __call__(self):
        loop = asyncio.get_running_loop()
        self.started_at.append(loop.time() - self.origin)
        call = len(self.started_at)
        await asyncio.sleep(0.01)
        if call in self.fail_on:
            raise ConnectionError("upstream down")
        return {"v": call}


def run_timed(fetch, duration, **kwargs):
    async def scenario():
        fetch.origin = asyncio.get_running_loop().time()
        async with RefreshCoordinator(fetch, interval=0.2, immediate=False, **kwargs):
            await asyncio.sleep(duration)

    asyncio.run(scenario())
    return fetch.started_at


def test_backoff_stretches_the_tick_right_after_a_failure():
    times = run_timed(TimedFetch(fail_on={1, 2, 3}), 0.9, backoff=True, max_backoff=10)

    assert len(times) == 2
    assert 0.15 <= times[0] < 0.3
    assert 0.55 <= times[1] < 0.75


def test_backoff_resets_after_a_success():
    times = run_timed(TimedFetch(fail_on={1}), 0.9, backoff=True, max_backoff=10)

    assert len(times) == 3
    assert 0.55 <= times[1] < 0.75
    assert 0.75 <= times[2] < 0.9


def test_without_backoff_failures_keep_the_interval():
    times = run_timed(TimedFetch(fail_on={1, 2, 3}), 0.7)

    assert len(times) == 3
    assert 0.35 <= times[1] < 0.5


def test_staleness_events_carry_recomputed_seconds_ago(clock):
    async def scenario():
        async with RefreshCoordinator(CountingFetch(), interval=60, immediate=False, clock=clock) as coordinator:
            subscription = coordinator.subscribe()
            await coordinator.refresh()
            clock.advance(3)
            while True:
                event = await subscription.get(timeout=2)
                if event.kind is RefreshEventKind.STALENESS:
                    return event

    event = asyncio.run(scenario())
    assert event.seconds_ago == 3
    assert event.name == "refresh"


def test_no_staleness_events_before_first_sync():
    async def scenario():
        async with RefreshCoordinator(CountingFetch(), interval=60, immediate=False) as coordinator:
            subscription = coordinator.subscribe()
            await asyncio.sleep(1.2)
            return subscription.pending()

    assert asyncio.run(scenario()) == 0
