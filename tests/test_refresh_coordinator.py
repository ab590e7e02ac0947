import asyncio

from insider_monitor.core.refresh import Idle, RefreshCoordinator, Refreshing


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


def test_first_read_refreshes_then_ttl_suppresses():
    clock = FakeClock()
    coordinator = RefreshCoordinator("test", 300, clock=clock)
    calls = []

    async def _refresh():
        calls.append(clock())

    async def _run():
        first = await coordinator.run(_refresh)
        clock.now += 10
        second = await coordinator.run(_refresh)
        return first, second

    first, second = asyncio.run(_run())
    assert (first, second) == (True, False)
    assert len(calls) == 1
    assert coordinator.last_refreshed_at == 1000.0


def test_read_after_ttl_refreshes_and_moves_timestamp():
    clock = FakeClock()
    coordinator = RefreshCoordinator("test", 300, clock=clock)
    calls = []

    async def _refresh():
        calls.append(clock())

    async def _run():
        await coordinator.run(_refresh)
        clock.now += 300
        return await coordinator.run(_refresh)

    assert asyncio.run(_run()) is True
    assert len(calls) == 2
    assert coordinator.last_refreshed_at == 1300.0


def test_completion_time_is_recorded():
    clock = FakeClock()
    coordinator = RefreshCoordinator("test", 300, clock=clock)

    async def _slow_refresh():
        clock.now += 5

    asyncio.run(coordinator.run(_slow_refresh))
    assert coordinator.last_refreshed_at == 1005.0


def test_failed_refresh_keeps_timestamp_and_is_retried():
    clock = FakeClock()
    coordinator = RefreshCoordinator("test", 300, clock=clock)
    attempts = []

    async def _failing():
        attempts.append(1)
        raise RuntimeError("upstream down")

    async def _ok():
        attempts.append(2)

    async def _run():
        failed = await coordinator.run(_failing)
        retried = await coordinator.run(_ok)
        return failed, retried

    failed, retried = asyncio.run(_run())
    assert failed is False
    assert retried is True
    assert attempts == [1, 2]
    assert isinstance(coordinator.state, Idle)


def test_failure_after_success_keeps_previous_timestamp():
    clock = FakeClock()
    coordinator = RefreshCoordinator("test", 300, clock=clock)

    async def _ok():
        return None

    async def _failing():
        raise ValueError("bad payload")

    async def _run():
        await coordinator.run(_ok)
        clock.now += 400
        await coordinator.run(_failing)

    asyncio.run(_run())
    assert coordinator.last_refreshed_at == 1000.0
    assert coordinator.is_stale()


def test_concurrent_requests_are_dropped_while_refreshing():
    clock = FakeClock()
    coordinator = RefreshCoordinator("test", 300, clock=clock)
    calls = []
    states = []

    async def _refresh():
        calls.append(1)
        states.append(coordinator.state)
        await asyncio.sleep(0.01)

    async def _run():
        return await asyncio.gather(*(coordinator.run(_refresh) for _ in range(5)))

    results = asyncio.run(_run())
    assert results.count(True) == 1
    assert results.count(False) == 4
    assert len(calls) == 1
    assert states == [Refreshing(started_at=1000.0)]
    assert isinstance(coordinator.state, Idle)
    assert not coordinator.is_refreshing
