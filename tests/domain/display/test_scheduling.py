"""Tests for timers and the single-flight fetch gate."""

import asyncio

import pytest

from masjid_display.domain.display.scheduling import FetchGate, PeriodicTask, TimerGroup

TICK = 0.01


async def wait_until(predicate, timeout: float = 1.0) -> None:
    """Poll until predicate() is true or fail after timeout."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met before timeout")
        await asyncio.sleep(TICK / 2)


class TestPeriodicTask:
    """Tests for PeriodicTask."""

    @pytest.mark.anyio
    async def test_fires_repeatedly(self) -> None:
        calls = []
        task = PeriodicTask("test", TICK, lambda: calls.append(1))
        task.start()
        try:
            await wait_until(lambda: len(calls) >= 3)
        finally:
            task.cancel()

        assert task.fired >= 3

    @pytest.mark.anyio
    async def test_async_callback_is_awaited(self) -> None:
        calls = []

        async def callback() -> None:
            await asyncio.sleep(0)
            calls.append(1)

        task = PeriodicTask("async", TICK, callback)
        task.start()
        try:
            await wait_until(lambda: len(calls) >= 2)
        finally:
            task.cancel()

    @pytest.mark.anyio
    async def test_cancel_stops_firing(self) -> None:
        calls = []
        task = PeriodicTask("test", TICK, lambda: calls.append(1))
        task.start()
        await wait_until(lambda: len(calls) >= 1)

        task.cancel()
        count = len(calls)
        await asyncio.sleep(TICK * 5)

        assert len(calls) == count
        assert not task.running

    @pytest.mark.anyio
    async def test_cancel_is_idempotent(self) -> None:
        task = PeriodicTask("test", TICK, lambda: None)
        task.cancel()
        task.start()
        task.cancel()
        task.cancel()
        assert not task.running

    @pytest.mark.anyio
    async def test_restart_bumps_generation(self) -> None:
        task = PeriodicTask("test", 10.0, lambda: None)
        task.start()
        first = task.generation
        task.start()
        try:
            assert task.generation > first
            assert task.running
        finally:
            task.cancel()

    @pytest.mark.anyio
    async def test_failing_callback_keeps_timer_alive(self) -> None:
        calls = []

        def callback() -> None:
            calls.append(1)
            raise RuntimeError("boom")

        task = PeriodicTask("flaky", TICK, callback)
        task.start()
        try:
            await wait_until(lambda: len(calls) >= 3)
            assert task.running
        finally:
            task.cancel()

    @pytest.mark.anyio
    async def test_callable_interval_reevaluated(self) -> None:
        delays = []

        def interval() -> float:
            delays.append(1)
            return TICK

        task = PeriodicTask("dynamic", interval, lambda: None)
        task.start()
        try:
            await wait_until(lambda: task.fired >= 2)
        finally:
            task.cancel()

        assert len(delays) >= 2


class TestTimerGroup:
    """Tests for TimerGroup."""

    @pytest.mark.anyio
    async def test_start_replaces_named_timer(self) -> None:
        group = TimerGroup()
        first = group.start("rotation", 10.0, lambda: None)
        second = group.start("rotation", 10.0, lambda: None)
        try:
            assert group.get("rotation") is second
            assert not first.running
            assert group.active == ["rotation"]
        finally:
            group.cancel_all()

    @pytest.mark.anyio
    async def test_cancel_all(self) -> None:
        group = TimerGroup()
        group.start("a", 10.0, lambda: None)
        group.start("b", 10.0, lambda: None)

        group.cancel_all()

        assert group.active == []
        assert group.get("a") is None

    @pytest.mark.anyio
    async def test_context_manager_releases_timers(self) -> None:
        calls = []
        async with TimerGroup() as group:
            group.start("a", TICK, lambda: calls.append(1))
            await wait_until(lambda: len(calls) >= 1)

        count = len(calls)
        await asyncio.sleep(TICK * 5)

        assert group.active == []
        assert len(calls) == count

    @pytest.mark.anyio
    async def test_cancel_unknown_name(self) -> None:
        group = TimerGroup()
        group.cancel("missing")
        assert group.active == []


class TestFetchGate:
    """Tests for FetchGate single-flight behaviour."""

    @pytest.mark.anyio
    async def test_concurrent_claim_is_dropped(self) -> None:
        gate = FetchGate("content")
        release = asyncio.Event()
        results = []

        async def fetch() -> None:
            async with gate.claim() as owned:
                results.append(owned)
                if owned:
                    await release.wait()

        first = asyncio.create_task(fetch())
        await wait_until(lambda: gate.busy)
        await fetch()
        release.set()
        await first

        assert results == [True, False]
        assert gate.dropped == 1
        assert not gate.busy

    @pytest.mark.anyio
    async def test_gate_released_after_error(self) -> None:
        gate = FetchGate("content")

        with pytest.raises(RuntimeError):
            async with gate.claim():
                raise RuntimeError("fetch failed")

        async with gate.claim() as owned:
            assert owned

    @pytest.mark.anyio
    async def test_reset_frees_gate_for_new_owner(self) -> None:
        """Test an abandoned owner finishing late cannot release a newer claim."""
        gate = FetchGate("content")
        release_old = asyncio.Event()
        release_new = asyncio.Event()

        async def old_owner() -> None:
            async with gate.claim() as owned:
                assert owned
                await release_old.wait()

        async def new_owner() -> None:
            async with gate.claim() as owned:
                assert owned
                await release_new.wait()

        old = asyncio.create_task(old_owner())
        await wait_until(lambda: gate.busy)
        gate.reset()
        assert not gate.busy

        new = asyncio.create_task(new_owner())
        await wait_until(lambda: gate.busy)
        release_old.set()
        await old

        assert gate.busy
        async with gate.claim() as owned:
            assert not owned

        release_new.set()
        await new
        assert not gate.busy
