"""Tests for nightlight.core.refresh — debounce and busy guard."""

import asyncio

import pytest

from nightlight.core.refresh import CoalescingRefresher

DEBOUNCE = 0.01


class TestCoalescingRefresher:
    @pytest.mark.asyncio
    async def test_burst_collapses_into_one_run(self):
        calls = []

        async def action():
            calls.append(1)

        refresher = CoalescingRefresher("test", action, DEBOUNCE)
        for _ in range(5):
            refresher.trigger()
        await refresher.wait_idle()
        assert len(calls) == 1
        assert refresher.runs == 1

    @pytest.mark.asyncio
    async def test_trigger_during_run_schedules_one_trailing_run(self):
        started = asyncio.Event()
        release = asyncio.Event()
        calls = []

        async def action():
            calls.append(1)
            if len(calls) == 1:
                started.set()
                await release.wait()

        refresher = CoalescingRefresher("test", action, DEBOUNCE)
        refresher.trigger()
        await started.wait()
        assert refresher.busy is True

        refresher.trigger()
        refresher.trigger()
        release.set()
        await refresher.wait_idle()
        assert len(calls) == 2
        assert refresher.busy is False

    @pytest.mark.asyncio
    async def test_run_now_while_busy_is_folded(self):
        release = asyncio.Event()
        calls = []

        async def action():
            calls.append(1)
            await release.wait()

        refresher = CoalescingRefresher("test", action, DEBOUNCE)
        first = asyncio.create_task(refresher.run_now())
        await asyncio.sleep(0)
        assert await refresher.run_now() is False

        release.set()
        assert await first is True
        await refresher.wait_idle()
        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_failure_is_logged_not_raised(self, caplog):
        async def action():
            raise RuntimeError("boom")

        refresher = CoalescingRefresher("events", action, DEBOUNCE)
        assert await refresher.run_now() is True
        assert refresher.busy is False
        assert refresher.runs == 0
        assert "Refresh 'events' failed: boom" in caplog.text

    @pytest.mark.asyncio
    async def test_wait_idle_covers_direct_run(self):
        release = asyncio.Event()
        finished = []

        async def action():
            await release.wait()
            finished.append(1)

        refresher = CoalescingRefresher("chores", action, DEBOUNCE)
        direct = asyncio.create_task(refresher.run_now())
        await asyncio.sleep(0)
        assert refresher.busy is True

        waiter = asyncio.create_task(refresher.wait_idle())
        await asyncio.sleep(0)
        assert not waiter.done()

        release.set()
        await asyncio.wait_for(waiter, timeout=1)
        assert finished == [1]
        await direct


class TestTriggerOutsideEventLoop:
    def test_trigger_is_deferred_not_raised(self):
        calls = []

        async def action():
            calls.append(1)

        refresher = CoalescingRefresher("events", action, DEBOUNCE)
        refresher.trigger()
        assert refresher.dirty is True
        assert calls == []

        assert asyncio.run(refresher.run_now()) is True
        assert calls == [1]
        assert refresher.dirty is False

    def test_trigger_inside_loop_clears_deferred_request(self):
        calls = []

        async def action():
            calls.append(1)

        refresher = CoalescingRefresher("events", action, DEBOUNCE)
        refresher.trigger()

        async def later_tick():
            refresher.trigger()
            await refresher.wait_idle()

        asyncio.run(later_tick())
        assert calls == [1]
        assert refresher.dirty is False
