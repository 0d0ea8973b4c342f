import asyncio

import pytest

from solbot.monitoring import AuditLog, MemoryNotifier, Monitor
from solbot.runtime import TickScheduler


def test_rejects_non_positive_interval():
    with pytest.raises(ValueError):
        TickScheduler("alice", 0, lambda: None)


def test_runs_never_overlap():
    async def scenario():
        active = 0
        peak = 0

        async def slow_tick():
            nonlocal active, peak
            active += 1
            peak = max(peak, active)
            await asyncio.sleep(0.02)
            active -= 1

        scheduler = TickScheduler("alice", 0.005, slow_tick)
        scheduler.start()
        await asyncio.sleep(0.12)
        await scheduler.cancel()
        assert peak == 1
        assert scheduler.runs >= 2
        assert not scheduler.active

    asyncio.run(scenario())


def test_run_once_is_single_flight():
    async def scenario():
        release = asyncio.Event()

        async def blocked_tick():
            await release.wait()

        scheduler = TickScheduler("alice", 1.0, blocked_tick)
        first = asyncio.create_task(scheduler.run_once())
        await asyncio.sleep(0)
        assert scheduler.in_flight
        assert await scheduler.run_once() is False
        release.set()
        assert await first is True
        assert scheduler.runs == 1

    asyncio.run(scenario())


def test_cancel_stops_future_runs():
    async def scenario():
        calls = []
        scheduler = TickScheduler("alice", 0.01, lambda: calls.append(1))
        scheduler.start()
        await asyncio.sleep(0.05)
        await scheduler.cancel()
        seen = len(calls)
        assert seen >= 1
        await asyncio.sleep(0.05)
        assert len(calls) == seen

    asyncio.run(scenario())


def test_cancel_lets_in_flight_run_finish():
    async def scenario():
        finished = []

        async def tick():
            await asyncio.sleep(0.05)
            finished.append(True)

        scheduler = TickScheduler("alice", 1.0, tick)
        scheduler.start()
        await asyncio.sleep(0.01)
        assert scheduler.in_flight
        await scheduler.cancel()
        assert finished == [True]

    asyncio.run(scenario())


def test_errors_are_logged_and_loop_continues(tmp_path):
    async def scenario():
        audit = AuditLog(tmp_path / "audit.log")
        notifier = MemoryNotifier()

        def broken():
            raise RuntimeError("boom")

        scheduler = TickScheduler("alice", 0.01, broken, audit_log=audit, monitor=Monitor(notifier))
        scheduler.start()
        await asyncio.sleep(0.05)
        await scheduler.cancel()

        errors = audit.events("scheduler_error")
        assert errors
        assert errors[0]["payload"] == {"scheduler": "alice", "error": "boom"}
        assert notifier.messages[0] == ("SCHEDULER_ERROR", "alice: boom")

    asyncio.run(scenario())
