"""Unit tests for PollController: idempotent start/stop, tick predicates, self-stop."""
import asyncio

import pytest

from deck.sync.polling import PollController


def _timer_tasks(name):
    return [t for t in asyncio.all_tasks() if t.get_name() == f"poll:{name}" and not t.done()]


class Recorder:
    def __init__(self):
        self.calls = 0

    async def __call__(self):
        self.calls += 1


def test_interval_must_be_positive():
    with pytest.raises(ValueError):
        PollController("nodes", 0, Recorder())
    with pytest.raises(ValueError):
        PollController("nodes", -1, Recorder())


def test_start_twice_keeps_one_timer():
    async def scenario():
        ctl = PollController("nodes", 60, Recorder())
        ctl.start()
        ctl.start()
        await asyncio.sleep(0)
        count = len(_timer_tasks("nodes"))
        ctl.stop()
        await asyncio.sleep(0)
        return count, ctl.armed, len(_timer_tasks("nodes"))

    count, armed, remaining = asyncio.run(scenario())
    assert count == 1
    assert armed is False
    assert remaining == 0


def test_stop_when_idle_is_noop():
    async def scenario():
        ctl = PollController("logs", 60, Recorder())
        ctl.stop()
        ctl.stop()
        return ctl.armed

    assert asyncio.run(scenario()) is False


def test_timer_fires_action_repeatedly():
    async def scenario():
        action = Recorder()
        ctl = PollController("nodes", 0.01, action)
        ctl.start()
        for _ in range(200):
            if action.calls >= 2:
                break
            await asyncio.sleep(0.01)
        ctl.stop()
        await ctl.drain()
        return action.calls

    assert asyncio.run(scenario()) >= 2


def test_tab_predicate_skips_without_stopping():
    async def scenario():
        action = Recorder()
        ui = {"tab": "overview"}
        ctl = PollController("logs", 60, action, lambda: ui["tab"] == "logs")
        ctl.start()

        skipped = ctl.tick()
        await ctl.drain()
        calls_off_tab = action.calls
        armed_off_tab = ctl.armed

        ui["tab"] = "logs"
        fired = ctl.tick()
        await ctl.drain()
        ctl.stop()
        return skipped, calls_off_tab, armed_off_tab, fired, action.calls

    skipped, calls_off_tab, armed_off_tab, fired, calls = asyncio.run(scenario())
    assert skipped is False
    assert calls_off_tab == 0
    assert armed_off_tab is True
    assert fired is True
    assert calls == 1


def test_false_predicate_self_stops_when_configured():
    async def scenario():
        action = Recorder()
        ctl = PollController("clip-job", 60, action, lambda: False, stop_when_false=True)
        ctl.start()
        ctl.tick()
        await asyncio.sleep(0)
        return ctl.armed, action.calls, len(_timer_tasks("clip-job"))

    armed, calls, remaining = asyncio.run(scenario())
    assert armed is False
    assert calls == 0
    assert remaining == 0


def test_self_stop_from_timer_loop():
    async def scenario():
        action = Recorder()
        ctl = PollController("clip-job", 0.01, action, lambda: False, stop_when_false=True)
        ctl.start()
        for _ in range(200):
            if not ctl.armed:
                break
            await asyncio.sleep(0.01)
        await asyncio.sleep(0.03)
        return ctl.armed, action.calls, len(_timer_tasks("clip-job"))

    armed, calls, remaining = asyncio.run(scenario())
    assert armed is False
    assert calls == 0
    assert remaining == 0


def test_predicate_error_does_not_stop_timer():
    def broken():
        raise RuntimeError("boom")

    async def scenario():
        action = Recorder()
        ctl = PollController("debug", 60, action, broken, stop_when_false=True)
        ctl.start()
        fired = ctl.tick()
        armed = ctl.armed
        ctl.stop()
        return fired, armed, action.calls

    assert asyncio.run(scenario()) == (False, True, 0)


def test_action_error_is_absorbed():
    async def failing():
        raise RuntimeError("feed exploded")

    async def scenario():
        ctl = PollController("nodes", 60, failing)
        ctl.start()
        ctl.tick()
        await ctl.drain()
        armed = ctl.armed
        ctl.stop()
        return armed

    assert asyncio.run(scenario()) is True


def test_stop_does_not_abort_inflight_call():
    async def scenario():
        release = asyncio.Event()
        finished = []

        async def slow():
            await release.wait()
            finished.append(True)

        ctl = PollController("nodes", 60, slow)
        ctl.start()
        ctl.tick()
        await asyncio.sleep(0)
        ctl.stop()
        release.set()
        await ctl.drain()
        return finished, ctl.armed

    finished, armed = asyncio.run(scenario())
    assert finished == [True]
    assert armed is False
