import asyncio
import logging

from tubeshield.scheduler import Debouncer, LoopScheduler, ManualScheduler


def test_callbacks_run_in_due_order():
    scheduler = ManualScheduler()
    order = []
    scheduler.call_later(0.2, lambda: order.append("late"))
    scheduler.call_later(0.1, lambda: order.append("early"))
    scheduler.call_soon(lambda: order.append("soon"))
    scheduler.call_soon(lambda: order.append("soon-2"))

    scheduler.advance(0.15)
    assert order == ["soon", "soon-2", "early"]
    assert scheduler.now() == 0.15

    scheduler.advance(0.1)
    assert order[-1] == "late"


def test_nothing_runs_before_advance():
    scheduler = ManualScheduler()
    ran = []
    scheduler.call_soon(lambda: ran.append(1))
    assert ran == []
    assert scheduler.pending == 1
    assert scheduler.run_pending() == 1
    assert scheduler.pending == 0


def test_cancelled_callback_never_runs():
    scheduler = ManualScheduler()
    ran = []
    handle = scheduler.call_later(0.1, lambda: ran.append(1))
    handle.cancel()
    handle.cancel()
    scheduler.advance(1.0)
    assert ran == []


def test_call_every_repeats_until_cancelled():
    scheduler = ManualScheduler()
    ticks = []
    handle = scheduler.call_every(0.1, lambda: ticks.append(scheduler.now()))

    scheduler.advance(0.35)
    assert len(ticks) == 3

    handle.cancel()
    scheduler.advance(1.0)
    assert len(ticks) == 3
    assert scheduler.pending == 0


def test_failing_callback_is_contained(caplog):
    scheduler = ManualScheduler()
    ran = []

    def boom():
        raise RuntimeError("boom")

    scheduler.call_soon(boom)
    scheduler.call_soon(lambda: ran.append(1))
    with caplog.at_level(logging.ERROR, logger="tubeshield.scheduler"):
        scheduler.run_pending()

    assert ran == [1]
    assert "boom" in caplog.text


def test_failing_tick_keeps_the_poll_alive():
    scheduler = ManualScheduler()
    ticks = []

    def tick():
        ticks.append(1)
        raise ValueError("transient")

    scheduler.call_every(0.1, tick)
    scheduler.advance(0.35)
    assert len(ticks) == 3


def test_debouncer_coalesces_triggers():
    scheduler = ManualScheduler()
    calls = []
    debouncer = Debouncer(scheduler, 0.15, lambda: calls.append(scheduler.now()))
    assert not debouncer.armed

    for _ in range(10):
        debouncer.trigger()
        scheduler.advance(0.05)
    assert debouncer.armed
    assert calls == []

    scheduler.advance(0.15)
    assert len(calls) == 1
    assert debouncer.fire_count == 1
    assert not debouncer.armed


def test_debouncer_cancel():
    scheduler = ManualScheduler()
    debouncer = Debouncer(scheduler, 0.1, lambda: None)
    debouncer.trigger()
    debouncer.cancel()
    scheduler.advance(1.0)
    assert debouncer.fire_count == 0
    assert not debouncer.armed


def test_loop_scheduler_runs_on_asyncio():
    async def scenario():
        scheduler = LoopScheduler()
        ran = []
        first = scheduler.call_soon(lambda: ran.append("soon"))
        dropped = scheduler.call_later(0.01, lambda: ran.append("dropped"))
        dropped.cancel()
        ticker = scheduler.call_every(0.01, lambda: ran.append("tick"))
        await asyncio.sleep(0.05)
        ticker.cancel()
        return ran, first

    ran, first = asyncio.run(scenario())

    assert ran[0] == "soon"
    assert "dropped" not in ran
    assert "tick" in ran
    assert first.cancelled
