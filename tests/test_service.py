from __future__ import annotations

import asyncio

import pytest

from dimming.domain.controller import DimmingController
from dimming.domain.models import AutoMode, ControllerEvent, EventKind, TimerKind
from dimming.drivers.brightness_sim import SimulatedBrightnessSource
from dimming.drivers.output_sim import SimulatedOutputSink
from dimming.services.dimming_service import DimmingService
from dimming.storage.memory_store import MemoryConfigStore

from conftest import FakeClock


def build(clock: FakeClock, **kwargs):
    store = MemoryConfigStore()
    sink = SimulatedOutputSink()
    source = SimulatedBrightnessSource(level=30)
    ctrl = DimmingController(store, sink, clock, brightness=source, recorder=store)
    opts = dict(time_interval_s=60.0, brightness_interval_s=60.0, screen_on_settle_s=0.01)
    opts.update(kwargs)
    svc = DimmingService(ctrl, source, **opts)
    return svc, ctrl, sink, source, store


def test_start_loads_and_stop_closes_timers() -> None:
    clock = FakeClock()

    async def scenario():
        svc, ctrl, sink, source, store = build(clock)
        await svc.start()
        assert svc.running
        await ctrl.set_mode(AutoMode.TIME_AND_BRIGHTNESS)
        await ctrl.set_manual_enable(True)
        assert svc.timers.pending(TimerKind.TIME)
        assert svc.timers.pending(TimerKind.BRIGHTNESS)

        await svc.stop()
        return svc, sink

    svc, sink = asyncio.run(scenario())
    assert sink.writes == [False]
    assert svc.running is False
    assert svc.timers.closed
    assert not svc.timers.pending(TimerKind.TIME)
    assert not svc.timers.pending(TimerKind.BRIGHTNESS)


def test_brightness_events_flow_through_inbox() -> None:
    clock = FakeClock()

    async def scenario():
        svc, ctrl, sink, source, store = build(clock)
        await svc.start()
        await ctrl.set_threshold(50)
        await ctrl.set_mode(AutoMode.BRIGHTNESS_THRESHOLD)
        await ctrl.set_manual_enable(True)

        clock.advance(8)
        source.set_level(10)
        await svc.join()
        clock.advance(2)
        svc.post(ControllerEvent(EventKind.AVERAGE_TICK))
        await svc.join()

        avg = ctrl.get_running_average()
        await svc.stop()
        return avg, sink, svc

    avg, sink, svc = asyncio.run(scenario())
    assert avg == pytest.approx(26.0)
    assert sink.writes == [False, True]
    assert svc.live.events_processed == 2
    assert svc.live.last_event == EventKind.AVERAGE_TICK.value


def test_time_tick_event_reevaluates() -> None:
    clock = FakeClock()
    clock.set_time(12, 0)

    async def scenario():
        svc, ctrl, sink, source, store = build(clock)
        await svc.start()
        from dimming.domain.schedule import TimeWindow

        await ctrl.set_window(TimeWindow.from_strings("22:00", "06:00"))
        await ctrl.set_mode(AutoMode.TIME_WINDOW)
        await ctrl.set_manual_enable(True)

        clock.set_time(23, 30)
        svc.post(ControllerEvent(EventKind.TIME_TICK))
        await svc.join()
        out = ctrl.get_auto_output()
        await svc.stop()
        return out, sink

    out, sink = asyncio.run(scenario())
    assert out is True
    assert sink.writes == [False, True]


def test_screen_cycle_cancels_and_restores_timers() -> None:
    clock = FakeClock()

    async def scenario():
        svc, ctrl, sink, source, store = build(clock)
        await svc.start()
        await ctrl.set_mode(AutoMode.BRIGHTNESS_THRESHOLD)
        await ctrl.set_manual_enable(True)

        source.set_screen(False)
        await svc.join()
        off = (svc.timers.pending(TimerKind.BRIGHTNESS), ctrl.state.screen_on)

        source.set_screen(True)
        await svc.join()
        on = (svc.timers.pending(TimerKind.BRIGHTNESS), ctrl.state.screen_on)

        # settle delay queues one evaluation
        await asyncio.sleep(0.05)
        await svc.join()
        last = svc.live.last_event
        await svc.stop()
        return off, on, last

    off, on, last = asyncio.run(scenario())
    assert off == (False, False)
    assert on == (True, True)
    assert last == EventKind.EVALUATE.value


def test_setting_changed_event_reloads() -> None:
    clock = FakeClock()

    async def scenario():
        svc, ctrl, sink, source, store = build(clock)
        await svc.start()
        await store.put_int("dc_dimming_state", 1)
        svc.notify_setting_changed()
        await svc.join()
        out = ctrl.get_auto_output()
        await svc.stop()
        return out

    assert asyncio.run(scenario()) is True


def test_events_after_stop_are_dropped() -> None:
    clock = FakeClock()

    async def scenario():
        svc, ctrl, sink, source, store = build(clock)
        await svc.start()
        await svc.stop()
        return svc.notify_screen_on(), svc.timers.pending(TimerKind.TIME)

    assert asyncio.run(scenario()) == (False, False)


def test_failing_event_does_not_stop_the_inbox() -> None:
    clock = FakeClock()

    async def scenario():
        svc, ctrl, sink, source, store = build(clock)
        await svc.start()

        async def broken(*args, **kwargs):
            raise RuntimeError("boom")

        ctrl.recompute_average = broken
        svc.post(ControllerEvent(EventKind.AVERAGE_TICK))
        svc.request_evaluate()
        await svc.join()
        live = svc.live
        await svc.stop()
        return live

    live = asyncio.run(scenario())
    assert live.event_errors == 1
    assert live.events_processed == 1


def test_stop_with_queued_screen_on_leaves_nothing_armed() -> None:
    clock = FakeClock()

    async def scenario():
        svc, ctrl, sink, source, store = build(clock, screen_on_settle_s=0.01)
        await svc.start()
        await ctrl.set_mode(AutoMode.BRIGHTNESS_THRESHOLD)
        await ctrl.set_manual_enable(True)

        svc.notify_screen_on()
        await svc.stop()
        settle = svc._settle
        processed = svc.live.events_processed

        await asyncio.sleep(0.05)
        return settle, processed, svc

    settle, processed, svc = asyncio.run(scenario())
    assert settle is None
    assert svc.live.events_processed == processed
    assert svc.live.last_event != EventKind.EVALUATE.value
    assert not svc.timers.pending(TimerKind.BRIGHTNESS)
