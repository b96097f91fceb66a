from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional

import pytest

from dimming.domain.controller import DimmingController
from dimming.domain.models import TimerKind
from dimming.drivers.brightness_sim import SimulatedBrightnessSource
from dimming.drivers.output_sim import SimulatedOutputSink
from dimming.storage.memory_store import MemoryConfigStore


class FakeClock:
    def __init__(self, start: Optional[datetime] = None) -> None:
        self.current = start or datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)

    def now(self) -> datetime:
        return self.current

    def minute_of_day(self, now: datetime) -> int:
        return now.hour * 60 + now.minute

    def set_time(self, hour: int, minute: int) -> datetime:
        self.current = self.current.replace(hour=hour, minute=minute, second=0, microsecond=0)
        return self.current

    def advance(self, seconds: float) -> datetime:
        self.current = self.current + timedelta(seconds=seconds)
        return self.current


class RecordingTimers:
    def __init__(self) -> None:
        self.pending: set[TimerKind] = set()
        self.armed: list[tuple[TimerKind, Optional[float]]] = []
        self.closed = False

    def ensure_running(self, kind: TimerKind, first_delay_s: Optional[float] = None) -> None:
        if self.closed or kind in self.pending:
            return
        self.pending.add(kind)
        self.armed.append((kind, first_delay_s))

    def cancel(self, kind: TimerKind) -> None:
        self.pending.discard(kind)

    def cancel_all(self) -> None:
        self.pending.clear()

    def close(self) -> None:
        self.closed = True
        self.pending.clear()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> MemoryConfigStore:
    return MemoryConfigStore()


@pytest.fixture
def sink() -> SimulatedOutputSink:
    return SimulatedOutputSink()


@pytest.fixture
def timers() -> RecordingTimers:
    return RecordingTimers()


@pytest.fixture
def brightness() -> SimulatedBrightnessSource:
    return SimulatedBrightnessSource(level=100)


@pytest.fixture
def controller(store, sink, clock, brightness, timers) -> DimmingController:
    return DimmingController(
        store=store,
        sink=sink,
        clock=clock,
        brightness=brightness,
        timers=timers,
        recorder=store,
    )
