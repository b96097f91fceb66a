from __future__ import annotations
from datetime import datetime
from typing import Callable, Optional, Protocol, runtime_checkable
from .models import OutputEvent, TimerKind, WriteResult


BrightnessListener = Callable[[int], None]
ScreenListener = Callable[[bool], None]


@runtime_checkable
class ClockSource(Protocol):
    def now(self) -> datetime:
        ...

    def minute_of_day(self, now: datetime) -> int:
        ...


@runtime_checkable
class BrightnessSource(Protocol):
    def current_level(self) -> int:
        ...

    def subscribe(self, on_brightness: BrightnessListener, on_screen: Optional[ScreenListener] = None) -> None:
        ...

    async def start(self) -> None:
        ...

    async def stop(self) -> None:
        ...


@runtime_checkable
class OutputSink(Protocol):
    sink_id: str

    async def write(self, enabled: bool) -> WriteResult:
        ...


@runtime_checkable
class ConfigStore(Protocol):
    async def get_int(self, key: str, default: int = 0) -> int:
        ...

    async def get_string(self, key: str) -> Optional[str]:
        ...

    async def put_int(self, key: str, value: int) -> None:
        ...

    async def put_string(self, key: str, value: str) -> None:
        ...


@runtime_checkable
class TimerControl(Protocol):
    def ensure_running(self, kind: TimerKind, first_delay_s: Optional[float] = None) -> None:
        ...

    def cancel(self, kind: TimerKind) -> None:
        ...

    def cancel_all(self) -> None:
        ...

    def close(self) -> None:
        ...


@runtime_checkable
class OutputRecorder(Protocol):
    async def insert_output(self, event: OutputEvent) -> None:
        ...
