from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
from enum import Enum, IntEnum
from typing import Optional

from .schedule import TimeWindow


class AutoMode(IntEnum):
    # Persisted as int; values are shared with existing settings data
    OFF = 0
    TIME_WINDOW = 1
    BRIGHTNESS_THRESHOLD = 2
    TIME_AND_BRIGHTNESS = 3

    @property
    def uses_time(self) -> bool:
        return self in (AutoMode.TIME_WINDOW, AutoMode.TIME_AND_BRIGHTNESS)

    @property
    def uses_brightness(self) -> bool:
        return self in (AutoMode.BRIGHTNESS_THRESHOLD, AutoMode.TIME_AND_BRIGHTNESS)

    @classmethod
    def parse(cls, raw: object) -> "AutoMode":
        """Accept an enum member, its int value, or its name in any case."""
        if isinstance(raw, AutoMode):
            return raw
        if isinstance(raw, int):
            return cls(raw)
        if isinstance(raw, str):
            text = raw.strip()
            if text.lstrip("-").isdigit():
                return cls(int(text))
            try:
                return cls[text.upper()]
            except KeyError:
                raise ValueError(f"Unknown auto mode: {raw!r}") from None
        raise ValueError(f"Unknown auto mode: {raw!r}")


class ControllerPhase(str, Enum):
    INACTIVE = "inactive"
    MANUAL_ON = "manual_on"
    AUTO_TIME = "auto_time"
    AUTO_BRIGHTNESS = "auto_brightness"
    AUTO_TIME_AND_BRIGHTNESS = "auto_time_and_brightness"


class TimerKind(str, Enum):
    TIME = "time"
    BRIGHTNESS = "brightness"


class EventKind(str, Enum):
    SETTING_CHANGED = "setting_changed"
    SCREEN_ON = "screen_on"
    SCREEN_OFF = "screen_off"
    BRIGHTNESS_CHANGED = "brightness_changed"
    TIME_TICK = "time_tick"
    AVERAGE_TICK = "average_tick"
    EVALUATE = "evaluate"


@dataclass(frozen=True)
class ControllerEvent:
    kind: EventKind
    level: Optional[int] = None


@dataclass(frozen=True)
class BrightnessSample:
    level: int
    observed_at: datetime


@dataclass(frozen=True)
class WriteResult:
    ok: bool
    error: Optional[str] = None


@dataclass
class ControllerState:
    manual_enable: bool = False
    mode: AutoMode = AutoMode.OFF
    threshold: int = 0
    window: TimeWindow = TimeWindow(0, 0)
    # None until the first successful write to the node
    current_output: Optional[bool] = None
    running_average: float = 0.0
    minute_of_day: int = 0
    screen_on: bool = True


@dataclass(frozen=True)
class OutputEvent:
    ts_utc: datetime
    enabled: bool
    reason: str
    ok: bool
    error: Optional[str]
    mode: AutoMode
    running_average: float
