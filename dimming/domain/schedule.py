from __future__ import annotations
from dataclasses import dataclass

from .errors import InvalidTimeFormat

MINUTES_PER_DAY = 24 * 60


def parse_hhmm(s: str) -> int:
    """Parse "HH:MM" (or "H:M") into a minute of the day."""
    try:
        h, m = s.strip().split(":")
        hour, minute = int(h), int(m)
    except (AttributeError, ValueError):
        raise InvalidTimeFormat(f"Invalid time format: {s!r}, expected HH:MM") from None
    if not (0 <= hour <= 23 and 0 <= minute <= 59):
        raise InvalidTimeFormat(f"Invalid time: {s!r}")
    return hour * 60 + minute


def format_hhmm(minute_of_day: int) -> str:
    return f"{minute_of_day // 60:02d}:{minute_of_day % 60:02d}"


@dataclass(frozen=True)
class TimeWindow:
    start: int  # minute of day, inclusive
    end: int    # minute of day, inclusive

    def __post_init__(self) -> None:
        for name in ("start", "end"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or not (0 <= value < MINUTES_PER_DAY):
                raise ValueError(f"TimeWindow.{name} must be a minute of day (0..1439), got {value!r}")

    @classmethod
    def from_strings(cls, start: str, end: str) -> "TimeWindow":
        return cls(parse_hhmm(start), parse_hhmm(end))

    @property
    def wraps(self) -> bool:
        return self.start > self.end

    def contains(self, minute: int) -> bool:
        # Overnight windows (e.g. 22:00 -> 06:00) are the union of both tails
        if self.start == self.end:
            return minute == self.start
        if self.start < self.end:
            return self.start <= minute <= self.end
        return minute >= self.start or minute <= self.end

    def as_strings(self) -> tuple[str, str]:
        return format_hhmm(self.start), format_hhmm(self.end)
