from __future__ import annotations
from datetime import datetime
from zoneinfo import ZoneInfo

from ..core.timeutil import minute_of_day, now_utc


class SystemClock:
    """Wall clock; timestamps are UTC, time of day is local to ``tz``."""

    def __init__(self, tz: str = "UTC") -> None:
        self._tz = ZoneInfo(tz)

    def now(self) -> datetime:
        return now_utc()

    def minute_of_day(self, now: datetime) -> int:
        return minute_of_day(now.astimezone(self._tz))
