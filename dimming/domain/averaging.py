from __future__ import annotations
from datetime import datetime
from typing import Optional, Union

from .models import BrightnessSample

# Value is the entry timestamp for the held level, or elapsed seconds for a
# level that was left since the last computation.
_Entry = Union[datetime, float]


class BrightnessHistory:
    """Time-weighted brightness accumulator.

    Between two computations the history tracks how long each observed level was
    held. Each computation weights every level by its share of the elapsed
    window and then prunes back to the level currently held.
    """

    def __init__(self, level: int, now: datetime) -> None:
        self._current = int(level)
        self._entries: dict[int, _Entry] = {self._current: now}
        self._window_start = now

    @property
    def current_level(self) -> int:
        return self._current

    @property
    def window_start(self) -> datetime:
        return self._window_start

    def entries(self) -> dict[int, _Entry]:
        return dict(self._entries)

    def current_sample(self) -> Optional[BrightnessSample]:
        entered = self._entries.get(self._current)
        if isinstance(entered, datetime):
            return BrightnessSample(level=self._current, observed_at=entered)
        return None

    def record(self, level: int, now: datetime) -> None:
        entered = self._entries.get(self._current)
        if isinstance(entered, datetime):
            self._entries[self._current] = (now - entered).total_seconds()
        self._current = int(level)
        self._entries[self._current] = now

    def compute(self, now: datetime, previous: float = 0.0) -> float:
        """Return the weighted average since the window start and reset the window.

        ``previous`` is returned unchanged when no time has elapsed.
        """
        total = (now - self._window_start).total_seconds()
        average = previous
        if total > 0:
            average = 0.0
            for level, value in self._entries.items():
                if isinstance(value, datetime):
                    held = (now - value).total_seconds()
                else:
                    held = value
                average += level * (held / total)

        self._entries = {self._current: now}
        self._window_start = now
        return average
