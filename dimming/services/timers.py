from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional

from ..domain.models import TimerKind

logger = logging.getLogger(__name__)


class PeriodicTimer:
    """Cancelable repeating callback; starting an already pending timer does nothing."""

    def __init__(self, name: str, interval_s: float, callback: Callable[[], None]) -> None:
        self.name = name
        self.interval_s = interval_s
        self._callback = callback
        self._task: Optional[asyncio.Task] = None

    @property
    def pending(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self, first_delay_s: Optional[float] = None) -> bool:
        if self.pending:
            return False
        delay = self.interval_s if first_delay_s is None else first_delay_s
        self._task = asyncio.get_running_loop().create_task(self._run(delay), name=f"timer_{self.name}")
        logger.debug("Timer %s armed (first=%.2fs every=%.2fs)", self.name, delay, self.interval_s)
        return True

    def cancel(self) -> None:
        if self._task is not None:
            if not self._task.done():
                self._task.cancel()
                logger.debug("Timer %s canceled", self.name)
            self._task = None

    async def _run(self, delay: float) -> None:
        await asyncio.sleep(delay)
        while True:
            try:
                self._callback()
            except Exception:
                logger.exception("Timer %s callback failed", self.name)
            await asyncio.sleep(self.interval_s)


class TimerSet:
    """The controller's two recomputation timers, keyed by kind."""

    def __init__(
        self,
        on_fire: Callable[[TimerKind], None],
        time_interval_s: float = 21.0,
        brightness_interval_s: float = 10.0,
    ) -> None:
        self._timers = {
            TimerKind.TIME: PeriodicTimer("time", time_interval_s, lambda: on_fire(TimerKind.TIME)),
            TimerKind.BRIGHTNESS: PeriodicTimer(
                "brightness", brightness_interval_s, lambda: on_fire(TimerKind.BRIGHTNESS)
            ),
        }
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def pending(self, kind: TimerKind) -> bool:
        return self._timers[kind].pending

    def ensure_running(self, kind: TimerKind, first_delay_s: Optional[float] = None) -> None:
        if self._closed:
            return
        self._timers[kind].start(first_delay_s)

    def cancel(self, kind: TimerKind) -> None:
        self._timers[kind].cancel()

    def cancel_all(self) -> None:
        for t in self._timers.values():
            t.cancel()

    def close(self) -> None:
        self._closed = True
        self.cancel_all()
