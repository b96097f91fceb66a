from __future__ import annotations
import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..core.timeutil import now_utc
from ..domain.controller import DimmingController
from ..domain.interfaces import BrightnessSource
from ..domain.models import ControllerEvent, EventKind, TimerKind
from .timers import TimerSet


logger = logging.getLogger(__name__)


@dataclass
class LiveState:
    last_event: Optional[str] = None
    last_event_utc: Optional[datetime] = None
    events_processed: int = 0
    event_errors: int = 0


class DimmingService:
    """
    Owns the controller's event inbox.
    Screen power, brightness, settings and timer events are queued and handled
    one at a time by a single consumer task.
    """

    def __init__(
        self,
        controller: DimmingController,
        brightness: BrightnessSource,
        time_interval_s: float = 21.0,
        brightness_interval_s: float = 10.0,
        time_screen_on_delay_s: float = 5.0,
        brightness_screen_on_delay_s: float = 2.5,
        screen_on_settle_s: float = 0.3,
    ) -> None:
        self._controller = controller
        self._brightness = brightness
        self._time_screen_on_delay_s = time_screen_on_delay_s
        self._brightness_screen_on_delay_s = brightness_screen_on_delay_s
        self._screen_on_settle_s = screen_on_settle_s

        self.timers = TimerSet(
            self._on_timer,
            time_interval_s=time_interval_s,
            brightness_interval_s=brightness_interval_s,
        )
        controller.attach_timers(self.timers)

        self._queue: asyncio.Queue[Optional[ControllerEvent]] = asyncio.Queue()
        self._task: Optional[asyncio.Task] = None
        self._settle: Optional[asyncio.TimerHandle] = None
        self._running = False

        self.live = LiveState()

    @property
    def controller(self) -> DimmingController:
        return self._controller

    @property
    def running(self) -> bool:
        return self._running

    async def start(self) -> None:
        await self._controller.load()
        self._brightness.subscribe(self.notify_brightness, self._on_screen)
        self._running = True
        self._task = asyncio.create_task(self._run(), name="dimming_inbox")
        await self._brightness.start()

    async def stop(self) -> None:
        if not self._running:
            return
        self._running = False
        try:
            await self._brightness.stop()
        finally:
            # drain first, a queued screen-on would re-arm the settle handle
            if self._task:
                self._queue.put_nowait(None)
                await self._task
                self._task = None
            self._cancel_settle()
            self._controller.shutdown()

    async def join(self) -> None:
        """Wait until every queued event has been handled."""
        await self._queue.join()

    # --- producers ---

    def post(self, event: ControllerEvent) -> bool:
        if not self._running:
            logger.debug("Dropping %s, service not running", event.kind.value)
            return False
        self._queue.put_nowait(event)
        return True

    def notify_brightness(self, level: int) -> bool:
        return self.post(ControllerEvent(EventKind.BRIGHTNESS_CHANGED, level=int(level)))

    def notify_screen_on(self) -> bool:
        return self.post(ControllerEvent(EventKind.SCREEN_ON))

    def notify_screen_off(self) -> bool:
        return self.post(ControllerEvent(EventKind.SCREEN_OFF))

    def notify_setting_changed(self) -> bool:
        return self.post(ControllerEvent(EventKind.SETTING_CHANGED))

    def request_evaluate(self) -> bool:
        return self.post(ControllerEvent(EventKind.EVALUATE))

    def _on_screen(self, on: bool) -> None:
        if on:
            self.notify_screen_on()
        else:
            self.notify_screen_off()

    def _on_timer(self, kind: TimerKind) -> None:
        if kind is TimerKind.TIME:
            self.post(ControllerEvent(EventKind.TIME_TICK))
        else:
            self.post(ControllerEvent(EventKind.AVERAGE_TICK))

    # --- consumer ---

    async def _run(self) -> None:
        logger.info("Dimming inbox started")

        while True:
            event = await self._queue.get()
            try:
                if event is None:
                    break
                await self._dispatch(event)
                self.live.events_processed += 1
            except Exception as e:
                self.live.event_errors += 1
                logger.exception("Event %s failed: %s", event.kind.value if event else "?", e)
            finally:
                self._queue.task_done()

        logger.info("Dimming inbox stopped")

    async def _dispatch(self, event: ControllerEvent) -> None:
        self.live.last_event = event.kind.value
        self.live.last_event_utc = now_utc()
        ctrl = self._controller
        kind = event.kind

        if kind is EventKind.BRIGHTNESS_CHANGED:
            if event.level is not None:
                await ctrl.on_brightness_changed(event.level)
        elif kind is EventKind.AVERAGE_TICK:
            await ctrl.recompute_average()
        elif kind is EventKind.TIME_TICK:
            await ctrl.recompute_time_of_day()
        elif kind is EventKind.SCREEN_OFF:
            self._cancel_settle()
            await ctrl.on_screen_off()
        elif kind is EventKind.SCREEN_ON:
            await ctrl.on_screen_on(
                time_delay_s=self._time_screen_on_delay_s,
                brightness_delay_s=self._brightness_screen_on_delay_s,
            )
            self._schedule_settle()
        elif kind is EventKind.SETTING_CHANGED:
            await ctrl.reload()
        elif kind is EventKind.EVALUATE:
            await ctrl.evaluate()

    def _schedule_settle(self) -> None:
        self._cancel_settle()
        if not self._running:
            return
        loop = asyncio.get_running_loop()
        self._settle = loop.call_later(self._screen_on_settle_s, self.request_evaluate)

    def _cancel_settle(self) -> None:
        if self._settle is not None:
            self._settle.cancel()
            self._settle = None
