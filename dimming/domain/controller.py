from __future__ import annotations
import asyncio
import logging
from dataclasses import replace
from datetime import datetime
from typing import Optional

from .averaging import BrightnessHistory
from .errors import InvalidTimeFormat
from .interfaces import BrightnessSource, ClockSource, ConfigStore, OutputRecorder, OutputSink, TimerControl
from .models import AutoMode, BrightnessSample, ControllerPhase, ControllerState, OutputEvent, TimerKind, WriteResult
from .policy import auto_enable
from .schedule import TimeWindow, format_hhmm, parse_hhmm

logger = logging.getLogger(__name__)

KEY_STATE = "dc_dimming_state"
KEY_AUTO_MODE = "dc_dimming_auto_mode"
KEY_THRESHOLD = "dc_dimming_brightness"
KEY_START_TIME = "start_time"
KEY_END_TIME = "end_time"


class NullTimers:
    """Timer control for hosts without periodic recomputation."""

    def ensure_running(self, kind: TimerKind, first_delay_s: Optional[float] = None) -> None:
        pass

    def cancel(self, kind: TimerKind) -> None:
        pass

    def cancel_all(self) -> None:
        pass

    def close(self) -> None:
        pass


class DimmingController:
    """Decides whether DC dimming should be on and drives the control node.

    Every mutation runs under one lock, so setters, timer ticks and brightness
    notifications never interleave. ``evaluate`` is the only path that writes
    the node, and it writes only when the decision differs from the last value
    that was written successfully.
    """

    def __init__(
        self,
        store: ConfigStore,
        sink: OutputSink,
        clock: ClockSource,
        brightness: Optional[BrightnessSource] = None,
        timers: Optional[TimerControl] = None,
        recorder: Optional[OutputRecorder] = None,
    ) -> None:
        self._store = store
        self._sink = sink
        self._clock = clock
        self._brightness = brightness
        self._timers: TimerControl = timers or NullTimers()
        self._recorder = recorder
        self._lock = asyncio.Lock()

        self.state = ControllerState()
        self.last_write: Optional[WriteResult] = None
        self._history: Optional[BrightnessHistory] = None

    # --- lifecycle ---

    def attach_timers(self, timers: TimerControl) -> None:
        self._timers = timers

    async def load(self) -> bool:
        """Hydrate from the config store, seed the brightness history and evaluate once."""
        async with self._lock:
            now = self._clock.now()
            self.state.minute_of_day = self._clock.minute_of_day(now)
            await self._hydrate()
            self._history = BrightnessHistory(await self._initial_level(), now)
            self.state.running_average = 0.0
            logger.info(
                "Controller loaded: manual=%s mode=%s threshold=%d window=%s-%s",
                self.state.manual_enable,
                self.state.mode.name,
                self.state.threshold,
                *self.state.window.as_strings(),
            )
            return await self._evaluate_locked("startup")

    async def reload(self) -> bool:
        """Re-read persisted configuration after it was changed outside the controller."""
        async with self._lock:
            await self._hydrate()
            return await self._evaluate_locked("settings changed")

    def shutdown(self) -> None:
        self._timers.close()
        logger.info("Controller shut down")

    # --- configuration ---

    async def set_manual_enable(self, enabled: bool) -> bool:
        async with self._lock:
            enabled = bool(enabled)
            if enabled != self.state.manual_enable:
                logger.info("Manual enable %s -> %s", self.state.manual_enable, enabled)
            self.state.manual_enable = enabled
            await self._put_int(KEY_STATE, 1 if enabled else 0)
            return await self._evaluate_locked("manual enable" if enabled else "manual disable")

    async def set_mode(self, mode: AutoMode | int | str) -> bool:
        mode = AutoMode.parse(mode)
        async with self._lock:
            if mode == self.state.mode:
                return bool(self.state.current_output)
            logger.info("Auto mode %s -> %s", self.state.mode.name, mode.name)
            self.state.mode = mode
            await self._put_int(KEY_AUTO_MODE, int(mode))
            return await self._evaluate_locked(f"mode {mode.name}")

    async def set_window(self, window: TimeWindow) -> bool:
        if not isinstance(window, TimeWindow):
            raise TypeError(f"Expected TimeWindow, got {type(window).__name__}")
        async with self._lock:
            self.state.window = window
            start, end = window.as_strings()
            await self._put_string(KEY_START_TIME, start)
            await self._put_string(KEY_END_TIME, end)
            logger.info("Time window set to %s-%s", start, end)
            return await self._evaluate_locked("window changed")

    async def set_threshold(self, level: int) -> bool:
        if isinstance(level, bool) or not isinstance(level, int):
            raise TypeError(f"Threshold must be an int, got {level!r}")
        if level < 0:
            raise ValueError(f"Threshold must not be negative, got {level}")
        async with self._lock:
            self.state.threshold = level
            await self._put_int(KEY_THRESHOLD, level)
            logger.info("Brightness threshold set to %d", level)
            return await self._evaluate_locked("threshold changed")

    # --- inputs ---

    async def on_brightness_changed(self, level: int, now: Optional[datetime] = None) -> None:
        now = now or self._clock.now()
        async with self._lock:
            if self._history is None:
                self._history = BrightnessHistory(level, now)
                return
            if level == self._history.current_level:
                return
            logger.debug("Brightness %d -> %d", self._history.current_level, level)
            self._history.record(level, now)

    async def recompute_average(self, now: Optional[datetime] = None) -> bool:
        now = now or self._clock.now()
        async with self._lock:
            if self._history is None:
                self._history = BrightnessHistory(await self._initial_level(), now)
            self.state.running_average = self._history.compute(now, self.state.running_average)
            logger.debug(
                "Brightness average=%.2f threshold=%d", self.state.running_average, self.state.threshold
            )
            return await self._evaluate_locked("brightness average")

    async def recompute_time_of_day(self, now: Optional[datetime] = None) -> bool:
        now = now or self._clock.now()
        async with self._lock:
            self.state.minute_of_day = self._clock.minute_of_day(now)
            return await self._evaluate_locked("time of day", refresh_time=False)

    async def on_screen_off(self) -> None:
        async with self._lock:
            self.state.screen_on = False
            self._timers.cancel_all()
            logger.debug("Screen off: timers canceled")

    async def on_screen_on(self, time_delay_s: Optional[float] = None, brightness_delay_s: Optional[float] = None) -> None:
        async with self._lock:
            self.state.screen_on = True
            if not self.state.manual_enable:
                return
            if self.state.mode.uses_brightness:
                self._timers.ensure_running(TimerKind.BRIGHTNESS, brightness_delay_s)
            if self.state.mode.uses_time:
                self._timers.ensure_running(TimerKind.TIME, time_delay_s)

    async def evaluate(self) -> bool:
        async with self._lock:
            return await self._evaluate_locked("evaluate")

    # --- queries ---

    def auto_enable(self) -> bool:
        s = self.state
        return auto_enable(s.mode, s.window, s.minute_of_day, s.running_average, s.threshold)

    def get_mode(self) -> AutoMode:
        return self.state.mode

    def get_auto_output(self) -> bool:
        return bool(self.state.current_output)

    def get_window(self) -> TimeWindow:
        return self.state.window

    def get_threshold(self) -> int:
        return self.state.threshold

    def is_manual_enabled(self) -> bool:
        return self.state.manual_enable

    def get_running_average(self) -> float:
        return self.state.running_average

    def history_entries(self) -> dict:
        return self._history.entries() if self._history else {}

    def current_sample(self) -> Optional[BrightnessSample]:
        return self._history.current_sample() if self._history else None

    @property
    def phase(self) -> ControllerPhase:
        if not self.state.manual_enable:
            return ControllerPhase.INACTIVE
        return {
            AutoMode.OFF: ControllerPhase.MANUAL_ON,
            AutoMode.TIME_WINDOW: ControllerPhase.AUTO_TIME,
            AutoMode.BRIGHTNESS_THRESHOLD: ControllerPhase.AUTO_BRIGHTNESS,
            AutoMode.TIME_AND_BRIGHTNESS: ControllerPhase.AUTO_TIME_AND_BRIGHTNESS,
        }[self.state.mode]

    def snapshot(self) -> ControllerState:
        return replace(self.state)

    # --- internals (lock held) ---

    async def _evaluate_locked(self, reason: str, refresh_time: bool = True) -> bool:
        if self.state.manual_enable:
            if refresh_time and self.state.mode.uses_time:
                self._refresh_time()
            decision = self.auto_enable()
            self._sync_timers()
        else:
            decision = False
            self._timers.cancel_all()

        if decision != self.state.current_output:
            if await self._write(decision, reason):
                self.state.current_output = decision
        return decision

    def _sync_timers(self) -> None:
        # Timers are only rearmed by screen-on while the display is off
        if not self.state.screen_on:
            return
        mode = self.state.mode
        for kind, needed in ((TimerKind.TIME, mode.uses_time), (TimerKind.BRIGHTNESS, mode.uses_brightness)):
            if needed:
                self._timers.ensure_running(kind)
            else:
                self._timers.cancel(kind)

    async def _write(self, enabled: bool, reason: str) -> bool:
        try:
            result = await self._sink.write(enabled)
        except Exception as e:
            logger.warning("Dimming node write raised (enabled=%s)", enabled, exc_info=True)
            result = WriteResult(ok=False, error=str(e) or type(e).__name__)

        self.last_write = result
        if result.ok:
            logger.info("DC dimming %s (reason=%s sink=%s)", "ON" if enabled else "OFF", reason, self._sink.sink_id)
        else:
            logger.warning("DC dimming write %s failed: %s (reason=%s)", enabled, result.error, reason)

        if self._recorder is not None:
            try:
                await self._recorder.insert_output(
                    OutputEvent(
                        ts_utc=self._clock.now(),
                        enabled=enabled,
                        reason=reason,
                        ok=result.ok,
                        error=result.error,
                        mode=self.state.mode,
                        running_average=self.state.running_average,
                    )
                )
            except Exception:
                logger.warning("Failed to record output event", exc_info=True)
        return result.ok

    def _refresh_time(self) -> None:
        self.state.minute_of_day = self._clock.minute_of_day(self._clock.now())

    async def _initial_level(self) -> int:
        if self._brightness is None:
            return 0
        # sysfs-backed sources read a file
        loop = asyncio.get_running_loop()
        try:
            return int(await loop.run_in_executor(None, self._brightness.current_level))
        except Exception:
            logger.warning("Brightness source unavailable, starting history at 0", exc_info=True)
            return 0

    async def _hydrate(self) -> None:
        self.state.manual_enable = await self._get_int(KEY_STATE, 0) == 1

        raw_mode = await self._get_int(KEY_AUTO_MODE, int(AutoMode.OFF))
        try:
            self.state.mode = AutoMode(raw_mode)
        except ValueError:
            logger.warning("Unknown persisted auto mode %r, using OFF", raw_mode)
            self.state.mode = AutoMode.OFF

        self.state.threshold = await self._get_int(KEY_THRESHOLD, 0)
        self.state.window = await self._load_window()

    async def _load_window(self) -> TimeWindow:
        self._refresh_time()
        now_minute = self.state.minute_of_day
        now_str = format_hhmm(now_minute)
        try:
            start_s = await self._store.get_string(KEY_START_TIME)
            end_s = await self._store.get_string(KEY_END_TIME)
        except Exception:
            logger.warning("Time window unavailable, defaulting to %s", now_str, exc_info=True)
            return TimeWindow(now_minute, now_minute)

        if start_s is None:
            start_s = now_str
            await self._put_string(KEY_START_TIME, start_s)
        if end_s is None:
            end_s = now_str
            await self._put_string(KEY_END_TIME, end_s)

        try:
            return TimeWindow(parse_hhmm(start_s), parse_hhmm(end_s))
        except InvalidTimeFormat as e:
            logger.warning("%s; resetting window to %s", e, now_str)
            await self._put_string(KEY_START_TIME, now_str)
            await self._put_string(KEY_END_TIME, now_str)
            return TimeWindow(now_minute, now_minute)

    async def _get_int(self, key: str, default: int) -> int:
        try:
            return int(await self._store.get_int(key, default))
        except Exception:
            logger.warning("Config %s unavailable, using default %d", key, default, exc_info=True)
            return default

    async def _put_int(self, key: str, value: int) -> None:
        try:
            await self._store.put_int(key, value)
        except Exception:
            logger.warning("Failed to persist %s=%s", key, value, exc_info=True)

    async def _put_string(self, key: str, value: str) -> None:
        try:
            await self._store.put_string(key, value)
        except Exception:
            logger.warning("Failed to persist %s=%s", key, value, exc_info=True)
