from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Optional

from .brightness_base import BrightnessSourceBase

logger = logging.getLogger(__name__)


class SysfsBacklightSource(BrightnessSourceBase):
    """
    Polls a kernel backlight directory.
    Reports ``brightness`` changes and screen power from ``bl_power`` (0 = on).
    """

    def __init__(self, backlight_dir: str | Path, poll_seconds: float = 0.5) -> None:
        super().__init__()
        self._dir = Path(backlight_dir)
        self._poll_seconds = poll_seconds
        self._level = 0
        self._screen_on: Optional[bool] = None
        self._task: Optional[asyncio.Task] = None
        self._stop = asyncio.Event()

    @property
    def _brightness(self) -> Path:
        return self._dir / "brightness"

    @property
    def _bl_power(self) -> Path:
        return self._dir / "bl_power"

    def _read_int(self, path: Path) -> Optional[int]:
        try:
            return int(path.read_text(encoding="utf-8").strip())
        except (OSError, ValueError):
            return None

    def current_level(self) -> int:
        level = self._read_int(self._brightness)
        if level is not None:
            self._level = level
        return self._level

    async def start(self) -> None:
        loop = asyncio.get_running_loop()
        self._level = await loop.run_in_executor(None, self.current_level)
        self._stop.clear()
        self._task = asyncio.create_task(self._run(), name="backlight_poll")

    async def stop(self) -> None:
        self._stop.set()
        if self._task:
            await self._task
            self._task = None

    async def _run(self) -> None:
        logger.info("Backlight poller started (dir=%s poll=%.2fs)", self._dir, self._poll_seconds)
        loop = asyncio.get_running_loop()

        while not self._stop.is_set():
            try:
                level = await loop.run_in_executor(None, self._read_int, self._brightness)
                power = await loop.run_in_executor(None, self._read_int, self._bl_power)

                if level is not None and level != self._level:
                    self._level = level
                    self._emit_brightness(level)

                if power is not None:
                    screen_on = power == 0
                    if screen_on != self._screen_on:
                        # First observation only establishes the baseline
                        if self._screen_on is not None:
                            self._emit_screen(screen_on)
                        self._screen_on = screen_on
            except Exception as e:
                logger.exception("Backlight poll error: %s", e)

            try:
                await asyncio.wait_for(self._stop.wait(), timeout=self._poll_seconds)
            except asyncio.TimeoutError:
                pass

        logger.info("Backlight poller stopped")
