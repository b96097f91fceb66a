from __future__ import annotations
from threading import Lock

from .brightness_base import BrightnessSourceBase


class SimulatedBrightnessSource(BrightnessSourceBase):
    """Brightness and screen power driven by API calls or tests."""

    def __init__(self, level: int = 128) -> None:
        super().__init__()
        self._lock = Lock()
        self._level = int(level)
        self._screen_on = True

    def current_level(self) -> int:
        with self._lock:
            return self._level

    @property
    def screen_on(self) -> bool:
        return self._screen_on

    def set_level(self, level: int) -> None:
        with self._lock:
            changed = int(level) != self._level
            self._level = int(level)
        if changed:
            self._emit_brightness(int(level))

    def set_screen(self, on: bool) -> None:
        with self._lock:
            changed = bool(on) != self._screen_on
            self._screen_on = bool(on)
        if changed:
            self._emit_screen(bool(on))

    def status(self) -> dict:
        with self._lock:
            return {"level": self._level, "screen_on": self._screen_on}
