from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Optional

from ..domain.interfaces import BrightnessListener, ScreenListener

logger = logging.getLogger(__name__)


class BrightnessSourceBase(ABC):
    """Push-style brightness source: listeners hear about level and screen power changes."""

    def __init__(self) -> None:
        self._brightness_listeners: list[BrightnessListener] = []
        self._screen_listeners: list[ScreenListener] = []

    def subscribe(self, on_brightness: BrightnessListener, on_screen: Optional[ScreenListener] = None) -> None:
        self._brightness_listeners.append(on_brightness)
        if on_screen is not None:
            self._screen_listeners.append(on_screen)

    @abstractmethod
    def current_level(self) -> int:
        ...

    async def start(self) -> None:
        pass

    async def stop(self) -> None:
        pass

    def _emit_brightness(self, level: int) -> None:
        for cb in list(self._brightness_listeners):
            try:
                cb(level)
            except Exception:
                logger.exception("Brightness listener failed")

    def _emit_screen(self, on: bool) -> None:
        for cb in list(self._screen_listeners):
            try:
                cb(on)
            except Exception:
                logger.exception("Screen listener failed")
