from __future__ import annotations

from .models import AutoMode
from .schedule import TimeWindow


def time_condition(window: TimeWindow, minute_of_day: int) -> bool:
    return window.contains(minute_of_day)


def brightness_condition(running_average: float, threshold: int) -> bool:
    # A zero average means no samples have been averaged yet
    return running_average != 0 and running_average <= threshold


def auto_enable(
    mode: AutoMode,
    window: TimeWindow,
    minute_of_day: int,
    running_average: float,
    threshold: int,
) -> bool:
    """Decide whether dimming should be on while the master switch is on.

    ``OFF`` means no automation: the output simply follows the master switch.
    """
    if mode is AutoMode.OFF:
        return True
    if mode is AutoMode.TIME_WINDOW:
        return time_condition(window, minute_of_day)
    if mode is AutoMode.BRIGHTNESS_THRESHOLD:
        return brightness_condition(running_average, threshold)
    if mode is AutoMode.TIME_AND_BRIGHTNESS:
        return time_condition(window, minute_of_day) and brightness_condition(running_average, threshold)
    return False
