from __future__ import annotations


class DimmingError(Exception):
    """Base class for controller-side failures. None of these escape the controller."""


class ConfigUnavailable(DimmingError):
    """Persisted configuration could not be read; defaults are used instead."""


class HardwareWriteFailed(DimmingError):
    """The dimming control node could not be written."""


class InvalidTimeFormat(DimmingError, ValueError):
    """A persisted or submitted time string is not a valid HH:MM value."""
