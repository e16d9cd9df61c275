"""Error kinds raised by the calibration engine.

All engine operations are pure, so nothing here is transient or retryable:
each error describes input the caller must fix (or choose to ignore while
keeping the previous profile).
"""

from __future__ import annotations

from typing import Any, Optional


class CalibrationError(ValueError):
    """Base class for engine errors.

    Attributes:
        message: Human-readable error message.
        details: Additional error context for JSON output.
    """

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class InvalidMeasurementError(CalibrationError):
    """A weight, height, age, calorie figure or factor is out of range."""

    def __init__(self, message: str, field: Optional[str] = None):
        details = {"field": field} if field else {}
        super().__init__(message, details)
        self.field = field


class InvalidTimestampError(CalibrationError):
    """A timestamp is malformed, before profile creation or in the future."""

    def __init__(self, message: str, timestamp_ms: Optional[float] = None):
        details = {"timestamp_ms": timestamp_ms} if timestamp_ms is not None else {}
        super().__init__(message, details)
        self.timestamp_ms = timestamp_ms


class EmptyHistoryError(CalibrationError):
    """Calibration requested without any prior weigh-in to compare against."""

    def __init__(self, message: str = "No previous weigh-in to calibrate against"):
        super().__init__(message)
