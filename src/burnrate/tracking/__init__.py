"""Energy balance tracking and BMR calibration.

This module turns logged intake and exercise into per-day weight impacts,
keeps a finalized impact history, and learns a calibration factor on BMR
from weigh-ins so that predictions follow what the scale shows.

Key components:
- Daily balance with first-day / today / full-day BMR scaling
- Backfill of missing finalized days
- Calibration of BMR from weigh-ins, with history corrections
"""

from __future__ import annotations

from burnrate.tracking.backfill import backfill_missing_days
from burnrate.tracking.calibration import calibrate_on_new_weight
from burnrate.tracking.daily_balance import (
    DayBmrPolicy,
    compute_daily_impact,
    compute_day_impact,
)
from burnrate.tracking.exceptions import (
    CalibrationError,
    EmptyHistoryError,
    InvalidMeasurementError,
    InvalidTimestampError,
)
from burnrate.tracking.history import ImpactHistoryStore
from burnrate.tracking.models import (
    CalibrationOutcome,
    CalibrationResult,
    DailyImpactRecord,
    EnergyEvent,
    EventKind,
    ImpactCorrection,
    UserProfile,
)

__all__ = [
    "CalibrationError",
    "CalibrationOutcome",
    "CalibrationResult",
    "DailyImpactRecord",
    "DayBmrPolicy",
    "EmptyHistoryError",
    "EnergyEvent",
    "EventKind",
    "ImpactCorrection",
    "ImpactHistoryStore",
    "InvalidMeasurementError",
    "InvalidTimestampError",
    "UserProfile",
    "backfill_missing_days",
    "calibrate_on_new_weight",
    "compute_daily_impact",
    "compute_day_impact",
]
