"""Data models for energy tracking and BMR calibration."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Optional

from burnrate.profiles.body_calc import body_stats
from burnrate.tracking.exceptions import (
    InvalidMeasurementError,
    InvalidTimestampError,
)

VALID_SEXES = ("male", "female")
VALID_ACTIVITY_LEVELS = ("sedentary", "light", "moderate", "active", "very_active")
VALID_WEIGHT_UNITS = ("kg", "lbs")

MIN_CALIBRATION_FACTOR = 0.5
MAX_CALIBRATION_FACTOR = 1.5


def validate_body_metrics(weight_kg: float, height_cm: float, age: float) -> None:
    """Raise InvalidMeasurementError unless all body metrics are positive."""
    for name, value in (("weight_kg", weight_kg), ("height_cm", height_cm), ("age", age)):
        if not isinstance(value, (int, float)) or not math.isfinite(value) or value <= 0:
            raise InvalidMeasurementError(f"{name} must be positive, got {value!r}", field=name)


@dataclass
class UserProfile:
    """User profile snapshot consumed and produced by the calibration engine.

    The engine never mutates a profile in place; updated profiles are
    returned as new instances.
    """

    weight_kg: float
    height_cm: float
    age: int
    sex: str  # 'male' or 'female'
    bmr: int  # baseline Mifflin-St Jeor BMR, no calibration applied
    tdee: int
    created_at_ms: int
    activity_level: str = "sedentary"
    calibration_factor: float = 1.0
    calibration_base_weight_kg: Optional[float] = None
    last_weight_update_ms: Optional[int] = None
    user_id: Optional[str] = None
    weight_unit: str = "kg"
    age_last_updated_year: Optional[int] = None  # calendar year age was last advanced

    def __post_init__(self) -> None:
        if self.sex not in VALID_SEXES:
            raise ValueError(f"sex must be 'male' or 'female', got '{self.sex}'")
        if self.activity_level not in VALID_ACTIVITY_LEVELS:
            raise ValueError(
                f"activity_level must be one of {VALID_ACTIVITY_LEVELS}, "
                f"got '{self.activity_level}'"
            )
        if self.weight_unit not in VALID_WEIGHT_UNITS:
            raise ValueError(
                f"weight_unit must be one of {VALID_WEIGHT_UNITS}, got '{self.weight_unit}'"
            )
        validate_body_metrics(self.weight_kg, self.height_cm, self.age)
        if not MIN_CALIBRATION_FACTOR <= self.calibration_factor <= MAX_CALIBRATION_FACTOR:
            raise InvalidMeasurementError(
                f"calibration_factor must be within "
                f"[{MIN_CALIBRATION_FACTOR}, {MAX_CALIBRATION_FACTOR}], "
                f"got {self.calibration_factor}",
                field="calibration_factor",
            )
        if self.calibration_base_weight_kg is None:
            self.calibration_base_weight_kg = self.weight_kg

    @classmethod
    def create(
        cls,
        weight_kg: float,
        height_cm: float,
        age: int,
        sex: str,
        created_at_ms: int,
        activity_level: str = "sedentary",
        user_id: Optional[str] = None,
        weight_unit: str = "kg",
    ) -> "UserProfile":
        """Build a fresh profile at onboarding, computing BMR and TDEE."""
        validate_body_metrics(weight_kg, height_cm, age)
        bmr, tdee = body_stats(weight_kg, height_cm, age, sex, activity_level)
        return cls(
            weight_kg=weight_kg,
            height_cm=height_cm,
            age=age,
            sex=sex,
            bmr=bmr,
            tdee=tdee,
            created_at_ms=created_at_ms,
            activity_level=activity_level,
            user_id=user_id,
            weight_unit=weight_unit,
        )


class EventKind(Enum):
    """Direction of an energy event."""
    INTAKE = "intake"
    EXPENDITURE = "expenditure"


@dataclass(frozen=True)
class EnergyEvent:
    """A timestamped intake (meal) or expenditure (exercise) event."""

    timestamp_ms: int
    kind: EventKind
    kcal: float

    def __post_init__(self) -> None:
        ts = self.timestamp_ms
        if not isinstance(ts, (int, float)) or not math.isfinite(ts) or ts < 0:
            raise InvalidTimestampError(
                f"Event timestamp must be a non-negative epoch ms, got {ts!r}",
                timestamp_ms=ts if isinstance(ts, (int, float)) else None,
            )
        if not isinstance(self.kcal, (int, float)) or not math.isfinite(self.kcal) or self.kcal < 0:
            raise InvalidMeasurementError(
                f"Event kcal must be a non-negative number, got {self.kcal!r}",
                field="kcal",
            )

    @classmethod
    def intake(cls, timestamp_ms: int, kcal: float) -> "EnergyEvent":
        return cls(timestamp_ms, EventKind.INTAKE, kcal)

    @classmethod
    def expenditure(cls, timestamp_ms: int, kcal: float) -> "EnergyEvent":
        return cls(timestamp_ms, EventKind.EXPENDITURE, kcal)


@dataclass
class DailyImpactRecord:
    """Finalized mass-equivalent net energy balance for one completed day."""

    date: date
    impact_kg: float


@dataclass(frozen=True)
class ImpactCorrection:
    """Retroactive adjustment for one stored day: stored -= correction_per_day."""

    date: date
    correction_per_day: float


class CalibrationOutcome(Enum):
    """Which branch a calibration attempt took."""
    ACCEPTED = "accepted"
    REJECTED_SAME_DAY = "rejected_same_day"
    BASELINE_ESTABLISHED = "baseline_established"


@dataclass
class CalibrationResult:
    """Result of processing a new weigh-in. Not persisted."""

    updated_profile: UserProfile
    outcome: CalibrationOutcome
    corrections: list[ImpactCorrection] = field(default_factory=list)
    day_gap: int = 0
    actual_change_kg: float = 0.0
    predicted_change_kg: float = 0.0
    prediction_error_kg: float = 0.0
    total_bmr_burned_kcal: float = 0.0
    correction_ratio: Optional[float] = None
    factor_updated: bool = False
    records_in_store: int = 0

    @property
    def accepted(self) -> bool:
        return self.outcome is CalibrationOutcome.ACCEPTED
