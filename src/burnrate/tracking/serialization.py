"""JSON-friendly conversion for profiles, events and impact history.

These functions define the snapshot format exchanged with collaborators
(and used by the CLI). ``profile_from_dict`` also migrates older snapshots
that predate calibration, filling defaults for missing fields.
"""

from __future__ import annotations

import logging
from datetime import date, tzinfo
from typing import Any, Iterable, Optional

from burnrate.profiles.body_calc import body_stats
from burnrate.tracking.daily_balance import current_time_ms, local_date
from burnrate.tracking.models import (
    CalibrationResult,
    DailyImpactRecord,
    EnergyEvent,
    EventKind,
    ImpactCorrection,
    UserProfile,
)

logger = logging.getLogger(__name__)


def profile_to_dict(profile: UserProfile) -> dict[str, Any]:
    """Convert a UserProfile to a JSON-serializable dict."""
    return {
        "user_id": profile.user_id,
        "weight_kg": profile.weight_kg,
        "height_cm": profile.height_cm,
        "age": profile.age,
        "sex": profile.sex,
        "activity_level": profile.activity_level,
        "bmr": profile.bmr,
        "tdee": profile.tdee,
        "calibration_factor": profile.calibration_factor,
        "calibration_base_weight_kg": profile.calibration_base_weight_kg,
        "last_weight_update_ms": profile.last_weight_update_ms,
        "created_at_ms": profile.created_at_ms,
        "weight_unit": profile.weight_unit,
        "age_last_updated_year": profile.age_last_updated_year,
    }


def profile_from_dict(
    data: dict[str, Any],
    now_ms: Optional[int] = None,
    tz: Optional[tzinfo] = None,
    default_weight_unit: str = "kg",
) -> UserProfile:
    """Build a UserProfile from a snapshot, migrating missing fields.

    Defaults applied when a field is absent:
        - bmr/tdee: recomputed from body metrics
        - calibration_factor: 1.0
        - calibration_base_weight_kg: current weight
        - created_at_ms: last weigh-in time, else now
        - last_weight_update_ms: left empty (no weigh-in baseline yet)
        - age_last_updated_year: the current year
        - weight_unit: ``default_weight_unit``

    Two migrations always run and recompute bmr/tdee when they apply:
        - age advances by one per calendar year since age_last_updated_year
        - activity_level is reset to sedentary (exercise is logged as events)

    Raises:
        KeyError: A required body metric is missing
    """
    if now_ms is None:
        now_ms = current_time_ms()
    current_year = local_date(now_ms, tz).year

    weight = float(data["weight_kg"])
    height = float(data["height_cm"])
    age = int(data["age"])
    sex = data["sex"]
    activity_level = data.get("activity_level") or "sedentary"

    bmr = data.get("bmr")
    tdee = data.get("tdee")
    stale = bmr is None or tdee is None

    age_year = data.get("age_last_updated_year")
    age_year = int(age_year) if age_year else current_year
    if age_year < current_year:
        logger.info("Advancing age %d by %d year(s)", age, current_year - age_year)
        age += current_year - age_year
        age_year = current_year
        stale = True

    if activity_level != "sedentary":
        logger.info("Resetting activity level %s to sedentary", activity_level)
        activity_level = "sedentary"
        stale = True

    if stale:
        bmr, tdee = body_stats(weight, height, age, sex, activity_level)

    last_update = data.get("last_weight_update_ms")
    created_at = data.get("created_at_ms")
    if created_at is None:
        created_at = last_update if last_update is not None else now_ms

    factor = data.get("calibration_factor")
    base_weight = data.get("calibration_base_weight_kg")

    return UserProfile(
        weight_kg=weight,
        height_cm=height,
        age=age,
        sex=sex,
        bmr=int(bmr),
        tdee=int(tdee),
        created_at_ms=int(created_at),
        activity_level=activity_level,
        calibration_factor=float(factor) if factor is not None else 1.0,
        calibration_base_weight_kg=float(base_weight) if base_weight is not None else None,
        last_weight_update_ms=int(last_update) if last_update is not None else None,
        user_id=data.get("user_id"),
        weight_unit=data.get("weight_unit") or default_weight_unit,
        age_last_updated_year=age_year,
    )


def event_to_dict(event: EnergyEvent) -> dict[str, Any]:
    return {
        "timestamp_ms": event.timestamp_ms,
        "kind": event.kind.value,
        "kcal": event.kcal,
    }


def event_from_dict(data: dict[str, Any]) -> EnergyEvent:
    """Parse an event dict.

    Accepts the native form ``{"timestamp_ms", "kind", "kcal"}`` as well as
    meal logs (``totalCalories``) and exercise logs (``caloriesBurned``)
    keyed by ``timestamp``.
    """
    timestamp = data.get("timestamp_ms", data.get("timestamp"))
    if "kind" in data:
        return EnergyEvent(timestamp, EventKind(data["kind"]), data["kcal"])
    if "totalCalories" in data:
        return EnergyEvent.intake(timestamp, data["totalCalories"])
    if "caloriesBurned" in data:
        return EnergyEvent.expenditure(timestamp, data["caloriesBurned"])
    raise ValueError(f"Unrecognized event record: {sorted(data)}")


def events_from_list(items: Iterable[dict[str, Any]]) -> list[EnergyEvent]:
    return [event_from_dict(item) for item in items]


def record_to_dict(record: DailyImpactRecord) -> dict[str, Any]:
    return {"date": record.date.isoformat(), "impact_kg": record.impact_kg}


def record_from_dict(data: dict[str, Any]) -> DailyImpactRecord:
    impact = data["impact_kg"] if "impact_kg" in data else data["impactKg"]
    return DailyImpactRecord(date.fromisoformat(data["date"]), float(impact))


def records_from_list(items: Iterable[dict[str, Any]]) -> list[DailyImpactRecord]:
    return [record_from_dict(item) for item in items]


def correction_to_dict(correction: ImpactCorrection) -> dict[str, Any]:
    return {
        "date": correction.date.isoformat(),
        "correction_per_day": correction.correction_per_day,
    }


def calibration_result_to_dict(result: CalibrationResult) -> dict[str, Any]:
    """Convert a CalibrationResult to a JSON-serializable dict."""
    return {
        "outcome": result.outcome.value,
        "updated_profile": profile_to_dict(result.updated_profile),
        "corrections": [correction_to_dict(c) for c in result.corrections],
        "diagnostics": {
            "day_gap": result.day_gap,
            "actual_change_kg": result.actual_change_kg,
            "predicted_change_kg": result.predicted_change_kg,
            "prediction_error_kg": result.prediction_error_kg,
            "total_bmr_burned_kcal": result.total_bmr_burned_kcal,
            "correction_ratio": result.correction_ratio,
            "factor_updated": result.factor_updated,
            "records_in_store": result.records_in_store,
        },
    }
