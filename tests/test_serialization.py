"""Tests for snapshot serialization and profile migration."""

from __future__ import annotations

import json
from datetime import date

import pytest

from burnrate.tracking.calibration import calibrate_on_new_weight
from burnrate.tracking.models import DailyImpactRecord, EnergyEvent, EventKind
from burnrate.tracking.serialization import (
    calibration_result_to_dict,
    event_from_dict,
    event_to_dict,
    profile_from_dict,
    profile_to_dict,
    record_from_dict,
    record_to_dict,
)

from conftest import UTC, utc_ms


class TestProfileSerialization:
    def test_round_trip(self, calibrated_profile) -> None:
        calibrated_profile.age_last_updated_year = 2025
        data = json.loads(json.dumps(profile_to_dict(calibrated_profile)))
        assert profile_from_dict(data, now_ms=utc_ms(2025, 1, 8), tz=UTC) == calibrated_profile

    def test_migrates_old_snapshot(self) -> None:
        """Snapshots from before calibration existed get defaults."""
        profile = profile_from_dict(
            {"weight_kg": 80, "height_cm": 175, "age": 30, "sex": "male"},
            now_ms=utc_ms(2025, 1, 1),
            tz=UTC,
        )
        assert profile.bmr == 1749
        assert profile.activity_level == "sedentary"
        assert profile.calibration_factor == 1.0
        assert profile.calibration_base_weight_kg == 80.0
        assert profile.last_weight_update_ms is None
        assert profile.created_at_ms == utc_ms(2025, 1, 1)
        assert profile.age_last_updated_year == 2025
        assert profile.weight_unit == "kg"

    def test_created_at_falls_back_to_last_update(self) -> None:
        profile = profile_from_dict(
            {
                "weight_kg": 70,
                "height_cm": 165,
                "age": 40,
                "sex": "female",
                "last_weight_update_ms": utc_ms(2024, 6, 1),
            },
            now_ms=utc_ms(2024, 7, 1),
            tz=UTC,
        )
        assert profile.created_at_ms == utc_ms(2024, 6, 1)

    def test_age_advances_each_new_year(self, profile) -> None:
        data = profile_to_dict(profile)
        data["age_last_updated_year"] = 2023

        migrated = profile_from_dict(data, now_ms=utc_ms(2025, 3, 1), tz=UTC)

        assert migrated.age == 32
        assert migrated.age_last_updated_year == 2025
        assert migrated.bmr == 1739  # 1748.75 - 2 * 5, rounded
        assert migrated.tdee == pytest.approx(1738.75 * 1.2, abs=0.5)

    def test_age_unchanged_within_year(self, profile) -> None:
        data = profile_to_dict(profile)
        data["age_last_updated_year"] = 2025

        migrated = profile_from_dict(data, now_ms=utc_ms(2025, 12, 31, 23), tz=UTC)

        assert migrated.age == 30
        assert migrated.bmr == profile.bmr

    def test_activity_level_reset_to_sedentary(self, profile) -> None:
        """Exercise is logged as events, so the TDEE multiplier is dropped."""
        data = profile_to_dict(profile)
        data["activity_level"] = "active"
        data["tdee"] = 3017

        migrated = profile_from_dict(data, now_ms=utc_ms(2025, 1, 1), tz=UTC)

        assert migrated.activity_level == "sedentary"
        assert migrated.bmr == 1749
        assert migrated.tdee == pytest.approx(1748.75 * 1.2, abs=0.5)

    def test_default_weight_unit(self) -> None:
        profile = profile_from_dict(
            {"weight_kg": 80, "height_cm": 175, "age": 30, "sex": "male"},
            now_ms=utc_ms(2025, 1, 1),
            default_weight_unit="lbs",
        )
        assert profile.weight_unit == "lbs"

    def test_missing_metric(self) -> None:
        with pytest.raises(KeyError):
            profile_from_dict({"weight_kg": 80, "age": 30, "sex": "male"})

    def test_invalid_sex(self) -> None:
        with pytest.raises(ValueError):
            profile_from_dict({"weight_kg": 80, "height_cm": 175, "age": 30, "sex": "x"})


class TestEventSerialization:
    def test_native(self) -> None:
        event = EnergyEvent.expenditure(utc_ms(2025, 1, 1, 7), 320)
        assert event_from_dict(event_to_dict(event)) == event

    def test_meal_log(self) -> None:
        event = event_from_dict({"id": "m1", "timestamp": 1000, "totalCalories": 650})
        assert event.kind is EventKind.INTAKE
        assert event.kcal == 650

    def test_exercise_log(self) -> None:
        event = event_from_dict({"timestamp": 1000, "type": "running", "caloriesBurned": 300})
        assert event.kind is EventKind.EXPENDITURE

    def test_unrecognized(self) -> None:
        with pytest.raises(ValueError):
            event_from_dict({"timestamp": 1000, "water_ml": 250})


class TestRecordSerialization:
    def test_round_trip(self) -> None:
        record = DailyImpactRecord(date(2025, 1, 2), -0.032)
        assert record_to_dict(record) == {"date": "2025-01-02", "impact_kg": -0.032}
        assert record_from_dict(record_to_dict(record)) == record

    def test_camel_case_alias(self) -> None:
        record = record_from_dict({"date": "2025-01-02", "impactKg": 0.1})
        assert record.impact_kg == 0.1


class TestCalibrationResultSerialization:
    def test_json_serializable(self, calibrated_profile, week_of_events) -> None:
        result = calibrate_on_new_weight(
            calibrated_profile, week_of_events, [], 79.5, now_ms=utc_ms(2025, 1, 8), tz=UTC
        )
        data = json.loads(json.dumps(calibration_result_to_dict(result)))
        assert data["outcome"] == "accepted"
        assert len(data["corrections"]) == 7
        assert data["corrections"][0]["date"] == "2025-01-01"
        assert data["diagnostics"]["day_gap"] == 7
        assert data["updated_profile"]["weight_kg"] == 79.5
