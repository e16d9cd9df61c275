"""Tests for body metric and energy conversions."""

from __future__ import annotations

from dataclasses import replace

import pytest

from burnrate.profiles.body_calc import (
    KCAL_PER_KG,
    ActivityLevel,
    Sex,
    body_stats,
    calculate_bmr,
    calculate_tdee,
    effective_bmr,
    kcal_to_kg,
    kg_to_kcal,
    kg_to_lbs,
    lbs_to_kg,
    round_kcal,
)


class TestCalculateBmr:
    """Tests for the Mifflin-St Jeor equation."""

    def test_male(self) -> None:
        """800 + 1093.75 - 150 + 5 = 1748.75."""
        assert calculate_bmr(80, 175, 30, Sex.MALE) == pytest.approx(1748.75)

    def test_female_offset(self) -> None:
        """Female uses -161 instead of +5."""
        male = calculate_bmr(65, 165, 40, "male")
        female = calculate_bmr(65, 165, 40, "female")
        assert male - female == pytest.approx(166)

    def test_accepts_string_sex(self) -> None:
        assert calculate_bmr(80, 175, 30, "male") == calculate_bmr(80, 175, 30, Sex.MALE)

    def test_unknown_sex_rejected(self) -> None:
        with pytest.raises(ValueError):
            calculate_bmr(80, 175, 30, "other")


class TestTdee:
    def test_multipliers(self) -> None:
        assert calculate_tdee(1000, ActivityLevel.SEDENTARY) == pytest.approx(1200)
        assert calculate_tdee(1000, "very_active") == pytest.approx(1900)

    def test_body_stats_rounds(self) -> None:
        """BMR is rounded half-up; TDEE follows from the raw BMR."""
        bmr, tdee = body_stats(80, 175, 30, "male")
        assert bmr == 1749
        assert abs(tdee - 1748.75 * 1.2) <= 0.5


class TestConversions:
    def test_kcal_kg_inverse(self) -> None:
        assert kcal_to_kg(KCAL_PER_KG) == pytest.approx(1.0)
        assert kg_to_kcal(kcal_to_kg(-249)) == pytest.approx(-249)

    def test_custom_density(self) -> None:
        assert kcal_to_kg(3500, kcal_per_kg=3500) == pytest.approx(1.0)

    def test_lbs(self) -> None:
        assert kg_to_lbs(1) == pytest.approx(2.20462)
        assert lbs_to_kg(kg_to_lbs(72.5)) == pytest.approx(72.5)

    def test_round_kcal_half_up(self) -> None:
        assert round_kcal(1748.5) == 1749
        assert round_kcal(2.5) == 3
        assert round_kcal(72.875) == 73
        assert round_kcal(0.4) == 0


class TestEffectiveBmr:
    def test_applies_factor(self, profile) -> None:
        assert effective_bmr(profile) == pytest.approx(1749)
        assert effective_bmr(replace(profile, calibration_factor=1.2)) == pytest.approx(2098.8)
