"""Body metrics to energy conversions.

Calculates baseline BMR (Basal Metabolic Rate) and TDEE (Total Daily Energy
Expenditure) from body metrics, and converts between energy and body mass.

Uses Mifflin-St Jeor equation for BMR as it's widely validated for
calculating resting metabolic rate. Energy is converted to mass with the
7700 kcal/kg body-fat heuristic.
"""

from __future__ import annotations

import math
from enum import Enum
from typing import TYPE_CHECKING, Union

if TYPE_CHECKING:
    from burnrate.tracking.models import UserProfile


class Sex(Enum):
    """Biological sex for BMR calculation."""
    MALE = "male"
    FEMALE = "female"


class ActivityLevel(Enum):
    """Activity level multipliers for TDEE calculation."""
    SEDENTARY = "sedentary"          # Little or no exercise
    LIGHT = "light"                  # Light exercise 1-3 days/week
    MODERATE = "moderate"            # Moderate exercise 3-5 days/week
    ACTIVE = "active"                # Hard exercise 6-7 days/week
    VERY_ACTIVE = "very_active"      # Very hard exercise, physical job


# Activity level multipliers (Harris-Benedict activity factors)
ACTIVITY_MULTIPLIERS = {
    ActivityLevel.SEDENTARY: 1.2,
    ActivityLevel.LIGHT: 1.375,
    ActivityLevel.MODERATE: 1.55,
    ActivityLevel.ACTIVE: 1.725,
    ActivityLevel.VERY_ACTIVE: 1.9,
}

# Energy density of body fat
KCAL_PER_KG = 7700

LBS_PER_KG = 2.20462


def calculate_bmr(
    weight_kg: float,
    height_cm: float,
    age: int,
    sex: Union[Sex, str],
) -> float:
    """Calculate Basal Metabolic Rate using Mifflin-St Jeor equation.

    Callers are expected to validate that the metrics are positive; this
    function is total and never raises for numeric input.

    Args:
        weight_kg: Weight in kilograms
        height_cm: Height in centimeters
        age: Age in years
        sex: Biological sex (enum or "male"/"female")

    Returns:
        Raw (unrounded) BMR in kcal per day

    Example:
        >>> calculate_bmr(80, 175, 30, "male")
        1748.75
    """
    sex_enum = Sex(sex) if isinstance(sex, str) else sex

    bmr = (10 * weight_kg) + (6.25 * height_cm) - (5 * age)
    if sex_enum == Sex.MALE:
        bmr += 5
    else:
        bmr -= 161

    return bmr


def calculate_tdee(
    bmr: float,
    activity_level: Union[ActivityLevel, str],
) -> float:
    """Calculate Total Daily Energy Expenditure.

    Args:
        bmr: Basal Metabolic Rate
        activity_level: Activity level

    Returns:
        TDEE in calories per day
    """
    if isinstance(activity_level, str):
        activity_level = ActivityLevel(activity_level)
    multiplier = ACTIVITY_MULTIPLIERS[activity_level]
    return bmr * multiplier


def round_kcal(kcal: float) -> int:
    """Round a calorie figure half-up to whole kcal."""
    return int(math.floor(kcal + 0.5))


def kcal_to_kg(kcal: float, kcal_per_kg: float = KCAL_PER_KG) -> float:
    """Convert an energy surplus/deficit to its body-mass equivalent."""
    return kcal / kcal_per_kg


def kg_to_kcal(kg: float, kcal_per_kg: float = KCAL_PER_KG) -> float:
    """Convert a body-mass change to its energy equivalent."""
    return kg * kcal_per_kg


def kg_to_lbs(kg: float) -> float:
    return kg * LBS_PER_KG


def lbs_to_kg(lbs: float) -> float:
    return lbs / LBS_PER_KG


def effective_bmr(profile: UserProfile) -> float:
    """BMR scaled by the learned calibration factor.

    Args:
        profile: User profile holding the baseline BMR and calibration factor

    Returns:
        The model's current best estimate of resting burn (kcal/day)
    """
    return profile.bmr * profile.calibration_factor


def body_stats(
    weight_kg: float,
    height_cm: float,
    age: int,
    sex: Union[Sex, str],
    activity_level: Union[ActivityLevel, str] = ActivityLevel.SEDENTARY,
) -> tuple[int, int]:
    """Rounded (bmr, tdee) display stats for a set of body metrics."""
    raw_bmr = calculate_bmr(weight_kg, height_cm, age, sex)
    return round_kcal(raw_bmr), round_kcal(calculate_tdee(raw_bmr, activity_level))
