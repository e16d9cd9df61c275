"""Body metrics and energy conversions."""

from burnrate.profiles.body_calc import (
    KCAL_PER_KG,
    ActivityLevel,
    Sex,
    calculate_bmr,
    calculate_tdee,
    effective_bmr,
    kcal_to_kg,
    kg_to_kcal,
)

__all__ = [
    "KCAL_PER_KG",
    "ActivityLevel",
    "Sex",
    "calculate_bmr",
    "calculate_tdee",
    "effective_bmr",
    "kcal_to_kg",
    "kg_to_kcal",
]
