"""Pytest fixtures for burnrate tests.

All timestamps are built in UTC and the engine is called with
``tz=timezone.utc`` so day boundaries do not depend on the machine's zone.
"""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from burnrate.tracking.models import EnergyEvent, UserProfile

UTC = timezone.utc


def utc_ms(year: int, month: int, day: int, hour: int = 0, minute: int = 0) -> int:
    """Epoch milliseconds for a UTC wall-clock time."""
    return int(datetime(year, month, day, hour, minute, tzinfo=UTC).timestamp() * 1000)


@pytest.fixture
def profile() -> UserProfile:
    """80 kg, 175 cm, 30 y male: baseline BMR 1748.75 -> 1749 kcal."""
    return UserProfile.create(
        weight_kg=80.0,
        height_cm=175.0,
        age=30,
        sex="male",
        created_at_ms=utc_ms(2024, 12, 1),
    )


@pytest.fixture
def calibrated_profile(profile: UserProfile) -> UserProfile:
    """Profile whose last accepted weigh-in was 2025-01-01 00:00 UTC at 80 kg."""
    profile.last_weight_update_ms = utc_ms(2025, 1, 1)
    return profile


@pytest.fixture
def week_of_events() -> list[EnergyEvent]:
    """Jan 1-7 2025: 1600 kcal eaten at noon, 100 kcal exercise at 18:00."""
    events = []
    for day in range(1, 8):
        events.append(EnergyEvent.intake(utc_ms(2025, 1, day, 12), 1600))
        events.append(EnergyEvent.expenditure(utc_ms(2025, 1, day, 18), 100))
    return events
