"""Per-day energy balance and its mass-equivalent impact.

A day's impact is its net energy balance converted to kilograms:

    impact_kg = (kcal_in - bmr_burned - kcal_out) / 7700

The BMR burned depends on how much of the day the evaluation window covers.
Calibration windows start at an arbitrary weigh-in timestamp and end "now",
so the first and last days are usually partial. Which share applies is
decided once per date by a DayBmrPolicy:

    FULL_DAY         past day fully inside the window: whole effective BMR
    FIRST_DAY        day of the window start, in the past: start -> midnight
    TODAY            current day, window started earlier: midnight -> now
    FIRST_DAY_TODAY  window started today: start -> now

BMR burned is rounded to whole kcal before the division, so reported numbers
are stable and reproducible at the granularity users see.

Days are local calendar days (midnight to midnight). Pass ``tz`` to pin the
day boundaries to a specific zone; ``None`` uses the machine's local time.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, tzinfo
from enum import Enum
from typing import Iterable, Optional

from burnrate.profiles.body_calc import (
    KCAL_PER_KG,
    effective_bmr,
    kcal_to_kg,
    round_kcal,
)
from burnrate.tracking.exceptions import InvalidTimestampError
from burnrate.tracking.models import EnergyEvent, EventKind, UserProfile

MS_PER_HOUR = 3_600_000
MS_PER_DAY = 24 * MS_PER_HOUR


class DayBmrPolicy(Enum):
    """How much of a day's BMR counts toward its balance."""
    FULL_DAY = "full_day"
    FIRST_DAY = "first_day"
    TODAY = "today"
    FIRST_DAY_TODAY = "first_day_today"


@dataclass
class DayBalance:
    """Aggregated energy balance for one observed day."""

    day: date
    kcal_in: float
    kcal_out: float
    bmr_burned: float
    impact_kg: float
    event_count: int


def to_local(timestamp_ms: float, tz: Optional[tzinfo] = None) -> datetime:
    """Convert epoch milliseconds to a datetime in ``tz`` (local if None)."""
    return datetime.fromtimestamp(timestamp_ms / 1000, tz)


def local_date(timestamp_ms: float, tz: Optional[tzinfo] = None) -> date:
    """Calendar date of an epoch-ms timestamp."""
    return to_local(timestamp_ms, tz).date()


def day_start_ms(day: date, tz: Optional[tzinfo] = None) -> int:
    """Epoch ms of 00:00:00.000 on ``day``."""
    midnight = datetime.combine(day, time.min)
    if tz is not None:
        midnight = midnight.replace(tzinfo=tz)
    return round(midnight.timestamp() * 1000)


def day_bounds_ms(day: date, tz: Optional[tzinfo] = None) -> tuple[int, int]:
    """Inclusive (start, end) epoch ms of ``day``: 00:00:00.000 to 23:59:59.999."""
    start = day_start_ms(day, tz)
    end = day_start_ms(day + timedelta(days=1), tz) - 1
    return start, end


def iter_days(start: date, end: date) -> Iterable[date]:
    """Yield every calendar date from start to end inclusive."""
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def group_events_by_day(
    events: Iterable[EnergyEvent],
    tz: Optional[tzinfo] = None,
) -> dict[date, list[EnergyEvent]]:
    """Bucket events by their local calendar date."""
    grouped: dict[date, list[EnergyEvent]] = defaultdict(list)
    for event in events:
        grouped[local_date(event.timestamp_ms, tz)].append(event)
    return dict(grouped)


def resolve_day_policy(
    day: date,
    today: date,
    window_start_day: Optional[date] = None,
) -> DayBmrPolicy:
    """Pick the BMR policy for ``day`` within a window ending today."""
    is_first = window_start_day is not None and day == window_start_day
    is_today = day == today
    if is_first and is_today:
        return DayBmrPolicy.FIRST_DAY_TODAY
    if is_first:
        return DayBmrPolicy.FIRST_DAY
    if is_today:
        return DayBmrPolicy.TODAY
    return DayBmrPolicy.FULL_DAY


def bmr_burned_for_day(
    policy: DayBmrPolicy,
    effective_bmr_kcal: float,
    day: date,
    now_ms: Optional[int] = None,
    window_start_ms: Optional[int] = None,
    tz: Optional[tzinfo] = None,
) -> int:
    """BMR burned on ``day`` under ``policy``, rounded to whole kcal.

    Args:
        policy: Which share of the day counts
        effective_bmr_kcal: Calibrated BMR for a full day
        day: The calendar date being evaluated
        now_ms: Current instant (required for TODAY policies)
        window_start_ms: Window start (required for FIRST_DAY policies)
        tz: Time zone for day boundaries

    Returns:
        Whole kcal burned at rest during the covered part of the day
    """
    hourly = effective_bmr_kcal / 24

    if policy is DayBmrPolicy.FULL_DAY:
        return round_kcal(effective_bmr_kcal)

    if policy in (DayBmrPolicy.FIRST_DAY, DayBmrPolicy.FIRST_DAY_TODAY) and window_start_ms is None:
        raise ValueError(f"{policy.value} policy requires window_start_ms")
    if policy in (DayBmrPolicy.TODAY, DayBmrPolicy.FIRST_DAY_TODAY) and now_ms is None:
        raise ValueError(f"{policy.value} policy requires now_ms")

    if policy is DayBmrPolicy.FIRST_DAY:
        next_midnight = day_start_ms(day + timedelta(days=1), tz)
        hours = (next_midnight - window_start_ms) / MS_PER_HOUR
        return round_kcal(hourly * max(0.0, hours))

    if policy is DayBmrPolicy.FIRST_DAY_TODAY:
        hours = (now_ms - window_start_ms) / MS_PER_HOUR
        return round_kcal(hourly * max(0.0, hours))

    # TODAY: midnight to now, minute resolution
    now = to_local(now_ms, tz)
    day_progress = (now.hour + now.minute / 60) / 24
    return round_kcal(effective_bmr_kcal * day_progress)


def compute_day_balance(
    day: date,
    events: Iterable[EnergyEvent],
    effective_bmr_kcal: float,
    policy: DayBmrPolicy = DayBmrPolicy.FULL_DAY,
    now_ms: Optional[int] = None,
    window_start_ms: Optional[int] = None,
    tz: Optional[tzinfo] = None,
    kcal_per_kg: float = KCAL_PER_KG,
) -> Optional[DayBalance]:
    """Aggregate one day's events into a DayBalance.

    Returns None when the day has no intake and no expenditure events: the
    user did not log, so the day is unobserved rather than a deficit.
    """
    start, end = day_bounds_ms(day, tz)

    kcal_in = 0.0
    kcal_out = 0.0
    count = 0
    for event in events:
        if not start <= event.timestamp_ms <= end:
            continue
        count += 1
        if event.kind is EventKind.INTAKE:
            kcal_in += event.kcal
        else:
            kcal_out += event.kcal

    if count == 0:
        return None

    bmr_burned = bmr_burned_for_day(
        policy, effective_bmr_kcal, day, now_ms=now_ms, window_start_ms=window_start_ms, tz=tz
    )
    impact = kcal_to_kg(kcal_in - bmr_burned - kcal_out, kcal_per_kg)

    return DayBalance(
        day=day,
        kcal_in=kcal_in,
        kcal_out=kcal_out,
        bmr_burned=bmr_burned,
        impact_kg=impact,
        event_count=count,
    )


def compute_day_impact(
    day: date,
    events: Iterable[EnergyEvent],
    effective_bmr_kcal: float,
    policy: DayBmrPolicy = DayBmrPolicy.FULL_DAY,
    now_ms: Optional[int] = None,
    window_start_ms: Optional[int] = None,
    tz: Optional[tzinfo] = None,
    kcal_per_kg: float = KCAL_PER_KG,
) -> Optional[float]:
    """Mass-equivalent impact (kg) of one day, or None if unobserved."""
    balance = compute_day_balance(
        day,
        events,
        effective_bmr_kcal,
        policy,
        now_ms=now_ms,
        window_start_ms=window_start_ms,
        tz=tz,
        kcal_per_kg=kcal_per_kg,
    )
    return balance.impact_kg if balance is not None else None


def current_time_ms() -> int:
    """Wall-clock epoch ms. Engine entry points call this at most once."""
    return int(datetime.now().timestamp() * 1000)


def compute_daily_impact(
    day: date,
    events: Iterable[EnergyEvent],
    profile: UserProfile,
    now_ms: Optional[int] = None,
    tz: Optional[tzinfo] = None,
    kcal_per_kg: float = KCAL_PER_KG,
) -> Optional[float]:
    """Impact of ``day`` for a profile, live-scaled when ``day`` is today.

    Past days count the full effective BMR; today counts BMR from midnight
    up to now, which is what a "live today" display shows.

    Raises:
        InvalidTimestampError: ``day`` is after today
    """
    if now_ms is None:
        now_ms = current_time_ms()
    today = local_date(now_ms, tz)
    if day > today:
        raise InvalidTimestampError(
            f"Cannot compute impact for future date {day.isoformat()}",
            timestamp_ms=day_start_ms(day, tz),
        )

    policy = resolve_day_policy(day, today)
    return compute_day_impact(
        day,
        events,
        effective_bmr(profile),
        policy,
        now_ms=now_ms,
        tz=tz,
        kcal_per_kg=kcal_per_kg,
    )
