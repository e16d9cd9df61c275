"""Materialize missing daily impact records.

Backfill walks every calendar date from the later of the earliest logged
event and the profile's creation date up to yesterday, and computes a
full-day record for each observed date not already in history. Today is
never finalized. Re-running backfill with its own output merged into the
existing records yields nothing new.
"""

from __future__ import annotations

import logging
from datetime import timedelta, tzinfo
from typing import Iterable, Optional, Sequence

from burnrate.config.settings import CalibrationConfig
from burnrate.profiles.body_calc import effective_bmr
from burnrate.tracking.daily_balance import (
    MS_PER_HOUR,
    DayBmrPolicy,
    compute_day_impact,
    current_time_ms,
    group_events_by_day,
    iter_days,
    local_date,
)
from burnrate.tracking.exceptions import InvalidTimestampError
from burnrate.tracking.models import DailyImpactRecord, EnergyEvent, UserProfile

logger = logging.getLogger(__name__)


def validate_event_times(
    events: Sequence[EnergyEvent],
    now_ms: int,
    max_future_skew_hours: float,
) -> None:
    """Reject events stamped further in the future than the allowed skew."""
    limit = now_ms + max_future_skew_hours * MS_PER_HOUR
    for event in events:
        if event.timestamp_ms > limit:
            raise InvalidTimestampError(
                f"Event at {event.timestamp_ms} is in the future (now={now_ms})",
                timestamp_ms=event.timestamp_ms,
            )


def backfill_missing_days(
    profile: UserProfile,
    events: Iterable[EnergyEvent],
    existing_records: Iterable[DailyImpactRecord],
    now_ms: Optional[int] = None,
    tz: Optional[tzinfo] = None,
    config: Optional[CalibrationConfig] = None,
) -> list[DailyImpactRecord]:
    """Compute records for observed past days missing from history.

    Args:
        profile: Profile supplying effective BMR and creation date
        events: All intake and expenditure events
        existing_records: Records already in the store (never overwritten)
        now_ms: Current instant; read from the clock when None
        tz: Time zone for day boundaries (local when None)
        config: Calibration tuning (kcal per kg, future-skew limit)

    Returns:
        New records in date order; empty when there are no events

    Raises:
        InvalidTimestampError: An event lies in the far future
    """
    if config is None:
        config = CalibrationConfig()
    if now_ms is None:
        now_ms = current_time_ms()

    events = list(events)
    if not events:
        return []
    validate_event_times(events, now_ms, config.max_future_skew_hours)

    earliest = min(event.timestamp_ms for event in events)
    start_date = max(local_date(earliest, tz), local_date(profile.created_at_ms, tz))
    yesterday = local_date(now_ms, tz) - timedelta(days=1)

    existing_dates = {record.date for record in existing_records}
    by_day = group_events_by_day(events, tz)
    bmr = effective_bmr(profile)

    new_records = []
    for day in iter_days(start_date, yesterday):
        if day in existing_dates or day not in by_day:
            continue
        impact = compute_day_impact(
            day,
            by_day[day],
            bmr,
            DayBmrPolicy.FULL_DAY,
            tz=tz,
            kcal_per_kg=config.kcal_per_kg,
        )
        if impact is not None:
            new_records.append(DailyImpactRecord(day, impact))

    logger.debug(
        "Backfill %s..%s produced %d new records", start_date, yesterday, len(new_records)
    )
    return new_records
