"""Date-keyed store of finalized daily impacts.

The store is owned by the caller. Backfill produces new records, calibration
produces corrections; this module holds the glue that merges and applies
them while keeping one record per date, sorted ascending, bounded to a
retention window.
"""

from __future__ import annotations

import calendar
import logging
from dataclasses import dataclass
from datetime import date, timedelta, tzinfo
from typing import Iterable, Iterator, Optional

from burnrate.profiles.body_calc import KCAL_PER_KG, effective_bmr
from burnrate.tracking.daily_balance import (
    DayBmrPolicy,
    compute_day_impact,
    current_time_ms,
    local_date,
)
from burnrate.tracking.models import (
    DailyImpactRecord,
    EnergyEvent,
    ImpactCorrection,
    UserProfile,
)

logger = logging.getLogger(__name__)

DEFAULT_RETENTION_DAYS = 365

TREND_VIEWS = ("daily", "weekly", "monthly")


@dataclass
class TrendPoint:
    """One bar of an impact trend chart."""

    label: str
    value: Optional[float]  # kg, None when no data in the bucket
    has_data: bool


class ImpactHistoryStore:
    """Ordered collection of DailyImpactRecords, at most one per date."""

    def __init__(
        self,
        records: Iterable[DailyImpactRecord] = (),
        retention_days: int = DEFAULT_RETENTION_DAYS,
    ) -> None:
        if retention_days < 1:
            raise ValueError(f"retention_days must be at least 1, got {retention_days}")
        self.retention_days = retention_days
        self._records: dict[date, float] = {}
        for record in records:
            self._records[record.date] = record.impact_kg
        self._enforce_retention()

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, day: object) -> bool:
        return day in self._records

    def __iter__(self) -> Iterator[DailyImpactRecord]:
        return iter(self.records())

    def get(self, day: date) -> Optional[float]:
        """Stored impact for ``day`` in kg, or None."""
        return self._records.get(day)

    def dates(self) -> list[date]:
        return sorted(self._records)

    def records(self) -> list[DailyImpactRecord]:
        """All records sorted by date ascending."""
        return [DailyImpactRecord(d, self._records[d]) for d in self.dates()]

    def total(self, start: date, end: date) -> float:
        """Sum of stored impacts for start <= date <= end."""
        return sum(v for d, v in self._records.items() if start <= d <= end)

    def append(self, record: DailyImpactRecord) -> bool:
        """Add a record unless its date is already present.

        Returns:
            True if the record was added
        """
        if record.date in self._records:
            return False
        self._records[record.date] = record.impact_kg
        self._enforce_retention()
        return True

    def merge(self, new_records: Iterable[DailyImpactRecord]) -> int:
        """Merge backfilled records, never overwriting an existing date.

        Oldest records beyond the retention window are dropped.

        Returns:
            Number of records added (before retention trimming)
        """
        added = 0
        for record in new_records:
            if record.date not in self._records:
                self._records[record.date] = record.impact_kg
                added += 1
        dropped = self._enforce_retention()
        if dropped:
            logger.debug("Dropped %d records beyond %d-day retention", dropped, self.retention_days)
        return added

    def apply_corrections(self, corrections: Iterable[ImpactCorrection]) -> int:
        """Subtract each correction from its stored day.

        Corrections for dates not in the store are skipped.

        Returns:
            Number of records corrected
        """
        applied = 0
        skipped = 0
        for correction in corrections:
            if correction.date in self._records:
                self._records[correction.date] -= correction.correction_per_day
                applied += 1
            else:
                skipped += 1
        if skipped:
            logger.debug("Skipped %d corrections for dates not in history", skipped)
        return applied

    def recompute_day(
        self,
        day: date,
        events: Iterable[EnergyEvent],
        profile: UserProfile,
        now_ms: Optional[int] = None,
        tz: Optional[tzinfo] = None,
        kcal_per_kg: float = KCAL_PER_KG,
    ) -> Optional[float]:
        """Rewrite a past day's record after its events were edited.

        Today is never finalized, so it is left alone. A day whose events
        were all removed becomes unobserved and its record is deleted.

        Returns:
            The new stored impact, or None if no record remains
        """
        if now_ms is None:
            now_ms = current_time_ms()
        if day >= local_date(now_ms, tz):
            return self._records.get(day)

        impact = compute_day_impact(
            day,
            events,
            effective_bmr(profile),
            DayBmrPolicy.FULL_DAY,
            tz=tz,
            kcal_per_kg=kcal_per_kg,
        )
        if impact is None:
            self._records.pop(day, None)
        else:
            self._records[day] = impact
            self._enforce_retention()
        return impact

    def trend(
        self,
        view: str,
        today: date,
        live_today_kg: Optional[float] = None,
    ) -> list[TrendPoint]:
        """Bucketed impact sums for charting.

        Args:
            view: "daily" (last 7 days), "weekly" (last 8 weeks) or
                  "monthly" (last 8 months)
            today: Current local date
            live_today_kg: Live impact for today; when given it replaces
                           any stored value for today

        Returns:
            Points ordered oldest to newest
        """
        if view == "daily":
            return self._daily_trend(today, live_today_kg)
        if view == "weekly":
            return self._weekly_trend(today, live_today_kg)
        if view == "monthly":
            return self._monthly_trend(today, live_today_kg)
        raise ValueError(f"view must be one of {TREND_VIEWS}, got '{view}'")

    def _value_for(
        self, day: date, today: date, live_today_kg: Optional[float]
    ) -> Optional[float]:
        if day == today and live_today_kg is not None:
            return live_today_kg
        return self._records.get(day)

    def _sum_range(
        self, start: date, end: date, today: date, live_today_kg: Optional[float]
    ) -> Optional[float]:
        total = 0.0
        has_data = False
        current = start
        while current <= end:
            value = self._value_for(current, today, live_today_kg)
            if value is not None:
                total += value
                has_data = True
            current += timedelta(days=1)
        return total if has_data else None

    def _daily_trend(self, today: date, live_today_kg: Optional[float]) -> list[TrendPoint]:
        points = []
        for offset in range(6, -1, -1):
            day = today - timedelta(days=offset)
            value = self._value_for(day, today, live_today_kg)
            label = day.strftime("%a %d") + (" (now)" if day == today else "")
            points.append(TrendPoint(label, value, value is not None))
        return points

    def _weekly_trend(self, today: date, live_today_kg: Optional[float]) -> list[TrendPoint]:
        points = []
        for week in range(7, -1, -1):
            end = today - timedelta(days=week * 7)
            start = end - timedelta(days=6)
            value = self._sum_range(start, end, today, live_today_kg)
            if week == 0:
                label = "This Week"
            elif week == 1:
                label = "Last Week"
            else:
                label = f"{week}w ago"
            points.append(TrendPoint(label, value, value is not None))
        return points

    def _monthly_trend(self, today: date, live_today_kg: Optional[float]) -> list[TrendPoint]:
        points = []
        for back in range(7, -1, -1):
            year, month_index = divmod(today.year * 12 + today.month - 1 - back, 12)
            first = date(year, month_index + 1, 1)
            last = date(year, month_index + 1, calendar.monthrange(year, month_index + 1)[1])
            value = self._sum_range(first, min(last, today), today, live_today_kg)
            points.append(TrendPoint(first.strftime("%b"), value, value is not None))
        return points

    def _enforce_retention(self) -> int:
        excess = len(self._records) - self.retention_days
        if excess <= 0:
            return 0
        for day in sorted(self._records)[:excess]:
            del self._records[day]
        return excess
