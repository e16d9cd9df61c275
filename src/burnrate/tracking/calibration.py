"""Learn a BMR calibration factor from weigh-ins.

Each time the user submits a weight, the predicted weight change since the
last accepted weigh-in (rebuilt from logged intake and exercise) is compared
with the observed change. The only free variable in the prediction is the
resting burn, so the mismatch implies a multiplier on BMR:

    r = 1 + prediction_error_kg × 7700 / total_bmr_burned_kcal

where prediction_error = predicted - actual. A positive error means the
model over-predicted gain, so the person burns more than modeled (r > 1).

The implied factor is filtered before it is trusted:

- Same-day weigh-ins (day gap 0) are rejected as noise (water, gut content).
  Weight and BMR are updated for display, but the window keeps accumulating.
- Shifts of 5% or less are ignored as measurement noise.
- The candidate factor is clamped to [0.5, 1.5].
- Exponential smoothing weights the new signal by window length,
  10% per day capped at 50%.

Finally the prediction error is spread evenly over the logged days in the
window, so the corrected history sums to the observed change.
"""

from __future__ import annotations

import logging
import math
from dataclasses import replace
from datetime import tzinfo
from typing import Iterable, Optional

from burnrate.config.settings import CalibrationConfig
from burnrate.profiles.body_calc import body_stats, effective_bmr
from burnrate.tracking.backfill import validate_event_times
from burnrate.tracking.daily_balance import (
    MS_PER_HOUR,
    compute_day_balance,
    current_time_ms,
    group_events_by_day,
    iter_days,
    local_date,
    resolve_day_policy,
)
from burnrate.tracking.exceptions import (
    EmptyHistoryError,
    InvalidMeasurementError,
    InvalidTimestampError,
)
from burnrate.tracking.models import (
    CalibrationOutcome,
    CalibrationResult,
    DailyImpactRecord,
    EnergyEvent,
    ImpactCorrection,
    UserProfile,
    validate_body_metrics,
)

logger = logging.getLogger(__name__)


def smoothing_ratio(day_gap: int, config: CalibrationConfig) -> float:
    """Weight given to a new measurement: 0.1 per day, capped at 0.5."""
    return min(day_gap * config.smoothing_step, config.max_smoothing)


def clamp_factor(factor: float, config: CalibrationConfig) -> float:
    return max(config.min_factor, min(config.max_factor, factor))


def calibrate_on_new_weight(
    profile: UserProfile,
    events: Iterable[EnergyEvent],
    existing_records: Iterable[DailyImpactRecord],
    new_weight_kg: float,
    now_ms: Optional[int] = None,
    tz: Optional[tzinfo] = None,
    config: Optional[CalibrationConfig] = None,
) -> CalibrationResult:
    """Process a manual weigh-in.

    Args:
        profile: Current profile snapshot (not modified)
        events: All intake and expenditure events
        existing_records: Finalized history; used to report how many
                          corrections land on stored days
        new_weight_kg: The measured weight
        now_ms: Current instant, read once; taken from the clock when None
        tz: Time zone for day boundaries (local when None)
        config: Calibration tuning

    Returns:
        CalibrationResult with the updated profile and history corrections

    Raises:
        InvalidMeasurementError: Non-positive weight or body metrics
        InvalidTimestampError: Last weigh-in or an event lies in the future
        EmptyHistoryError: No previous weigh-in and strict_baseline is set
    """
    if config is None:
        config = CalibrationConfig()
    if now_ms is None:
        now_ms = current_time_ms()

    if (
        not isinstance(new_weight_kg, (int, float))
        or not math.isfinite(new_weight_kg)
        or new_weight_kg <= 0
    ):
        raise InvalidMeasurementError(
            f"Weight must be positive, got {new_weight_kg!r}", field="new_weight_kg"
        )
    validate_body_metrics(profile.weight_kg, profile.height_cm, profile.age)

    events = list(events)
    validate_event_times(events, now_ms, config.max_future_skew_hours)

    if profile.created_at_ms < 0:
        raise InvalidTimestampError(
            f"Profile creation time {profile.created_at_ms} is negative",
            timestamp_ms=profile.created_at_ms,
        )
    last_update = profile.last_weight_update_ms
    if last_update is not None:
        if last_update > now_ms:
            raise InvalidTimestampError(
                f"Last weigh-in {last_update} is after now ({now_ms})",
                timestamp_ms=last_update,
            )
        if last_update < profile.created_at_ms:
            raise InvalidTimestampError(
                f"Last weigh-in {last_update} is before profile creation "
                f"({profile.created_at_ms})",
                timestamp_ms=last_update,
            )

    # BMR/TDEE always follow the newest weight
    new_bmr, new_tdee = body_stats(
        new_weight_kg, profile.height_cm, profile.age, profile.sex, profile.activity_level
    )
    displayed = replace(profile, weight_kg=new_weight_kg, bmr=new_bmr, tdee=new_tdee)

    if last_update is None:
        if config.strict_baseline:
            raise EmptyHistoryError()
        logger.info("First weigh-in %.2f kg: baseline established, no calibration", new_weight_kg)
        return CalibrationResult(
            updated_profile=replace(
                displayed,
                last_weight_update_ms=now_ms,
                calibration_base_weight_kg=new_weight_kg,
            ),
            outcome=CalibrationOutcome.BASELINE_ESTABLISHED,
        )

    base_weight = profile.calibration_base_weight_kg
    if base_weight is None:
        base_weight = profile.weight_kg
    actual_change = new_weight_kg - base_weight

    gap_hours = (now_ms - last_update) / MS_PER_HOUR
    day_gap = math.floor(gap_hours / 24)

    if day_gap == 0:
        # Window keeps accumulating: last update and base weight stay put
        logger.debug(
            "Weigh-in %.2f kg after %.1f h: too soon to calibrate (base %.2f kg, factor %.3f)",
            new_weight_kg,
            gap_hours,
            base_weight,
            profile.calibration_factor,
        )
        return CalibrationResult(
            updated_profile=displayed,
            outcome=CalibrationOutcome.REJECTED_SAME_DAY,
            day_gap=0,
            actual_change_kg=actual_change,
        )

    bmr = effective_bmr(profile)
    today = local_date(now_ms, tz)
    start_day = local_date(last_update, tz)
    by_day = group_events_by_day(events, tz)

    predicted_change = 0.0
    total_bmr_burned = 0.0
    records_in_period = []

    for day in iter_days(start_day, today):
        day_events = by_day.get(day)
        if not day_events:
            # Unlogged days are assumed net zero
            continue
        balance = compute_day_balance(
            day,
            day_events,
            bmr,
            resolve_day_policy(day, today, start_day),
            now_ms=now_ms,
            window_start_ms=last_update,
            tz=tz,
            kcal_per_kg=config.kcal_per_kg,
        )
        if balance is None:
            continue
        predicted_change += balance.impact_kg
        total_bmr_burned += balance.bmr_burned
        records_in_period.append((day, balance.impact_kg))

    prediction_error = predicted_change - actual_change

    current_factor = profile.calibration_factor
    new_factor = current_factor
    correction_ratio = None
    factor_updated = False
    new_ratio = smoothing_ratio(day_gap, config)

    if total_bmr_burned > 0:
        correction_ratio = 1 + prediction_error * config.kcal_per_kg / total_bmr_burned
        if abs(correction_ratio - 1) > config.noise_gate:
            candidate = clamp_factor(current_factor * correction_ratio, config)
            new_factor = (1 - new_ratio) * current_factor + new_ratio * candidate
            factor_updated = True

    corrections = []
    if records_in_period and abs(prediction_error) > config.min_correction_kg:
        per_day = prediction_error / len(records_in_period)
        corrections = [ImpactCorrection(day, per_day) for day, _ in records_in_period]

    stored_dates = {record.date for record in existing_records}
    records_in_store = sum(1 for c in corrections if c.date in stored_dates)

    logger.info(
        "Calibration: base %.2f -> %.2f kg (actual %+.3f, predicted %+.3f, error %+.3f), "
        "gap %d d, smoothing %.1f/%.1f, factor %.4f -> %.4f, %d days corrected",
        base_weight,
        new_weight_kg,
        actual_change,
        predicted_change,
        prediction_error,
        day_gap,
        1 - new_ratio,
        new_ratio,
        current_factor,
        new_factor,
        len(corrections),
    )

    updated = replace(
        displayed,
        last_weight_update_ms=now_ms,
        calibration_factor=new_factor,
        calibration_base_weight_kg=new_weight_kg,
    )

    return CalibrationResult(
        updated_profile=updated,
        outcome=CalibrationOutcome.ACCEPTED,
        corrections=corrections,
        day_gap=day_gap,
        actual_change_kg=actual_change,
        predicted_change_kg=predicted_change,
        prediction_error_kg=prediction_error,
        total_bmr_burned_kcal=total_bmr_burned,
        correction_ratio=correction_ratio,
        factor_updated=factor_updated,
        records_in_store=records_in_store,
    )
