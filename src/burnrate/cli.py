"""CLI interface using Typer.

Every command works on JSON snapshots supplied by the caller: a profile
(object), an event list and an impact history list. Nothing is written back
unless ``--write`` is given.
"""

from __future__ import annotations

import json
import logging
from datetime import date, datetime, timezone, tzinfo
from pathlib import Path
from typing import Any, Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from burnrate.config import get_settings
from burnrate.profiles.body_calc import kg_to_lbs, lbs_to_kg
from burnrate.tracking.backfill import backfill_missing_days
from burnrate.tracking.calibration import calibrate_on_new_weight
from burnrate.tracking.daily_balance import (
    compute_daily_impact,
    current_time_ms,
    local_date,
)
from burnrate.tracking.exceptions import CalibrationError
from burnrate.tracking.history import TREND_VIEWS, ImpactHistoryStore
from burnrate.tracking.models import CalibrationOutcome, UserProfile
from burnrate.tracking.serialization import (
    calibration_result_to_dict,
    events_from_list,
    profile_from_dict,
    profile_to_dict,
    record_to_dict,
    records_from_list,
)

app = typer.Typer(
    help="burnrate: calibrate BMR from food logs, exercise and weigh-ins",
    no_args_is_help=True,
)
console = Console()

config_app = typer.Typer(help="Show or initialize configuration")
app.add_typer(config_app, name="config")


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Configure logging before any command runs."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


# ============================================================================
# Helpers
# ============================================================================


def output_json(response: dict, file=None) -> None:
    """Output JSON response to stdout or file."""
    json_str = json.dumps(response, indent=2)
    if file:
        file.write(json_str)
    else:
        print(json_str)


def fail(command: str, message: str, json_output: bool) -> None:
    """Report an error and exit with status 1."""
    if json_output:
        output_json({"success": False, "command": command, "errors": [message]})
    else:
        console.print(f"[red]Error:[/red] {message}")
    raise typer.Exit(1)


def load_json(path: Path, default: Any = None) -> Any:
    if not path.exists():
        if default is not None:
            return default
        raise FileNotFoundError(f"{path} not found")
    with open(path) as f:
        return json.load(f)


def save_json(path: Path, data: Any) -> None:
    with open(path, "w") as f:
        json.dump(data, f, indent=2)


def resolve_clock(now: Optional[str], utc: bool) -> tuple[int, Optional[tzinfo]]:
    """Parse --now (ISO datetime) and --utc into (now_ms, tz)."""
    tz: Optional[tzinfo] = timezone.utc if utc else None
    if now is None:
        return current_time_ms(), tz
    moment = datetime.fromisoformat(now)
    if moment.tzinfo is None and tz is not None:
        moment = moment.replace(tzinfo=tz)
    return int(moment.timestamp() * 1000), tz


def use_json(json_flag: bool) -> bool:
    """--json wins; otherwise defaults.output_format decides."""
    return json_flag or get_settings().defaults.output_format == "json"


def check_unit(unit: str) -> str:
    if unit not in ("kg", "lbs"):
        raise ValueError(f"unit must be 'kg' or 'lbs', got '{unit}'")
    return unit


def format_mass(kg: float, unit: str, places: int = 3) -> str:
    value = kg_to_lbs(kg) if unit == "lbs" else kg
    return f"{value:+.{places}f} {unit}"


def _load_inputs(
    profile_path: Path,
    events_path: Path,
    history_path: Optional[Path],
    now_ms: int,
    tz: Optional[tzinfo],
) -> tuple[UserProfile, list, ImpactHistoryStore]:
    settings = get_settings()
    profile = profile_from_dict(
        load_json(profile_path),
        now_ms=now_ms,
        tz=tz,
        default_weight_unit=settings.defaults.weight_unit,
    )
    events = events_from_list(load_json(events_path))
    records = records_from_list(load_json(history_path, [])) if history_path else []
    store = ImpactHistoryStore(records, retention_days=settings.history.retention_days)
    return profile, events, store


# ============================================================================
# Commands
# ============================================================================


@app.command("bmr")
def bmr_command(
    weight: float = typer.Argument(..., help="Weight in kg"),
    height: float = typer.Argument(..., help="Height in cm"),
    age: int = typer.Argument(..., help="Age in years"),
    sex: str = typer.Argument(..., help="male or female"),
    activity: str = typer.Option("sedentary", "--activity", "-a", help="Activity level"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Compute baseline BMR and TDEE (Mifflin-St Jeor)."""
    json_output = use_json(json_output)
    try:
        profile = UserProfile.create(weight, height, age, sex.lower(), 0, activity_level=activity)
    except ValueError as e:
        fail("bmr", str(e), json_output)

    if json_output:
        output_json({
            "success": True,
            "command": "bmr",
            "data": {"bmr": profile.bmr, "tdee": profile.tdee},
            "human_summary": f"BMR {profile.bmr} kcal/day, TDEE {profile.tdee} kcal/day",
        })
    else:
        console.print(f"[blue]BMR:[/blue]  {profile.bmr} kcal/day")
        console.print(f"[blue]TDEE:[/blue] {profile.tdee} kcal/day ({activity})")


@app.command("impact")
def impact_command(
    profile_path: Path = typer.Argument(..., help="Profile JSON file"),
    events_path: Path = typer.Argument(..., help="Events JSON file"),
    date_str: Optional[str] = typer.Option(
        None, "--date", "-d", help="Date (YYYY-MM-DD, default: today)"
    ),
    now: Optional[str] = typer.Option(None, "--now", help="Override current time (ISO)"),
    utc: bool = typer.Option(False, "--utc", help="Use UTC day boundaries"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Show one day's weight impact (live for today)."""
    json_output = use_json(json_output)
    try:
        now_ms, tz = resolve_clock(now, utc)
        day = date.fromisoformat(date_str) if date_str else local_date(now_ms, tz)
        profile, events, _ = _load_inputs(profile_path, events_path, None, now_ms, tz)
        impact = compute_daily_impact(
            day, events, profile, now_ms=now_ms, tz=tz,
            kcal_per_kg=get_settings().calibration.kcal_per_kg,
        )
    except (CalibrationError, ValueError, FileNotFoundError) as e:
        fail("impact", str(e), json_output)

    if json_output:
        output_json({
            "success": True,
            "command": "impact",
            "data": {"date": day.isoformat(), "impact_kg": impact},
            "human_summary": (
                f"{day}: no events logged" if impact is None
                else f"{day}: {format_mass(impact, profile.weight_unit)}"
            ),
        })
    elif impact is None:
        console.print(f"{day}: [yellow]no events logged[/yellow]")
    else:
        color = "red" if impact > 0 else "green"
        console.print(f"{day}: [{color}]{format_mass(impact, profile.weight_unit)}[/{color}]")


@app.command("backfill")
def backfill_command(
    profile_path: Path = typer.Argument(..., help="Profile JSON file"),
    events_path: Path = typer.Argument(..., help="Events JSON file"),
    history_path: Path = typer.Argument(..., help="Impact history JSON file"),
    write: bool = typer.Option(False, "--write", "-w", help="Merge into the history file"),
    now: Optional[str] = typer.Option(None, "--now", help="Override current time (ISO)"),
    utc: bool = typer.Option(False, "--utc", help="Use UTC day boundaries"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Compute finalized impact records for logged days missing from history."""
    json_output = use_json(json_output)
    try:
        now_ms, tz = resolve_clock(now, utc)
        profile, events, store = _load_inputs(profile_path, events_path, history_path, now_ms, tz)
        new_records = backfill_missing_days(
            profile, events, store, now_ms=now_ms, tz=tz, config=get_settings().calibration
        )
    except (CalibrationError, ValueError, FileNotFoundError) as e:
        fail("backfill", str(e), json_output)

    if write and new_records:
        store.merge(new_records)
        save_json(history_path, [record_to_dict(r) for r in store.records()])

    if json_output:
        output_json({
            "success": True,
            "command": "backfill",
            "data": {
                "new_records": [record_to_dict(r) for r in new_records],
                "written": write,
            },
            "human_summary": f"{len(new_records)} new records",
        })
        return

    if not new_records:
        console.print("History is up to date")
        return

    table = Table(title="Backfilled Days")
    table.add_column("Date", style="cyan")
    table.add_column("Impact", justify="right")
    for record in new_records:
        table.add_row(record.date.isoformat(), format_mass(record.impact_kg, profile.weight_unit))
    console.print(table)
    if write:
        console.print(f"[green]Merged {len(new_records)} records into {history_path}[/green]")


@app.command("calibrate")
def calibrate_command(
    profile_path: Path = typer.Argument(..., help="Profile JSON file"),
    events_path: Path = typer.Argument(..., help="Events JSON file"),
    history_path: Path = typer.Argument(..., help="Impact history JSON file"),
    weight: float = typer.Argument(..., help="Measured weight"),
    unit: Optional[str] = typer.Option(
        None, "--unit", "-u", help="Unit of WEIGHT: kg or lbs (default: profile unit)"
    ),
    write: bool = typer.Option(
        False, "--write", "-w", help="Save updated profile and corrected history"
    ),
    now: Optional[str] = typer.Option(None, "--now", help="Override current time (ISO)"),
    utc: bool = typer.Option(False, "--utc", help="Use UTC day boundaries"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Submit a weigh-in and recalibrate BMR."""
    json_output = use_json(json_output)
    try:
        now_ms, tz = resolve_clock(now, utc)
        profile, events, store = _load_inputs(profile_path, events_path, history_path, now_ms, tz)
        weight_unit = check_unit(unit or profile.weight_unit)
        weight_kg = lbs_to_kg(weight) if weight_unit == "lbs" else weight
        result = calibrate_on_new_weight(
            profile,
            events,
            store,
            weight_kg,
            now_ms=now_ms,
            tz=tz,
            config=get_settings().calibration,
        )
    except (CalibrationError, ValueError, FileNotFoundError) as e:
        fail("calibrate", str(e), json_output)

    if write:
        applied = store.apply_corrections(result.corrections)
        save_json(profile_path, profile_to_dict(result.updated_profile))
        if applied:
            save_json(history_path, [record_to_dict(r) for r in store.records()])

    updated = result.updated_profile
    if json_output:
        payload = calibration_result_to_dict(result)
        payload["written"] = write
        output_json({
            "success": True,
            "command": "calibrate",
            "data": payload,
            "human_summary": (
                f"{result.outcome.value}: factor {profile.calibration_factor:.3f} "
                f"-> {updated.calibration_factor:.3f}"
            ),
        })
        return

    if result.outcome is CalibrationOutcome.BASELINE_ESTABLISHED:
        console.print("[yellow]First weigh-in recorded; calibration starts with the next one.[/yellow]")
    elif result.outcome is CalibrationOutcome.REJECTED_SAME_DAY:
        console.print(
            "[yellow]Less than a day since the last weigh-in; "
            "weight saved without calibrating.[/yellow]"
        )
    else:
        lines = [
            f"Day gap:          {result.day_gap}",
            f"Actual change:    {format_mass(result.actual_change_kg, profile.weight_unit)}",
            f"Predicted change: {format_mass(result.predicted_change_kg, profile.weight_unit)}",
            f"Prediction error: {format_mass(result.prediction_error_kg, profile.weight_unit)}",
        ]
        if result.correction_ratio is not None:
            lines.append(f"Implied BMR ratio: {result.correction_ratio:.3f}")
        lines.append(
            f"Calibration:      {profile.calibration_factor:.3f} -> {updated.calibration_factor:.3f}"
            + ("" if result.factor_updated else " (within noise, unchanged)")
        )
        lines.append(f"Days corrected:   {len(result.corrections)}")
        console.print(Panel("\n".join(lines), title="Weight Calibration"))

    console.print(f"[blue]BMR:[/blue] {updated.bmr} kcal/day  [blue]TDEE:[/blue] {updated.tdee} kcal/day")
    if write:
        console.print(f"[green]Saved profile to {profile_path}[/green]")


@app.command("trend")
def trend_command(
    history_path: Path = typer.Argument(..., help="Impact history JSON file"),
    view: str = typer.Option("daily", "--view", help=f"One of {', '.join(TREND_VIEWS)}"),
    unit: Optional[str] = typer.Option(
        None, "--unit", "-u", help="kg or lbs (default: defaults.weight_unit)"
    ),
    now: Optional[str] = typer.Option(None, "--now", help="Override current time (ISO)"),
    utc: bool = typer.Option(False, "--utc", help="Use UTC day boundaries"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Show impact history bucketed by day, week or month."""
    settings = get_settings()
    json_output = use_json(json_output)
    try:
        unit = check_unit(unit or settings.defaults.weight_unit)
        now_ms, tz = resolve_clock(now, utc)
        store = ImpactHistoryStore(
            records_from_list(load_json(history_path)),
            retention_days=settings.history.retention_days,
        )
        points = store.trend(view, local_date(now_ms, tz))
    except (ValueError, FileNotFoundError) as e:
        fail("trend", str(e), json_output)

    if json_output:
        output_json({
            "success": True,
            "command": "trend",
            "data": {
                "view": view,
                "unit": unit,
                "points": [
                    {"label": p.label, "value_kg": p.value, "has_data": p.has_data}
                    for p in points
                ],
            },
            "human_summary": f"{sum(p.has_data for p in points)} of {len(points)} buckets with data",
        })
        return

    table = Table(title=f"Weight Impact ({view})")
    table.add_column("Period", style="cyan")
    table.add_column("Impact", justify="right")
    for point in points:
        table.add_row(
            point.label,
            format_mass(point.value, unit, 2) if point.value is not None else "No data",
        )
    console.print(table)


@config_app.command("show")
def config_show(
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Show the active configuration."""
    settings = get_settings()
    data = {
        "calibration": vars(settings.calibration).copy(),
        "history": vars(settings.history).copy(),
        "defaults": vars(settings.defaults).copy(),
    }
    if use_json(json_output):
        output_json({"success": True, "command": "config show", "data": data})
        return

    table = Table(title="Configuration")
    table.add_column("Key", style="cyan")
    table.add_column("Value", justify="right")
    for section, values in data.items():
        for key, value in values.items():
            table.add_row(f"{section}.{key}", str(value))
    console.print(table)


@config_app.command("init")
def config_init(
    path: Optional[Path] = typer.Option(None, "--path", help="Config file location"),
) -> None:
    """Write the active configuration to disk."""
    settings = get_settings()
    settings.save(path)
    console.print("[green]Configuration saved[/green]")


if __name__ == "__main__":
    app()
