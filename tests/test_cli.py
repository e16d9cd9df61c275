"""Tests for CLI commands."""

from __future__ import annotations

import json

import pytest
from typer.testing import CliRunner

from burnrate.cli import app
from burnrate.config import settings as settings_module
from burnrate.config.settings import Settings
from burnrate.tracking.serialization import event_to_dict, profile_to_dict

from conftest import utc_ms

runner = CliRunner()

NOW = "2025-01-08T00:00:00"


@pytest.fixture(autouse=True)
def default_settings(monkeypatch):
    """Never read the developer's ~/.burnrate/config.yaml."""
    monkeypatch.setattr(settings_module, "_settings", Settings())


@pytest.fixture
def files(tmp_path, calibrated_profile, week_of_events):
    profile_path = tmp_path / "profile.json"
    events_path = tmp_path / "events.json"
    history_path = tmp_path / "history.json"
    profile_path.write_text(json.dumps(profile_to_dict(calibrated_profile)))
    events_path.write_text(json.dumps([event_to_dict(e) for e in week_of_events]))
    history_path.write_text("[]")
    return profile_path, events_path, history_path


class TestMainCommands:
    def test_help(self):
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        assert "calibrate" in result.output.lower()

    def test_calibrate_requires_args(self):
        result = runner.invoke(app, ["calibrate"])
        assert result.exit_code != 0


class TestBmrCommand:
    def test_json(self):
        result = runner.invoke(app, ["bmr", "80", "175", "30", "male", "--json"])
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["success"] is True
        assert data["data"]["bmr"] == 1749

    def test_invalid_weight(self):
        result = runner.invoke(app, ["bmr", "--json", "--", "-5", "175", "30", "male"])
        assert result.exit_code == 1


class TestImpactCommand:
    def test_past_day(self, files):
        profile_path, events_path, _ = files
        result = runner.invoke(app, [
            "impact", str(profile_path), str(events_path),
            "--date", "2025-01-02", "--now", NOW, "--utc", "--json",
        ])
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["data"]["impact_kg"] == pytest.approx(-249 / 7700)

    def test_future_day(self, files):
        profile_path, events_path, _ = files
        result = runner.invoke(app, [
            "impact", str(profile_path), str(events_path),
            "--date", "2025-02-01", "--now", NOW, "--utc", "--json",
        ])
        assert result.exit_code == 1
        assert json.loads(result.output)["success"] is False

    def test_malformed_date(self, files):
        profile_path, events_path, _ = files
        result = runner.invoke(app, [
            "impact", str(profile_path), str(events_path),
            "--date", "2025-13-40", "--now", NOW, "--utc", "--json",
        ])
        assert result.exit_code == 1
        data = json.loads(result.output)
        assert data["success"] is False
        assert data["command"] == "impact"


class TestBackfillCommand:
    def test_write(self, files):
        profile_path, events_path, history_path = files
        result = runner.invoke(app, [
            "backfill", str(profile_path), str(events_path), str(history_path),
            "--write", "--now", NOW, "--utc", "--json",
        ])
        assert result.exit_code == 0
        assert len(json.loads(result.output)["data"]["new_records"]) == 7
        assert len(json.loads(history_path.read_text())) == 7

    def test_dry_run_leaves_file(self, files):
        profile_path, events_path, history_path = files
        result = runner.invoke(app, [
            "backfill", str(profile_path), str(events_path), str(history_path),
            "--now", NOW, "--utc",
        ])
        assert result.exit_code == 0
        assert history_path.read_text() == "[]"


class TestCalibrateCommand:
    def test_backfill_then_calibrate(self, files):
        """Corrected history written to disk sums to the observed change."""
        profile_path, events_path, history_path = files
        common = ["--now", NOW, "--utc"]
        runner.invoke(app, [
            "backfill", str(profile_path), str(events_path), str(history_path), "--write", *common,
        ])
        result = runner.invoke(app, [
            "calibrate", str(profile_path), str(events_path), str(history_path), "79.5",
            "--write", "--json", *common,
        ])
        assert result.exit_code == 0
        data = json.loads(result.output)["data"]
        assert data["outcome"] == "accepted"
        assert data["updated_profile"]["calibration_factor"] == pytest.approx(1.086, abs=1e-3)

        saved = json.loads(profile_path.read_text())
        assert saved["calibration_base_weight_kg"] == 79.5
        assert saved["last_weight_update_ms"] == utc_ms(2025, 1, 8)

        history = json.loads(history_path.read_text())
        assert sum(r["impact_kg"] for r in history) == pytest.approx(-0.5, abs=1e-9)

    def test_pounds(self, files):
        profile_path, events_path, history_path = files
        result = runner.invoke(app, [
            "calibrate", str(profile_path), str(events_path), str(history_path), "175.27",
            "--unit", "lbs", "--now", NOW, "--utc", "--json",
        ])
        assert result.exit_code == 0
        weight = json.loads(result.output)["data"]["updated_profile"]["weight_kg"]
        assert weight == pytest.approx(79.5, abs=0.01)

    def test_unit_from_defaults_when_profile_has_none(self, files, monkeypatch):
        settings = Settings()
        settings.defaults.weight_unit = "lbs"
        monkeypatch.setattr(settings_module, "_settings", settings)
        profile_path, events_path, history_path = files
        data = json.loads(profile_path.read_text())
        del data["weight_unit"]
        profile_path.write_text(json.dumps(data))

        result = runner.invoke(app, [
            "calibrate", str(profile_path), str(events_path), str(history_path), "175.27",
            "--now", NOW, "--utc", "--json",
        ])

        assert result.exit_code == 0
        profile = json.loads(result.output)["data"]["updated_profile"]
        assert profile["weight_kg"] == pytest.approx(79.5, abs=0.01)
        assert profile["weight_unit"] == "lbs"

    def test_table_output(self, files):
        profile_path, events_path, history_path = files
        result = runner.invoke(app, [
            "calibrate", str(profile_path), str(events_path), str(history_path), "79.5",
            "--now", NOW, "--utc",
        ])
        assert result.exit_code == 0
        assert "Weight Calibration" in result.output

    def test_same_day(self, files):
        profile_path, events_path, history_path = files
        events_path.write_text("[]")
        result = runner.invoke(app, [
            "calibrate", str(profile_path), str(events_path), str(history_path), "81",
            "--now", "2025-01-01T20:00:00", "--utc", "--json",
        ])
        assert result.exit_code == 0
        assert json.loads(result.output)["data"]["outcome"] == "rejected_same_day"

    def test_invalid_weight(self, files):
        profile_path, events_path, history_path = files
        result = runner.invoke(app, [
            "calibrate", str(profile_path), str(events_path), str(history_path), "0",
            "--now", NOW, "--utc", "--json",
        ])
        assert result.exit_code == 1
        assert json.loads(result.output)["success"] is False


class TestTrendCommand:
    def test_weekly(self, tmp_path):
        history_path = tmp_path / "history.json"
        history_path.write_text(json.dumps([
            {"date": "2025-01-06", "impact_kg": -0.1},
            {"date": "2025-01-07", "impact_kg": -0.2},
        ]))
        result = runner.invoke(app, [
            "trend", str(history_path), "--view", "weekly", "--now", NOW, "--utc", "--json",
        ])
        assert result.exit_code == 0
        points = json.loads(result.output)["data"]["points"]
        assert points[-1]["label"] == "This Week"
        assert points[-1]["value_kg"] == pytest.approx(-0.3)

    def test_malformed_now(self, tmp_path):
        history_path = tmp_path / "history.json"
        history_path.write_text("[]")
        result = runner.invoke(app, ["trend", str(history_path), "--now", "yesterday", "--json"])
        assert result.exit_code == 1
        assert json.loads(result.output)["success"] is False

    def test_invalid_unit(self, tmp_path):
        history_path = tmp_path / "history.json"
        history_path.write_text("[]")
        result = runner.invoke(app, [
            "trend", str(history_path), "--unit", "stone", "--now", NOW, "--utc", "--json",
        ])
        assert result.exit_code == 1
        assert "stone" in json.loads(result.output)["errors"][0]

    def test_unit_from_defaults(self, tmp_path, monkeypatch):
        settings = Settings()
        settings.defaults.weight_unit = "lbs"
        monkeypatch.setattr(settings_module, "_settings", settings)
        history_path = tmp_path / "history.json"
        history_path.write_text(json.dumps([{"date": "2025-01-07", "impact_kg": -0.3}]))

        result = runner.invoke(app, ["trend", str(history_path), "--now", NOW, "--utc"])

        assert result.exit_code == 0
        assert "-0.66 lbs" in result.output


class TestConfigCommands:
    def test_show(self):
        result = runner.invoke(app, ["config", "show", "--json"])
        assert result.exit_code == 0
        data = json.loads(result.output)["data"]
        assert data["history"]["retention_days"] == 365
        assert data["defaults"] == {"output_format": "table", "weight_unit": "kg"}

    def test_output_format_default(self, monkeypatch):
        settings = Settings()
        settings.defaults.output_format = "json"
        monkeypatch.setattr(settings_module, "_settings", settings)

        result = runner.invoke(app, ["config", "show"])

        assert result.exit_code == 0
        assert json.loads(result.output)["success"] is True
