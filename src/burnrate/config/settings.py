"""Application settings and configuration management."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml


def _default_config_dir() -> Path:
    """Return the default configuration directory."""
    return Path.home() / ".burnrate"


@dataclass
class CalibrationConfig:
    """Calibration engine tuning."""

    kcal_per_kg: float = 7700.0
    min_factor: float = 0.5
    max_factor: float = 1.5
    noise_gate: float = 0.05  # |r - 1| at or below this is treated as noise
    smoothing_step: float = 0.1  # trust gained per day of measurement window
    max_smoothing: float = 0.5
    min_correction_kg: float = 0.001
    strict_baseline: bool = False  # raise instead of establishing a first baseline
    max_future_skew_hours: float = 24.0


@dataclass
class HistoryConfig:
    """Impact history store configuration."""

    retention_days: int = 365


@dataclass
class DefaultsConfig:
    """Default values for various operations."""

    output_format: str = "table"  # "table", "json"
    weight_unit: str = "kg"  # "kg", "lbs"


@dataclass
class Settings:
    """Main application settings."""

    calibration: CalibrationConfig = field(default_factory=CalibrationConfig)
    history: HistoryConfig = field(default_factory=HistoryConfig)
    defaults: DefaultsConfig = field(default_factory=DefaultsConfig)

    @classmethod
    def load(cls, config_path: Optional[Path] = None) -> "Settings":
        """Load settings from YAML file or return defaults.

        Args:
            config_path: Path to config.yaml. If None, uses ~/.burnrate/config.yaml

        Returns:
            Settings instance
        """
        if config_path is None:
            config_path = _default_config_dir() / "config.yaml"

        if not config_path.exists():
            return cls()

        with open(config_path) as f:
            data = yaml.safe_load(f) or {}

        settings = cls()

        # Parse calibration config
        if "calibration" in data:
            cal_data = data["calibration"] or {}
            for key in (
                "kcal_per_kg",
                "min_factor",
                "max_factor",
                "noise_gate",
                "smoothing_step",
                "max_smoothing",
                "min_correction_kg",
                "max_future_skew_hours",
            ):
                if key in cal_data:
                    setattr(settings.calibration, key, float(cal_data[key]))
            if "strict_baseline" in cal_data:
                settings.calibration.strict_baseline = bool(cal_data["strict_baseline"])

        # Parse history config
        if "history" in data:
            hist_data = data["history"] or {}
            if "retention_days" in hist_data:
                settings.history.retention_days = int(hist_data["retention_days"])

        # Parse defaults
        if "defaults" in data:
            def_data = data["defaults"] or {}
            if "output_format" in def_data:
                settings.defaults.output_format = def_data["output_format"]
            if "weight_unit" in def_data:
                settings.defaults.weight_unit = def_data["weight_unit"]
            if settings.defaults.output_format not in ("table", "json"):
                raise ValueError(
                    f"defaults.output_format must be 'table' or 'json', "
                    f"got '{settings.defaults.output_format}'"
                )
            if settings.defaults.weight_unit not in ("kg", "lbs"):
                raise ValueError(
                    f"defaults.weight_unit must be 'kg' or 'lbs', "
                    f"got '{settings.defaults.weight_unit}'"
                )

        return settings

    def save(self, config_path: Optional[Path] = None) -> None:
        """Save current settings to YAML file.

        Args:
            config_path: Path to save config.yaml. If None, uses ~/.burnrate/config.yaml
        """
        if config_path is None:
            config_path = _default_config_dir() / "config.yaml"

        config_path.parent.mkdir(parents=True, exist_ok=True)

        cal = self.calibration
        data = {
            "calibration": {
                "kcal_per_kg": cal.kcal_per_kg,
                "min_factor": cal.min_factor,
                "max_factor": cal.max_factor,
                "noise_gate": cal.noise_gate,
                "smoothing_step": cal.smoothing_step,
                "max_smoothing": cal.max_smoothing,
                "min_correction_kg": cal.min_correction_kg,
                "strict_baseline": cal.strict_baseline,
                "max_future_skew_hours": cal.max_future_skew_hours,
            },
            "history": {
                "retention_days": self.history.retention_days,
            },
            "defaults": {
                "output_format": self.defaults.output_format,
                "weight_unit": self.defaults.weight_unit,
            },
        }

        with open(config_path, "w") as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False)


# Global settings instance (lazy loaded)
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get the global settings instance, loading from disk if needed."""
    global _settings
    if _settings is None:
        _settings = Settings.load()
    return _settings


def reload_settings(config_path: Optional[Path] = None) -> Settings:
    """Force reload settings from disk."""
    global _settings
    _settings = Settings.load(config_path)
    return _settings
