"""Configuration management."""

from burnrate.config.settings import (
    CalibrationConfig,
    HistoryConfig,
    Settings,
    get_settings,
    reload_settings,
)

__all__ = [
    "CalibrationConfig",
    "HistoryConfig",
    "Settings",
    "get_settings",
    "reload_settings",
]
