"""Metabolic calibration engine for weight-impact tracking."""

__version__ = "0.1.0"
