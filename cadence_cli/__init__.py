"""Cadence CLI - periodic executor for schedules embedded in documents."""

__app_name__ = "cadence"
__version__ = "0.1.0"
