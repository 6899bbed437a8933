"""
config/ — timedevents settings.

Exports:
    Settings, SchedulerConfig, LoggingConfig, load_settings, get_settings
"""

from timedevents.config.settings import (
    LoggingConfig,
    SchedulerConfig,
    Settings,
    get_settings,
    load_settings,
    reset_settings,
)

__all__ = [
    "LoggingConfig",
    "SchedulerConfig",
    "Settings",
    "get_settings",
    "load_settings",
    "reset_settings",
]
