"""Configuration package."""

from mywallet.config.settings import (
    EngineSettings,
    GeminiSettings,
    SchedulerSettings,
    Settings,
    StorageSettings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "EngineSettings",
    "GeminiSettings",
    "SchedulerSettings",
    "Settings",
    "StorageSettings",
    "get_settings",
    "validate_all_settings",
]
