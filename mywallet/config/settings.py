"""
Configuration Management for MyWallet

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
This makes it easy to see which timings and collaborators the engine
depends on, and ensures configuration is validated at startup.

NOTE: These are deployment settings. The user-facing preferences
(currency, dark mode, notifications) are ledger data and live in
mywallet.models.AppSettings.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class StorageSettings(BaseSettings):
    """Key/value storage backend configuration."""

    model_config = SettingsConfigDict(
        env_prefix="MYWALLET_STORAGE_",
        extra="ignore"
    )

    backend: Literal["memory", "json_file"] = Field(
        default="json_file",
        description="Which storage backend to use"
    )
    data_dir: Path = Field(
        default=Path(".mywallet"),
        description="Directory holding one JSON file per aggregate"
    )
    debounce_ms: int = Field(
        default=500,
        ge=0,
        le=10_000,
        description="Delay before a high-churn aggregate is written"
    )

    @property
    def debounce_seconds(self) -> float:
        return self.debounce_ms / 1000


class SchedulerSettings(BaseSettings):
    """Timings for the background recurring and reminder passes."""

    model_config = SettingsConfigDict(
        env_prefix="MYWALLET_SCHEDULER_",
        extra="ignore"
    )

    recurring_interval_seconds: float = Field(
        default=60.0,
        gt=0,
        description="How often the recurring pass runs"
    )
    recurring_initial_delay_seconds: float = Field(
        default=2.0,
        ge=0,
        description="Delay before the first recurring pass after start"
    )
    reminder_offset_months: int = Field(
        default=1,
        ge=1,
        description="Months after the last payment before a reminder is due"
    )
    payment_due_extension_days: int = Field(
        default=30,
        ge=1,
        description="Due date is reset this many days after any payment"
    )


class GeminiSettings(BaseSettings):
    """Gemini LLM configuration for the financial advisor."""

    model_config = SettingsConfigDict(
        env_prefix="GEMINI_",
        extra="ignore"
    )

    api_key: Optional[str] = Field(
        default=None,
        description="Gemini API key (advisor replies with a setup hint when missing)"
    )
    model_name: str = Field(
        default="gemini-1.5-flash",
        description="Gemini model to use"
    )
    max_tokens: int = Field(
        default=2048,
        ge=100,
        le=8192,
        description="Maximum tokens in response"
    )
    temperature: float = Field(
        default=0.7,
        ge=0.0,
        le=1.0,
        description="Model temperature"
    )

    @field_validator("api_key")
    @classmethod
    def blank_key_is_missing(cls, v: Optional[str]) -> Optional[str]:
        """Treat empty or placeholder keys as not configured."""
        if v is None or not v.strip() or v.strip() == "undefined":
            return None
        return v.strip()

    @property
    def is_configured(self) -> bool:
        return self.api_key is not None


class EngineSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug logging"
    )
    audit_trail_size: int = Field(
        default=500,
        ge=10,
        description="How many recent audit events are kept in memory"
    )


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Sub-settings are loaded lazily to allow partial configuration

    @property
    def storage(self) -> StorageSettings:
        return StorageSettings()

    @property
    def scheduler(self) -> SchedulerSettings:
        return SchedulerSettings()

    @property
    def gemini(self) -> GeminiSettings:
        return GeminiSettings()

    @property
    def engine(self) -> EngineSettings:
        return EngineSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Uses LRU cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}, with an
    "<name>_error" entry for each group that failed to load.
    Useful for startup checks.
    """
    results = {}
    settings = get_settings()

    for name in ("storage", "scheduler", "gemini", "engine"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
