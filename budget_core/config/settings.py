"""
Configuration Management for Budget Core

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All tunable ledger conventions live here.
The ledger functions take these values as parameters so they stay
pure; only the service and materializer read settings.
"""

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


SPLIT_REMAINDER_END_OF_MONTH = "end_of_month"
SPLIT_REMAINDER_SAME_DATE = "same_date"


class LedgerSettings(BaseSettings):
    """Occurrence ledger conventions."""

    model_config = SettingsConfigDict(
        env_prefix="BUDGET_LEDGER_",
        extra="ignore"
    )

    split_remainder_date: str = Field(
        default=SPLIT_REMAINDER_END_OF_MONTH,
        description="Where a split remainder lands: end_of_month or same_date"
    )
    payoff_occurrence_day: int = Field(
        default=28,
        ge=1,
        le=28,
        description="Day of month for the open occurrence of a payoff bill"
    )
    due_soon_days: int = Field(
        default=3,
        ge=0,
        le=31,
        description="Window for 'due soon' warnings"
    )

    @field_validator('split_remainder_date')
    @classmethod
    def validate_split_remainder_date(cls, v: str) -> str:
        allowed = {SPLIT_REMAINDER_END_OF_MONTH, SPLIT_REMAINDER_SAME_DATE}
        if v not in allowed:
            raise ValueError(f"Unsupported split_remainder_date: {v}. Allowed: {allowed}")
        return v


class AppSettings(BaseSettings):
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
        description="Enable debug mode"
    )
    log_level: str = Field(
        default="INFO",
        description="Minimum level for structured logs"
    )

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level


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

    @property
    def ledger(self) -> LedgerSettings:
        return LedgerSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid} plus {setting_name_error: message}
    for failures. Useful for startup checks.
    """
    results = {}

    settings = get_settings()

    for name in ("ledger", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except ValueError as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
