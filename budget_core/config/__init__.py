"""Configuration package."""

from budget_core.config.settings import (
    SPLIT_REMAINDER_END_OF_MONTH,
    SPLIT_REMAINDER_SAME_DATE,
    AppSettings,
    LedgerSettings,
    Settings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "SPLIT_REMAINDER_END_OF_MONTH",
    "SPLIT_REMAINDER_SAME_DATE",
    "AppSettings",
    "LedgerSettings",
    "Settings",
    "get_settings",
    "validate_all_settings",
]
