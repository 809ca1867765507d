"""Month validation package."""

from budget_core.validation.validator import MonthValidator

__all__ = ["MonthValidator"]
