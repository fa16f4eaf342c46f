"""Exceptions raised when validating input to the budget engine.

The calculators themselves are total functions; these errors are raised by the
validation helpers a host calls before (or instead of) invoking them.
"""

from __future__ import annotations


class BudgetEngineError(ValueError):
    """Base class for validation failures."""


class PeriodNotConfiguredError(BudgetEngineError):
    """The budget has neither anchor day(s) nor an interval and anchor date."""

    def __init__(self, message: str = "Budget period is not configured.") -> None:
        super().__init__(message)


class InvalidPeriodConfigError(BudgetEngineError):
    """The period configuration violates its invariants."""


class MisalignedPeriodError(BudgetEngineError):
    """A period start date does not fall on a computed period boundary."""


class InvalidTargetError(BudgetEngineError):
    """An expected amount was written against a group category."""
