"""Input checks a host performs around the budget engine.

These helpers raise the errors in :mod:`budget_engine.errors`; the pure
calculators never do so for well-formed input.
"""

from __future__ import annotations

from datetime import date
from typing import Iterable

from .data_models import CategoryNode, PeriodConfig
from .errors import (
    InvalidPeriodConfigError,
    InvalidTargetError,
    MisalignedPeriodError,
    PeriodNotConfiguredError,
)
from .periods import compute_period


def require_configured(config: PeriodConfig) -> None:
    if not config.is_configured:
        raise PeriodNotConfiguredError()


def validate_period_config(config: PeriodConfig) -> None:
    """Check that ``config`` populates exactly one well-formed mode.

    Raises
    ------
    InvalidPeriodConfigError
        With a message naming the violated rule.
    """
    has_anchor_mode = config.is_anchor_in_month
    has_fixed_mode = config.is_fixed_interval

    if not has_anchor_mode and not has_fixed_mode:
        raise InvalidPeriodConfigError(
            "Budget must have period configuration: either anchor_day_1 or anchor_date + interval_days"
        )
    if (config.interval_days is None) != (config.anchor_date is None):
        raise InvalidPeriodConfigError("interval_days and anchor_date must be set together")
    if has_anchor_mode and has_fixed_mode:
        raise InvalidPeriodConfigError("Cannot mix anchor-in-month and fixed-interval modes")
    if has_anchor_mode:
        if not 1 <= config.anchor_day_1 <= 31:
            raise InvalidPeriodConfigError("anchor_day_1 must be between 1 and 31")
        if config.anchor_day_2 is not None:
            if not 1 <= config.anchor_day_2 <= 31:
                raise InvalidPeriodConfigError("anchor_day_2 must be between 1 and 31")
            if config.anchor_day_1 == config.anchor_day_2:
                raise InvalidPeriodConfigError("anchor_day_1 and anchor_day_2 must be different")
    if has_fixed_mode and config.interval_days < 1:
        raise InvalidPeriodConfigError("interval_days must be at least 1")


def check_period_alignment(config: PeriodConfig, period_start: date) -> None:
    """Raise if ``period_start`` is not the first day of one of ``config``'s periods."""
    expected = compute_period(config, period_start).start
    if expected != period_start:
        raise MisalignedPeriodError(
            f"period_start {period_start.isoformat()} does not align with budget period "
            f"configuration. Expected {expected.isoformat()}"
        )


def check_expected_target(categories: Iterable[CategoryNode], category_id: str) -> None:
    """Raise if ``category_id`` is a group, whose expected amount is derived."""
    if any(c.parent_id == category_id for c in categories):
        raise InvalidTargetError(
            "Cannot set expected amount on a parent category. Expected amounts roll up from children."
        )
