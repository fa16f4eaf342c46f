"""Budget period calculation.

A budget's periods are defined by its :class:`PeriodConfig`:

* single anchor day: each period starts on the anchor day of a month and ends
  the day before the anchor day of the next month;
* dual anchor days: each month is split at the two anchor days, which can
  make a period cross a month boundary when an anchor is clamped to the last
  day of a short month (anchors 15 and 31 give Feb 15-27 and Feb 28-Mar 14 in
  2026);
* fixed interval: consecutive blocks of ``interval_days`` counted from
  ``anchor_date`` in both directions.

Stepping to the next or previous period always goes through the period
containing the adjacent day, so consecutive periods are contiguous and the two
steps are inverse of each other.
"""

from __future__ import annotations

from datetime import date, timedelta
from typing import Optional

from .data_models import PeriodConfig, PeriodRange
from .errors import PeriodNotConfiguredError
from .utils import anchor_in_month

ONE_DAY = timedelta(days=1)


def compute_period(config: PeriodConfig, reference_date: date) -> PeriodRange:
    """Return the period of ``config`` containing ``reference_date``.

    Raises
    ------
    PeriodNotConfiguredError
        If ``config`` has no usable mode.
    """
    if config.is_fixed_interval:
        return _fixed_interval(reference_date, config.interval_days, config.anchor_date)
    if config.anchor_day_1 is None:
        raise PeriodNotConfiguredError()
    if config.anchor_day_2 is not None:
        return _dual_anchor(reference_date, config.anchor_day_1, config.anchor_day_2)
    return _single_anchor(reference_date, config.anchor_day_1)


def compute_next_period(config: PeriodConfig, current: PeriodRange) -> PeriodRange:
    return compute_period(config, current.end + ONE_DAY)


def compute_previous_period(config: PeriodConfig, current: PeriodRange) -> PeriodRange:
    return compute_period(config, current.start - ONE_DAY)


def compute_period_by_offset(
    config: PeriodConfig, offset: int, today: Optional[date] = None
) -> PeriodRange:
    """Return the period ``offset`` steps away from the one containing ``today``.

    A positive offset moves forward, a negative one backward. ``today``
    defaults to the current date.
    """
    period = compute_period(config, today or date.today())
    step = compute_next_period if offset > 0 else compute_previous_period
    for _ in range(abs(offset)):
        period = step(config, period)
    return period


def _single_anchor(day: date, anchor_day: int) -> PeriodRange:
    start = anchor_in_month(day, anchor_day)
    if day < start:
        # before this month's anchor: the period began last month
        start = anchor_in_month(day, anchor_day, -1)
    end = anchor_in_month(start, anchor_day, 1) - ONE_DAY
    return PeriodRange(start, end)


def _dual_anchor(day: date, anchor_1: int, anchor_2: int) -> PeriodRange:
    lo, hi = min(anchor_1, anchor_2), max(anchor_1, anchor_2)
    lo_start = anchor_in_month(day, lo)
    hi_start = anchor_in_month(day, hi)

    if day >= hi_start:
        # "hi" period: runs into next month up to its lower anchor
        return PeriodRange(hi_start, anchor_in_month(day, lo, 1) - ONE_DAY)
    if day >= lo_start:
        return PeriodRange(lo_start, hi_start - ONE_DAY)
    # before the lower anchor we are still in last month's "hi" period
    return PeriodRange(anchor_in_month(day, hi, -1), lo_start - ONE_DAY)


def _fixed_interval(day: date, interval_days: int, anchor_date: date) -> PeriodRange:
    # floor division keeps the index correct for dates before the anchor
    index = (day - anchor_date).days // interval_days
    start = anchor_date + timedelta(days=index * interval_days)
    return PeriodRange(start, start + timedelta(days=interval_days - 1))
