"""Recurring charge expansion.

This module turns a :class:`RecurrenceRule` into the concrete occurrences that
fall in a date window, and folds occurrences of many recurring items into the
figures the envelope view needs (recurring expected per category) or into a
window view listing every item with its occurrences.

Occurrences are computed directly from each anchor date as
``anchor + n * step`` rather than by repeatedly adding the step to the
previous occurrence. Month and year steps therefore clamp against the target
month only: a monthly charge anchored on Jan 31 falls on Feb 28, Mar 31 and
Apr 30, not on Feb 28, Mar 28, Apr 28.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import date, timedelta
from decimal import Decimal
from typing import Dict, Iterable, Iterator, List, Mapping, Optional, Tuple

from .data_models import (
    FrequencyGranularity,
    Occurrence,
    OccurrenceTransaction,
    PeriodRange,
    RecurrenceRule,
    RecurringItem,
    RecurringItemView,
    RecurringWindowView,
)
from .utils import ZERO, add_months, days_in_month

# Granularity -> (unit, size): "days" units step with timedelta, "months"
# units step with add_months.
_STEP_UNITS = {
    FrequencyGranularity.DAY: ("days", 1),
    FrequencyGranularity.WEEK: ("days", 7),
    FrequencyGranularity.MONTH: ("months", 1),
    FrequencyGranularity.YEAR: ("months", 12),
}


def _shift(anchor: date, unit: str, amount: int) -> date:
    if unit == "days":
        return anchor + timedelta(days=amount)
    return add_months(anchor, amount)


def _units_between(anchor: date, target: date, unit: str) -> int:
    if unit == "days":
        return (target - anchor).days
    return (target.year - anchor.year) * 12 + (target.month - anchor.month)


def _series(anchor: date, unit: str, step: int, lower: date, upper: date) -> Iterator[date]:
    """Yield ``anchor + n * step`` (in ``unit``) for every n landing in ``[lower, upper]``."""
    # Start one step before the estimated first index; the walk below settles it.
    n = _units_between(anchor, lower, unit) // step - 1
    current = _shift(anchor, unit, n * step)
    while current < lower:
        n += 1
        current = _shift(anchor, unit, n * step)
    while current <= upper:
        yield current
        n += 1
        current = _shift(anchor, unit, n * step)


def _bounds(rule: RecurrenceRule, window_start: date, window_end: date) -> Optional[Tuple[date, date]]:
    lower = max(window_start, rule.start_date)
    upper = window_end
    if rule.end_date is not None:
        upper = min(upper, rule.end_date - timedelta(days=1))
    if lower > upper:
        return None
    return lower, upper


def occurrence_dates(rule: RecurrenceRule, window_start: date, window_end: date) -> List[date]:
    """Return the sorted occurrence dates of ``rule`` in the inclusive window.

    Dates scheduled by different anchors are kept even when they coincide.
    Rules that are not active have no occurrences.
    """
    if not rule.is_active:
        return []
    bounds = _bounds(rule, window_start, window_end)
    if bounds is None:
        return []
    unit, size = _STEP_UNITS[rule.granularity]
    step = size * rule.quantity
    dates: List[date] = []
    for anchor in rule.anchor_dates:
        dates.extend(_series(anchor, unit, step, *bounds))
    dates.sort()
    return dates


def compute_occurrences(rule: RecurrenceRule, window_start: date, window_end: date) -> List[Occurrence]:
    """Return the occurrences of ``rule`` in ``[window_start, window_end]``.

    Each occurrence carries the override amount for its exact date when one is
    set, otherwise the rule's base amount.
    """
    occurrences = []
    for day in occurrence_dates(rule, window_start, window_end):
        override = rule.overrides.get(day)
        if override is not None and override.amount is not None:
            occurrences.append(Occurrence(day, override.amount, True, override.notes))
        else:
            notes = override.notes if override is not None else None
            occurrences.append(Occurrence(day, rule.amount, False, notes))
    return occurrences


def count_occurrences(rule: RecurrenceRule, window_start: date, window_end: date) -> int:
    return len(occurrence_dates(rule, window_start, window_end))


def total_expected(occurrences: Iterable[Occurrence]) -> Decimal:
    return sum((o.amount for o in occurrences), ZERO)


def recurring_expected_by_category(
    items: Iterable[RecurringItem],
    window: PeriodRange,
    linked_account_ids: Iterable[str],
) -> Dict[str, Decimal]:
    """Sum the expected occurrence amounts of ``items`` per category.

    Only items that have a category and whose account is linked to the budget
    count; paused and cancelled items have no occurrences and so add nothing.
    """
    linked = set(linked_account_ids)
    totals: Dict[str, Decimal] = {}
    for item in items:
        if item.category_id is None or item.account_id not in linked:
            continue
        occurrences = compute_occurrences(item.rule, window.start, window.end)
        if occurrences:
            totals[item.category_id] = totals.get(item.category_id, ZERO) + total_expected(occurrences)
    return totals


def month_window(year: int, month: int) -> PeriodRange:
    """Return the calendar month as an inclusive window."""
    return PeriodRange(date(year, month, 1), date(year, month, days_in_month(year, month)))


def build_recurring_view(
    items: Iterable[RecurringItem],
    window: PeriodRange,
    transactions: Optional[Mapping[Tuple[str, date], OccurrenceTransaction]] = None,
) -> RecurringWindowView:
    """Build the list of recurring items with occurrences in ``window``.

    Parameters
    ----------
    items: Iterable[RecurringItem]
        All recurring items of the workspace. Inactive items and items with no
        occurrence in the window are left out.
    window: PeriodRange
        Inclusive date window, usually a calendar month or a budget period.
    transactions: Mapping[(item id, occurrence date), OccurrenceTransaction]
        Transactions already recorded against occurrences. They are attached
        to the matching occurrence for reconciliation only.

    Returns
    -------
    RecurringWindowView
        Items ordered by their first occurrence. Totals of items with a
        negative base amount count as expected expenses, all others as
        expected income.
    """
    transactions = transactions or {}
    views: List[RecurringItemView] = []
    expenses = ZERO
    income = ZERO

    for item in items:
        occurrences = [
            replace(o, transaction=transactions.get((item.id, o.date)))
            for o in compute_occurrences(item.rule, window.start, window.end)
        ]
        if not occurrences:
            continue
        item_total = total_expected(occurrences)
        views.append(
            RecurringItemView(
                item_id=item.id,
                description=item.description,
                account_id=item.account_id,
                category_id=item.category_id,
                amount=item.rule.amount,
                granularity=item.rule.granularity,
                quantity=item.rule.quantity,
                occurrences=tuple(occurrences),
                total_expected=item_total,
            )
        )
        if item.rule.amount < 0:
            expenses += item_total
        else:
            income += item_total

    views.sort(key=lambda v: v.occurrences[0].date)
    return RecurringWindowView(
        window=window,
        items=tuple(views),
        expected_expenses=expenses,
        expected_income=income,
    )
