"""Date and money helpers shared by the budget engine.

This module provides the calendar arithmetic the period and recurrence
calculators are built on (adding months with end-of-month clamping, finding a
clamped anchor day within a month) and helpers for parsing user input into
``date`` and ``Decimal`` values.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal, InvalidOperation, getcontext
from typing import Union
import calendar

getcontext().prec = 28  # increase decimal precision to avoid rounding errors

ZERO = Decimal("0")


def days_in_month(year: int, month: int) -> int:
    """Return the number of days in the given month."""
    return calendar.monthrange(year, month)[1]


def add_months(dt: date, months: int) -> date:
    """Return a new date a number of months after ``dt``.

    The day of the month is clamped to the last valid day if needed (e.g.,
    adding one month to Jan 31 yields Feb 28 or 29). ``months`` may be
    negative.
    """
    year = dt.year + (dt.month - 1 + months) // 12
    month = (dt.month - 1 + months) % 12 + 1
    day = min(dt.day, days_in_month(year, month))
    return date(year, month, day)


def anchor_in_month(dt: date, anchor_day: int, months: int = 0) -> date:
    """Return ``anchor_day`` in the month ``months`` away from ``dt``.

    The anchor is clamped to the length of the target month, so an anchor of
    31 in April gives April 30 and in February gives the 28th or 29th.
    """
    first = add_months(dt.replace(day=1), months)
    return first.replace(day=min(anchor_day, days_in_month(first.year, first.month)))


def parse_date(value: str) -> date:
    """Parse an ISO ``YYYY-MM-DD`` string into a ``date``.

    Raises
    ------
    ValueError
        If the string is not a valid calendar date.
    """
    try:
        return date.fromisoformat(value.strip())
    except (AttributeError, ValueError) as exc:
        raise ValueError(f"Invalid date: {value}") from exc


def parse_month(value: str) -> date:
    """Return the first day of the calendar month named by ``YYYY-MM``.

    Raises
    ------
    ValueError
        If ``value`` does not name a month.
    """
    year, sep, month = value.strip().partition("-")
    if not sep or not year.isdigit() or not month.isdigit():
        raise ValueError(f"Invalid month: {value}")
    try:
        return date(int(year), int(month), 1)
    except ValueError as exc:
        raise ValueError(f"Invalid month: {value}") from exc


def parse_money(value: Union[str, int, float, Decimal]) -> Decimal:
    """Return ``value`` as a ``Decimal`` amount.

    Thousands separators are ignored. Floats go through ``str`` so that
    ``-120.5`` becomes ``Decimal("-120.5")`` rather than its binary expansion.
    """
    if isinstance(value, Decimal):
        return value
    text = str(value).replace(",", "").strip()
    try:
        return Decimal(text)
    except InvalidOperation as exc:
        raise ValueError(f"Invalid amount: {value}") from exc
