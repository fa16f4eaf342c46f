"""Output helpers for the budget engine.

This module renders periods, occurrence lists and envelope views as simple
tab-separated tables for the terminal, and converts them to plain dicts for
JSON export. Money is exported as strings so that no precision is lost.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, Iterable, List

from .data_models import (
    CategoryView,
    EnvelopeView,
    Occurrence,
    PeriodRange,
    RecurringWindowView,
    SectionView,
)


def _money(value: Decimal) -> str:
    return f"{value:.2f}"


def print_period(period: PeriodRange) -> None:
    print(f"Period: {period.start.isoformat()} .. {period.end.isoformat()} ({period.days} days)")


def print_occurrences(occurrences: Iterable[Occurrence]) -> None:
    """Print occurrences as a table, flagging overridden amounts."""
    occurrences = list(occurrences)
    print("\t".join(["Date", "Amount", "Override", "Notes"]))
    for o in occurrences:
        print("\t".join([o.date.isoformat(), _money(o.amount), "Yes" if o.overridden else "No", o.notes or ""]))
    print(f"Occurrences: {len(occurrences)}")


def _occurrence_label(occurrence: Occurrence) -> str:
    if occurrence.transaction is None:
        return occurrence.date.isoformat()
    return f"{occurrence.date.isoformat()} (paid {_money(occurrence.transaction.amount)})"


def print_recurring_view(view: RecurringWindowView) -> None:
    print(f"Recurring items {view.window.start.isoformat()} .. {view.window.end.isoformat()}")
    print("-" * 72)
    for item in view.items:
        dates = ", ".join(_occurrence_label(o) for o in item.occurrences)
        print(f"{item.description:30s} {_money(item.total_expected):>12s}  {dates}")
    print("-" * 72)
    print(f"Expected expenses  : {_money(view.expected_expenses)}")
    print(f"Expected income    : {_money(view.expected_income)}")
    print(f"Items / occurrences: {view.item_count} / {view.occurrence_count}")


def _category_rows(view: CategoryView, depth: int = 0) -> List[List[str]]:
    rows = [
        [
            "  " * depth + view.name,
            _money(view.expected),
            _money(view.activity),
            _money(view.rolled_over),
            _money(view.available),
            _money(view.recurring_expected),
        ]
    ]
    for child in view.children:
        rows.extend(_category_rows(child, depth + 1))
    return rows


def _print_section(title: str, section: SectionView) -> None:
    print(title)
    print("\t".join(["Category", "Expected", "Activity", "Rolled", "Available", "Recurring"]))
    for category in section.categories:
        for row in _category_rows(category):
            print("\t".join(row))
    print(f"Total\t{_money(section.expected)}\t{_money(section.activity)}\t\t{_money(section.available)}")


def print_view(view: EnvelopeView) -> None:
    """Print the envelope view: both sections followed by the workspace totals."""
    print_period(view.period)
    print("=" * 72)
    _print_section("Inflow", view.inflow)
    print()
    _print_section("Outflow", view.outflow)
    print("=" * 72)
    print(f"Budgetable         : {_money(view.budgetable)}")
    print(f"Total budgeted     : {_money(view.total_budgeted)}")
    print(f"Left to budget     : {_money(view.left_to_budget)}")
    print(f"Available pool     : {_money(view.available_pool)}")
    print(f"Total rolled over  : {_money(view.total_rolled_over)}")
    print(f"Recurring expected : {_money(view.recurring_expected)}")
    print(f"Net total available: {_money(view.net_total_available)}")


def period_to_dict(period: PeriodRange) -> Dict[str, Any]:
    return {"start": period.start.isoformat(), "end": period.end.isoformat()}


def occurrence_to_dict(occurrence: Occurrence) -> Dict[str, Any]:
    data: Dict[str, Any] = {
        "date": occurrence.date.isoformat(),
        "amount": str(occurrence.amount),
        "overridden": occurrence.overridden,
        "notes": occurrence.notes,
        "transaction": None,
    }
    if occurrence.transaction is not None:
        data["transaction"] = {
            "id": occurrence.transaction.id,
            "date": occurrence.transaction.date.isoformat(),
            "amount": str(occurrence.transaction.amount),
        }
    return data


def category_to_dict(view: CategoryView) -> Dict[str, Any]:
    return {
        "category_id": view.category_id,
        "name": view.name,
        "parent_id": view.parent_id,
        "display_order": view.display_order,
        "rollover_policy": view.rollover_policy.value,
        "expected": str(view.expected),
        "activity": str(view.activity),
        "rolled_over": str(view.rolled_over),
        "available": str(view.available),
        "recurring_expected": str(view.recurring_expected),
        "children": [category_to_dict(child) for child in view.children],
    }


def _section_to_dict(section: SectionView) -> Dict[str, Any]:
    return {
        "expected": str(section.expected),
        "activity": str(section.activity),
        "available": str(section.available),
        "categories": [category_to_dict(c) for c in section.categories],
    }


def view_to_dict(view: EnvelopeView) -> Dict[str, Any]:
    return {
        "period": period_to_dict(view.period),
        "inflow": _section_to_dict(view.inflow),
        "outflow": _section_to_dict(view.outflow),
        "budgetable": str(view.budgetable),
        "total_budgeted": str(view.total_budgeted),
        "left_to_budget": str(view.left_to_budget),
        "available_pool": str(view.available_pool),
        "total_rolled_over": str(view.total_rolled_over),
        "recurring_expected": str(view.recurring_expected),
        "net_total_available": str(view.net_total_available),
    }
