"""In-memory collaborator data loaded from a JSON snapshot.

A snapshot holds everything :class:`budget_engine.service.BudgetViewService`
asks its collaborators for, for a single workspace and budget. It is used by
the command-line interface and by the tests. The expected layout is::

    {
      "budget": {"id": "household", "anchor_day_1": 1},
      "categories": [{"id": "food", "name": "Food", "parent_id": null}],
      "rollover_policies": {"food": "SAME_CATEGORY"},
      "periods": {
        "2026-02-01": {"expected": {"food": "300"}, "activity": {"food": "-200"}}
      },
      "linked_account_ids": ["checking"],
      "account_balances": {"checking": "1250.00"},
      "recurring_items": [
        {"id": "rent", "description": "Rent", "account_id": "checking",
         "category_id": "housing", "amount": "-1200", "granularity": "MONTH",
         "anchor_dates": ["2026-01-01"], "start_date": "2026-01-01",
         "overrides": {"2026-02-01": {"amount": "-1250", "notes": "increase"}}}
      ],
      "occurrence_transactions": [
        {"item_id": "rent", "occurrence_date": "2026-02-01", "id": "txn-42",
         "date": "2026-02-02", "amount": "-1250"}
      ]
    }

Money values may be strings or numbers; strings are preferred because they
convert to ``Decimal`` exactly.
"""

from __future__ import annotations

import json
from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from .data_models import (
    CategoryNode,
    FrequencyGranularity,
    OccurrenceOverride,
    OccurrenceTransaction,
    PeriodConfig,
    PeriodRange,
    RecurrenceRule,
    RecurringItem,
    RecurringStatus,
    RolloverPolicy,
)
from .utils import ZERO, parse_date, parse_money


def _money_map(raw: Optional[Mapping[str, Any]]) -> Dict[str, Decimal]:
    return {key: parse_money(value) for key, value in (raw or {}).items()}


def _optional_date(raw: Optional[str]) -> Optional[date]:
    return parse_date(raw) if raw else None


def config_from_dict(raw: Mapping[str, Any]) -> PeriodConfig:
    return PeriodConfig(
        anchor_day_1=raw.get("anchor_day_1"),
        anchor_day_2=raw.get("anchor_day_2"),
        interval_days=raw.get("interval_days"),
        anchor_date=_optional_date(raw.get("anchor_date")),
    )


def category_from_dict(raw: Mapping[str, Any]) -> CategoryNode:
    return CategoryNode(
        id=raw["id"],
        name=raw.get("name", raw["id"]),
        income=bool(raw.get("income", False)),
        exclude_from_budget=bool(raw.get("exclude_from_budget", False)),
        parent_id=raw.get("parent_id"),
        display_order=int(raw.get("display_order", 0)),
    )


def transaction_from_dict(raw: Mapping[str, Any]) -> Tuple[Tuple[str, date], OccurrenceTransaction]:
    """Return the occurrence key and the transaction recorded against it."""
    key = (raw["item_id"], parse_date(raw["occurrence_date"]))
    return key, OccurrenceTransaction(id=raw["id"], date=parse_date(raw["date"]), amount=parse_money(raw["amount"]))


def recurring_item_from_dict(raw: Mapping[str, Any]) -> RecurringItem:
    overrides = {
        parse_date(day): OccurrenceOverride(
            amount=parse_money(o["amount"]) if o.get("amount") is not None else None,
            notes=o.get("notes"),
        )
        for day, o in (raw.get("overrides") or {}).items()
    }
    rule = RecurrenceRule(
        granularity=FrequencyGranularity(raw["granularity"].upper()),
        quantity=int(raw.get("quantity", 1)),
        anchor_dates=tuple(parse_date(d) for d in raw["anchor_dates"]),
        start_date=parse_date(raw["start_date"]),
        end_date=_optional_date(raw.get("end_date")),
        status=RecurringStatus(raw.get("status", "ACTIVE").upper()),
        amount=parse_money(raw["amount"]),
        overrides=overrides,
    )
    return RecurringItem(
        id=raw["id"],
        description=raw.get("description", raw["id"]),
        account_id=raw["account_id"],
        category_id=raw.get("category_id"),
        rule=rule,
    )


class Snapshot:
    """A single workspace and budget held in memory.

    Implements every collaborator protocol of
    :class:`budget_engine.service.BudgetViewService`. Period data is keyed by
    period start date.
    """

    def __init__(
        self,
        *,
        workspace_id: str,
        budget_id: str,
        config: PeriodConfig,
        categories: Iterable[CategoryNode] = (),
        rollover_policies: Optional[Mapping[str, RolloverPolicy]] = None,
        expected: Optional[Mapping[date, Mapping[str, Decimal]]] = None,
        activity: Optional[Mapping[date, Mapping[str, Decimal]]] = None,
        linked_account_ids: Iterable[str] = (),
        account_balances: Optional[Mapping[str, Decimal]] = None,
        recurring_items: Iterable[RecurringItem] = (),
        occurrence_transactions: Optional[Mapping[Tuple[str, date], OccurrenceTransaction]] = None,
    ) -> None:
        self.workspace_id = workspace_id
        self.budget_id = budget_id
        self.config = config
        self._categories = list(categories)
        self._policies = dict(rollover_policies or {})
        self._expected = {start: dict(amounts) for start, amounts in (expected or {}).items()}
        self._activity = {start: dict(sums) for start, sums in (activity or {}).items()}
        self._linked = list(linked_account_ids)
        self._balances = dict(account_balances or {})
        self._recurring = list(recurring_items)
        self._transactions = dict(occurrence_transactions or {})

    # CategorySource
    def categories(self, workspace_id: str) -> List[CategoryNode]:
        return list(self._categories)

    # RolloverConfigSource
    def rollover_policies(self, budget_id: str) -> Dict[str, RolloverPolicy]:
        return dict(self._policies)

    # PeriodEntrySource
    def expected_amounts(self, budget_id: str, period_start: date) -> Dict[str, Decimal]:
        return dict(self._expected.get(period_start, {}))

    def save_expected_amounts(self, budget_id: str, period_start: date, amounts: Mapping[str, Decimal]) -> None:
        self._expected[period_start] = dict(amounts)

    # ActivitySource
    def activity_sums(self, budget_id: str, period: PeriodRange) -> Dict[str, Decimal]:
        return dict(self._activity.get(period.start, {}))

    # RecurringItemSource
    def recurring_items(self, workspace_id: str) -> List[RecurringItem]:
        return list(self._recurring)

    def linked_account_ids(self, budget_id: str) -> List[str]:
        return list(self._linked)

    def occurrence_transactions(
        self, workspace_id: str, window: PeriodRange
    ) -> Dict[Tuple[str, date], OccurrenceTransaction]:
        return {key: txn for key, txn in self._transactions.items() if window.contains(key[1])}

    # AccountSource
    def balance_sum(self, account_ids: Iterable[str]) -> Decimal:
        return sum((self._balances.get(a, ZERO) for a in account_ids), ZERO)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Snapshot":
        budget = data.get("budget") or {}
        periods = data.get("periods") or {}
        return cls(
            workspace_id=data.get("workspace_id", "default"),
            budget_id=budget.get("id", "default"),
            config=config_from_dict(budget),
            categories=[category_from_dict(c) for c in data.get("categories", [])],
            rollover_policies={
                key: RolloverPolicy(value.upper())
                for key, value in (data.get("rollover_policies") or {}).items()
            },
            expected={parse_date(start): _money_map(p.get("expected")) for start, p in periods.items()},
            activity={parse_date(start): _money_map(p.get("activity")) for start, p in periods.items()},
            linked_account_ids=data.get("linked_account_ids", []),
            account_balances=_money_map(data.get("account_balances")),
            recurring_items=[recurring_item_from_dict(r) for r in data.get("recurring_items", [])],
            occurrence_transactions=dict(
                transaction_from_dict(t) for t in data.get("occurrence_transactions", [])
            ),
        )


def load_snapshot(path: Path) -> Snapshot:
    """Read a snapshot from a JSON file."""
    with path.open("r", encoding="utf-8") as f:
        return Snapshot.from_dict(json.load(f))
