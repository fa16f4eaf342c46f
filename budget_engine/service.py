"""Host-side orchestration of the budget engine.

:class:`BudgetViewService` shows the order in which a host resolves a view:
validate the configuration, compute the period and the one before it, gather
figures for both from the collaborators, fold in recurring expected amounts
and hand everything to :func:`budget_engine.engine.build_view`.

Collaborators are described as protocols; any object with the right methods
will do (see :mod:`budget_engine.snapshot` for an in-memory implementation).
"""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import Dict, Iterable, List, Mapping, Optional, Protocol, Tuple

from .data_models import (
    CategoryNode,
    EnvelopeView,
    OccurrenceTransaction,
    PeriodConfig,
    PeriodFigures,
    PeriodRange,
    RecurringItem,
    RecurringWindowView,
    RolloverPolicy,
)
from .engine import build_view
from .periods import compute_period, compute_period_by_offset, compute_previous_period
from .recurrence import build_recurring_view, recurring_expected_by_category
from .updates import ExpectedAmountUpdate, apply_expected_amount
from .utils import ZERO
from .validation import require_configured

logger = logging.getLogger(__name__)


class CategorySource(Protocol):
    def categories(self, workspace_id: str) -> List[CategoryNode]: ...


class RolloverConfigSource(Protocol):
    def rollover_policies(self, budget_id: str) -> Mapping[str, RolloverPolicy]: ...


class PeriodEntrySource(Protocol):
    def expected_amounts(self, budget_id: str, period_start: date) -> Mapping[str, Decimal]: ...

    def save_expected_amounts(self, budget_id: str, period_start: date, amounts: Mapping[str, Decimal]) -> None: ...


class ActivitySource(Protocol):
    def activity_sums(self, budget_id: str, period: PeriodRange) -> Mapping[str, Decimal]: ...


class RecurringItemSource(Protocol):
    def recurring_items(self, workspace_id: str) -> List[RecurringItem]: ...

    def linked_account_ids(self, budget_id: str) -> List[str]: ...

    def occurrence_transactions(
        self, workspace_id: str, window: PeriodRange
    ) -> Mapping[Tuple[str, date], OccurrenceTransaction]: ...


class AccountSource(Protocol):
    def balance_sum(self, account_ids: Iterable[str]) -> Decimal: ...


def _figures(
    expected: Mapping[str, Decimal],
    activity: Mapping[str, Decimal],
    recurring: Optional[Mapping[str, Decimal]] = None,
) -> Dict[str, PeriodFigures]:
    recurring = recurring or {}
    ids = set(expected) | set(activity) | set(recurring)
    return {
        category_id: PeriodFigures(
            expected=expected.get(category_id),
            activity=activity.get(category_id, ZERO),
            recurring_expected=recurring.get(category_id, ZERO),
        )
        for category_id in ids
    }


class BudgetViewService:
    """Builds envelope views and recurring views from collaborator data."""

    def __init__(
        self,
        categories: CategorySource,
        rollovers: RolloverConfigSource,
        entries: PeriodEntrySource,
        activity: ActivitySource,
        recurring: RecurringItemSource,
        accounts: AccountSource,
    ) -> None:
        self._categories = categories
        self._rollovers = rollovers
        self._entries = entries
        self._activity = activity
        self._recurring = recurring
        self._accounts = accounts

    def get_view(
        self,
        workspace_id: str,
        budget_id: str,
        config: PeriodConfig,
        *,
        period_offset: int = 0,
        today: Optional[date] = None,
    ) -> EnvelopeView:
        """Return the view of the period ``period_offset`` steps from today."""
        require_configured(config)
        period = compute_period_by_offset(config, period_offset, today)
        return self._build(workspace_id, budget_id, config, period)

    def get_view_for_date(
        self, workspace_id: str, budget_id: str, config: PeriodConfig, reference_date: date
    ) -> EnvelopeView:
        require_configured(config)
        period = compute_period(config, reference_date)
        return self._build(workspace_id, budget_id, config, period)

    def get_recurring_view(self, workspace_id: str, window: PeriodRange) -> RecurringWindowView:
        """Return recurring items due in ``window`` with their recorded transactions."""
        items = self._recurring.recurring_items(workspace_id)
        transactions = self._recurring.occurrence_transactions(workspace_id, window)
        view = build_recurring_view(items, window, transactions)
        logger.info(
            "Built recurring view %s..%s: %d items, %d occurrences",
            window.start, window.end, view.item_count, view.occurrence_count,
        )
        return view

    def set_expected_amount(
        self,
        workspace_id: str,
        budget_id: str,
        config: PeriodConfig,
        category_id: str,
        period_start: date,
        update: ExpectedAmountUpdate,
    ) -> None:
        """Validate and store (or clear) an expected amount."""
        require_configured(config)
        current = self._entries.expected_amounts(budget_id, period_start)
        amounts = apply_expected_amount(
            config,
            self._categories.categories(workspace_id),
            current,
            category_id,
            period_start,
            update,
        )
        self._entries.save_expected_amounts(budget_id, period_start, amounts)
        logger.info(
            "Updated expected amount for category %s in period %s budget %s: %s",
            category_id, period_start, budget_id, amounts.get(category_id),
        )

    def _build(self, workspace_id: str, budget_id: str, config: PeriodConfig, period: PeriodRange) -> EnvelopeView:
        previous_period = compute_previous_period(config, period)
        linked_ids = list(self._recurring.linked_account_ids(budget_id))
        recurring = recurring_expected_by_category(
            self._recurring.recurring_items(workspace_id), period, linked_ids
        )
        current = _figures(
            self._entries.expected_amounts(budget_id, period.start),
            self._activity.activity_sums(budget_id, period),
            recurring,
        )
        previous = _figures(
            self._entries.expected_amounts(budget_id, previous_period.start),
            self._activity.activity_sums(budget_id, previous_period),
        )
        policies = self._rollovers.rollover_policies(budget_id)
        for category_id, policy in policies.items():
            if policy is not RolloverPolicy.NONE:
                logger.debug(
                    "Category %s rolls over %s from %s", category_id, policy.value, previous_period.start
                )
        balance = self._accounts.balance_sum(linked_ids) if linked_ids else ZERO

        view = build_view(
            period,
            self._categories.categories(workspace_id),
            current,
            previous,
            policies,
            balance,
        )
        logger.info(
            "Built budget view for %s period %s..%s: left to budget %s",
            budget_id, period.start, period.end, view.left_to_budget,
        )
        return view
