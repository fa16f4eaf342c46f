"""Envelope aggregation for a budget period.

This module combines the raw figures of the period in view and of the period
immediately before it into an :class:`EnvelopeView`. Categories are arranged
into a tree keyed by identifier, leaves are resolved from their own figures
and rollover policy, and groups are summed from their children in a post-order
walk. Figures recorded directly against a group identifier are never read.

Rollover looks back exactly one period. A ``SAME_CATEGORY`` leaf carries the
previous period's leftover (expected plus activity, possibly negative) into
its own envelope; an ``AVAILABLE_POOL`` leaf carries nothing itself and adds
its leftover to the workspace-level available pool instead.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from .data_models import (
    CategoryNode,
    CategoryView,
    EnvelopeView,
    PeriodFigures,
    PeriodRange,
    RolloverPolicy,
    SectionView,
)
from .utils import ZERO

_NO_FIGURES = PeriodFigures()


def resolve_rollover(policy: RolloverPolicy, previous: PeriodFigures) -> Tuple[Decimal, Decimal]:
    """Return ``(rolled_over, pool_contribution)`` for a leaf category."""
    if policy is RolloverPolicy.SAME_CATEGORY:
        return previous.leftover, ZERO
    if policy is RolloverPolicy.AVAILABLE_POOL:
        return ZERO, previous.leftover
    return ZERO, ZERO


def _sort_key(node: CategoryNode) -> Tuple[int, str]:
    return node.display_order, node.name


def _arrange(categories: Iterable[CategoryNode]) -> Tuple[List[CategoryNode], Dict[str, List[CategoryNode]]]:
    """Split budgeted categories into sorted roots and a children index.

    A category whose parent is excluded from the budget (or unknown) is
    treated as a root.
    """
    budgeted = {c.id: c for c in categories if not c.exclude_from_budget}
    roots: List[CategoryNode] = []
    children: Dict[str, List[CategoryNode]] = {}
    for node in budgeted.values():
        if node.parent_id is not None and node.parent_id in budgeted:
            children.setdefault(node.parent_id, []).append(node)
        else:
            roots.append(node)
    roots.sort(key=_sort_key)
    for siblings in children.values():
        siblings.sort(key=_sort_key)
    return roots, children


class _Rollup:
    """Post-order builder of category views.

    Keeps the running available pool while leaves are resolved.
    """

    def __init__(
        self,
        children: Mapping[str, List[CategoryNode]],
        current: Mapping[str, PeriodFigures],
        previous: Mapping[str, PeriodFigures],
        policies: Mapping[str, RolloverPolicy],
    ) -> None:
        self.children = children
        self.current = current
        self.previous = previous
        self.policies = policies
        self.available_pool = ZERO

    def build(self, node: CategoryNode) -> CategoryView:
        policy = self.policies.get(node.id, RolloverPolicy.NONE)
        kids = self.children.get(node.id)
        if kids:
            return self._group(node, policy, tuple(self.build(child) for child in kids))
        return self._leaf(node, policy)

    def _leaf(self, node: CategoryNode, policy: RolloverPolicy) -> CategoryView:
        figures = self.current.get(node.id, _NO_FIGURES)
        expected = figures.expected if figures.expected is not None else ZERO
        rolled_over = ZERO
        if policy is not RolloverPolicy.NONE:
            rolled_over, to_pool = resolve_rollover(policy, self.previous.get(node.id, _NO_FIGURES))
            self.available_pool += to_pool
        # income activity is money received, which uses up the expectation
        if node.income:
            available = expected + rolled_over - figures.activity
        else:
            available = expected + rolled_over + figures.activity
        return CategoryView(
            category_id=node.id,
            name=node.name,
            parent_id=node.parent_id,
            display_order=node.display_order,
            rollover_policy=policy,
            expected=expected,
            activity=figures.activity,
            rolled_over=rolled_over,
            available=available,
            recurring_expected=figures.recurring_expected,
        )

    @staticmethod
    def _group(node: CategoryNode, policy: RolloverPolicy, kids: Tuple[CategoryView, ...]) -> CategoryView:
        return CategoryView(
            category_id=node.id,
            name=node.name,
            parent_id=node.parent_id,
            display_order=node.display_order,
            rollover_policy=policy,
            expected=sum((k.expected for k in kids), ZERO),
            activity=sum((k.activity for k in kids), ZERO),
            rolled_over=sum((k.rolled_over for k in kids), ZERO),
            available=sum((k.available for k in kids), ZERO),
            recurring_expected=sum((k.recurring_expected for k in kids), ZERO),
            children=kids,
        )


def _section(views: Iterable[CategoryView]) -> SectionView:
    views = tuple(views)
    return SectionView(
        expected=sum((v.expected for v in views), ZERO),
        activity=sum((v.activity for v in views), ZERO),
        available=sum((v.available for v in views), ZERO),
        categories=views,
    )


def build_view(
    period: PeriodRange,
    categories: Iterable[CategoryNode],
    current: Mapping[str, PeriodFigures],
    previous: Mapping[str, PeriodFigures],
    rollover_policies: Optional[Mapping[str, RolloverPolicy]] = None,
    linked_account_balance: Decimal = ZERO,
) -> EnvelopeView:
    """Compute the envelope view of a budget for ``period``.

    Parameters
    ----------
    period: PeriodRange
        The period in view.
    categories: Iterable[CategoryNode]
        The workspace's category tree. Categories excluded from the budget are
        omitted from the view and from every total.
    current: Mapping[str, PeriodFigures]
        Figures of the period in view keyed by category id, including the
        recurring expected sums. Missing categories count as zero.
    previous: Mapping[str, PeriodFigures]
        Expected and activity of the immediately preceding period, used for
        rollover. Missing categories count as zero.
    rollover_policies: Mapping[str, RolloverPolicy]
        Policy per category; absent entries mean ``NONE``.
    linked_account_balance: Decimal
        Sum of balances of the accounts linked to the budget, reported as
        ``net_total_available``.
    """
    categories = list(categories)
    roots, children = _arrange(categories)
    rollup = _Rollup(children, current, previous, rollover_policies or {})
    root_views = [rollup.build(node) for node in roots]

    income_ids = {c.id for c in categories if c.income}
    inflow = _section(v for v in root_views if v.category_id in income_ids)
    outflow = _section(v for v in root_views if v.category_id not in income_ids)

    available_pool = rollup.available_pool
    budgetable = inflow.expected + available_pool
    total_budgeted = outflow.expected
    return EnvelopeView(
        period=period,
        inflow=inflow,
        outflow=outflow,
        budgetable=budgetable,
        total_budgeted=total_budgeted,
        left_to_budget=budgetable - total_budgeted,
        available_pool=available_pool,
        total_rolled_over=sum((v.rolled_over for v in root_views), ZERO) + available_pool,
        net_total_available=linked_account_balance,
        recurring_expected=sum((v.recurring_expected for v in root_views), ZERO),
    )
