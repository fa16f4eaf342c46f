"""Data models for the budget engine.

This module defines the immutable dataclasses exchanged between the engine and
its host: the budget's period configuration and the periods it produces, the
category tree, per-period figures, recurring charge rules and their
occurrences, and the computed envelope view. All money values are ``Decimal``
and every record is frozen, so a snapshot handed to the engine can never be
modified by it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Optional, Tuple

from .utils import ZERO


class RolloverPolicy(str, Enum):
    """How a category's leftover from the previous period is carried."""

    NONE = "NONE"
    SAME_CATEGORY = "SAME_CATEGORY"
    AVAILABLE_POOL = "AVAILABLE_POOL"


class FrequencyGranularity(str, Enum):
    DAY = "DAY"
    WEEK = "WEEK"
    MONTH = "MONTH"
    YEAR = "YEAR"


class RecurringStatus(str, Enum):
    ACTIVE = "ACTIVE"
    PAUSED = "PAUSED"
    CANCELLED = "CANCELLED"


@dataclass(frozen=True)
class PeriodConfig:
    """Period configuration of a budget.

    Exactly one of two modes is populated:

    * anchor-in-month: ``anchor_day_1`` and optionally ``anchor_day_2``
      (two distinct days in ``[1, 31]``; each is clamped to the month length);
    * fixed interval: ``interval_days`` (at least 1) counted from
      ``anchor_date``.

    Use :func:`budget_engine.validation.validate_period_config` to check a
    configuration built from user input.
    """

    anchor_day_1: Optional[int] = None
    anchor_day_2: Optional[int] = None
    interval_days: Optional[int] = None
    anchor_date: Optional[date] = None

    @property
    def is_fixed_interval(self) -> bool:
        return self.anchor_date is not None and self.interval_days is not None

    @property
    def is_anchor_in_month(self) -> bool:
        return self.anchor_day_1 is not None

    @property
    def is_configured(self) -> bool:
        return self.is_fixed_interval or self.is_anchor_in_month


@dataclass(frozen=True)
class PeriodRange:
    """A budget period, inclusive on both ends."""

    start: date
    end: date

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end

    @property
    def days(self) -> int:
        return (self.end - self.start).days + 1


@dataclass(frozen=True)
class CategoryNode:
    """A category as supplied by the category collaborator.

    Attributes
    ----------
    parent_id: Optional[str]
        Identifier of the parent category. A category that is the parent of
        another is a *group*; its figures are always derived from its
        children.
    display_order: int
        Sort key among siblings in the computed view.
    """

    id: str
    name: str
    income: bool = False
    exclude_from_budget: bool = False
    parent_id: Optional[str] = None
    display_order: int = 0


@dataclass(frozen=True)
class PeriodFigures:
    """Raw figures for one category in one period.

    ``expected`` is ``None`` when no expected entry was recorded; it is then
    treated as zero. ``activity`` follows the transaction sign convention
    (negative for outflows).
    """

    expected: Optional[Decimal] = None
    activity: Decimal = ZERO
    recurring_expected: Decimal = ZERO

    @property
    def leftover(self) -> Decimal:
        """Expected plus activity: what was left of the envelope."""
        return (self.expected if self.expected is not None else ZERO) + self.activity


@dataclass(frozen=True)
class OccurrenceOverride:
    """Per-occurrence adjustment of a recurring charge.

    An ``amount`` of ``None`` keeps the rule's base amount and only attaches
    ``notes``.
    """

    amount: Optional[Decimal] = None
    notes: Optional[str] = None


@dataclass(frozen=True)
class RecurrenceRule:
    """Frequency rule of a recurring charge.

    Each anchor date schedules an independent series: the n-th occurrence is
    the anchor plus ``n * quantity`` granularity units, clamped to the end of
    a too-short month. ``end_date`` is exclusive. ``overrides`` is stored
    read-only and does not take part in hashing.
    """

    granularity: FrequencyGranularity
    anchor_dates: Tuple[date, ...]
    start_date: date
    amount: Decimal
    quantity: int = 1
    end_date: Optional[date] = None
    status: RecurringStatus = RecurringStatus.ACTIVE
    overrides: Mapping[date, OccurrenceOverride] = field(default_factory=dict, hash=False)

    def __post_init__(self) -> None:
        if self.quantity < 1:
            raise ValueError("Frequency quantity must be at least 1")
        if not self.anchor_dates:
            raise ValueError("A recurrence rule needs at least one anchor date")
        # accept any sequence of anchors but store a tuple
        object.__setattr__(self, "anchor_dates", tuple(self.anchor_dates))
        object.__setattr__(self, "overrides", MappingProxyType(dict(self.overrides)))

    @property
    def is_active(self) -> bool:
        return self.status is RecurringStatus.ACTIVE


@dataclass(frozen=True)
class RecurringItem:
    """A recurring charge (or income) scheduled against an account."""

    id: str
    description: str
    account_id: str
    rule: RecurrenceRule
    category_id: Optional[str] = None


@dataclass(frozen=True)
class OccurrenceTransaction:
    """Summary of a transaction recorded against an occurrence."""

    id: str
    date: date
    amount: Decimal


@dataclass(frozen=True)
class Occurrence:
    """One scheduled instance of a recurring charge.

    ``amount`` is the expected amount: the override amount when one is set for
    this date, otherwise the rule's base amount. A linked ``transaction`` is
    reported for reconciliation and never changes ``amount``.
    """

    date: date
    amount: Decimal
    overridden: bool = False
    notes: Optional[str] = None
    transaction: Optional[OccurrenceTransaction] = None


@dataclass(frozen=True)
class RecurringItemView:
    item_id: str
    description: str
    account_id: str
    category_id: Optional[str]
    amount: Decimal
    granularity: FrequencyGranularity
    quantity: int
    occurrences: Tuple[Occurrence, ...]
    total_expected: Decimal


@dataclass(frozen=True)
class RecurringWindowView:
    """All active recurring items with occurrences in a date window."""

    window: PeriodRange
    items: Tuple[RecurringItemView, ...]
    expected_expenses: Decimal
    expected_income: Decimal

    @property
    def item_count(self) -> int:
        return len(self.items)

    @property
    def occurrence_count(self) -> int:
        return sum(len(item.occurrences) for item in self.items)


@dataclass(frozen=True)
class CategoryView:
    """Computed figures of one category in the period view.

    For a group category every money field is the sum of its children.
    ``recurring_expected`` is informational and never enters ``available``.
    """

    category_id: str
    name: str
    parent_id: Optional[str]
    display_order: int
    rollover_policy: RolloverPolicy
    expected: Decimal
    activity: Decimal
    rolled_over: Decimal
    available: Decimal
    recurring_expected: Decimal
    children: Tuple["CategoryView", ...] = ()

    @property
    def is_group(self) -> bool:
        return bool(self.children)


@dataclass(frozen=True)
class SectionView:
    """Inflow or outflow side of the view."""

    expected: Decimal
    activity: Decimal
    available: Decimal
    categories: Tuple[CategoryView, ...]


@dataclass(frozen=True)
class EnvelopeView:
    """The complete period view of a budget."""

    period: PeriodRange
    inflow: SectionView
    outflow: SectionView
    budgetable: Decimal
    total_budgeted: Decimal
    left_to_budget: Decimal
    available_pool: Decimal
    total_rolled_over: Decimal
    net_total_available: Decimal
    recurring_expected: Decimal

    @property
    def period_start(self) -> date:
        return self.period.start

    @property
    def period_end(self) -> date:
        return self.period.end
