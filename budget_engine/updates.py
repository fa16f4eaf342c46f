"""Partial updates with explicit field presence.

An update field is one of three values:

* :data:`UNSET` - the field was not provided; keep the current value;
* :data:`CLEAR` - the field was provided empty; remove the current value;
* ``Set(value)`` - replace the current value.

This keeps "no change" distinct from "set to nothing" without relying on
``None`` checks.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date
from decimal import Decimal
from typing import Any, Dict, Iterable, Mapping, Optional, Union

from .data_models import CategoryNode, PeriodConfig
from .validation import check_expected_target, check_period_alignment, validate_period_config


class Unset:
    def __repr__(self) -> str:
        return "UNSET"


class Clear:
    def __repr__(self) -> str:
        return "CLEAR"


@dataclass(frozen=True)
class Set:
    value: Any


UNSET = Unset()
CLEAR = Clear()

FieldUpdate = Union[Unset, Clear, Set]
ExpectedAmountUpdate = Union[Clear, Set]


def apply_field(current: Any, update: FieldUpdate) -> Any:
    if isinstance(update, Set):
        return update.value
    if isinstance(update, Clear):
        return None
    return current


@dataclass(frozen=True)
class PeriodConfigUpdate:
    anchor_day_1: FieldUpdate = UNSET
    anchor_day_2: FieldUpdate = UNSET
    interval_days: FieldUpdate = UNSET
    anchor_date: FieldUpdate = UNSET


def apply_period_update(config: PeriodConfig, update: PeriodConfigUpdate) -> PeriodConfig:
    """Return ``config`` with ``update`` applied, validated.

    Switching modes requires clearing the fields of the old mode in the same
    update, otherwise validation rejects the mixed configuration.
    """
    updated = replace(
        config,
        anchor_day_1=apply_field(config.anchor_day_1, update.anchor_day_1),
        anchor_day_2=apply_field(config.anchor_day_2, update.anchor_day_2),
        interval_days=apply_field(config.interval_days, update.interval_days),
        anchor_date=apply_field(config.anchor_date, update.anchor_date),
    )
    validate_period_config(updated)
    return updated


def apply_expected_amount(
    config: PeriodConfig,
    categories: Iterable[CategoryNode],
    entries: Mapping[str, Decimal],
    category_id: str,
    period_start: date,
    update: ExpectedAmountUpdate,
) -> Dict[str, Decimal]:
    """Set or clear the expected amount of a category for one period.

    ``entries`` maps category id to expected amount for the period starting on
    ``period_start``. The returned mapping is a new dict; ``entries`` is left
    untouched.

    Raises
    ------
    InvalidTargetError
        If ``category_id`` has children.
    MisalignedPeriodError
        If ``period_start`` is not a period boundary of ``config``.
    """
    check_expected_target(categories, category_id)
    check_period_alignment(config, period_start)
    result = dict(entries)
    amount: Optional[Decimal] = apply_field(result.get(category_id), update)
    if amount is None:
        result.pop(category_id, None)
    else:
        result[category_id] = amount
    return result
