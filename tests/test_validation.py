from datetime import date
from decimal import Decimal

import pytest

from budget_engine.data_models import CategoryNode, PeriodConfig
from budget_engine.errors import (
    InvalidPeriodConfigError,
    InvalidTargetError,
    MisalignedPeriodError,
    PeriodNotConfiguredError,
)
from budget_engine.updates import (
    CLEAR,
    UNSET,
    PeriodConfigUpdate,
    Set,
    apply_expected_amount,
    apply_field,
    apply_period_update,
)
from budget_engine.validation import (
    check_expected_target,
    check_period_alignment,
    require_configured,
    validate_period_config,
)


CATEGORIES = [
    CategoryNode(id="food", name="Food"),
    CategoryNode(id="groceries", name="Groceries", parent_id="food"),
    CategoryNode(id="rent", name="Rent"),
]


@pytest.mark.parametrize(
    "config",
    [
        PeriodConfig(anchor_day_1=1),
        PeriodConfig(anchor_day_1=15, anchor_day_2=31),
        PeriodConfig(interval_days=14, anchor_date=date(2026, 2, 6)),
        PeriodConfig(interval_days=1, anchor_date=date(2026, 2, 6)),
    ],
)
def test_valid_configs_pass(config):
    validate_period_config(config)


@pytest.mark.parametrize(
    "config, message",
    [
        (PeriodConfig(), "must have period configuration"),
        (PeriodConfig(anchor_date=date(2026, 1, 1)), "must have period configuration"),
        (PeriodConfig(anchor_day_1=1, interval_days=7, anchor_date=date(2026, 1, 1)), "Cannot mix"),
        (PeriodConfig(anchor_day_1=1, interval_days=14), "must be set together"),
        (PeriodConfig(anchor_day_1=1, anchor_date=date(2026, 1, 1)), "must be set together"),
        (PeriodConfig(anchor_day_1=0), "anchor_day_1 must be between 1 and 31"),
        (PeriodConfig(anchor_day_1=32), "anchor_day_1 must be between 1 and 31"),
        (PeriodConfig(anchor_day_1=1, anchor_day_2=40), "anchor_day_2 must be between 1 and 31"),
        (PeriodConfig(anchor_day_1=10, anchor_day_2=10), "must be different"),
        (PeriodConfig(interval_days=0, anchor_date=date(2026, 1, 1)), "interval_days must be at least 1"),
    ],
)
def test_invalid_configs_raise(config, message):
    with pytest.raises(InvalidPeriodConfigError, match=message):
        validate_period_config(config)


def test_require_configured():
    require_configured(PeriodConfig(anchor_day_1=1))
    with pytest.raises(PeriodNotConfiguredError, match="Budget period is not configured."):
        require_configured(PeriodConfig())


def test_period_alignment():
    config = PeriodConfig(anchor_day_1=1)
    check_period_alignment(config, date(2026, 2, 1))
    with pytest.raises(MisalignedPeriodError, match="Expected 2026-02-01"):
        check_period_alignment(config, date(2026, 2, 15))


def test_period_alignment_fixed_interval():
    config = PeriodConfig(interval_days=14, anchor_date=date(2026, 2, 6))
    check_period_alignment(config, date(2026, 1, 23))
    with pytest.raises(MisalignedPeriodError):
        check_period_alignment(config, date(2026, 2, 7))


def test_expected_target_must_be_leaf():
    check_expected_target(CATEGORIES, "groceries")
    check_expected_target(CATEGORIES, "rent")
    with pytest.raises(InvalidTargetError, match="parent category"):
        check_expected_target(CATEGORIES, "food")


def test_errors_are_value_errors():
    with pytest.raises(ValueError):
        check_expected_target(CATEGORIES, "food")


def test_apply_field():
    assert apply_field(5, UNSET) == 5
    assert apply_field(5, CLEAR) is None
    assert apply_field(5, Set(7)) == 7


def test_period_update_keeps_unset_fields():
    config = PeriodConfig(anchor_day_1=1, anchor_day_2=15)
    updated = apply_period_update(config, PeriodConfigUpdate(anchor_day_2=Set(20)))
    assert updated == PeriodConfig(anchor_day_1=1, anchor_day_2=20)


def test_period_update_clears_second_anchor():
    config = PeriodConfig(anchor_day_1=1, anchor_day_2=15)
    assert apply_period_update(config, PeriodConfigUpdate(anchor_day_2=CLEAR)) == PeriodConfig(anchor_day_1=1)


def test_period_update_switches_mode():
    config = PeriodConfig(anchor_day_1=1)
    update = PeriodConfigUpdate(anchor_day_1=CLEAR, interval_days=Set(14), anchor_date=Set(date(2026, 2, 6)))
    assert apply_period_update(config, update) == PeriodConfig(interval_days=14, anchor_date=date(2026, 2, 6))


def test_period_update_rejects_mixed_modes():
    config = PeriodConfig(anchor_day_1=1)
    update = PeriodConfigUpdate(interval_days=Set(14), anchor_date=Set(date(2026, 2, 6)))
    with pytest.raises(InvalidPeriodConfigError, match="Cannot mix"):
        apply_period_update(config, update)


def test_apply_expected_amount_sets_and_clears():
    config = PeriodConfig(anchor_day_1=1)
    entries = {"rent": Decimal("1500")}

    updated = apply_expected_amount(config, CATEGORIES, entries, "groceries", date(2026, 2, 1), Set(Decimal("400")))
    assert updated == {"rent": Decimal("1500"), "groceries": Decimal("400")}
    assert entries == {"rent": Decimal("1500")}

    cleared = apply_expected_amount(config, CATEGORIES, updated, "rent", date(2026, 2, 1), CLEAR)
    assert cleared == {"groceries": Decimal("400")}


def test_apply_expected_amount_rejects_group_and_misaligned_start():
    config = PeriodConfig(anchor_day_1=1)
    with pytest.raises(InvalidTargetError):
        apply_expected_amount(config, CATEGORIES, {}, "food", date(2026, 2, 1), Set(Decimal("1")))
    with pytest.raises(MisalignedPeriodError):
        apply_expected_amount(config, CATEGORIES, {}, "rent", date(2026, 2, 2), Set(Decimal("1")))
