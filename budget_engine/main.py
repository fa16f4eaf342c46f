"""Command-line interface for the budget engine.

This module uses the ``click`` library to expose the engine's calculations
for inspection from the terminal: budget periods, occurrences of a single
recurring rule, and the recurring and envelope views of a JSON snapshot (see
:mod:`budget_engine.snapshot`). Every option can also be supplied through a
``BUDGET_ENGINE_<COMMAND>_<OPTION>`` environment variable.
"""

from __future__ import annotations

import json
import logging
from datetime import date
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import click

from .data_models import (
    FrequencyGranularity,
    OccurrenceOverride,
    PeriodConfig,
    RecurrenceRule,
    RecurringStatus,
)
from .errors import BudgetEngineError
from .formatter import (
    occurrence_to_dict,
    period_to_dict,
    print_occurrences,
    print_period,
    print_recurring_view,
    print_view,
    view_to_dict,
)
from .periods import compute_period_by_offset
from .recurrence import compute_occurrences, month_window
from .service import BudgetViewService
from .snapshot import Snapshot, load_snapshot
from .utils import parse_date, parse_money, parse_month
from .validation import validate_period_config


def _date_option(value: Optional[str], name: str) -> Optional[date]:
    if value is None:
        return None
    try:
        return parse_date(value)
    except ValueError as exc:
        raise click.BadParameter(str(exc), param_hint=name)


def build_config_from_options(
    anchor_day: Tuple[int, ...],
    interval_days: Optional[int],
    anchor_date: Optional[str],
) -> PeriodConfig:
    if len(anchor_day) > 2:
        raise click.BadParameter("At most two anchor days are allowed", param_hint="--anchor-day")
    config = PeriodConfig(
        anchor_day_1=anchor_day[0] if anchor_day else None,
        anchor_day_2=anchor_day[1] if len(anchor_day) > 1 else None,
        interval_days=interval_days,
        anchor_date=_date_option(anchor_date, "--anchor-date"),
    )
    try:
        validate_period_config(config)
    except BudgetEngineError as exc:
        raise click.BadParameter(str(exc))
    return config


def parse_override_strings(values: Tuple[str, ...]) -> Dict[date, OccurrenceOverride]:
    overrides: Dict[date, OccurrenceOverride] = {}
    for item in values:
        parts = item.split(":")
        if len(parts) != 2:
            raise click.BadParameter(f"Override must be in YYYY-MM-DD:AMOUNT format; got {item}")
        day, amount = parts
        try:
            overrides[parse_date(day)] = OccurrenceOverride(amount=parse_money(amount))
        except ValueError as exc:
            raise click.BadParameter(str(exc))
    return overrides


def _write_json(path: Path, data: Any) -> None:
    if path.suffix.lower() != ".json":
        raise click.BadParameter("Unsupported output format; use .json")
    with path.open("w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)
    click.echo(f"Exported to {path}")


def _load(snapshot_path: str) -> Snapshot:
    try:
        snapshot = load_snapshot(Path(snapshot_path))
        # an empty config is reported by the command that needs a period
        if snapshot.config != PeriodConfig():
            validate_period_config(snapshot.config)
    except (KeyError, ValueError) as exc:
        raise click.ClickException(f"Invalid snapshot {snapshot_path}: {exc}")
    return snapshot


def _service(snapshot: Snapshot) -> BudgetViewService:
    return BudgetViewService(snapshot, snapshot, snapshot, snapshot, snapshot, snapshot)


@click.group()
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="WARNING",
    help="Logging verbosity",
)
def cli(log_level: str) -> None:
    """Inspect budget periods, recurring charges and envelope views."""
    logging.basicConfig(level=log_level.upper(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")


@cli.command()
@click.option("--anchor-day", "anchor_day", type=int, multiple=True, help="Anchor day of month (give twice for semi-monthly)")
@click.option("--interval-days", "interval_days", type=int, help="Fixed period length in days")
@click.option("--anchor-date", "anchor_date", help="First day of a fixed-interval period (YYYY-MM-DD)")
@click.option("--date", "reference", help="Reference date (YYYY-MM-DD), defaults to today")
@click.option("--offset", "offset", type=int, default=0, help="Periods to step from the reference period")
@click.option("--output", "output", type=str, help="Output file path (.json)")
def period(
    anchor_day: Tuple[int, ...],
    interval_days: Optional[int],
    anchor_date: Optional[str],
    reference: Optional[str],
    offset: int,
    output: Optional[str],
) -> None:
    """Compute the budget period containing a date."""
    config = build_config_from_options(anchor_day, interval_days, anchor_date)
    reference_date = _date_option(reference, "--date") or date.today()
    result = compute_period_by_offset(config, offset, reference_date)
    if output:
        _write_json(Path(output), period_to_dict(result))
    else:
        print_period(result)


@cli.command()
@click.option(
    "--granularity",
    "granularity",
    type=click.Choice([g.value for g in FrequencyGranularity], case_sensitive=False),
    required=True,
    help="Frequency unit",
)
@click.option("--quantity", "quantity", type=click.IntRange(min=1), default=1, help="Units between occurrences")
@click.option("--anchor", "anchors", multiple=True, required=True, help="Anchor date (YYYY-MM-DD), repeatable")
@click.option("--amount", "amount", required=True, help="Base amount of each occurrence")
@click.option("--start-date", "start_date", help="First date an occurrence may fall on, defaults to the earliest anchor")
@click.option("--end-date", "end_date", help="Occurrences on or after this date are excluded")
@click.option(
    "--status",
    "status",
    type=click.Choice([s.value for s in RecurringStatus], case_sensitive=False),
    default=RecurringStatus.ACTIVE.value,
    help="Status of the recurring item",
)
@click.option("--override", "override", multiple=True, help="Amount override in YYYY-MM-DD:AMOUNT format")
@click.option("--from", "window_start", required=True, help="Window start (YYYY-MM-DD)")
@click.option("--to", "window_end", required=True, help="Window end, inclusive (YYYY-MM-DD)")
@click.option("--output", "output", type=str, help="Output file path (.json)")
def occurrences(
    granularity: str,
    quantity: int,
    anchors: Tuple[str, ...],
    amount: str,
    start_date: Optional[str],
    end_date: Optional[str],
    status: str,
    override: Tuple[str, ...],
    window_start: str,
    window_end: str,
    output: Optional[str],
) -> None:
    """List the occurrences of a recurring rule within a window."""
    anchor_dates = [_date_option(a, "--anchor") for a in anchors]
    try:
        base_amount = parse_money(amount)
    except ValueError as exc:
        raise click.BadParameter(str(exc), param_hint="--amount")
    rule = RecurrenceRule(
        granularity=FrequencyGranularity(granularity.upper()),
        quantity=quantity,
        anchor_dates=tuple(anchor_dates),
        start_date=_date_option(start_date, "--start-date") or min(anchor_dates),
        end_date=_date_option(end_date, "--end-date"),
        status=RecurringStatus(status.upper()),
        amount=base_amount,
        overrides=parse_override_strings(override),
    )
    result = compute_occurrences(rule, _date_option(window_start, "--from"), _date_option(window_end, "--to"))
    if output:
        _write_json(Path(output), {"occurrences": [occurrence_to_dict(o) for o in result], "count": len(result)})
    else:
        print_occurrences(result)


@cli.command()
@click.option("--snapshot", "snapshot_path", type=click.Path(exists=True, dir_okay=False), required=True, help="Snapshot JSON file")
@click.option("--month", "month", help="Calendar month (YYYY-MM), defaults to the current month")
def recurring(snapshot_path: str, month: Optional[str]) -> None:
    """Show recurring items with occurrences in a calendar month."""
    snapshot = _load(snapshot_path)
    try:
        first = parse_month(month) if month else date.today().replace(day=1)
    except ValueError as exc:
        raise click.BadParameter(str(exc), param_hint="--month")
    view = _service(snapshot).get_recurring_view(snapshot.workspace_id, month_window(first.year, first.month))
    print_recurring_view(view)


@cli.command()
@click.option("--snapshot", "snapshot_path", type=click.Path(exists=True, dir_okay=False), required=True, help="Snapshot JSON file")
@click.option("--date", "reference", help="Any date in the period to show, defaults to today")
@click.option("--offset", "offset", type=int, default=0, help="Periods to step from the reference period")
@click.option("--output", "output", type=str, help="Output file path (.json)")
def view(snapshot_path: str, reference: Optional[str], offset: int, output: Optional[str]) -> None:
    """Compute the envelope view of the budget in a snapshot."""
    snapshot = _load(snapshot_path)
    service = _service(snapshot)
    reference_date = _date_option(reference, "--date")
    try:
        result = service.get_view(
            snapshot.workspace_id,
            snapshot.budget_id,
            snapshot.config,
            period_offset=offset,
            today=reference_date,
        )
    except BudgetEngineError as exc:
        raise click.ClickException(str(exc))
    if output:
        _write_json(Path(output), view_to_dict(result))
    else:
        print_view(result)


def main() -> None:
    cli(auto_envvar_prefix="BUDGET_ENGINE")


if __name__ == "__main__":
    main()
