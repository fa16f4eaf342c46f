import json

import pytest
from click.testing import CliRunner

from budget_engine.main import cli


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def snapshot_file(tmp_path):
    data = {
        "workspace_id": "ws",
        "budget": {"id": "household", "anchor_day_1": 1},
        "categories": [
            {"id": "groceries", "name": "Groceries"},
            {"id": "salary", "name": "Salary", "income": True},
        ],
        "rollover_policies": {"groceries": "SAME_CATEGORY"},
        "periods": {
            "2026-01-01": {"expected": {"groceries": "300"}, "activity": {"groceries": "-250"}},
            "2026-02-01": {
                "expected": {"groceries": "300", "salary": "5000"},
                "activity": {"groceries": "-200", "salary": "4500"},
            },
        },
        "linked_account_ids": ["checking"],
        "account_balances": {"checking": "1250.00"},
        "recurring_items": [
            {
                "id": "netflix",
                "description": "Netflix",
                "account_id": "checking",
                "category_id": "groceries",
                "amount": "-15.99",
                "granularity": "MONTH",
                "anchor_dates": ["2025-11-20"],
                "start_date": "2025-11-20",
            }
        ],
        "occurrence_transactions": [
            {"item_id": "netflix", "occurrence_date": "2026-03-20", "id": "txn-1", "date": "2026-03-21", "amount": "-17.49"}
        ],
    }
    path = tmp_path / "snapshot.json"
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


def test_period_dual_anchor(runner):
    result = runner.invoke(cli, ["period", "--anchor-day", "15", "--anchor-day", "31", "--date", "2026-02-28"])
    assert result.exit_code == 0, result.output
    assert "Period: 2026-02-28 .. 2026-03-14 (15 days)" in result.output


def test_period_fixed_interval_with_offset(runner):
    result = runner.invoke(
        cli,
        ["period", "--interval-days", "14", "--anchor-date", "2026-02-06", "--date", "2026-02-12", "--offset", "-1"],
    )
    assert result.exit_code == 0, result.output
    assert "Period: 2026-01-23 .. 2026-02-05" in result.output


def test_period_export_json(runner, tmp_path):
    out = tmp_path / "period.json"
    result = runner.invoke(cli, ["period", "--anchor-day", "1", "--date", "2028-02-10", "--output", str(out)])
    assert result.exit_code == 0, result.output
    assert json.loads(out.read_text()) == {"start": "2028-02-01", "end": "2028-02-29"}


def test_period_rejects_invalid_config(runner):
    result = runner.invoke(cli, ["period", "--anchor-day", "32", "--date", "2026-02-01"])
    assert result.exit_code == 2
    assert "anchor_day_1 must be between 1 and 31" in result.output


def test_period_rejects_mixed_modes(runner):
    result = runner.invoke(
        cli, ["period", "--anchor-day", "1", "--interval-days", "14", "--anchor-date", "2026-02-06"]
    )
    assert result.exit_code == 2
    assert "Cannot mix" in result.output


def test_period_rejects_bad_date(runner):
    result = runner.invoke(cli, ["period", "--anchor-day", "1", "--date", "2026-13-01"])
    assert result.exit_code == 2


def test_occurrences_with_override(runner):
    result = runner.invoke(
        cli,
        [
            "occurrences",
            "--granularity", "week",
            "--quantity", "2",
            "--anchor", "2026-01-02",
            "--amount", "-40",
            "--override", "2026-02-13:-55",
            "--from", "2026-02-01",
            "--to", "2026-02-28",
        ],
    )
    assert result.exit_code == 0, result.output
    assert "2026-02-13\t-55.00\tYes" in result.output
    assert "2026-02-27\t-40.00\tNo" in result.output
    assert "Occurrences: 2" in result.output


def test_occurrences_json_export(runner, tmp_path):
    out = tmp_path / "occ.json"
    result = runner.invoke(
        cli,
        [
            "occurrences",
            "--granularity", "MONTH",
            "--anchor", "2026-01-31",
            "--amount", "-10",
            "--from", "2026-02-01",
            "--to", "2026-04-30",
            "--output", str(out),
        ],
    )
    assert result.exit_code == 0, result.output
    data = json.loads(out.read_text())
    assert data["count"] == 3
    assert [o["date"] for o in data["occurrences"]] == ["2026-02-28", "2026-03-31", "2026-04-30"]


def test_occurrences_rejects_malformed_override(runner):
    result = runner.invoke(
        cli,
        [
            "occurrences",
            "--granularity", "DAY",
            "--anchor", "2026-01-01",
            "--amount", "-1",
            "--override", "2026-01-05",
            "--from", "2026-01-01",
            "--to", "2026-01-31",
        ],
    )
    assert result.exit_code == 2
    assert "YYYY-MM-DD:AMOUNT" in result.output


def test_unsupported_output_format(runner, tmp_path):
    result = runner.invoke(
        cli, ["period", "--anchor-day", "1", "--date", "2026-02-10", "--output", str(tmp_path / "period.csv")]
    )
    assert result.exit_code == 2
    assert "use .json" in result.output


def test_view_prints_totals(runner, snapshot_file):
    result = runner.invoke(cli, ["view", "--snapshot", str(snapshot_file), "--date", "2026-02-14"])
    assert result.exit_code == 0, result.output
    assert "Period: 2026-02-01 .. 2026-02-28 (28 days)" in result.output
    assert "Left to budget     : 4700.00" in result.output
    assert "Total rolled over  : 50.00" in result.output
    assert "Recurring expected : -15.99" in result.output
    assert "Net total available: 1250.00" in result.output


def test_view_json_export(runner, snapshot_file, tmp_path):
    out = tmp_path / "view.json"
    result = runner.invoke(
        cli, ["view", "--snapshot", str(snapshot_file), "--date", "2026-03-05", "--offset", "-1", "--output", str(out)]
    )
    assert result.exit_code == 0, result.output
    data = json.loads(out.read_text())
    assert data["period"] == {"start": "2026-02-01", "end": "2026-02-28"}
    groceries = data["outflow"]["categories"][0]
    assert groceries["rolled_over"] == "50"
    assert groceries["available"] == "150"


def test_view_unconfigured_budget_fails(runner, tmp_path):
    path = tmp_path / "empty.json"
    path.write_text(json.dumps({"budget": {"id": "b"}}), encoding="utf-8")
    result = runner.invoke(cli, ["view", "--snapshot", str(path), "--date", "2026-02-14"])
    assert result.exit_code == 1
    assert "Budget period is not configured." in result.output


def test_view_invalid_snapshot_fails(runner, tmp_path):
    path = tmp_path / "bad.json"
    path.write_text(json.dumps({"categories": [{"name": "no id"}]}), encoding="utf-8")
    result = runner.invoke(cli, ["view", "--snapshot", str(path)])
    assert result.exit_code == 1
    assert "Invalid snapshot" in result.output


def test_recurring_month(runner, snapshot_file):
    result = runner.invoke(cli, ["recurring", "--snapshot", str(snapshot_file), "--month", "2026-03"])
    assert result.exit_code == 0, result.output
    assert "Recurring items 2026-03-01 .. 2026-03-31" in result.output
    assert "2026-03-20 (paid -17.49)" in result.output
    assert "Expected expenses  : -15.99" in result.output
    assert "Items / occurrences: 1 / 1" in result.output


def test_period_rejects_interval_without_anchor_date(runner):
    result = runner.invoke(cli, ["period", "--anchor-day", "1", "--interval-days", "14", "--date", "2026-02-01"])
    assert result.exit_code == 2
    assert "interval_days and anchor_date must be set together" in result.output


@pytest.mark.parametrize(
    "budget, message",
    [
        ({"id": "b", "interval_days": 0, "anchor_date": "2026-01-01"}, "interval_days must be at least 1"),
        ({"id": "b", "anchor_day_1": 0}, "anchor_day_1 must be between 1 and 31"),
        ({"id": "b", "anchor_day_1": 1, "interval_days": 14}, "must be set together"),
    ],
)
@pytest.mark.parametrize("command", [["view", "--date", "2026-02-14"], ["recurring", "--month", "2026-03"]])
def test_snapshot_with_malformed_period_config_fails(runner, tmp_path, budget, message, command):
    path = tmp_path / "malformed.json"
    path.write_text(json.dumps({"budget": budget}), encoding="utf-8")
    result = runner.invoke(cli, [command[0], "--snapshot", str(path), *command[1:]])
    assert result.exit_code == 1
    assert isinstance(result.exception, SystemExit)
    assert "Invalid snapshot" in result.output
    assert message in result.output
