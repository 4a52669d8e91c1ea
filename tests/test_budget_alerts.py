from datetime import datetime

from aggregation import Dimension, aggregate
from budgets import (
    MAX_PERCENTAGE,
    BudgetStatus,
    budgets_for_month,
    classify,
    compute_alerts,
)
from models import TransactionType
from normalizer import BudgetRecord, TransactionRecord
from periods import month_period

EXPENSE = TransactionType.expense
INCOME = TransactionType.income


def expense_totals(*entries, kind=EXPENSE):
    transactions = [
        TransactionRecord(
            id=None,
            amount=amount,
            kind=kind,
            occurred_at=datetime(2024, 3, 15, 12, 0),
            category_id=category_id,
            category_label=label,
        )
        for category_id, label, amount in entries
    ]
    return aggregate(transactions, Dimension.category, month_period("2024-03"))


def budget(budget_id, limit, month="2024-03", *, category_id=None, label="Food"):
    return BudgetRecord(
        id=budget_id,
        category_id=category_id,
        label=label,
        limit=limit,
        period_month=month,
    )


def test_spend_at_85_percent_is_a_warning() -> None:
    alerts = compute_alerts(
        [budget("b1", 100, category_id="food")],
        expense_totals(("food", "Food", 85)),
        "2024-03",
        warning_threshold=80,
    )
    assert len(alerts) == 1
    alert = alerts[0]
    assert alert.spent == 85
    assert alert.percentage == 85
    assert alert.status == BudgetStatus.warning
    assert alert.available == 15


def test_warning_threshold_is_configurable() -> None:
    alerts = compute_alerts(
        [budget("b1", 100, category_id="food")],
        expense_totals(("food", "Food", 85)),
        "2024-03",
        warning_threshold=90,
    )
    assert alerts[0].status == BudgetStatus.ok


def test_classify_boundaries() -> None:
    assert classify(100, 80) == BudgetStatus.exceeded
    assert classify(99.99, 80) == BudgetStatus.warning
    assert classify(80, 80) == BudgetStatus.warning
    assert classify(79.99, 80) == BudgetStatus.ok


def test_percentage_is_clamped_and_zero_limit_is_safe() -> None:
    alerts = compute_alerts(
        [
            budget("huge", 1, category_id="food"),
            budget("zero", 0, category_id="rent", label="Rent"),
        ],
        expense_totals(("food", "Food", 5000), ("rent", "Rent", 10)),
        "2024-03",
        warning_threshold=80,
    )
    by_id = {a.budget_id: a for a in alerts}
    assert by_id["huge"].percentage == MAX_PERCENTAGE
    assert by_id["huge"].status == BudgetStatus.exceeded
    assert by_id["zero"].percentage == 0
    assert by_id["zero"].status == BudgetStatus.ok


def test_undated_budgets_only_apply_when_month_has_none() -> None:
    dated = budget("dated", 100, "2024-03", category_id="food")
    undated = budget("undated", 50, None, category_id="rent", label="Rent")
    other = budget("other", 70, "2024-02", category_id="fun", label="Fun")

    assert budgets_for_month([dated, undated, other], "2024-03") == [dated]
    assert budgets_for_month([dated, undated, other], "2024-04") == [undated]
    assert budgets_for_month([dated, other], "2024-04") == []


def test_duplicate_budgets_keep_the_later_one() -> None:
    alerts = compute_alerts(
        [
            budget("first", 500, "2024-05", label="Rent"),
            budget("second", 800, "2024-05", label="Rent"),
        ],
        [],
        "2024-05",
        warning_threshold=80,
    )
    assert len(alerts) == 1
    assert alerts[0].budget_id == "second"
    assert alerts[0].limit == 800


def test_spent_falls_back_to_label_then_zero() -> None:
    alerts = compute_alerts(
        [
            budget("by-label", 100, label="COMIDA"),
            budget("by-id", 100, category_id="c9", label="Viajes"),
            budget("missing", 100, category_id="c3", label="Salud"),
        ],
        expense_totals((None, "Comida", 40), ("c9", "Renamed", 10)),
        "2024-03",
        warning_threshold=80,
    )
    by_id = {a.budget_id: a for a in alerts}
    assert by_id["by-label"].spent == 40
    assert by_id["by-id"].spent == 10
    assert by_id["missing"].spent == 0
    assert by_id["missing"].status == BudgetStatus.ok


def test_income_buckets_do_not_count_as_spending() -> None:
    alerts = compute_alerts(
        [budget("b1", 100, category_id="food")],
        expense_totals(("food", "Food", 90), kind=INCOME),
        "2024-03",
        warning_threshold=80,
    )
    assert alerts[0].spent == 0


def test_compute_alerts_is_repeatable() -> None:
    budgets = [
        budget("b1", 100, category_id="food"),
        budget("b2", 40, category_id="fun", label="Fun"),
    ]
    totals = expense_totals(("food", "Food", 120), ("fun", "Fun", 10))
    first = compute_alerts(budgets, totals, "2024-03", warning_threshold=80)
    second = compute_alerts(budgets, totals, "2024-03", warning_threshold=80)
    assert first == second
