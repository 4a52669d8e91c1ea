from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from aggregation import Bucket
from config import get_settings
from models import TransactionType
from normalizer import BudgetRecord

MAX_PERCENTAGE = 999.0


class BudgetStatus(str, Enum):
    ok = "ok"
    warning = "warning"
    exceeded = "exceeded"


@dataclass(frozen=True)
class BudgetAlert:
    budget_id: Optional[str]
    category_id: Optional[str]
    category_label: str
    limit: float
    spent: float
    percentage: float
    status: BudgetStatus

    @property
    def available(self) -> float:
        return self.limit - self.spent


def clamp_percentage(value: float) -> float:
    return min(max(value, 0.0), MAX_PERCENTAGE)


def classify(percentage: float, warning_threshold: float) -> BudgetStatus:
    if percentage >= 100:
        return BudgetStatus.exceeded
    if percentage >= warning_threshold:
        return BudgetStatus.warning
    return BudgetStatus.ok


def budgets_for_month(
    budgets: Sequence[BudgetRecord], target_month: str
) -> list[BudgetRecord]:
    """Budgets dated for the month; undated ones only when none are dated for it."""
    scoped = [b for b in budgets if b.period_month == target_month]
    if scoped:
        return scoped
    return [b for b in budgets if b.period_month is None]


def consolidate(budgets: Iterable[BudgetRecord]) -> list[BudgetRecord]:
    """One budget per category: the latest month wins, later input breaks ties."""
    grouped: dict[str, BudgetRecord] = {}
    for budget in budgets:
        key = budget.category_id or f"label:{budget.label.lower()}"
        existing = grouped.get(key)
        if existing is None or (budget.period_month or "") >= (
            existing.period_month or ""
        ):
            grouped[key] = budget
    return list(grouped.values())


def compute_alerts(
    budgets: Sequence[BudgetRecord],
    category_totals: Iterable[Bucket],
    target_month: str,
    *,
    warning_threshold: Optional[float] = None,
) -> list[BudgetAlert]:
    """Budget utilization for ``target_month`` against expense category buckets.

    Income buckets in ``category_totals`` are ignored. Lookup goes by category
    id first, then by case-insensitive label; unmatched budgets have spent 0.
    """
    if warning_threshold is None:
        warning_threshold = get_settings().budget_warning_pct

    spent_by_id: dict[str, float] = {}
    spent_by_label: dict[str, float] = {}
    for bucket in category_totals:
        if bucket.kind != TransactionType.expense:
            continue
        if bucket.key is not None:
            spent_by_id[bucket.key] = spent_by_id.get(bucket.key, 0.0) + bucket.total
        label = bucket.label.lower()
        spent_by_label[label] = spent_by_label.get(label, 0.0) + bucket.total

    alerts: list[BudgetAlert] = []
    for budget in consolidate(budgets_for_month(budgets, target_month)):
        spent = None
        if budget.category_id is not None:
            spent = spent_by_id.get(budget.category_id)
        if spent is None:
            spent = spent_by_label.get(budget.label.lower(), 0.0)
        raw = (spent / budget.limit * 100) if budget.limit else 0.0
        alerts.append(
            BudgetAlert(
                budget_id=budget.id,
                category_id=budget.category_id,
                category_label=budget.label,
                limit=budget.limit,
                spent=spent,
                percentage=clamp_percentage(raw),
                status=classify(raw, warning_threshold),
            )
        )
    return alerts
