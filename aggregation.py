from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

from models import TransactionType
from normalizer import CategoryRecord, TransactionRecord
from periods import Period

NO_WALLET = "No wallet"


class Dimension(str, Enum):
    wallet = "wallet"
    category = "category"
    day = "day"


@dataclass(frozen=True)
class Bucket:
    key: Optional[str]
    label: str
    total: float
    count: int
    percentage_of_group: float
    kind: Optional[TransactionType] = None
    income: float = 0.0
    expense: float = 0.0
    positive_count: int = 0
    negative_count: int = 0

    @property
    def balance(self) -> float:
        return self.income - self.expense


@dataclass(frozen=True)
class Summary:
    income: float
    expense: float
    count: int

    @property
    def net(self) -> float:
        return self.income - self.expense


class _Accumulator:
    def __init__(
        self,
        key: Optional[str],
        label: str,
        kind: Optional[TransactionType] = None,
    ) -> None:
        self.key = key
        self.label = label
        self.kind = kind
        self.income = 0.0
        self.expense = 0.0
        self.count = 0
        self.positive_count = 0
        self.negative_count = 0

    def add(self, txn: TransactionRecord) -> None:
        if txn.kind == TransactionType.income:
            self.income += txn.amount
            self.positive_count += 1
        else:
            self.expense += txn.amount
            self.negative_count += 1
        self.count += 1

    @property
    def total(self) -> float:
        return self.income + self.expense


def percentage(part: float, whole: float) -> float:
    return (part / whole * 100) if whole else 0.0


def _finish(accumulators: Sequence[_Accumulator]) -> list[Bucket]:
    """Buckets with percentages computed within each kind partition."""
    totals: dict[Optional[TransactionType], float] = {}
    for acc in accumulators:
        totals[acc.kind] = totals.get(acc.kind, 0.0) + acc.total
    return [
        Bucket(
            key=acc.key,
            label=acc.label,
            total=acc.total,
            count=acc.count,
            percentage_of_group=percentage(acc.total, totals[acc.kind]),
            kind=acc.kind,
            income=acc.income,
            expense=acc.expense,
            positive_count=acc.positive_count,
            negative_count=acc.negative_count,
        )
        for acc in accumulators
    ]


def _by_wallet(transactions: Iterable[TransactionRecord]) -> list[Bucket]:
    groups: dict[Optional[str], _Accumulator] = {}
    for txn in transactions:
        acc = groups.get(txn.wallet_id)
        if acc is None:
            label = txn.wallet_label if txn.wallet_id is not None else NO_WALLET
            acc = groups[txn.wallet_id] = _Accumulator(txn.wallet_id, label)
        acc.add(txn)
    buckets = _finish(list(groups.values()))
    buckets.sort(key=lambda b: b.total, reverse=True)
    return buckets


def category_group_key(category_id: Optional[str], label: str) -> str:
    return category_id if category_id is not None else f"label:{label.lower()}"


def _by_category(transactions: Iterable[TransactionRecord]) -> list[Bucket]:
    # Income and expense are independent series sharing the category key.
    groups: dict[tuple[TransactionType, str], _Accumulator] = {}
    for txn in transactions:
        group = (txn.kind, category_group_key(txn.category_id, txn.category_label))
        acc = groups.get(group)
        if acc is None:
            acc = groups[group] = _Accumulator(
                txn.category_id, txn.category_label, txn.kind
            )
        acc.add(txn)
    buckets = _finish(list(groups.values()))
    buckets.sort(key=lambda b: b.total, reverse=True)
    return buckets


def _by_day(
    transactions: Iterable[TransactionRecord],
    period: Period,
    now: Optional[datetime],
) -> list[Bucket]:
    days: dict[str, _Accumulator] = {}
    for day in period.days(now=now):
        days[day.isoformat()] = _Accumulator(day.isoformat(), day.strftime("%d/%m"))
    for txn in transactions:
        acc = days.get(txn.occurred_at.date().isoformat())
        if acc is not None:
            acc.add(txn)
    return _finish(list(days.values()))


def aggregate(
    transactions: Iterable[TransactionRecord],
    dimension: Dimension,
    period: Optional[Period] = None,
    *,
    kind: Optional[TransactionType] = None,
    now: Optional[datetime] = None,
) -> list[Bucket]:
    """Group transactions inside ``period`` by wallet, category or day.

    ``kind`` restricts the input to one transaction kind. Wallet and category
    buckets are sparse and sorted by total, largest first (stable). Day buckets
    cover every day of the period, zero-filled, oldest first.
    """
    period = period or Period("all", None, None)
    selected = [
        txn
        for txn in transactions
        if period.contains(txn.occurred_at) and (kind is None or txn.kind == kind)
    ]
    if dimension == Dimension.wallet:
        return _by_wallet(selected)
    if dimension == Dimension.category:
        return _by_category(selected)
    if dimension == Dimension.day:
        return _by_day(selected, period, now)
    raise ValueError(f"Unsupported dimension: {dimension}")


def summarize(
    transactions: Iterable[TransactionRecord], period: Optional[Period] = None
) -> Summary:
    period = period or Period("all", None, None)
    acc = _Accumulator(None, "")
    for txn in transactions:
        if period.contains(txn.occurred_at):
            acc.add(txn)
    return Summary(income=acc.income, expense=acc.expense, count=acc.count)


def effective_category_kind(
    declared: Optional[TransactionType],
    income_total: float,
    expense_total: float,
) -> TransactionType:
    """Declared kind, else the kind with the larger observed total, else expense."""
    if declared is not None:
        return declared
    if income_total > expense_total:
        return TransactionType.income
    return TransactionType.expense


def category_sections(
    buckets: Sequence[Bucket],
    categories: Sequence[CategoryRecord] = (),
) -> dict[TransactionType, list[Bucket]]:
    """Place every category in exactly one kind section.

    ``buckets`` is the unfiltered category aggregation. Known categories appear
    even without transactions; categories only seen on transactions follow.
    Percentages are relative to the kind's overall total.
    """
    by_group: dict[tuple[TransactionType, str], Bucket] = {}
    group_order: list[str] = []
    labels: dict[str, tuple[Optional[str], str]] = {}
    kind_totals = {TransactionType.income: 0.0, TransactionType.expense: 0.0}
    for bucket in buckets:
        group = category_group_key(bucket.key, bucket.label)
        by_group[(bucket.kind, group)] = bucket
        kind_totals[bucket.kind] += bucket.total
        if group not in labels:
            labels[group] = (bucket.key, bucket.label)
            group_order.append(group)

    sections: dict[TransactionType, list[Bucket]] = {
        TransactionType.expense: [],
        TransactionType.income: [],
    }

    def place(group: str, key: Optional[str], label: str, declared) -> None:
        income = by_group.get((TransactionType.income, group))
        expense = by_group.get((TransactionType.expense, group))
        kind = effective_category_kind(
            declared,
            income.total if income else 0.0,
            expense.total if expense else 0.0,
        )
        source = income if kind == TransactionType.income else expense
        total = source.total if source else 0.0
        sections[kind].append(
            Bucket(
                key=key,
                label=label,
                total=total,
                count=source.count if source else 0,
                percentage_of_group=percentage(total, kind_totals[kind]),
                kind=kind,
                income=total if kind == TransactionType.income else 0.0,
                expense=total if kind == TransactionType.expense else 0.0,
            )
        )

    seen: set[str] = set()
    for category in categories:
        seen.add(category.id)
        place(category.id, category.id, category.name, category.kind)
    for group in group_order:
        if group in seen:
            continue
        key, label = labels[group]
        place(group, key, label, None)

    for section in sections.values():
        section.sort(key=lambda b: b.total, reverse=True)
    return sections
