from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session, joinedload

from aggregation import (
    Bucket,
    Dimension,
    aggregate,
    category_sections,
    summarize,
)
from budgets import BudgetAlert, BudgetStatus, compute_alerts
from config import get_settings
from fx_rates import BcvRateService, convert_usd_to_ves
from models import Budget, Category, Transaction, TransactionType, Wallet
from normalizer import (
    CategoryRecord,
    TransactionRecord,
    WalletRecord,
    normalize,
    normalize_budgets,
    normalize_categories,
    normalize_wallets,
)
from periods import Period, month_period, target_month
from schemas import BucketOut, BudgetAlertOut, TransactionOut

GLOBAL_WALLET_ID = "global"


def get_current_user_id() -> str:
    return get_settings().user_id


def is_global_wallet(wallet_id: Optional[str]) -> bool:
    return wallet_id == GLOBAL_WALLET_ID


@dataclass
class TransactionFilters:
    wallet_id: Optional[str] = None
    category_id: Optional[str] = None
    kind: Optional[TransactionType] = None


def _category_relation(category: Optional[Category]) -> Optional[dict[str, object]]:
    if category is None:
        return None
    return {"id": category.id, "nombre": category.nombre, "tipo": category.tipo}


def _transaction_row(txn: Transaction) -> dict[str, object]:
    return {
        "id": txn.id,
        "monto": txn.monto,
        "tipo": txn.tipo,
        "fecha_transaccion": txn.fecha_transaccion,
        "billetera_id": txn.billetera_id,
        "categoria_id": txn.categoria_id,
        "categorias": _category_relation(txn.category),
        "billeteras": (
            {"id": txn.wallet.id, "nombre": txn.wallet.nombre} if txn.wallet else None
        ),
    }


def bucket_payload(bucket: Bucket) -> dict[str, object]:
    return BucketOut(
        key=bucket.key,
        label=bucket.label,
        kind=bucket.kind,
        total=bucket.total,
        count=bucket.count,
        percentage=bucket.percentage_of_group,
        income=bucket.income,
        expense=bucket.expense,
    ).model_dump(mode="json")


def alert_payload(alert: BudgetAlert) -> dict[str, object]:
    return BudgetAlertOut(
        budget_id=alert.budget_id,
        category_id=alert.category_id,
        category=alert.category_label,
        limit=alert.limit,
        spent=alert.spent,
        available=alert.available,
        percentage=alert.percentage,
        status=alert.status.value,
    ).model_dump(mode="json")


def transaction_payload(txn: TransactionRecord) -> dict[str, object]:
    return TransactionOut(
        id=txn.id,
        date=txn.occurred_at,
        kind=txn.kind,
        amount=txn.amount,
        wallet_id=txn.wallet_id,
        wallet=txn.wallet_label,
        category_id=txn.category_id,
        category=txn.category_label,
    ).model_dump(mode="json")


class TransactionService:
    def __init__(self, session: Session, user_id: Optional[str] = None) -> None:
        self.session = session
        self.user_id = user_id or get_current_user_id()

    def rows(
        self, period: Period, filters: Optional[TransactionFilters] = None
    ) -> list[dict[str, object]]:
        """Raw rows shaped like the backend's joined select."""
        filters = filters or TransactionFilters()
        stmt = (
            select(Transaction)
            .options(joinedload(Transaction.category), joinedload(Transaction.wallet))
            .where(Transaction.usuario_id == self.user_id)
            .order_by(Transaction.fecha_transaccion.desc())
        )
        if filters.wallet_id and not is_global_wallet(filters.wallet_id):
            stmt = stmt.where(Transaction.billetera_id == filters.wallet_id)
        if filters.category_id:
            stmt = stmt.where(Transaction.categoria_id == filters.category_id)
        if filters.kind:
            stmt = stmt.where(Transaction.tipo == filters.kind.value)
        if period.start is not None:
            stmt = stmt.where(Transaction.fecha_transaccion >= period.start)
        if period.end is not None:
            stmt = stmt.where(Transaction.fecha_transaccion <= period.end)
        return [_transaction_row(txn) for txn in self.session.scalars(stmt)]

    def list(
        self,
        period: Period,
        filters: Optional[TransactionFilters] = None,
        *,
        limit: Optional[int] = None,
    ) -> list[TransactionRecord]:
        records = normalize(self.rows(period, filters))
        records.sort(key=lambda r: r.occurred_at, reverse=True)
        return records[:limit] if limit is not None else records


class WalletService:
    def __init__(self, session: Session, user_id: Optional[str] = None) -> None:
        self.session = session
        self.user_id = user_id or get_current_user_id()

    def rows(self) -> list[dict[str, object]]:
        stmt = (
            select(Wallet)
            .where(Wallet.usuario_id == self.user_id)
            .order_by(Wallet.nombre.asc())
        )
        return [{"id": w.id, "nombre": w.nombre} for w in self.session.scalars(stmt)]

    def list_all(self) -> list[WalletRecord]:
        return normalize_wallets(self.rows())

    def summaries(self, period: Period) -> dict[str, object]:
        wallets = self.list_all()
        transactions = TransactionService(self.session, self.user_id).list(period)
        buckets = sorted(
            aggregate(transactions, Dimension.wallet, period),
            key=lambda b: b.balance,
            reverse=True,
        )
        names = {w.id: w.name for w in wallets}

        items: list[dict[str, object]] = []
        for bucket in buckets:
            items.append(
                {
                    "id": bucket.key,
                    "name": names.get(bucket.key, bucket.label),
                    "income": bucket.income,
                    "expense": bucket.expense,
                    "balance": bucket.balance,
                    "transaction_count": bucket.count,
                    "positive_count": bucket.positive_count,
                    "negative_count": bucket.negative_count,
                    "percentage": bucket.percentage_of_group,
                    "status": "active",
                }
            )
        active = {b.key for b in buckets}
        for wallet in wallets:
            if wallet.id in active:
                continue
            items.append(
                {
                    "id": wallet.id,
                    "name": wallet.name,
                    "income": 0.0,
                    "expense": 0.0,
                    "balance": 0.0,
                    "transaction_count": 0,
                    "positive_count": 0,
                    "negative_count": 0,
                    "percentage": 0.0,
                    "status": "idle",
                }
            )

        return {
            "wallets": items,
            "summary": {
                "total_balance": sum(b.balance for b in buckets),
                "wallet_count": len(wallets),
                "positive_count": sum(b.positive_count for b in buckets),
                "negative_count": sum(b.negative_count for b in buckets),
            },
        }


class CategoryService:
    def __init__(self, session: Session, user_id: Optional[str] = None) -> None:
        self.session = session
        self.user_id = user_id or get_current_user_id()

    def rows(self) -> list[dict[str, object]]:
        stmt = (
            select(Category)
            .where(Category.usuario_id == self.user_id)
            .order_by(Category.nombre.asc())
        )
        return [
            {"id": c.id, "nombre": c.nombre, "tipo": c.tipo}
            for c in self.session.scalars(stmt)
        ]

    def list_all(self) -> list[CategoryRecord]:
        return normalize_categories(self.rows())

    def overview(self, period: Period) -> dict[str, object]:
        categories = self.list_all()
        transactions = TransactionService(self.session, self.user_id).list(period)
        buckets = aggregate(transactions, Dimension.category, period)
        sections = category_sections(buckets, categories)
        summary = summarize(transactions, period)
        return {
            "expense": [bucket_payload(b) for b in sections[TransactionType.expense]],
            "income": [bucket_payload(b) for b in sections[TransactionType.income]],
            "totals": {
                "expenses": summary.expense,
                "income": summary.income,
                "categories": sum(len(s) for s in sections.values()),
            },
        }


class BudgetService:
    def __init__(self, session: Session, user_id: Optional[str] = None) -> None:
        self.session = session
        self.user_id = user_id or get_current_user_id()

    def rows(self) -> list[dict[str, object]]:
        stmt = (
            select(Budget)
            .options(joinedload(Budget.category))
            .where(Budget.usuario_id == self.user_id)
            .order_by(Budget.created_at.asc())
        )
        return [
            {
                "id": b.id,
                "categoria_id": b.categoria_id,
                "monto": b.monto,
                "periodo": b.periodo,
                "categorias": _category_relation(b.category),
            }
            for b in self.session.scalars(stmt)
        ]

    def alerts(
        self, month: str, *, warning_threshold: Optional[float] = None
    ) -> list[BudgetAlert]:
        period = month_period(month)
        transactions = TransactionService(self.session, self.user_id).list(
            period, TransactionFilters(kind=TransactionType.expense)
        )
        expense_totals = aggregate(
            transactions, Dimension.category, period, kind=TransactionType.expense
        )
        return compute_alerts(
            normalize_budgets(self.rows()),
            expense_totals,
            month,
            warning_threshold=warning_threshold,
        )

    def progress(self, month: str) -> dict[str, object]:
        alerts = self.alerts(month)
        total_budget = sum(a.limit for a in alerts)
        total_spent = sum(a.spent for a in alerts)
        exceeded = sum(1 for a in alerts if a.status == BudgetStatus.exceeded)
        return {
            "month": month,
            "budgets": [alert_payload(a) for a in alerts],
            "summary": {
                "total_budget": total_budget,
                "total_spent": total_spent,
                "available": total_budget - total_spent,
                "exceeded_count": exceeded,
                "warning_count": sum(
                    1 for a in alerts if a.status == BudgetStatus.warning
                ),
                "control_count": len(alerts) - exceeded,
            },
        }


class DashboardService:
    def __init__(self, session: Session, user_id: Optional[str] = None) -> None:
        self.session = session
        self.user_id = user_id or get_current_user_id()

    def overview(
        self,
        period: Period,
        wallet_id: Optional[str] = None,
        *,
        now: Optional[datetime] = None,
    ) -> dict[str, object]:
        wallet_id = wallet_id or GLOBAL_WALLET_ID
        transactions = TransactionService(self.session, self.user_id).list(
            period, TransactionFilters(wallet_id=wallet_id)
        )
        summary = summarize(transactions, period)
        expense_breakdown = aggregate(
            transactions, Dimension.category, period, kind=TransactionType.expense
        )
        daily = aggregate(transactions, Dimension.day, period, now=now)

        month = target_month(period, now=now)
        budgets = normalize_budgets(BudgetService(self.session, self.user_id).rows())
        alerts = compute_alerts(budgets, expense_breakdown, month)

        quote = BcvRateService().latest()
        return {
            "period": {
                "slug": period.slug,
                "start": period.start.isoformat() if period.start else None,
                "end": period.end.isoformat() if period.end else None,
            },
            "wallet_id": wallet_id,
            "summary": {
                "income": summary.income,
                "expense": summary.expense,
                "net": summary.net,
                "count": summary.count,
            },
            "summary_ves": {
                "income": convert_usd_to_ves(summary.income, quote),
                "expense": convert_usd_to_ves(summary.expense, quote),
                "net": convert_usd_to_ves(summary.net, quote),
            },
            "expense_breakdown": [bucket_payload(b) for b in expense_breakdown],
            "top_expense_category": (
                bucket_payload(expense_breakdown[0]) if expense_breakdown else None
            ),
            "daily": [
                {
                    "date": b.key,
                    "label": b.label,
                    "income": b.income,
                    "expense": b.expense,
                }
                for b in daily
            ],
            "budget_month": month,
            "budget_alerts": [alert_payload(a) for a in alerts],
        }
