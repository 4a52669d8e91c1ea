from __future__ import annotations

import logging
import math
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Optional
from zoneinfo import ZoneInfo

from config import get_settings
from models import TransactionType
from periods import month_key, start_of_day

logger = logging.getLogger(__name__)

UNCATEGORIZED = "Uncategorized"
UNNAMED = "Unnamed"

_KIND_ALIASES = {
    "gasto": TransactionType.expense,
    "expense": TransactionType.expense,
    "ingreso": TransactionType.income,
    "income": TransactionType.income,
}

_MONTH_RE = re.compile(r"^(\d{4})-(\d{2})")


@dataclass(frozen=True)
class TransactionRecord:
    id: Optional[str]
    amount: float
    kind: TransactionType
    occurred_at: datetime
    wallet_id: Optional[str] = None
    wallet_label: str = UNNAMED
    category_id: Optional[str] = None
    category_label: str = UNCATEGORIZED
    category_kind: Optional[TransactionType] = None


@dataclass(frozen=True)
class BudgetRecord:
    id: Optional[str]
    category_id: Optional[str]
    label: str
    limit: float
    period_month: Optional[str]  # "YYYY-MM", None on undated budgets


def resolve_relation(value: object) -> Optional[Mapping]:
    """A joined relation arrives as a record, a list of records, or nothing."""
    if isinstance(value, (list, tuple)):
        value = value[0] if value else None
    if isinstance(value, Mapping):
        return value
    return None


def clean_label(value: object, fallback: str) -> str:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return fallback


def coerce_amount(value: object) -> Optional[float]:
    """Numeric or string amount to a finite non-negative float, else None.

    A missing amount counts as zero.
    """
    if value is None:
        return 0.0
    if isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return 0.0
    elif not isinstance(value, (int, float, Decimal)):
        return None
    try:
        # float() raises ValueError on signaling NaN, OverflowError on huge ints.
        number = float(Decimal(value) if isinstance(value, str) else value)
    except (InvalidOperation, ValueError, OverflowError):
        return None
    if not math.isfinite(number) or number < 0:
        return None
    return number


def coerce_kind(value: object) -> Optional[TransactionType]:
    if isinstance(value, TransactionType):
        return value
    if not isinstance(value, str):
        return None
    return _KIND_ALIASES.get(value.strip().lower())


def coerce_timestamp(value: object) -> Optional[datetime]:
    """Parse to a naive wall-clock datetime in the configured timezone."""
    if isinstance(value, datetime):
        moment = value
    elif isinstance(value, date):
        return start_of_day(value)
    elif isinstance(value, str) and value.strip():
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            moment = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None
    if moment.tzinfo is not None:
        tz = ZoneInfo(get_settings().timezone)
        try:
            moment = moment.astimezone(tz).replace(tzinfo=None)
        except (OverflowError, ValueError):
            return None
    return moment


def coerce_month(value: object) -> Optional[str]:
    if isinstance(value, (date, datetime)):
        return month_key(value)
    if not isinstance(value, str):
        return None
    match = _MONTH_RE.match(value.strip())
    if not match:
        return None
    if not 1 <= int(match.group(2)) <= 12:
        return None
    return f"{match.group(1)}-{match.group(2)}"


def _optional_id(value: object) -> Optional[str]:
    if value is None or value == "":
        return None
    return str(value)


def normalize_row(row: Mapping) -> Optional[TransactionRecord]:
    amount = coerce_amount(row.get("monto"))
    kind = coerce_kind(row.get("tipo"))
    occurred_at = coerce_timestamp(row.get("fecha_transaccion"))
    if amount is None or kind is None or occurred_at is None:
        return None

    category = resolve_relation(row.get("categorias"))
    wallet = resolve_relation(row.get("billeteras"))
    return TransactionRecord(
        id=_optional_id(row.get("id")),
        amount=amount,
        kind=kind,
        occurred_at=occurred_at,
        wallet_id=_optional_id(wallet.get("id") if wallet else row.get("billetera_id")),
        wallet_label=clean_label(wallet.get("nombre") if wallet else None, UNNAMED),
        category_id=_optional_id(
            category.get("id") if category else row.get("categoria_id")
        ),
        category_label=clean_label(
            category.get("nombre") if category else None, UNCATEGORIZED
        ),
        category_kind=coerce_kind(category.get("tipo")) if category else None,
    )


def normalize(rows: Iterable[Mapping]) -> list[TransactionRecord]:
    """Canonical transactions from raw backend rows; malformed rows are dropped."""
    records: list[TransactionRecord] = []
    dropped = 0
    for row in rows:
        record = normalize_row(row) if isinstance(row, Mapping) else None
        if record is None:
            dropped += 1
            continue
        records.append(record)
    if dropped:
        logger.debug(f"normalize: kept={len(records)} dropped={dropped}")
    return records


def normalize_budgets(rows: Iterable[Mapping]) -> list[BudgetRecord]:
    budgets: list[BudgetRecord] = []
    for row in rows:
        if not isinstance(row, Mapping):
            continue
        limit = coerce_amount(row.get("monto"))
        if limit is None:
            continue
        category = resolve_relation(row.get("categorias"))
        category_id = category.get("id") if category else None
        budgets.append(
            BudgetRecord(
                id=_optional_id(row.get("id")),
                category_id=_optional_id(category_id or row.get("categoria_id")),
                label=clean_label(
                    category.get("nombre") if category else None, UNCATEGORIZED
                ),
                limit=limit,
                period_month=coerce_month(row.get("periodo")),
            )
        )
    return budgets


@dataclass(frozen=True)
class WalletRecord:
    id: str
    name: str


@dataclass(frozen=True)
class CategoryRecord:
    id: str
    name: str
    kind: Optional[TransactionType]


def normalize_wallets(rows: Iterable[Mapping]) -> list[WalletRecord]:
    return [
        WalletRecord(id=str(row["id"]), name=clean_label(row.get("nombre"), UNNAMED))
        for row in rows
        if isinstance(row, Mapping) and row.get("id") is not None
    ]


def normalize_categories(rows: Iterable[Mapping]) -> list[CategoryRecord]:
    return [
        CategoryRecord(
            id=str(row["id"]),
            name=clean_label(row.get("nombre"), UNCATEGORIZED),
            kind=coerce_kind(row.get("tipo")),
        )
        for row in rows
        if isinstance(row, Mapping) and row.get("id") is not None
    ]
