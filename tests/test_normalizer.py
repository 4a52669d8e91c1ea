from datetime import date, datetime, timezone
from decimal import Decimal
from zoneinfo import ZoneInfo

from config import get_settings
from models import TransactionType
from normalizer import (
    UNCATEGORIZED,
    UNNAMED,
    normalize,
    normalize_budgets,
    normalize_categories,
    resolve_relation,
)


def _row(**overrides):
    row = {
        "id": "t1",
        "monto": "10",
        "tipo": "gasto",
        "fecha_transaccion": "2024-03-15T09:00:00",
        "categorias": None,
    }
    row.update(overrides)
    return row


def test_array_wrapped_relation_and_string_amount() -> None:
    records = normalize(
        [
            _row(
                monto="12.50",
                tipo="gasto",
                categorias=[{"id": "c1", "nombre": "Comida"}],
            )
        ]
    )
    assert len(records) == 1
    txn = records[0]
    assert txn.amount == 12.5
    assert txn.kind == TransactionType.expense
    assert txn.category_id == "c1"
    assert txn.category_label == "Comida"


def test_rows_missing_required_fields_are_dropped() -> None:
    rows = [
        _row(id="no-date", fecha_transaccion=None),
        _row(id="bad-date", fecha_transaccion="15/03/2024"),
        _row(id="bad-amount", monto="abc"),
        _row(id="nan-amount", monto=float("nan")),
        _row(id="snan-amount", monto="sNaN"),
        _row(id="huge-amount", monto=10**400),
        _row(id="out-of-range-date", fecha_transaccion="0001-01-01T00:00:00+05:00"),
        _row(id="negative", monto=-5),
        _row(id="bad-kind", tipo="transfer"),
        _row(id="no-kind", tipo=None),
        "not a row",
        _row(id="ok", monto=Decimal("3.10"), tipo="ingreso"),
    ]
    records = normalize(rows)
    assert [r.id for r in records] == ["ok"]
    assert records[0].kind == TransactionType.income


def test_missing_amount_counts_as_zero() -> None:
    records = normalize([_row(monto=None)])
    assert records[0].amount == 0.0


def test_relation_fallbacks_and_blank_labels() -> None:
    records = normalize(
        [
            _row(id="a", categorias=[], categoria_id=None),
            _row(id="b", categorias={"id": "c2", "nombre": "   "}),
            _row(id="c", categoria_id="gone", billeteras=[{"id": "w1", "nombre": ""}]),
        ]
    )
    by_id = {r.id: r for r in records}
    assert by_id["a"].category_id is None
    assert by_id["a"].category_label == UNCATEGORIZED
    assert by_id["b"].category_id == "c2"
    assert by_id["b"].category_label == UNCATEGORIZED
    assert by_id["c"].category_id == "gone"
    assert by_id["c"].wallet_id == "w1"
    assert by_id["c"].wallet_label == UNNAMED


def test_timestamps_are_localized_and_dates_start_the_day() -> None:
    records = normalize(
        [
            _row(id="aware", fecha_transaccion="2024-03-15T12:00:00Z"),
            _row(id="day", fecha_transaccion=date(2024, 3, 16)),
        ]
    )
    by_id = {r.id: r for r in records}
    expected = (
        datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc)
        .astimezone(ZoneInfo(get_settings().timezone))
        .replace(tzinfo=None)
    )
    assert by_id["aware"].occurred_at == expected
    assert by_id["day"].occurred_at == datetime(2024, 3, 16)


def test_category_kind_comes_from_joined_record() -> None:
    records = normalize(
        [_row(categorias={"id": "c1", "nombre": "Sueldo", "tipo": "ingreso"})]
    )
    assert records[0].category_kind == TransactionType.income


def test_resolve_relation_shapes() -> None:
    assert resolve_relation(None) is None
    assert resolve_relation([]) is None
    assert resolve_relation([{"id": "x"}, {"id": "y"}]) == {"id": "x"}
    assert resolve_relation({"id": "x"}) == {"id": "x"}
    assert resolve_relation("x") is None


def test_normalize_budgets_month_keys_and_category_fallback() -> None:
    budgets = normalize_budgets(
        [
            {
                "id": "b1",
                "monto": "100",
                "periodo": date(2024, 3, 1),
                "categorias": [{"id": "c1", "nombre": " Comida "}],
            },
            {"id": "b2", "monto": 50, "periodo": "2024-04-01", "categoria_id": "c2"},
            {"id": "b3", "monto": 20, "periodo": None},
            {"id": "b4", "monto": "lots", "periodo": "2024-03-01"},
            {"id": "b5", "monto": 10, "periodo": "2024-13-01"},
        ]
    )
    by_id = {b.id: b for b in budgets}
    assert set(by_id) == {"b1", "b2", "b3", "b5"}
    assert by_id["b1"].period_month == "2024-03"
    assert by_id["b1"].label == "Comida"
    assert by_id["b1"].category_id == "c1"
    assert by_id["b2"].period_month == "2024-04"
    assert by_id["b2"].category_id == "c2"
    assert by_id["b2"].label == UNCATEGORIZED
    assert by_id["b3"].period_month is None
    assert by_id["b5"].period_month is None


def test_normalize_categories_keeps_unset_kind() -> None:
    categories = normalize_categories(
        [{"id": "c1", "nombre": "Varios", "tipo": None}, {"nombre": "sin id"}]
    )
    assert len(categories) == 1
    assert categories[0].kind is None
