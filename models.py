import uuid
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import (
    Date,
    DateTime,
    ForeignKey,
    Index,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from database import Base


class TransactionType(str, Enum):
    income = "ingreso"
    expense = "gasto"


def _new_id() -> str:
    return str(uuid.uuid4())


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, nullable=False
    )


# Nullable columns mirror what the hosted backend actually allows on legacy rows;
# normalizer.py is responsible for dropping the ones that cannot be used.


class Wallet(Base, TimestampMixin):
    __tablename__ = "billeteras"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    usuario_id: Mapped[str] = mapped_column(String(64), nullable=False)
    nombre: Mapped[Optional[str]] = mapped_column(String(100))

    transactions: Mapped[list["Transaction"]] = relationship(
        "Transaction", back_populates="wallet"
    )


class Category(Base, TimestampMixin):
    __tablename__ = "categorias"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    usuario_id: Mapped[str] = mapped_column(String(64), nullable=False)
    nombre: Mapped[Optional[str]] = mapped_column(String(100))
    # Legacy rows carry no tipo; the effective kind is inferred per aggregation.
    tipo: Mapped[Optional[str]] = mapped_column(String(10))

    transactions: Mapped[list["Transaction"]] = relationship(
        "Transaction", back_populates="category"
    )


class Transaction(Base, TimestampMixin):
    __tablename__ = "transacciones"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    usuario_id: Mapped[str] = mapped_column(String(64), nullable=False)
    billetera_id: Mapped[Optional[str]] = mapped_column(ForeignKey("billeteras.id"))
    categoria_id: Mapped[Optional[str]] = mapped_column(
        ForeignKey("categorias.id", ondelete="SET NULL")
    )
    monto: Mapped[Optional[Decimal]] = mapped_column(Numeric(14, 2))
    tipo: Mapped[Optional[str]] = mapped_column(String(10))
    fecha_transaccion: Mapped[Optional[datetime]] = mapped_column(DateTime)
    descripcion: Mapped[Optional[str]] = mapped_column(Text)

    wallet: Mapped[Optional["Wallet"]] = relationship(
        "Wallet", back_populates="transactions"
    )
    category: Mapped[Optional["Category"]] = relationship(
        "Category", back_populates="transactions"
    )

    __table_args__ = (
        Index("ix_transacciones_billetera_fecha", "billetera_id", "fecha_transaccion"),
        Index("ix_transacciones_categoria_fecha", "categoria_id", "fecha_transaccion"),
        Index(
            "ix_transacciones_usuario_tipo_fecha",
            "usuario_id",
            "tipo",
            "fecha_transaccion",
        ),
    )


class Budget(Base, TimestampMixin):
    __tablename__ = "presupuestos"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    usuario_id: Mapped[str] = mapped_column(String(64), nullable=False)
    categoria_id: Mapped[Optional[str]] = mapped_column(
        ForeignKey("categorias.id", ondelete="SET NULL")
    )
    monto: Mapped[Optional[Decimal]] = mapped_column(Numeric(14, 2))
    # First day of the budgeted month; null on undated legacy budgets.
    periodo: Mapped[Optional[date]] = mapped_column(Date)

    category: Mapped[Optional["Category"]] = relationship("Category")

    __table_args__ = (
        Index("ix_presupuestos_usuario_periodo", "usuario_id", "periodo"),
    )
