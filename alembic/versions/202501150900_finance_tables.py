"""wallets, categories, transactions and budgets

Revision ID: 202501150900
Revises:
Create Date: 2025-01-15 09:00:00.000000

"""

from alembic import op
import sqlalchemy as sa


revision = "202501150900"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "billeteras",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("usuario_id", sa.String(length=64), nullable=False),
        sa.Column("nombre", sa.String(length=100)),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )

    op.create_table(
        "categorias",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("usuario_id", sa.String(length=64), nullable=False),
        sa.Column("nombre", sa.String(length=100)),
        sa.Column("tipo", sa.String(length=10)),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )

    op.create_table(
        "transacciones",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("usuario_id", sa.String(length=64), nullable=False),
        sa.Column("billetera_id", sa.String(length=36), sa.ForeignKey("billeteras.id")),
        sa.Column(
            "categoria_id",
            sa.String(length=36),
            sa.ForeignKey("categorias.id", ondelete="SET NULL"),
        ),
        sa.Column("monto", sa.Numeric(14, 2)),
        sa.Column("tipo", sa.String(length=10)),
        sa.Column("fecha_transaccion", sa.DateTime()),
        sa.Column("descripcion", sa.Text()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index(
        "ix_transacciones_billetera_fecha",
        "transacciones",
        ["billetera_id", "fecha_transaccion"],
    )
    op.create_index(
        "ix_transacciones_categoria_fecha",
        "transacciones",
        ["categoria_id", "fecha_transaccion"],
    )
    op.create_index(
        "ix_transacciones_usuario_tipo_fecha",
        "transacciones",
        ["usuario_id", "tipo", "fecha_transaccion"],
    )

    op.create_table(
        "presupuestos",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("usuario_id", sa.String(length=64), nullable=False),
        sa.Column(
            "categoria_id",
            sa.String(length=36),
            sa.ForeignKey("categorias.id", ondelete="SET NULL"),
        ),
        sa.Column("monto", sa.Numeric(14, 2)),
        sa.Column("periodo", sa.Date()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index(
        "ix_presupuestos_usuario_periodo", "presupuestos", ["usuario_id", "periodo"]
    )


def downgrade():
    op.drop_index("ix_presupuestos_usuario_periodo", table_name="presupuestos")
    op.drop_table("presupuestos")
    op.drop_index("ix_transacciones_usuario_tipo_fecha", table_name="transacciones")
    op.drop_index("ix_transacciones_categoria_fecha", table_name="transacciones")
    op.drop_index("ix_transacciones_billetera_fecha", table_name="transacciones")
    op.drop_table("transacciones")
    op.drop_table("categorias")
    op.drop_table("billeteras")
