"""create books and inventory_books tables

Revision ID: 20261019_0001
Revises:
Create Date: 2026-10-19 09:00:00
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None


def _catalog_columns() -> list[sa.Column]:
    return [
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("cod_fle", sa.String(length=64), nullable=False, comment="FLE catalog code, the natural key"),
        sa.Column("bar_code", sa.String(length=64), nullable=True),
        sa.Column("location", sa.String(length=120), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("price", sa.Numeric(10, 2), nullable=False),
        sa.Column("cover_price", sa.Numeric(10, 2), nullable=False),
        sa.Column("title", sa.String(length=500), nullable=False),
        sa.Column("author", sa.String(length=255), nullable=False),
        sa.Column("medium", sa.String(length=255), nullable=False),
        sa.Column("publisher", sa.String(length=255), nullable=False),
        sa.Column("distributor", sa.String(length=255), nullable=False),
        sa.Column("subject", sa.String(length=255), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "books",
        *_catalog_columns(),
        sa.CheckConstraint("quantity >= 0", name="ck_books_quantity_non_negative"),
        sa.PrimaryKeyConstraint("id", name="pk_books"),
        sa.UniqueConstraint("cod_fle", name="uq_books_cod_fle"),
    )
    op.create_table(
        "inventory_books",
        *_catalog_columns(),
        sa.Column(
            "batch_name",
            sa.String(length=120),
            nullable=True,
            comment="Upload batch that last touched the entry",
        ),
        sa.CheckConstraint("quantity >= 0", name="ck_inventory_books_quantity_non_negative"),
        sa.PrimaryKeyConstraint("id", name="pk_inventory_books"),
        sa.UniqueConstraint("cod_fle", name="uq_inventory_books_cod_fle"),
    )
    op.create_index("ix_inventory_books_batch_name", "inventory_books", ["batch_name"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_inventory_books_batch_name", table_name="inventory_books")
    op.drop_table("inventory_books")
    op.drop_table("books")
