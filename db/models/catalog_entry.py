"""
db/models/catalog_entry.py

Catalog entries reconciled by batch ingestion, keyed by FLE catalog code.
"""

from __future__ import annotations

import uuid
from decimal import Decimal

from sqlalchemy import CheckConstraint, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, TimestampMixin


class CatalogEntryMixin(TimestampMixin):
    """
    Columns shared by the sales catalog and the inventory catalog.
    """

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )
    cod_fle: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        unique=True,
        comment="FLE catalog code, the natural key",
    )
    bar_code: Mapped[str | None] = mapped_column(String(64), nullable=True)
    location: Mapped[str] = mapped_column(String(120), nullable=False, default="ESTOQUE")
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    price: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    cover_price: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    author: Mapped[str] = mapped_column(String(255), nullable=False)
    medium: Mapped[str] = mapped_column(String(255), nullable=False)
    publisher: Mapped[str] = mapped_column(String(255), nullable=False)
    distributor: Mapped[str] = mapped_column(String(255), nullable=False)
    subject: Mapped[str] = mapped_column(String(255), nullable=False)


class Book(CatalogEntryMixin, Base):
    __tablename__ = "books"

    __table_args__ = (
        CheckConstraint("quantity >= 0", name="quantity_non_negative"),
    )


class InventoryBook(CatalogEntryMixin, Base):
    __tablename__ = "inventory_books"

    batch_name: Mapped[str | None] = mapped_column(
        String(120),
        nullable=True,
        index=True,
        comment="Upload batch that last touched the entry",
    )

    __table_args__ = (
        CheckConstraint("quantity >= 0", name="quantity_non_negative"),
    )
