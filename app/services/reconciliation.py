"""
app/services/reconciliation.py

Reconciliation policies deciding how an incoming record changes an entry.

Policies never read the stored quantity: the additive policy hands the store
a relative delta that is applied inside the record's own transaction.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Protocol

from app.domain.catalog_ingestion import (
    DEFAULT_LOCATION,
    DESCRIPTIVE_FIELDS,
    NOT_INFORMED,
    CatalogCreate,
    CatalogUpdate,
    IngestRecord,
)


class ReconciliationPolicy(Protocol):
    name: str

    def build_create(self, record: IngestRecord) -> CatalogCreate:
        ...

    def build_update(self, record: IngestRecord) -> CatalogUpdate:
        ...


class _BasePolicy:
    name = "base"

    def __init__(self, *, keep_existing_prices_when_zero: bool = False) -> None:
        self._keep_existing_prices_when_zero = keep_existing_prices_when_zero

    def build_create(self, record: IngestRecord) -> CatalogCreate:
        return CatalogCreate(
            natural_key=record.natural_key,
            title=record.title,
            quantity=record.quantity,
            price=self._incoming_price(record),
            cover_price=record.cover_price,
            bar_code=record.bar_code,
            location=record.location or DEFAULT_LOCATION,
            author=record.author or NOT_INFORMED,
            medium=record.medium or NOT_INFORMED,
            publisher=record.publisher or NOT_INFORMED,
            distributor=record.distributor or NOT_INFORMED,
            subject=record.subject or NOT_INFORMED,
            batch_name=record.batch_name,
        )

    def build_update(self, record: IngestRecord) -> CatalogUpdate:
        fields: dict[str, Any] = {"title": record.title}
        for name in DESCRIPTIVE_FIELDS:
            value = getattr(record, name)
            if value:
                fields[name] = value

        prices = {"price": self._incoming_price(record), "cover_price": record.cover_price}
        for name, value in prices.items():
            if value > 0 or not self._keep_existing_prices_when_zero:
                fields[name] = value

        if record.batch_name:
            fields["batch_name"] = record.batch_name

        return self._with_quantity(fields, record)

    def _incoming_price(self, record: IngestRecord) -> Decimal:
        # Inventory sheets often carry only the fair price.
        if self._keep_existing_prices_when_zero and record.price <= 0:
            return record.cover_price
        return record.price

    def _with_quantity(self, fields: dict[str, Any], record: IngestRecord) -> CatalogUpdate:
        raise NotImplementedError


class AdditivePolicy(_BasePolicy):
    """
    Incoming quantity is added to the stored quantity.
    """

    name = "additive"

    def _with_quantity(self, fields: dict[str, Any], record: IngestRecord) -> CatalogUpdate:
        return CatalogUpdate(fields=fields, quantity_delta=record.quantity)


class ReplaceIfPositivePolicy(_BasePolicy):
    """
    Incoming quantity replaces the stored quantity only when it is above zero.
    """

    name = "replace_if_positive"

    def _with_quantity(self, fields: dict[str, Any], record: IngestRecord) -> CatalogUpdate:
        if record.quantity > 0:
            return CatalogUpdate(fields=fields, quantity=record.quantity)
        return CatalogUpdate(fields=fields)
