from __future__ import annotations

import unittest
from decimal import Decimal

from app.domain.catalog_ingestion import IngestRecord
from app.services.reconciliation import AdditivePolicy, ReplaceIfPositivePolicy


def _record(**overrides: object) -> IngestRecord:
    values: dict[str, object] = {
        "natural_key": "FLE-1",
        "title": "Paulo e Estêvão",
        "quantity": 5,
        "price": Decimal("40"),
        "cover_price": Decimal("35"),
    }
    values.update(overrides)
    return IngestRecord(**values)  # type: ignore[arg-type]


class TestCreateDefaults(unittest.TestCase):
    def test_unspecified_descriptive_fields_get_sentinels(self) -> None:
        create = AdditivePolicy().build_create(_record(author="Emmanuel"))

        self.assertEqual(create.author, "Emmanuel")
        self.assertEqual(create.medium, "Não informado")
        self.assertEqual(create.publisher, "Não informado")
        self.assertEqual(create.location, "ESTOQUE")
        self.assertIsNone(create.bar_code)
        self.assertEqual(create.quantity, 5)


class TestAdditivePolicy(unittest.TestCase):
    def test_update_carries_relative_delta(self) -> None:
        update = AdditivePolicy().build_update(_record(quantity=3))

        self.assertEqual(update.quantity_delta, 3)
        self.assertIsNone(update.quantity)

    def test_empty_fields_keep_existing_values(self) -> None:
        update = AdditivePolicy().build_update(_record(publisher="FEB"))

        self.assertEqual(update.fields["publisher"], "FEB")
        self.assertNotIn("author", update.fields)
        self.assertEqual(update.fields["title"], "Paulo e Estêvão")

    def test_zero_price_overwrites_without_inventory_rules(self) -> None:
        record = _record(price=Decimal("0"), cover_price=Decimal("12"))

        update = AdditivePolicy().build_update(record)

        self.assertEqual(update.fields["price"], Decimal("0"))
        self.assertEqual(AdditivePolicy().build_create(record).price, Decimal("0"))

    def test_inventory_rules_fall_back_to_cover_price(self) -> None:
        policy = AdditivePolicy(keep_existing_prices_when_zero=True)
        record = _record(price=Decimal("0"), cover_price=Decimal("12"))

        self.assertEqual(policy.build_update(record).fields["price"], Decimal("12"))
        self.assertEqual(policy.build_create(record).price, Decimal("12"))

    def test_inventory_rules_keep_prices_when_both_are_zero(self) -> None:
        policy = AdditivePolicy(keep_existing_prices_when_zero=True)

        update = policy.build_update(_record(price=Decimal("0"), cover_price=Decimal("0")))

        self.assertNotIn("price", update.fields)
        self.assertNotIn("cover_price", update.fields)

    def test_batch_name_is_stamped(self) -> None:
        update = AdditivePolicy().build_update(_record(batch_name="Feira 2024"))

        self.assertEqual(update.fields["batch_name"], "Feira 2024")


class TestReplaceIfPositivePolicy(unittest.TestCase):
    def test_positive_quantity_replaces(self) -> None:
        update = ReplaceIfPositivePolicy().build_update(_record(quantity=10))

        self.assertEqual(update.quantity, 10)
        self.assertIsNone(update.quantity_delta)

    def test_zero_quantity_leaves_stock_untouched(self) -> None:
        update = ReplaceIfPositivePolicy().build_update(_record(quantity=0))

        self.assertIsNone(update.quantity)
        self.assertIsNone(update.quantity_delta)


if __name__ == "__main__":
    unittest.main()
