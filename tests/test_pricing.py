"""
Tests for the order assembler and price calculation.
"""
from decimal import Decimal

import pytest

from cafe_bot.catalog import ProductInfo, StaticCatalog
from cafe_bot.errors import InvalidAddOn, InvalidSize, MissingField, ProductUnavailable
from cafe_bot.tasks import Customization, OrderAssembler, compute_total
from cafe_bot.tasks.pricing import preview_price, round_currency

from tests.test_helpers import ICED_LATTE, LATTE


def latte(**overrides):
    values = dict(
        product_id=LATTE,
        product_name="Latte",
        category="hot",
        size="large",
        sugar_level="medium",
        add_ons=["Extra Shot"],
        quantity=2,
    )
    values.update(overrides)
    return Customization(**values)


class TestLineItems:
    """Prices are captured into line items."""

    def test_unit_price_and_subtotal(self, catalog):
        item = OrderAssembler(catalog).build_line_item(latte())

        assert item.unit_price == Decimal("6.00")
        assert item.line_subtotal == Decimal("12.00")
        assert item.add_ons[0].name == "Extra Shot"
        assert item.add_ons[0].price == Decimal("0.75")

    def test_small_size_discount(self, catalog):
        item = OrderAssembler(catalog).build_line_item(latte(size="small", add_ons=[], quantity=1))
        assert item.unit_price == Decimal("4.25")

    def test_ice_level_dropped_for_hot_drink(self, catalog):
        item = OrderAssembler(catalog).build_line_item(latte(ice_level="high"))
        assert item.ice_level is None

    def test_ice_level_kept_for_iced_drink(self, catalog):
        customization = latte(
            product_id=ICED_LATTE, product_name="Iced Latte", category="iced", ice_level="low", add_ons=[]
        )
        item = OrderAssembler(catalog).build_line_item(customization)
        assert item.ice_level == "low"

    def test_captured_price_survives_catalog_change(self, catalog):
        """Changing the catalog after assembly does not touch the assembled order."""
        assembled = OrderAssembler(catalog).assemble([latte()])

        product = catalog.get_product(LATTE)
        catalog.put(product.model_copy(update={"base_price": Decimal("9.99")}))

        assert assembled.total == Decimal("12.00")
        assert assembled.items[0].base_price == Decimal("4.75")


class TestTotals:
    """Only the order total is rounded."""

    def test_total_rounded_once(self):
        product = ProductInfo(
            id=1, name="Odd", category="hot", base_price="1.005",
            sizes=[{"name": "medium", "price_modifier": 0}],
        )
        assembler = OrderAssembler(StaticCatalog([product]))
        line = Customization(
            product_id=1, product_name="Odd", category="hot", size="medium", sugar_level="none",
        )

        assembled = assembler.assemble([line, line])

        # Rounding each line first would give 2.02
        assert assembled.total == Decimal("2.01")
        assert assembled.items[0].line_subtotal == Decimal("1.005")

    def test_compute_total_of_no_items_is_zero(self):
        assert compute_total([]) == Decimal("0.00")

    def test_round_currency_half_up(self):
        assert round_currency(Decimal("0.125")) == Decimal("0.13")

    def test_empty_order_rejected(self, catalog):
        with pytest.raises(ValueError):
            OrderAssembler(catalog).assemble([])


class TestCatalogDrift:
    """Selections are re-validated against the current catalog."""

    def test_missing_fields(self, catalog):
        with pytest.raises(MissingField) as exc_info:
            OrderAssembler(catalog).build_line_item(latte(size=None, sugar_level=None))
        assert exc_info.value.fields == ["size", "sugar_level"]

    def test_iced_drink_missing_ice(self, catalog):
        customization = latte(product_id=ICED_LATTE, product_name="Iced Latte", category="iced", add_ons=[])
        with pytest.raises(MissingField) as exc_info:
            OrderAssembler(catalog).build_line_item(customization)
        assert exc_info.value.fields == ["ice_level"]

    def test_product_removed(self, catalog):
        catalog.remove(LATTE)
        with pytest.raises(ProductUnavailable):
            OrderAssembler(catalog).build_line_item(latte())

    def test_product_unavailable(self, catalog):
        product = catalog.get_product(LATTE)
        catalog.put(product.model_copy(update={"available": False}))
        with pytest.raises(ProductUnavailable):
            OrderAssembler(catalog).build_line_item(latte())

    def test_size_withdrawn(self, catalog):
        product = catalog.get_product(LATTE)
        catalog.put(product.model_copy(update={"sizes": [s for s in product.sizes if s.name != "large"]}))
        with pytest.raises(InvalidSize):
            OrderAssembler(catalog).build_line_item(latte())

    def test_add_on_withdrawn(self, catalog):
        product = catalog.get_product(LATTE)
        catalog.put(product.model_copy(update={"add_ons": []}))
        with pytest.raises(InvalidAddOn):
            OrderAssembler(catalog).build_line_item(latte())


class TestPreviewPrice:
    def test_no_size_yet(self, catalog):
        customization = latte(size=None)
        assert preview_price(customization, catalog.get_product(LATTE)) is None

    def test_preview_matches_assembled_total(self, catalog):
        assert preview_price(latte(), catalog.get_product(LATTE)) == Decimal("12.00")
