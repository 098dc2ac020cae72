"""
Order Assembler and price calculation.

Turns finalized customizations into priced, immutable line items. Prices are
resolved from the catalog at assembly time and captured into the line items,
so a later catalog price change never alters an existing order.

    line_subtotal = (base_price + size_modifier + sum(add_on_prices)) * quantity

All arithmetic is done in ``Decimal``. Line subtotals are kept exact; only
the order total is rounded to the smallest currency unit.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, List, Optional, Tuple

from ..catalog import CatalogLookup, ProductInfo
from ..errors import InvalidAddOn, InvalidSize, MissingField, ProductUnavailable
from .models import Customization

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


@dataclass(frozen=True)
class CapturedAddOn:
    name: str
    price: Decimal


@dataclass(frozen=True)
class LineItem:
    """One priced order line. Frozen: prices are captured, not referenced."""
    product_id: int
    product_name: str
    category: str
    size: str
    size_price_modifier: Decimal
    sugar_level: str
    ice_level: Optional[str]
    add_ons: Tuple[CapturedAddOn, ...]
    base_price: Decimal
    quantity: int

    @property
    def unit_price(self) -> Decimal:
        return self.base_price + self.size_price_modifier + sum((a.price for a in self.add_ons), Decimal("0"))

    @property
    def line_subtotal(self) -> Decimal:
        return self.unit_price * self.quantity


@dataclass(frozen=True)
class AssembledOrder:
    items: Tuple[LineItem, ...]
    total: Decimal


def round_currency(amount: Decimal) -> Decimal:
    """Round to the smallest currency unit (cents, half up)."""
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def compute_total(items: Iterable[LineItem]) -> Decimal:
    """Sum exact line subtotals, then round once."""
    return round_currency(sum((item.line_subtotal for item in items), Decimal("0")))


def preview_price(customization: Customization, product: ProductInfo) -> Optional[Decimal]:
    """
    Price a customization for display before checkout.

    Returns None while the size is unknown. Add-ons no longer offered are
    left out of the preview; finalize rejects them.
    """
    size = product.get_size(customization.size)
    if size is None:
        return None
    add_on_total = sum(
        (a.price for a in (product.get_add_on(n) for n in customization.add_ons) if a is not None),
        Decimal("0"),
    )
    return round_currency((product.base_price + size.price_modifier + add_on_total) * customization.quantity)


class OrderAssembler:
    """
    Converts finalized customizations into priced line items.

    Re-validates every selection against the current catalog so drift between
    selection and checkout (product pulled, size or add-on removed) is caught
    here rather than producing an order the shop cannot make.
    """

    def __init__(self, catalog: CatalogLookup):
        self.catalog = catalog

    def assemble(self, customizations: Iterable[Customization]) -> AssembledOrder:
        items: List[LineItem] = [self.build_line_item(c) for c in customizations]
        if not items:
            raise ValueError("Cannot assemble an order with no items")
        total = compute_total(items)
        logger.info("Assembled order: %d line(s), total=%s", len(items), total)
        return AssembledOrder(items=tuple(items), total=total)

    def build_line_item(self, customization: Customization) -> LineItem:
        missing = customization.missing_fields()
        if missing:
            raise MissingField(missing)

        product = self.catalog.get_product(customization.product_id)
        if product is None or not product.available:
            raise ProductUnavailable(f"Sorry, {customization.product_name} is no longer available.")

        size = product.get_size(customization.size)
        if size is None:
            raise InvalidSize(f"Size '{customization.size}' is no longer offered for {product.name}.")

        add_ons = []
        for name in customization.add_ons:
            add_on = product.get_add_on(name)
            if add_on is None:
                raise InvalidAddOn(f"Add-on '{name}' is no longer offered for {product.name}.")
            add_ons.append(CapturedAddOn(name=add_on.name, price=add_on.price))

        return LineItem(
            product_id=product.id,
            product_name=product.name,
            category=product.category,
            size=size.name,
            size_price_modifier=size.price_modifier,
            sugar_level=customization.sugar_level,
            # Ice level is meaningless for hot drinks and is never carried over
            ice_level=customization.ice_level if product.takes_ice else None,
            add_ons=tuple(add_ons),
            base_price=product.base_price,
            quantity=customization.quantity,
        )
