"""
Catalog Lookup for the Ordering Engine.

The product catalog is owned by another service; the ordering engine only
reads it. This module defines the read interface the state machine and the
order assembler depend on, plus two implementations:

- DatabaseCatalog: reads the ``products`` table
- StaticCatalog: dict-backed, for tests and offline bots

A lookup that finds nothing returns ``None`` (the catalog's NotFound).
Storage failures surface as ``TransientFailure``.
"""

import logging
from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Callable, Iterable, List, Optional

from pydantic import BaseModel, Field, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .config import ICED_CATEGORIES
from .errors import TransientFailure
from .models import Product


logger = logging.getLogger(__name__)


def _to_decimal(value):
    # Go through str() so 4.75 stays 4.75 instead of its binary expansion
    if isinstance(value, float):
        return Decimal(str(value))
    return value


class SizeOption(BaseModel):
    """A size a product is offered in, with its price adjustment."""
    name: str
    price_modifier: Decimal = Decimal("0")

    @field_validator("price_modifier", mode="before")
    @classmethod
    def _coerce_modifier(cls, v):
        return _to_decimal(v)


class AddOnOption(BaseModel):
    """An optional extra with its own price."""
    name: str
    price: Decimal

    @field_validator("price", mode="before")
    @classmethod
    def _coerce_price(cls, v):
        return _to_decimal(v)


class ProductInfo(BaseModel):
    """Read-only view of a catalog product."""
    id: int
    name: str
    category: str
    base_price: Decimal
    sizes: List[SizeOption] = Field(default_factory=list)
    add_ons: List[AddOnOption] = Field(default_factory=list)
    available: bool = True
    description: Optional[str] = None

    @field_validator("base_price", mode="before")
    @classmethod
    def _coerce_base_price(cls, v):
        return _to_decimal(v)

    @property
    def takes_ice(self) -> bool:
        """Ice level only applies to iced drinks and frappes."""
        return self.category in ICED_CATEGORIES

    def get_size(self, name: Optional[str]) -> Optional[SizeOption]:
        if not name:
            return None
        for size in self.sizes:
            if size.name.lower() == name.lower():
                return size
        return None

    def get_add_on(self, name: Optional[str]) -> Optional[AddOnOption]:
        if not name:
            return None
        for add_on in self.add_ons:
            if add_on.name.lower() == name.lower():
                return add_on
        return None


class CatalogLookup(ABC):
    """Read interface to the product catalog."""

    @abstractmethod
    def get_product(self, product_id: int) -> Optional[ProductInfo]:
        """Return the product, or None if it does not exist."""

    @abstractmethod
    def list_products(self) -> List[ProductInfo]:
        """Return all products, available or not."""

    def list_available(self) -> List[ProductInfo]:
        return [p for p in self.list_products() if p.available]

    def find_by_name(self, name: str) -> Optional[ProductInfo]:
        """Case-insensitive lookup by display name among available products."""
        wanted = name.strip().lower()
        for product in self.list_available():
            if product.name.lower() == wanted:
                return product
        return None


class StaticCatalog(CatalogLookup):
    """Catalog held in memory. Mutations replace whole products."""

    def __init__(self, products: Iterable[ProductInfo] = ()):
        self._products = {p.id: p for p in products}

    def get_product(self, product_id: int) -> Optional[ProductInfo]:
        return self._products.get(product_id)

    def list_products(self) -> List[ProductInfo]:
        return sorted(self._products.values(), key=lambda p: p.id)

    def put(self, product: ProductInfo) -> None:
        self._products[product.id] = product

    def remove(self, product_id: int) -> None:
        self._products.pop(product_id, None)


def product_to_info(product: Product) -> ProductInfo:
    """Convert a Product row into a ProductInfo."""
    return ProductInfo(
        id=product.id,
        name=product.name,
        category=product.category,
        base_price=product.base_price,
        sizes=product.sizes or [],
        add_ons=product.add_ons or [],
        available=bool(product.available),
        description=product.description,
    )


class DatabaseCatalog(CatalogLookup):
    """
    Catalog backed by the ``products`` table.

    Each call opens and closes its own short-lived session from
    ``session_factory``. Without a factory the application's SessionLocal is
    resolved at call time.
    """

    def __init__(self, session_factory: Optional[Callable[[], Session]] = None):
        self._session_factory = session_factory

    def _open(self) -> Session:
        if self._session_factory is not None:
            return self._session_factory()
        from . import db as db_module
        return db_module.SessionLocal()

    def get_product(self, product_id: int) -> Optional[ProductInfo]:
        db = self._open()
        try:
            product = db.get(Product, product_id)
            return product_to_info(product) if product else None
        except SQLAlchemyError as exc:
            logger.warning("Catalog lookup for product %s failed: %s", product_id, exc)
            raise TransientFailure("Menu is temporarily unavailable. Please try again.") from exc
        finally:
            db.close()

    def list_products(self) -> List[ProductInfo]:
        db = self._open()
        try:
            rows = db.query(Product).order_by(Product.category, Product.id).all()
            return [product_to_info(p) for p in rows]
        except SQLAlchemyError as exc:
            logger.warning("Catalog listing failed: %s", exc)
            raise TransientFailure("Menu is temporarily unavailable. Please try again.") from exc
        finally:
            db.close()
