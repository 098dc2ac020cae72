"""
Tests for catalog lookup and menu seeding.
"""
from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError

from cafe_bot.catalog import DatabaseCatalog
from cafe_bot.errors import TransientFailure
from cafe_bot.models import Product
from cafe_bot.seed_menu import SAMPLE_MENU, seed_menu

from tests.test_helpers import CARAMEL_FRAPPE, LATTE


@pytest.fixture
def seeded(session_factory, db_session):
    seed_menu(db_session)
    return DatabaseCatalog(session_factory)


class TestSeedMenu:
    def test_seeds_sample_menu_once(self, db_session):
        assert seed_menu(db_session) == len(SAMPLE_MENU)
        assert seed_menu(db_session) == 0
        assert db_session.query(Product).count() == len(SAMPLE_MENU)


class TestDatabaseCatalog:
    """Reads from the products table."""

    def test_get_product(self, seeded):
        latte = seeded.get_product(LATTE)

        assert latte.name == "Latte"
        assert latte.base_price == Decimal("4.75")
        assert latte.get_size("LARGE").price_modifier == Decimal("0.5")
        assert latte.get_add_on("extra shot").price == Decimal("0.75")
        assert latte.takes_ice is False

    def test_frappe_takes_ice(self, seeded):
        frappe = seeded.get_product(CARAMEL_FRAPPE)

        assert frappe.takes_ice is True
        assert frappe.get_size("small") is None

    def test_missing_product_is_none(self, seeded):
        assert seeded.get_product(999) is None

    def test_find_by_name_skips_unavailable(self, seeded, db_session):
        assert seeded.find_by_name(" cappuccino ").name == "Cappuccino"

        db_session.query(Product).filter(Product.name == "Cappuccino").update({"available": False})
        db_session.commit()

        assert seeded.find_by_name("Cappuccino") is None
        assert "Cappuccino" in [p.name for p in seeded.list_products()]
        assert "Cappuccino" not in [p.name for p in seeded.list_available()]

    def test_storage_failure_is_transient(self, seeded, monkeypatch):
        def broken_get(self, entity, ident, **kwargs):
            raise OperationalError("SELECT", {}, Exception("database is locked"))

        monkeypatch.setattr("sqlalchemy.orm.Session.get", broken_get)

        with pytest.raises(TransientFailure) as exc_info:
            seeded.get_product(LATTE)
        assert exc_info.value.retryable is True
