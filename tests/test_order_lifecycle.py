"""
Tests for order persistence and the order status machine.
"""
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from sqlalchemy import event
from sqlalchemy.exc import OperationalError

from cafe_bot.errors import InvalidTransition, OrderNotFound, TokenNotFound, TransientFailure
from cafe_bot.models import Order, OrderItem, RedemptionToken
from cafe_bot.services.order import (
    OrderStatus,
    cancel_order,
    create_order,
    estimate_pickup,
    get_order,
    get_order_by_token,
    get_order_token,
    list_customer_orders,
    list_orders,
)
from cafe_bot.services.redemption import verify_token
from cafe_bot.tasks import Customization, OrderAssembler

from tests.test_helpers import LATTE


def assembled_latte(catalog, quantity=2, add_ons=("Extra Shot",)):
    customization = Customization(
        product_id=LATTE,
        product_name="Latte",
        category="hot",
        size="large",
        sugar_level="medium",
        add_ons=list(add_ons),
        quantity=quantity,
    )
    return OrderAssembler(catalog).assemble([customization])


def place(db, catalog, customer_id="cust-1", **kwargs):
    assembled = assembled_latte(catalog, **kwargs)
    return create_order(db, assembled.items, assembled.total, customer_id)


class TestCreateOrder:
    """create_order persists items, mints a token and awaits pickup."""

    def test_order_awaits_pickup_with_token(self, db_session, catalog):
        created = place(db_session, catalog)

        order = db_session.get(Order, created.order_id)
        assert order.status == OrderStatus.AWAITING_PICKUP.value
        assert order.total_price == pytest.approx(12.00)
        assert order.token.token == created.token
        assert order.token.redeemed is False
        assert created.total == Decimal("12.00")

    def test_token_is_long_and_url_safe(self, db_session, catalog):
        created = place(db_session, catalog)

        assert len(created.token) >= 43
        assert all(c.isalnum() or c in "-_" for c in created.token)

    def test_tokens_are_unique(self, db_session, catalog):
        tokens = {place(db_session, catalog).token for _ in range(20)}
        assert len(tokens) == 20

    def test_line_prices_are_captured(self, db_session, catalog):
        created = place(db_session, catalog)

        item = db_session.query(OrderItem).filter(OrderItem.order_id == created.order_id).one()
        assert item.product_name == "Latte"
        assert item.base_price == pytest.approx(4.75)
        assert item.size_price_modifier == pytest.approx(0.50)
        assert item.unit_price == pytest.approx(6.00)
        assert item.line_total == pytest.approx(12.00)
        assert item.add_ons == [{"name": "Extra Shot", "price": 0.75}]
        assert item.ice_level is None

    def test_empty_items_rejected(self, db_session):
        with pytest.raises(ValueError):
            create_order(db_session, [], Decimal("0"), "cust-1")

    def test_commit_failure_saves_nothing(self, db_session, catalog, monkeypatch):
        """A failed commit surfaces as a retryable TransientFailure and leaves no rows."""
        def failing_commit():
            raise OperationalError("COMMIT", {}, Exception("disk I/O error"))

        monkeypatch.setattr(db_session, "commit", failing_commit)

        with pytest.raises(TransientFailure) as exc_info:
            place(db_session, catalog)

        assert exc_info.value.retryable is True
        monkeypatch.undo()
        assert db_session.query(Order).count() == 0
        assert db_session.query(RedemptionToken).count() == 0


class TestPickupEstimate:
    def test_single_drink(self, catalog):
        now = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
        items = assembled_latte(catalog, quantity=1).items
        assert estimate_pickup(items, now) == now + timedelta(minutes=10)

    def test_extra_drinks_add_time(self, catalog):
        now = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
        items = assembled_latte(catalog, quantity=3).items
        assert estimate_pickup(items, now) == now + timedelta(minutes=14)


class TestCancelOrder:
    """Cancellation is only allowed before pickup."""

    def test_cancel_awaiting_order(self, db_session, catalog):
        created = place(db_session, catalog)

        summary = cancel_order(db_session, created.order_id)

        assert summary.status == "cancelled"
        assert summary.cancelled_at is not None
        token = db_session.query(RedemptionToken).filter_by(order_id=created.order_id).one()
        assert token.invalidated_at is not None
        assert token.redeemed is False

    def test_cancel_twice_is_invalid(self, db_session, catalog):
        created = place(db_session, catalog)
        cancel_order(db_session, created.order_id)

        with pytest.raises(InvalidTransition):
            cancel_order(db_session, created.order_id)

    def test_cancel_completed_order_is_invalid(self, db_session, catalog):
        created = place(db_session, catalog)
        verify_token(db_session, created.token)

        with pytest.raises(InvalidTransition):
            cancel_order(db_session, created.order_id)

        assert get_order(db_session, created.order_id).status == "completed"

    def test_cancel_unknown_order(self, db_session):
        with pytest.raises(OrderNotFound):
            cancel_order(db_session, 9999)

    def test_cancel_updates_token_before_order(self, db_session, catalog):
        """Cancel writes rows in the same order as redemption: token, then order."""
        created = place(db_session, catalog)
        engine = db_session.get_bind()
        updates = []

        def record(conn, cursor, statement, parameters, context, executemany):
            if statement.lstrip().upper().startswith("UPDATE"):
                updates.append(statement.split()[1].strip("\"`"))

        event.listen(engine, "before_cursor_execute", record)
        try:
            cancel_order(db_session, created.order_id)
        finally:
            event.remove(engine, "before_cursor_execute", record)

        assert updates == ["redemption_tokens", "orders"]

    def test_cancel_with_spent_token_changes_nothing(self, db_session, catalog):
        """If the token can no longer be invalidated the order is left as it was."""
        created = place(db_session, catalog)
        token = db_session.query(RedemptionToken).filter_by(order_id=created.order_id).one()
        token.redeemed = True
        db_session.commit()

        with pytest.raises(InvalidTransition):
            cancel_order(db_session, created.order_id)

        order = db_session.get(Order, created.order_id)
        assert order.status == OrderStatus.AWAITING_PICKUP.value
        assert order.cancelled_at is None
        assert order.token.invalidated_at is None


class TestReads:
    """Order lookups and lists."""

    def test_get_order_summary(self, db_session, catalog):
        created = place(db_session, catalog)

        summary = get_order(db_session, created.order_id)

        assert summary.customer_id == "cust-1"
        assert summary.total == Decimal("12.0")
        assert summary.items[0].add_ons == ["Extra Shot"]
        assert summary.items[0].quantity == 2

    def test_get_unknown_order(self, db_session):
        with pytest.raises(OrderNotFound):
            get_order(db_session, 42)

    def test_lookup_by_token_ignores_whitespace(self, db_session, catalog):
        created = place(db_session, catalog)

        summary = get_order_by_token(db_session, f"  {created.token}\n")

        assert summary.order_id == created.order_id

    @pytest.mark.parametrize("token", ["", "   ", "not-a-token"])
    def test_lookup_by_unknown_token(self, db_session, token):
        with pytest.raises(TokenNotFound):
            get_order_by_token(db_session, token)

    def test_get_order_token(self, db_session, catalog):
        created = place(db_session, catalog)
        assert get_order_token(db_session, created.order_id) == created.token

    def test_list_orders_paginates_newest_first(self, db_session, catalog):
        ids = [place(db_session, catalog).order_id for _ in range(5)]

        page1, total = list_orders(db_session, page=1, page_size=2)
        page3, _ = list_orders(db_session, page=3, page_size=2)

        assert total == 5
        assert [o.order_id for o in page1] == [ids[4], ids[3]]
        assert [o.order_id for o in page3] == [ids[0]]

    def test_list_orders_filters_by_status(self, db_session, catalog):
        first = place(db_session, catalog)
        place(db_session, catalog)
        cancel_order(db_session, first.order_id)

        cancelled, total = list_orders(db_session, status="cancelled")

        assert total == 1
        assert cancelled[0].order_id == first.order_id

    def test_list_customer_orders(self, db_session, catalog):
        mine = place(db_session, catalog, customer_id="alice")
        place(db_session, catalog, customer_id="bob")

        orders = list_customer_orders(db_session, "alice")

        assert [o.order_id for o in orders] == [mine.order_id]
        assert list_customer_orders(db_session, "alice", status="completed") == []
