"""
Order Lifecycle Service for Cafe Bot
====================================

This module owns order persistence and the order status machine:

    created -> awaiting_pickup -> completed   (only via services.redemption)
                               -> cancelled
    created -> cancelled

Key Functions:
--------------
- create_order: Persist priced line items, mint the redemption token and move
  the order to awaiting_pickup, all in one transaction
- cancel_order: Conditional cancel that also invalidates the unredeemed token
- get_order / get_order_by_token: Read an order summary
- list_orders / list_customer_orders: Seller order list and customer history

Token Minting:
--------------
create_order is the only place a redemption token is created. Tokens come
from ``secrets.token_urlsafe(TOKEN_BYTES)``; they are secrets, so only a short
prefix ever reaches the logs. The ``redemption_tokens`` table has unique
constraints on both the token and the order id, so an order can never end up
with two tokens.

Prices:
-------
Line items arrive already priced by the OrderAssembler. Prices are captured
into the order rows and are never re-read from the catalog, so a later menu
price change does not alter an existing order.
"""

import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from enum import Enum
from typing import List, Optional, Sequence, Tuple

from sqlalchemy import update
from sqlalchemy.orm import Session

from ..config import PICKUP_BASE_MINUTES, PICKUP_MINUTES_PER_DRINK, TOKEN_BYTES
from ..errors import InvalidTransition, OrderNotFound, TokenNotFound
from ..logging_config import mask_token
from ..models import Order, OrderItem, RedemptionToken
from ..tasks.pricing import LineItem
from .helpers import storage_guard, to_decimal, utcnow


logger = logging.getLogger(__name__)


class OrderStatus(str, Enum):
    CREATED = "created"
    AWAITING_PICKUP = "awaiting_pickup"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


CANCELLABLE_STATUSES = (OrderStatus.CREATED.value, OrderStatus.AWAITING_PICKUP.value)

SAVE_FAILED_MESSAGE = "Could not save your order. Please try again."


# =============================================================================
# Result Types
# =============================================================================

@dataclass(frozen=True)
class CreatedOrder:
    """What finalize hands back to the customer."""
    order_id: int
    token: str
    total: Decimal
    pickup_estimate: datetime


@dataclass(frozen=True)
class OrderLineSummary:
    product_name: str
    size: str
    sugar_level: str
    ice_level: Optional[str]
    add_ons: List[str]
    quantity: int
    unit_price: Decimal
    line_total: Decimal


@dataclass(frozen=True)
class OrderSummary:
    """Customer-facing view of an order, detached from the database session."""
    order_id: int
    customer_id: str
    status: str
    total: Decimal
    pickup_estimate: Optional[datetime]
    created_at: Optional[datetime]
    completed_at: Optional[datetime]
    cancelled_at: Optional[datetime]
    items: List[OrderLineSummary]


def summarize_order(order: Order) -> OrderSummary:
    """Convert an Order row (with items) into an OrderSummary."""
    return OrderSummary(
        order_id=order.id,
        customer_id=order.customer_id,
        status=order.status,
        total=to_decimal(order.total_price),
        pickup_estimate=order.pickup_estimate,
        created_at=order.created_at,
        completed_at=order.completed_at,
        cancelled_at=order.cancelled_at,
        items=[
            OrderLineSummary(
                product_name=item.product_name,
                size=item.size,
                sugar_level=item.sugar_level,
                ice_level=item.ice_level,
                add_ons=[a["name"] for a in (item.add_ons or [])],
                quantity=item.quantity,
                unit_price=to_decimal(item.unit_price),
                line_total=to_decimal(item.line_total),
            )
            for item in order.items
        ],
    )


# =============================================================================
# Creation
# =============================================================================

def generate_token() -> str:
    return secrets.token_urlsafe(TOKEN_BYTES)


def estimate_pickup(items: Sequence[LineItem], now: datetime) -> datetime:
    """Base time for the first drink plus a fixed amount for each extra drink."""
    drinks = sum(item.quantity for item in items)
    minutes = PICKUP_BASE_MINUTES + PICKUP_MINUTES_PER_DRINK * max(drinks - 1, 0)
    return now + timedelta(minutes=minutes)


def create_order(
    db: Session,
    items: Sequence[LineItem],
    total: Decimal,
    customer_id: str,
) -> CreatedOrder:
    """
    Persist an order with its line items and mint its redemption token.

    The order is inserted as ``created``, its items and token are added, and
    it moves to ``awaiting_pickup`` before the single commit, so no other
    caller ever observes an order without a token.

    Raises:
        ValueError: if items is empty
        TransientFailure: if the database rejects the write (nothing is saved)
    """
    if not items:
        raise ValueError("Cannot create an order with no items")

    now = utcnow()
    pickup = estimate_pickup(items, now)
    token = generate_token()

    with storage_guard(db, "creating order", SAVE_FAILED_MESSAGE):
        order = Order(
            customer_id=customer_id,
            status=OrderStatus.CREATED.value,
            total_price=float(total),
            pickup_estimate=pickup,
            created_at=now,
        )
        db.add(order)
        db.flush()  # assigns order.id

        for item in items:
            db.add(OrderItem(
                order_id=order.id,
                product_id=item.product_id,
                product_name=item.product_name,
                category=item.category,
                size=item.size,
                sugar_level=item.sugar_level,
                ice_level=item.ice_level,
                add_ons=[{"name": a.name, "price": float(a.price)} for a in item.add_ons],
                base_price=float(item.base_price),
                size_price_modifier=float(item.size_price_modifier),
                quantity=item.quantity,
                unit_price=float(item.unit_price),
                line_total=float(item.line_subtotal),
            ))

        db.add(RedemptionToken(token=token, order_id=order.id, redeemed=False, created_at=now))
        order.status = OrderStatus.AWAITING_PICKUP.value
        db.commit()
        order_id = order.id

    logger.info(
        "Created order %s: %d line(s), total=%s, token=%s",
        order_id, len(items), total, mask_token(token),
    )
    logger.debug("Order %s placed by customer %s", order_id, customer_id)
    return CreatedOrder(order_id=order_id, token=token, total=total, pickup_estimate=pickup)


# =============================================================================
# Status Transitions
# =============================================================================

def cancel_order(db: Session, order_id: int) -> OrderSummary:
    """
    Cancel an order that has not been picked up.

    Both writes are conditional UPDATEs taken in the same row order as
    ``verify_token``: the unredeemed token first, then the order. If either
    UPDATE matches no row the transaction is rolled back and nothing changes.

    Raises:
        OrderNotFound: no order with this id
        InvalidTransition: the order is already completed or cancelled
    """
    with storage_guard(db, "cancelling order"):
        order = db.get(Order, order_id)
        if order is None:
            raise OrderNotFound(f"Order {order_id} not found.")

        now = utcnow()
        invalidated = db.execute(
            update(RedemptionToken)
            .where(
                RedemptionToken.order_id == order_id,
                RedemptionToken.redeemed.is_(False),
                RedemptionToken.invalidated_at.is_(None),
            )
            .values(invalidated_at=now)
            .execution_options(synchronize_session=False)
        ).rowcount

        cancelled = 0
        if invalidated:
            cancelled = db.execute(
                update(Order)
                .where(Order.id == order_id, Order.status.in_(CANCELLABLE_STATUSES))
                .values(status=OrderStatus.CANCELLED.value, cancelled_at=now)
                .execution_options(synchronize_session=False)
            ).rowcount

        if not (invalidated and cancelled):
            db.rollback()
            current = db.get(Order, order_id)
            logger.info("Cancel rejected for order %s in status %s", order_id, current.status)
            raise InvalidTransition(f"Order {order_id} is {current.status} and cannot be cancelled.")

        db.commit()

        # commit() expired the instance, so this re-reads the new status
        summary = summarize_order(db.get(Order, order_id))

    logger.info("Cancelled order %s", order_id)
    return summary



# =============================================================================
# Reads
# =============================================================================

def get_order(db: Session, order_id: int) -> OrderSummary:
    with storage_guard(db, "loading order"):
        order = db.get(Order, order_id)
        if order is None:
            raise OrderNotFound(f"Order {order_id} not found.")
        return summarize_order(order)


def get_order_by_token(db: Session, token: str) -> OrderSummary:
    """
    Return the order bound to a redemption token.

    Surrounding whitespace is ignored (manual entry); a blank token is
    treated like an unknown one.
    """
    token = (token or "").strip()
    if not token:
        raise TokenNotFound("No order found for this code.")
    with storage_guard(db, "looking up token"):
        row = db.query(RedemptionToken).filter(RedemptionToken.token == token).first()
        if row is None:
            raise TokenNotFound("No order found for this code.")
        return summarize_order(row.order)


def get_order_token(db: Session, order_id: int) -> str:
    """Return the QR payload (the token string) for an order."""
    with storage_guard(db, "loading order token"):
        row = db.query(RedemptionToken).filter(RedemptionToken.order_id == order_id).first()
        if row is None:
            raise OrderNotFound(f"Order {order_id} not found.")
        return row.token


def list_orders(
    db: Session,
    status: Optional[str] = None,
    page: int = 1,
    page_size: int = 50,
) -> Tuple[List[OrderSummary], int]:
    """
    Return one page of orders, newest first, and the total matching count.
    """
    with storage_guard(db, "listing orders"):
        query = db.query(Order)
        if status:
            query = query.filter(Order.status == status)
        total = query.count()
        offset = (page - 1) * page_size
        orders = (
            query.order_by(Order.created_at.desc(), Order.id.desc())
            .offset(offset)
            .limit(page_size)
            .all()
        )
        return [summarize_order(o) for o in orders], total


def list_customer_orders(
    db: Session,
    customer_id: str,
    status: Optional[str] = None,
    limit: int = 20,
) -> List[OrderSummary]:
    with storage_guard(db, "listing customer orders"):
        query = db.query(Order).filter(Order.customer_id == customer_id)
        if status:
            query = query.filter(Order.status == status)
        orders = query.order_by(Order.created_at.desc(), Order.id.desc()).limit(limit).all()
        return [summarize_order(o) for o in orders]
