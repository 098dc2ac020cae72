"""
Order Routes for Cafe Bot
=========================

Customer-facing order endpoints.

Endpoints:
----------
- GET /orders/{id}?identity=...: Order details
- GET /orders/{id}/qr?identity=...: QR payload (the redemption token)
- POST|PATCH /orders/{id}/cancel?identity=...: Cancel an order not yet picked up
- GET /orders/customer/{identity}: The customer's recent orders

Ownership:
----------
Order ids are sequential, so every per-order endpoint takes the customer
identity and answers 404 when it does not own the order. The QR payload is a
pickup credential and must only reach its owner.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..db import get_db
from ..errors import OrderNotFound
from ..schemas.orders import OrderDetailOut, QrPayloadOut
from ..services import order as order_service
from ..services.order import OrderStatus, OrderSummary


logger = logging.getLogger(__name__)

# Router definition
orders_router = APIRouter(prefix="/orders", tags=["Orders"])

STATUS_VALUES = [s.value for s in OrderStatus]


def _owned_order(db: Session, order_id: int, identity: str) -> OrderSummary:
    summary = order_service.get_order(db, order_id)
    if summary.customer_id != identity:
        raise OrderNotFound(f"Order {order_id} not found.")
    return summary


# =============================================================================
# Order Endpoints
# =============================================================================

@orders_router.get("/customer/{identity}", response_model=List[OrderDetailOut])
def list_customer_orders(
    identity: str,
    db: Session = Depends(get_db),
    status: Optional[str] = Query(None, description="Filter by status: " + ", ".join(STATUS_VALUES)),
    limit: int = Query(20, ge=1, le=100),
) -> List[OrderDetailOut]:
    """Return the customer's orders, newest first."""
    if status not in STATUS_VALUES:
        status = None
    orders = order_service.list_customer_orders(db, identity, status=status, limit=limit)
    return [OrderDetailOut.model_validate(o) for o in orders]


@orders_router.get("/{order_id}", response_model=OrderDetailOut)
def get_order(
    order_id: int,
    identity: str = Query(..., min_length=1),
    db: Session = Depends(get_db),
) -> OrderDetailOut:
    return OrderDetailOut.model_validate(_owned_order(db, order_id, identity))


@orders_router.get("/{order_id}/qr", response_model=QrPayloadOut)
def get_order_qr(
    order_id: int,
    identity: str = Query(..., min_length=1),
    db: Session = Depends(get_db),
) -> QrPayloadOut:
    """
    Return the string to encode in the pickup QR code.

    The payload is opaque; rendering the QR image is up to the client.
    """
    _owned_order(db, order_id, identity)
    return QrPayloadOut(order_id=order_id, qr_payload=order_service.get_order_token(db, order_id))


@orders_router.api_route("/{order_id}/cancel", methods=["POST", "PATCH"], response_model=OrderDetailOut)
def cancel_order(
    order_id: int,
    identity: str = Query(..., min_length=1),
    db: Session = Depends(get_db),
) -> OrderDetailOut:
    """
    Cancel an order that has not been picked up.

    Fails with 409 (invalid_transition) for completed or cancelled orders.
    The order's token stops working immediately.
    """
    _owned_order(db, order_id, identity)
    summary = order_service.cancel_order(db, order_id)
    return OrderDetailOut.model_validate(summary)
