"""
Admin Orders Routes for Cafe Bot
================================

Seller dashboard endpoints for viewing orders.

Endpoints:
----------
- GET /admin/orders: List orders with pagination and filtering
- GET /admin/orders/{id}: Get detailed order information

Authentication:
---------------
All endpoints require seller authentication via HTTP Basic Auth.

Order States:
-------------
- created: Being saved (never visible outside the creating transaction)
- awaiting_pickup: Placed, waiting at the counter
- completed: Picked up (token redeemed)
- cancelled: Cancelled before pickup

Filtering and Pagination:
-------------------------
    GET /admin/orders?status=awaiting_pickup&page=1&page_size=20

Unknown status values are ignored (all orders are listed). The response
carries the total count and a has_next flag.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..auth import verify_seller_credentials
from ..db import get_db
from ..schemas.orders import OrderDetailOut, OrderListResponse
from ..services import order as order_service
from ..services.order import OrderStatus


logger = logging.getLogger(__name__)

# Router definition
admin_orders_router = APIRouter(prefix="/admin/orders", tags=["Admin - Orders"])


# =============================================================================
# Order Endpoints
# =============================================================================

@admin_orders_router.get("", response_model=OrderListResponse)
def list_orders(
    db: Session = Depends(get_db),
    _seller: str = Depends(verify_seller_credentials),
    status: Optional[str] = Query(
        None,
        description="Filter by status: awaiting_pickup, completed, cancelled, or leave empty for all",
    ),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
) -> OrderListResponse:
    """
    Return a paginated list of orders, newest first.
    """
    if status not in {s.value for s in OrderStatus}:
        status = None

    orders, total = order_service.list_orders(db, status=status, page=page, page_size=page_size)
    items = [OrderDetailOut.model_validate(o) for o in orders]
    has_next = (page - 1) * page_size + len(items) < total

    return OrderListResponse(
        items=items,
        page=page,
        page_size=page_size,
        total=total,
        has_next=has_next,
    )


@admin_orders_router.get("/{order_id}", response_model=OrderDetailOut)
def get_order_detail(
    order_id: int,
    db: Session = Depends(get_db),
    _seller: str = Depends(verify_seller_credentials),
) -> OrderDetailOut:
    return OrderDetailOut.model_validate(order_service.get_order(db, order_id))
