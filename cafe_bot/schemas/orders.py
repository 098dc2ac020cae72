"""
Order Schemas for Cafe Bot
==========================

Pydantic models for order lookup, seller verification and the seller order
list.

Endpoint Coverage:
------------------
- GET /orders/{id}, GET /orders/customer/{identity}: Order details
- GET /orders/{id}/qr: QR payload for the customer UI
- POST /orders/{id}/cancel: Cancel an order
- POST /seller/verify: Redeem a token
- GET /admin/orders: Paginated order list

Money:
------
Amounts are computed as Decimal in the service layer and rendered as floats
rounded to cents here.

Usage:
------
    summary = order_service.get_order(db, order_id)
    return OrderDetailOut.model_validate(summary)
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _money(v):
    return round(float(v), 2)


class OrderItemOut(BaseModel):
    """
    One line of an order, with the prices captured when it was placed.
    """
    model_config = ConfigDict(from_attributes=True)

    product_name: str
    size: str
    sugar_level: str
    ice_level: Optional[str] = None
    add_ons: List[str] = []
    quantity: int
    unit_price: float
    line_total: float

    @field_validator("unit_price", "line_total", mode="before")
    @classmethod
    def money_to_float(cls, v):
        return _money(v)


class OrderDetailOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    order_id: int
    customer_id: str
    status: str
    total: float
    pickup_estimate: Optional[datetime] = None
    created_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    items: List[OrderItemOut] = []

    @field_validator("total", mode="before")
    @classmethod
    def money_to_float(cls, v):
        return _money(v)


class VerifyRequest(BaseModel):
    """
    A token decoded from a QR code or typed in by the seller. Both sources
    are treated identically.
    """
    token: str = Field(..., max_length=512)


class VerificationOut(BaseModel):
    success: bool = True
    order: OrderDetailOut


class QrPayloadOut(BaseModel):
    """The string to encode in the customer's QR code."""
    order_id: int
    qr_payload: str


class OrderListResponse(BaseModel):
    """Paginated order list for the seller dashboard."""
    items: List[OrderDetailOut]
    page: int
    page_size: int
    total: int
    has_next: bool


class ErrorOut(BaseModel):
    """
    Body of every domain error response.

    Attributes:
        error: Stable error code, e.g. "already_redeemed"
        detail: Human readable message
        retryable: True only for transient storage failures
        fields: Missing fields, for "missing_field" only
    """
    error: str
    detail: str
    retryable: bool = False
    fields: Optional[List[str]] = None
