"""
Seller Routes for Cafe Bot
==========================

Point-of-sale endpoints used at the pickup counter.

Endpoints:
----------
- POST /seller/verify: Redeem the token from a customer's QR code

Token Source:
-------------
The token comes from a QR scanner or is typed in by hand; both are treated
identically. Decoding the QR image happens on the seller's device.

Outcomes:
---------
- 200: order completed; the body lists what to hand over
- 404 token_not_found: no order has this token
- 409 already_redeemed: the order was already picked up
- 409 order_cancelled: the order was cancelled
- 503 transient_failure: try again

A redemption is final the moment this endpoint answers.

Authentication:
---------------
Requires seller HTTP Basic Auth.
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..auth import verify_seller_credentials
from ..db import get_db
from ..schemas.orders import OrderDetailOut, VerificationOut, VerifyRequest
from ..services.redemption import verify_token


logger = logging.getLogger(__name__)

# Router definition
seller_router = APIRouter(prefix="/seller", tags=["Seller"])


@seller_router.post("/verify", response_model=VerificationOut)
def verify_order_token(
    req: VerifyRequest,
    db: Session = Depends(get_db),
    seller: str = Depends(verify_seller_credentials),
) -> VerificationOut:
    summary = verify_token(db, req.token)
    logger.info("Seller %s handed over order %s", seller, summary.order_id)
    return VerificationOut(success=True, order=OrderDetailOut.model_validate(summary))
