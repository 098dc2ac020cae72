"""
Redemption Verifier.

A seller presents the token decoded from the customer's QR code (or typed in
by hand). ``verify_token`` completes the bound order at most once.

The check and the state change are one transaction of two conditional
updates, judged by affected row counts:

    UPDATE redemption_tokens SET redeemed = true
     WHERE id = :id AND redeemed = false AND invalidated_at IS NULL
    UPDATE orders SET status = 'completed'
     WHERE id = :order_id AND status = 'awaiting_pickup'

Only one of N concurrent callers can see a row count of 1 on the first
statement; every other caller falls through to classification. Nothing is
read first and then written.
"""

import logging

from sqlalchemy import update
from sqlalchemy.orm import Session

from ..errors import (
    AlreadyRedeemed,
    InvalidTransition,
    OrderBotError,
    OrderCancelled,
    TokenNotFound,
)
from ..logging_config import mask_token
from ..models import Order, RedemptionToken
from .helpers import storage_guard, utcnow
from .order import OrderStatus, OrderSummary, summarize_order


logger = logging.getLogger(__name__)


def _classify_rejection(db: Session, token_id: int, order_id: int) -> OrderBotError:
    """Explain why the conditional updates matched nothing. Called after rollback."""
    token_row = db.get(RedemptionToken, token_id)
    order = db.get(Order, order_id)
    if order.status == OrderStatus.CANCELLED.value or token_row.invalidated_at is not None:
        return OrderCancelled("This order was cancelled and cannot be picked up.")
    if token_row.redeemed:
        return AlreadyRedeemed("This order has already been picked up.")
    return InvalidTransition(f"Order {order_id} is {order.status} and cannot be completed.")


def verify_token(db: Session, token: str) -> OrderSummary:
    """
    Redeem a token and complete its order.

    Returns:
        Summary of the completed order, for display to the seller.

    Raises:
        TokenNotFound: no order is bound to the token
        AlreadyRedeemed: the token was redeemed before (by this or another caller)
        OrderCancelled: the order was cancelled
        TransientFailure: the database failed; nothing was changed
    """
    token = (token or "").strip()
    if not token:
        raise TokenNotFound("No order found for this code.")

    with storage_guard(db, "verifying token"):
        row = (
            db.query(RedemptionToken.id, RedemptionToken.order_id)
            .filter(RedemptionToken.token == token)
            .first()
        )
        if row is None:
            logger.info("Verify rejected: unknown token %s", mask_token(token))
            raise TokenNotFound("No order found for this code.")
        token_id, order_id = row

        now = utcnow()
        claimed = db.execute(
            update(RedemptionToken)
            .where(
                RedemptionToken.id == token_id,
                RedemptionToken.redeemed.is_(False),
                RedemptionToken.invalidated_at.is_(None),
            )
            .values(redeemed=True, redeemed_at=now)
            .execution_options(synchronize_session=False)
        ).rowcount

        completed = 0
        if claimed:
            completed = db.execute(
                update(Order)
                .where(Order.id == order_id, Order.status == OrderStatus.AWAITING_PICKUP.value)
                .values(status=OrderStatus.COMPLETED.value, completed_at=now)
                .execution_options(synchronize_session=False)
            ).rowcount

        if not (claimed and completed):
            db.rollback()
            error = _classify_rejection(db, token_id, order_id)
            logger.info(
                "Verify rejected for order %s (token %s): %s",
                order_id, mask_token(token), error.code,
            )
            raise error

        db.commit()
        summary = summarize_order(db.get(Order, order_id))

    logger.info("Order %s completed via token %s", order_id, mask_token(token))
    return summary
