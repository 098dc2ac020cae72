"""
Helper Functions for Cafe Bot Services
======================================

Shared utilities used by the session, order and redemption services.

Key Functions:
--------------
- storage_guard: Turn SQLAlchemy failures into TransientFailure
- utcnow: Timezone-aware current time used for every order timestamp
- to_decimal: Read a money value stored as Float back into a Decimal

Usage:
------
    from cafe_bot.services.helpers import storage_guard

    with storage_guard(db, "cancelling order"):
        ...
        db.commit()

Any SQLAlchemyError raised inside the block rolls the session back and is
re-raised as TransientFailure (retryable). Domain errors raised inside the
block pass through untouched.
"""

import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from decimal import Decimal
from typing import Iterator, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..errors import TransientFailure


logger = logging.getLogger(__name__)

DEFAULT_FAILURE_MESSAGE = "The service is temporarily unavailable. Please try again."


@contextmanager
def storage_guard(
    db: Optional[Session],
    action: str,
    message: str = DEFAULT_FAILURE_MESSAGE,
) -> Iterator[None]:
    """
    Wrap a block of database work.

    Args:
        db: Session to roll back on failure (None if the block opens its own)
        action: Short description for the log line, e.g. "saving session"
        message: Customer/seller facing text of the TransientFailure
    """
    try:
        yield
    except SQLAlchemyError as exc:
        if db is not None:
            try:
                db.rollback()
            except SQLAlchemyError:
                logger.exception("Rollback failed while %s", action)
        logger.error("Database error while %s: %s", action, exc)
        raise TransientFailure(message) from exc


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_decimal(value) -> Decimal:
    if value is None:
        return Decimal("0")
    return Decimal(str(value))
