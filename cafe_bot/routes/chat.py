"""
Chat Routes for Cafe Bot
========================

Customer-facing conversation endpoints. A bot (or web client) relays each
button press or typed message here and renders the prompt that comes back.

Endpoints:
----------
- POST /chat/start: Open or resume the conversation for an identity
- POST /chat/input: Apply one input and get the next prompt
- POST /chat/finalize: Place the order for the current customization

Conversation Flow:
------------------
1. Client calls /chat/start with the customer's identity and shows the menu
2. Each button press is sent to /chat/input as ``message`` (the caption) or
   ``event`` (typed)
3. Rejected input comes back with ``errors`` and the same prompt
4. Pressing "Confirm Order" on the review screen places the order; the reply
   has ``prompt_type == "order_confirmed"`` and carries the order id and the
   QR token. /chat/finalize does the same without going through the review
   screen.

Rate Limiting:
--------------
Chat endpoints are rate limited (default: 30/minute per client address).
"""

import logging

from fastapi import APIRouter, Depends, Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from ..config import RATE_LIMIT_ENABLED, get_rate_limit_chat
from ..schemas.chat import (
    ChatInputRequest,
    ChatReplyOut,
    ChatStartRequest,
    FinalizeRequest,
    OrderConfirmationOut,
)
from ..services.ordering import OrderingService, get_ordering_service


logger = logging.getLogger(__name__)

# Router definition
chat_router = APIRouter(prefix="/chat", tags=["Chat"])

limiter = Limiter(key_func=get_remote_address, enabled=RATE_LIMIT_ENABLED)


# =============================================================================
# Chat Endpoints
# =============================================================================

@chat_router.post("/start", response_model=ChatReplyOut)
@limiter.limit(get_rate_limit_chat)
def chat_start(
    request: Request,
    req: ChatStartRequest,
    service: OrderingService = Depends(get_ordering_service),
) -> ChatReplyOut:
    """Open the conversation, resuming an in-progress customization if any."""
    reply = service.start_session(req.identity)
    return ChatReplyOut.model_validate(reply)


@chat_router.post("/input", response_model=ChatReplyOut)
@limiter.limit(get_rate_limit_chat)
def chat_input(
    request: Request,
    req: ChatInputRequest,
    service: OrderingService = Depends(get_ordering_service),
) -> ChatReplyOut:
    """
    Apply one input.

    Input the current step does not accept is reported in ``errors`` with a
    200 status; the conversation state is unchanged.
    """
    raw = req.event if req.event is not None else req.message
    reply = service.submit_input(req.identity, raw)
    if reply.order is not None:
        logger.info("Order %s placed from chat", reply.order.order_id)
    return ChatReplyOut.model_validate(reply)


@chat_router.post("/finalize", response_model=OrderConfirmationOut)
@limiter.limit(get_rate_limit_chat)
def chat_finalize(
    request: Request,
    req: FinalizeRequest,
    service: OrderingService = Depends(get_ordering_service),
) -> OrderConfirmationOut:
    """
    Place the order for the current customization.

    Fails with 422 (missing_field) if required choices are unset and with
    409 if the product, size or an add-on was withdrawn from the menu.
    """
    created = service.finalize_order(req.identity)
    return OrderConfirmationOut.model_validate(created)
