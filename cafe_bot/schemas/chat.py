"""
Chat Schemas for Cafe Bot
=========================

Pydantic models for the customer conversation endpoints.

Endpoint Coverage:
------------------
- POST /chat/start: Open or resume a conversation
- POST /chat/input: Send one input (button caption, typed text or event)
- POST /chat/finalize: Turn the current customization into an order

Inputs:
-------
A chat input carries either ``message`` (the caption of the pressed button or
free text) or ``event`` (a typed input event, for clients that do not want to
round-trip display strings). Exactly one of the two must be present.

Validation:
-----------
- Message length is constrained by MAX_MESSAGE_LENGTH (default: 200 chars).
- Identities are non-empty strings (e.g. a Telegram user id).
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ..config import MAX_MESSAGE_LENGTH
from ..tasks.events import InputEvent


class ChatStartRequest(BaseModel):
    identity: str = Field(..., min_length=1, max_length=100)


class ChatInputRequest(BaseModel):
    """
    One customer input.

    Attributes:
        identity: Customer identity the session is keyed by
        message: Raw text, e.g. "Latte" or "✅ Extra Shot"
        event: Typed input event, e.g. {"kind": "set_quantity", "quantity": 2}
    """
    identity: str = Field(..., min_length=1, max_length=100)
    message: Optional[str] = Field(None, max_length=MAX_MESSAGE_LENGTH)
    event: Optional[InputEvent] = None

    @model_validator(mode="after")
    def exactly_one_input(self):
        if (self.message is None) == (self.event is None):
            raise ValueError("Provide exactly one of 'message' or 'event'")
        return self


class FinalizeRequest(BaseModel):
    identity: str = Field(..., min_length=1, max_length=100)


class OrderConfirmationOut(BaseModel):
    """
    A freshly created order.

    ``token`` is the QR payload the customer shows at pickup. It is an opaque
    string; clients must not parse it.
    """
    model_config = ConfigDict(from_attributes=True)

    order_id: int
    token: str
    total: float
    pickup_estimate: datetime

    @field_validator("total", mode="before")
    @classmethod
    def money_to_float(cls, v):
        return float(v)


class ChatReplyOut(BaseModel):
    """
    Response to every conversation step.

    Attributes:
        prompt_type: What the client should render (product_list,
            size_options, customization_menu, sugar_options, ice_options,
            addon_options, quantity_options, order_review, order_confirmed,
            cancelled)
        message: Prompt text
        state: Conversation state after the step
        options: Button captions, in display order
        errors: Why the last input was not accepted (state unchanged)
        order: Set only when the step confirmed an order
    """
    model_config = ConfigDict(from_attributes=True)

    prompt_type: str
    message: str
    state: str
    options: List[str] = []
    errors: List[str] = []
    order: Optional[OrderConfirmationOut] = None
