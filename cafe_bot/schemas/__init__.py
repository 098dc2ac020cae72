"""
Schemas Package for Cafe Bot
============================

Pydantic models used for API request validation and response serialization.

Schema Organization:
--------------------
- **chat.py**: Conversation start/input/finalize schemas
- **orders.py**: Order detail, order list, verification and error schemas

Naming Conventions:
-------------------
- *Out: Response models - what the API returns
- *Request: Request bodies - what the client sends
- *Response: Composite response structures

Response models use ``model_config = ConfigDict(from_attributes=True)`` so they
can be built straight from the service-layer dataclasses:

    reply = service.submit_input(identity, text)
    return ChatReplyOut.model_validate(reply)
"""

from .chat import (
    ChatInputRequest,
    ChatReplyOut,
    ChatStartRequest,
    FinalizeRequest,
    OrderConfirmationOut,
)
from .orders import (
    ErrorOut,
    OrderDetailOut,
    OrderItemOut,
    OrderListResponse,
    QrPayloadOut,
    VerificationOut,
    VerifyRequest,
)

__all__ = [
    "ChatInputRequest",
    "ChatReplyOut",
    "ChatStartRequest",
    "FinalizeRequest",
    "OrderConfirmationOut",
    "ErrorOut",
    "OrderDetailOut",
    "OrderItemOut",
    "OrderListResponse",
    "QrPayloadOut",
    "VerificationOut",
    "VerifyRequest",
]
