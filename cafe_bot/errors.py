"""
Domain errors for the ordering and redemption engine.

Every error carries a stable ``code`` (rendered to API clients) and a
``retryable`` flag. Only ``TransientFailure`` is retryable: it wraps database
and catalog failures. Domain errors such as ``AlreadyRedeemed`` can never
succeed on retry.
"""

from typing import Iterable, List


class OrderBotError(Exception):
    """Base class for all cafe bot domain errors."""

    code = "order_bot_error"
    retryable = False

    def __init__(self, message: str = ""):
        self.message = message or self.__class__.__doc__ or self.code
        super().__init__(self.message)


# --- Conversation errors ------------------------------------------------------

class InvalidInput(OrderBotError):
    """Input is not one of the choices accepted in the current step."""

    code = "invalid_input"


class MissingField(OrderBotError):
    """Finalize attempted with an incomplete customization."""

    code = "missing_field"

    def __init__(self, fields: Iterable[str]):
        self.fields: List[str] = list(fields)
        super().__init__("Please choose: " + ", ".join(self.fields))


class SessionNotFound(OrderBotError):
    """No live session exists for this customer."""

    code = "session_not_found"


# --- Catalog drift at finalize ----------------------------------------------

class ProductUnavailable(OrderBotError):
    """The product no longer exists or is not available."""

    code = "product_unavailable"


class InvalidSize(OrderBotError):
    """The selected size is no longer offered for this product."""

    code = "invalid_size"


class InvalidAddOn(OrderBotError):
    """A selected add-on is no longer offered for this product."""

    code = "invalid_add_on"


# --- Order lifecycle and redemption ------------------------------------------

class OrderNotFound(OrderBotError):
    """No order exists with this id."""

    code = "order_not_found"


class InvalidTransition(OrderBotError):
    """The order cannot move to the requested status."""

    code = "invalid_transition"


class TokenNotFound(OrderBotError):
    """No order is bound to this token."""

    code = "token_not_found"


class AlreadyRedeemed(OrderBotError):
    """This token has already been redeemed."""

    code = "already_redeemed"


class OrderCancelled(OrderBotError):
    """The order bound to this token was cancelled."""

    code = "order_cancelled"


# --- Infrastructure ----------------------------------------------------------

class TransientFailure(OrderBotError):
    """A storage or catalog call failed; the request may be retried."""

    code = "transient_failure"
    retryable = True
