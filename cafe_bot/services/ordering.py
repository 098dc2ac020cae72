"""
Ordering Service
================

The facade the HTTP routes and bots talk to. It ties the pieces together:

    raw text --parse_input--> InputEvent --state machine--> session/prompt
    confirm --> OrderAssembler --> services.order.create_order --> token
    token  --> services.redemption.verify_token --> completed order

Operations:
-----------
- start_session(identity)
- submit_input(identity, raw text or InputEvent)
- finalize_order(identity)
- verify_token(token)
- cancel_order(order_id)
- get_order / get_order_qr / list_customer_orders / list_orders (read side)

Every session step runs under ``store.locked(identity)`` so concurrent
messages from one customer are applied one at a time. Database sessions are
opened per call and always closed.
"""

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Callable, Iterator, List, Optional, Tuple, Union

from sqlalchemy.orm import Session

from ..catalog import CatalogLookup, DatabaseCatalog
from ..errors import (
    InvalidAddOn,
    InvalidInput,
    InvalidSize,
    MissingField,
    ProductUnavailable,
    SessionNotFound,
)
from ..tasks.events import InputEvent
from ..tasks.message_builder import MessageBuilder, format_price
from ..tasks.models import ConversationSession
from ..tasks.parsing import parse_input
from ..tasks.pricing import OrderAssembler
from ..tasks.schemas import CustomizationState, StateMachineResult, TERMINAL_STATES
from ..tasks.state_machine import CustomizationStateMachine
from . import order as order_service
from . import redemption
from .order import CreatedOrder, OrderSummary
from .session import DatabaseSessionStore, InMemorySessionStore, SessionStore


logger = logging.getLogger(__name__)

CATALOG_DRIFT_ERRORS = (ProductUnavailable, InvalidSize, InvalidAddOn)


@dataclass
class ChatReply:
    """What a conversation step returns to the UI or bot."""
    prompt_type: str
    message: str
    state: str
    options: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    order: Optional[CreatedOrder] = None


class OrderingService:
    """
    Entry point for customer conversations, checkout and seller redemption.

    Args:
        catalog: product lookup (defaults to the ``products`` table)
        store: session store (defaults to an in-memory store)
        session_factory: SQLAlchemy session factory for orders and tokens;
            defaults to the application's SessionLocal, resolved per call
    """

    def __init__(
        self,
        catalog: Optional[CatalogLookup] = None,
        store: Optional[SessionStore] = None,
        session_factory: Optional[Callable[[], Session]] = None,
        message_builder: Optional[MessageBuilder] = None,
    ):
        self._session_factory = session_factory
        self.catalog = catalog if catalog is not None else DatabaseCatalog(session_factory)
        self.store = store if store is not None else InMemorySessionStore()
        self.machine = CustomizationStateMachine(self.catalog, message_builder)
        self.assembler = OrderAssembler(self.catalog)

    @contextmanager
    def _db(self) -> Iterator[Session]:
        if self._session_factory is not None:
            db = self._session_factory()
        else:
            from .. import db as db_module
            db = db_module.SessionLocal()
        try:
            yield db
        finally:
            db.close()

    # -------------------------------------------------------------------------
    # Conversation
    # -------------------------------------------------------------------------

    def start_session(self, identity: str) -> ChatReply:
        """
        Open (or resume) the conversation for a customer.

        A live in-progress session is resumed where it left off; an absent,
        expired or finished one is replaced by a fresh browsing session.
        """
        with self.store.locked(identity):
            session = self.store.get(identity)
            if session is None or session.state in TERMINAL_STATES:
                session = ConversationSession(identity=identity)
                logger.info("Started session for %s", identity)
            result = self.machine.render(session)
            self.store.save(result.session)
            return self._reply(result)

    def submit_input(self, identity: str, raw_input: Union[str, InputEvent]) -> ChatReply:
        """
        Apply one customer input (button caption, typed text or typed event).

        Rejected input comes back in ``errors`` with the session unchanged.
        Confirming from the review screen finalizes the order in the same call.
        """
        with self.store.locked(identity):
            session = self.store.get(identity)
            if session is None:
                session = ConversationSession(identity=identity)
                logger.info("Started session for %s", identity)

            if isinstance(raw_input, str):
                try:
                    event = parse_input(raw_input, session, self.catalog)
                except InvalidInput as exc:
                    result = self.machine.render(session, errors=[exc.message])
                    self.store.save(result.session)
                    return self._reply(result)
            else:
                event = raw_input

            result = self.machine.handle(session, event)
            self.store.save(result.session)

            if result.finalize_requested:
                created = self.finalize_order(identity)
                return self._confirmation(identity, created)
            return self._reply(result)

    def finalize_order(self, identity: str) -> CreatedOrder:
        """
        Turn the customer's customization into a persisted order.

        Raises:
            SessionNotFound: nothing is being customized for this customer
            MissingField: required choices are unset (nothing is persisted)
            ProductUnavailable / InvalidSize / InvalidAddOn: the catalog
                changed under the customer; the customization is discarded
            TransientFailure: storage failed; the session is left as it was
        """
        with self.store.locked(identity):
            session = self.store.get(identity)
            if session is None or session.customization is None or session.state in TERMINAL_STATES:
                raise SessionNotFound("No order in progress. Please choose a drink first.")

            missing = session.customization.missing_fields()
            if missing:
                raise MissingField(missing)

            try:
                assembled = self.assembler.assemble([session.customization])
            except CATALOG_DRIFT_ERRORS as exc:
                logger.info("Finalize for %s failed on catalog drift: %s", identity, exc.code)
                session.reset()
                self.store.save(session)
                raise

            with self._db() as db:
                created = order_service.create_order(db, assembled.items, assembled.total, identity)

            session.state = CustomizationState.FINALIZED
            session.customization = None
            self.store.save(session)
            return created

    # -------------------------------------------------------------------------
    # Orders and redemption
    # -------------------------------------------------------------------------

    def verify_token(self, token: str) -> OrderSummary:
        with self._db() as db:
            return redemption.verify_token(db, token)

    def cancel_order(self, order_id: int) -> OrderSummary:
        with self._db() as db:
            return order_service.cancel_order(db, order_id)

    def get_order(self, order_id: int) -> OrderSummary:
        with self._db() as db:
            return order_service.get_order(db, order_id)

    def get_order_qr(self, order_id: int) -> str:
        with self._db() as db:
            return order_service.get_order_token(db, order_id)

    def list_customer_orders(self, identity: str, status: Optional[str] = None, limit: int = 20) -> List[OrderSummary]:
        with self._db() as db:
            return order_service.list_customer_orders(db, identity, status=status, limit=limit)

    def list_orders(self, status: Optional[str] = None, page: int = 1, page_size: int = 50) -> Tuple[List[OrderSummary], int]:
        with self._db() as db:
            return order_service.list_orders(db, status=status, page=page, page_size=page_size)

    # -------------------------------------------------------------------------
    # Replies
    # -------------------------------------------------------------------------

    def _reply(self, result: StateMachineResult) -> ChatReply:
        return ChatReply(
            prompt_type=result.prompt_type,
            message=result.message,
            state=result.session.state.value,
            options=list(result.options),
            errors=list(result.errors),
        )

    def _confirmation(self, identity: str, created: CreatedOrder) -> ChatReply:
        menu = self.machine.render(ConversationSession(identity=identity))
        pickup = created.pickup_estimate.strftime("%H:%M")
        message = (
            f"✅ Order #{created.order_id} confirmed!\n"
            f"Total: {format_price(created.total)}\n"
            f"Estimated pickup: {pickup}\n"
            "Show the QR code at the counter to collect your order."
        )
        return ChatReply(
            prompt_type="order_confirmed",
            message=message,
            state=CustomizationState.FINALIZED.value,
            options=menu.options,
            order=created,
        )


# =============================================================================
# Application Instance
# =============================================================================
# Routes share one service so per-identity locks and the session cache are
# process-wide. Tests call reset_ordering_service() to start clean.

_service: Optional[OrderingService] = None
_service_lock = threading.Lock()


def get_ordering_service() -> OrderingService:
    """FastAPI dependency returning the process-wide OrderingService."""
    global _service
    with _service_lock:
        if _service is None:
            _service = OrderingService(store=DatabaseSessionStore())
            logger.info("Ordering service initialized")
        return _service


def reset_ordering_service(service: Optional[OrderingService] = None) -> None:
    """Replace (or drop) the process-wide service."""
    global _service
    with _service_lock:
        _service = service
