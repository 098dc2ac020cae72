"""
State Machine for the Drink Customization Flow.

Each conversation state has its own handler that accepts a fixed set of typed
input events and nothing else:

    browsing -> product_selected -> selecting_size -> customizing
    customizing -> selecting_sugar | selecting_ice | selecting_addons
                   | selecting_quantity (each returns to customizing)
    customizing -> reviewing -> finalized | cancelled

Transitions run against a deep copy of the session. The copy is returned
only when the handler succeeds; a rejected input returns the untouched
session with an error, so no input can leave a half-applied change behind.
The caller (services.ordering) persists whatever session comes back.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from ..catalog import CatalogLookup, ProductInfo
from ..config import LEVEL_CHOICES, MAX_QUANTITY, MIN_QUANTITY
from ..errors import InvalidInput, MissingField, ProductUnavailable
from .events import (
    ChooseLevel,
    ChooseSize,
    InputEvent,
    Navigate,
    SelectProduct,
    SetQuantity,
    ToggleAddOn,
)
from .message_builder import MessageBuilder, format_price
from .models import ConversationSession, Customization
from .schemas import (
    CustomizationState,
    LEAF_STATES,
    StateMachineResult,
    TERMINAL_STATES,
)

logger = logging.getLogger(__name__)

S = CustomizationState


@dataclass
class _Step:
    """What a handler reports besides the state it left the session in."""
    notes: List[str] = field(default_factory=list)  # informational, shown above the prompt
    errors: List[str] = field(default_factory=list)  # refusals that did not change the state
    finalize: bool = False


class CustomizationStateMachine:
    """
    Drives one customer's session through the customization flow.

    Stateless apart from its collaborators: all conversation state lives in
    the ConversationSession passed to handle().
    """

    def __init__(self, catalog: CatalogLookup, message_builder: Optional[MessageBuilder] = None):
        self.catalog = catalog
        self.messages = message_builder or MessageBuilder()
        self._handlers: Dict[CustomizationState, Callable[[ConversationSession, InputEvent], _Step]] = {
            S.BROWSING: self._handle_browsing,
            S.SELECTING_SIZE: self._handle_size,
            S.CUSTOMIZING: self._handle_customizing,
            S.SELECTING_SUGAR: self._handle_level,
            S.SELECTING_ICE: self._handle_level,
            S.SELECTING_ADDONS: self._handle_add_on,
            S.SELECTING_QUANTITY: self._handle_quantity,
            S.REVIEWING: self._handle_reviewing,
        }

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    def render(self, session: ConversationSession, errors: Optional[List[str]] = None) -> StateMachineResult:
        """Build the prompt for the session's current state without changing it."""
        return self._result(session, _Step(errors=list(errors or [])))

    def handle(self, session: ConversationSession, event: InputEvent) -> StateMachineResult:
        """Apply one input event and return the resulting prompt and session."""
        working = session.model_copy(deep=True)
        if working.state in TERMINAL_STATES:
            working.reset()
        if working.state == S.PRODUCT_SELECTED:
            working.state = S.SELECTING_SIZE

        before = working.state
        try:
            step = self._dispatch(working, event)
        except InvalidInput as exc:
            logger.debug("Rejected %s in state %s: %s", event.kind, before.value, exc.message)
            return self.render(session, errors=[exc.message])
        except MissingField as exc:
            return self.render(session, errors=[self.messages.missing_message(exc.fields)])
        except ProductUnavailable as exc:
            # The product vanished mid-conversation: discard and start over
            logger.info("Session %s: product unavailable, customization discarded", session.identity)
            fresh = session.model_copy(deep=True)
            fresh.reset()
            return self.render(fresh, errors=[exc.message])

        if working.state != before:
            logger.info("Session %s: %s -> %s", working.identity, before.value, working.state.value)
        return self._result(working, step)

    # -------------------------------------------------------------------------
    # Dispatch
    # -------------------------------------------------------------------------

    def _dispatch(self, s: ConversationSession, event: InputEvent) -> _Step:
        if isinstance(event, Navigate):
            step = self._handle_global_navigation(s, event)
            if step is not None:
                return step
        return self._handlers[s.state](s, event)

    def _handle_global_navigation(self, s: ConversationSession, event: Navigate) -> Optional[_Step]:
        """Navigation that means the same thing in every state."""
        if event.target == "menu":
            s.reset()
            return _Step()
        if event.target == "cancel":
            if s.state == S.BROWSING:
                return _Step()
            s.state = S.CANCELLED
            s.customization = None
            return _Step()
        if event.target == "back":
            # Leaving a leaf discards whatever was being chosen there
            if s.state in LEAF_STATES or s.state == S.REVIEWING:
                s.state = S.CUSTOMIZING
                return _Step()
            if s.state == S.CUSTOMIZING:
                return _Step()
        return None

    def _product(self, s: ConversationSession) -> ProductInfo:
        product = self.catalog.get_product(s.customization.product_id)
        if product is None or not product.available:
            raise ProductUnavailable(
                f"Sorry, {s.customization.product_name} is no longer available. Please choose another drink."
            )
        return product

    # -------------------------------------------------------------------------
    # State handlers
    # -------------------------------------------------------------------------

    def _handle_browsing(self, s: ConversationSession, event: InputEvent) -> _Step:
        if not isinstance(event, SelectProduct):
            raise InvalidInput("Please choose a drink from the menu.")

        product = self.catalog.get_product(event.product_id)
        if product is None or not product.available:
            raise InvalidInput("Sorry, that drink is not available right now.")

        s.customization = Customization(
            product_id=product.id,
            product_name=product.name,
            category=product.category,
        )
        s.state = S.PRODUCT_SELECTED
        logger.info("Session %s: selected product %s (%s)", s.identity, product.id, product.category)
        s.state = S.SELECTING_SIZE
        return _Step()

    def _handle_size(self, s: ConversationSession, event: InputEvent) -> _Step:
        if not isinstance(event, ChooseSize):
            raise InvalidInput("Please choose a size.")
        product = self._product(s)
        size = product.get_size(event.size)
        if size is None:
            names = ", ".join(sz.name for sz in product.sizes)
            raise InvalidInput(f"Invalid size. Please choose one of: {names}.")
        s.customization.size = size.name
        s.state = S.CUSTOMIZING
        return _Step(notes=[f"Size set to: {size.name}"])

    def _handle_customizing(self, s: ConversationSession, event: InputEvent) -> _Step:
        if not isinstance(event, Navigate):
            raise InvalidInput("Please choose one of the options.")
        product = self._product(s)
        target = event.target

        if target == "size":
            s.state = S.SELECTING_SIZE
        elif target == "sugar":
            s.state = S.SELECTING_SUGAR
        elif target == "ice":
            if not product.takes_ice:
                s.state = S.CUSTOMIZING
                return _Step(errors=["Ice level is only available for iced drinks and frappes."])
            s.state = S.SELECTING_ICE
        elif target == "addons":
            if not product.add_ons:
                s.state = S.CUSTOMIZING
                return _Step(errors=["No add-ons available for this item."])
            s.state = S.SELECTING_ADDONS
        elif target == "quantity":
            s.state = S.SELECTING_QUANTITY
        elif target == "review":
            s.state = S.REVIEWING
        else:
            raise InvalidInput("Please review your order before confirming.")
        return _Step()

    def _handle_level(self, s: ConversationSession, event: InputEvent) -> _Step:
        if not isinstance(event, ChooseLevel):
            raise InvalidInput("Invalid level. Please choose from the options.")
        level = event.level.strip().lower()
        if level not in LEVEL_CHOICES:
            raise InvalidInput("Invalid level. Please choose from the options.")

        if s.state == S.SELECTING_SUGAR:
            s.customization.sugar_level = level
            note = f"Sugar level set to: {level}"
        else:
            if not self._product(s).takes_ice:
                raise InvalidInput("Ice level is only available for iced drinks and frappes.")
            s.customization.ice_level = level
            note = f"Ice level set to: {level}"
        s.state = S.CUSTOMIZING
        return _Step(notes=[note])

    def _handle_add_on(self, s: ConversationSession, event: InputEvent) -> _Step:
        if not isinstance(event, ToggleAddOn):
            raise InvalidInput("Invalid add-on selection.")
        add_on = self._product(s).get_add_on(event.name)
        if add_on is None:
            raise InvalidInput("Invalid add-on selection.")

        added = s.customization.toggle_add_on(add_on.name)
        # Stay here so the customer can toggle several add-ons in a row
        s.state = S.SELECTING_ADDONS
        if added:
            return _Step(notes=[f"Added: {add_on.name} (+{format_price(add_on.price)})"])
        return _Step(notes=[f"Removed: {add_on.name}"])

    def _handle_quantity(self, s: ConversationSession, event: InputEvent) -> _Step:
        if not isinstance(event, SetQuantity) or not MIN_QUANTITY <= event.quantity <= MAX_QUANTITY:
            raise InvalidInput(f"Please select a valid quantity ({MIN_QUANTITY}-{MAX_QUANTITY}).")
        s.customization.quantity = event.quantity
        s.state = S.CUSTOMIZING
        return _Step(notes=[f"Quantity set to: {event.quantity}"])

    def _handle_reviewing(self, s: ConversationSession, event: InputEvent) -> _Step:
        if isinstance(event, Navigate) and event.target == "confirm":
            self._product(s)
            missing = s.customization.missing_fields()
            if missing:
                raise MissingField(missing)
            return _Step(finalize=True)
        # Editing straight from the review screen works like the customization menu
        return self._handle_customizing(s, event)

    # -------------------------------------------------------------------------
    # Rendering
    # -------------------------------------------------------------------------

    def _result(self, s: ConversationSession, step: _Step) -> StateMachineResult:
        product = None
        products = None
        if s.customization is not None and s.state not in TERMINAL_STATES:
            product = self.catalog.get_product(s.customization.product_id)
            if product is None:
                s = s.model_copy(deep=True)
                s.reset()
                step.errors.append("Sorry, that drink is no longer available.")
        if product is None:
            products = self.catalog.list_products()

        prompt = self.messages.build(s, product=product, products=products)
        message = "\n".join(step.notes + [prompt.message]) if step.notes else prompt.message
        return StateMachineResult(
            prompt_type=prompt.prompt_type,
            message=message,
            session=s,
            options=prompt.options,
            errors=step.errors,
            finalize_requested=step.finalize,
        )
