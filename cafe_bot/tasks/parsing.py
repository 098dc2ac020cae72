"""
Input adapter: raw text to typed input events.

Bots send back the caption of the button the customer pressed, sometimes
with emoji prefixes (``✅ Extra Shot``, ``⬅️ Back to Customization``), and
customers sometimes type instead. This module maps that text to an
``InputEvent`` using the session's current state for context. It is the only
place display strings are interpreted.
"""

import logging
import re
from typing import Optional

from ..catalog import CatalogLookup
from ..config import MAX_QUANTITY, MIN_QUANTITY
from ..errors import InvalidInput
from .events import (
    ChooseLevel,
    ChooseSize,
    InputEvent,
    Navigate,
    SelectProduct,
    SetQuantity,
    ToggleAddOn,
)
from .message_builder import NAV_CAPTIONS, SELECTED_MARK, UNSELECTED_MARK
from .models import ConversationSession
from .schemas import CustomizationState, TERMINAL_STATES

logger = logging.getLogger(__name__)

# Leading emoji, variation selectors and punctuation on a caption
_PREFIX_RE = re.compile(r"^[^\w]+", re.UNICODE)
_SIZE_SUFFIX_RE = re.compile(r"\s*\(.*\)\s*$")


def normalize_caption(text: str) -> str:
    """Strip decoration so '⬅️  Back to Customization' matches 'back to customization'."""
    text = _PREFIX_RE.sub("", text.strip())
    return re.sub(r"\s+", " ", text).strip().lower()


_NAV_LOOKUP = {normalize_caption(caption): target for target, caption in NAV_CAPTIONS.items()}
_NAV_LOOKUP.update({
    "back": "back",
    "menu": "menu",
    "/start": "menu",
    "/menu": "menu",
    "cancel": "cancel",
    "/cancel": "cancel",
    "confirm": "confirm",
    "review": "review",
    "add-ons": "addons",
    "addons": "addons",
    "sugar": "sugar",
    "ice": "ice",
    "size": "size",
    "quantity": "quantity",
})

# Navigation accepted in every state; the rest only from CUSTOMIZING / REVIEWING
_GLOBAL_TARGETS = {"back", "menu", "cancel"}


def _navigation(text: str, raw: str) -> Optional[str]:
    # Commands keep their slash, which normalize_caption would strip
    lowered = raw.strip().lower()
    if lowered in _NAV_LOOKUP:
        return _NAV_LOOKUP[lowered]
    return _NAV_LOOKUP.get(text)


def parse_input(raw: str, session: ConversationSession, catalog: CatalogLookup) -> InputEvent:
    """
    Map raw text to a typed input event for the session's current state.

    Raises:
        InvalidInput: if the text means nothing in the current state.
    """
    if raw is None or not raw.strip():
        raise InvalidInput("Please choose one of the options.")

    text = normalize_caption(raw)
    state = session.state
    target = _navigation(text, raw)

    if state in TERMINAL_STATES or state == CustomizationState.BROWSING:
        if target == "menu":
            return Navigate(target="menu")
        product = catalog.find_by_name(text)
        if product is None:
            raise InvalidInput("Please choose a drink from the menu.")
        return SelectProduct(product_id=product.id)

    if target in _GLOBAL_TARGETS:
        return Navigate(target=target)

    if state in (CustomizationState.CUSTOMIZING, CustomizationState.REVIEWING):
        if target is None:
            raise InvalidInput("Please choose one of the options.")
        return Navigate(target=target)

    if state in (CustomizationState.SELECTING_SIZE, CustomizationState.PRODUCT_SELECTED):
        return ChooseSize(size=_SIZE_SUFFIX_RE.sub("", text))

    if state in (CustomizationState.SELECTING_SUGAR, CustomizationState.SELECTING_ICE):
        return ChooseLevel(level=text)

    if state == CustomizationState.SELECTING_ADDONS:
        name = raw.strip()
        for mark in (SELECTED_MARK, UNSELECTED_MARK):
            if name.startswith(mark):
                name = name[len(mark):].strip()
        return ToggleAddOn(name=name)

    if state == CustomizationState.SELECTING_QUANTITY:
        try:
            return SetQuantity(quantity=int(raw.strip()))
        except ValueError:
            raise InvalidInput(f"Please select a valid quantity ({MIN_QUANTITY}-{MAX_QUANTITY}).") from None

    raise InvalidInput("Please choose one of the options.")
