"""
Message Builder for the Customization State Machine.

Builds the prompt for each conversation state: a prompt type for the client,
the message text, and the keyboard options. Option captions are the same
strings ``tasks.parsing`` understands, so a bot can render them as buttons
and send the pressed caption back unchanged.
"""

from collections import OrderedDict
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, List, Optional

from ..catalog import ProductInfo
from ..config import LEVEL_CHOICES, MAX_QUANTITY, MIN_QUANTITY
from .models import ConversationSession, Customization
from .pricing import preview_price
from .schemas import CustomizationState


# Navigation captions, keyed by Navigate.target
NAV_CAPTIONS: Dict[str, str] = {
    "size": "📏 Size",
    "sugar": "🍬 Sugar Level",
    "ice": "🧊 Ice Level",
    "addons": "➕ Add-ons",
    "quantity": "🔢 Quantity",
    "review": "📝 Review Order",
    "confirm": "✅ Confirm Order",
    "cancel": "❌ Cancel",
    "back": "⬅️ Back to Customization",
    "menu": "⬅️ Back to Menu",
}

SELECTED_MARK = "✅"
UNSELECTED_MARK = "➕"

CATEGORY_TITLES = OrderedDict([
    ("hot", "☕ Hot Coffee"),
    ("iced", "🧊 Iced Coffee"),
    ("frappe", "🥤 Frappes"),
])

FIELD_LABELS = {
    "size": "size",
    "sugar_level": "sugar level",
    "ice_level": "ice level",
    "quantity": "quantity",
}


def format_price(amount: Decimal) -> str:
    return f"${amount:.2f}"


def format_modifier(amount: Decimal) -> str:
    if amount > 0:
        return f"+{format_price(amount)}"
    if amount < 0:
        return f"-{format_price(-amount)}"
    return "no charge"


def add_on_caption(name: str, selected: bool) -> str:
    return f"{SELECTED_MARK if selected else UNSELECTED_MARK} {name}"


@dataclass
class Prompt:
    prompt_type: str
    message: str
    options: List[str] = field(default_factory=list)


class MessageBuilder:
    """
    Handles prompt construction for the customization state machine.
    """

    def build(
        self,
        session: ConversationSession,
        product: Optional[ProductInfo] = None,
        products: Optional[List[ProductInfo]] = None,
    ) -> Prompt:
        """Build the prompt for the session's current state."""
        state = session.state
        c = session.customization

        if state in (CustomizationState.BROWSING, CustomizationState.FINALIZED):
            return self.menu_prompt(products or [])
        if state == CustomizationState.CANCELLED:
            prompt = self.menu_prompt(products or [])
            prompt.prompt_type = "cancelled"
            prompt.message = "Your order was cancelled.\n\n" + prompt.message
            return prompt
        if state in (CustomizationState.PRODUCT_SELECTED, CustomizationState.SELECTING_SIZE):
            return self.size_prompt(product)
        if state == CustomizationState.CUSTOMIZING:
            return self.customization_prompt(c, product)
        if state == CustomizationState.SELECTING_SUGAR:
            return self.level_prompt("sugar")
        if state == CustomizationState.SELECTING_ICE:
            return self.level_prompt("ice")
        if state == CustomizationState.SELECTING_ADDONS:
            return self.add_on_prompt(c, product)
        if state == CustomizationState.SELECTING_QUANTITY:
            return self.quantity_prompt()
        if state == CustomizationState.REVIEWING:
            return self.review_prompt(c, product)
        raise ValueError(f"No prompt for state {state}")

    def menu_prompt(self, products: List[ProductInfo]) -> Prompt:
        available = [p for p in products if p.available]
        if not available:
            return Prompt("product_list", "Our menu is empty right now. Please check back later.", [])

        by_category: Dict[str, List[ProductInfo]] = OrderedDict((k, []) for k in CATEGORY_TITLES)
        for product in available:
            by_category.setdefault(product.category, []).append(product)

        lines = ["What would you like to drink?"]
        options = []
        for category, items in by_category.items():
            if not items:
                continue
            lines.append("")
            lines.append(CATEGORY_TITLES.get(category, category.title()))
            for product in items:
                lines.append(f"• {product.name} - {format_price(product.base_price)}")
                options.append(product.name)
        return Prompt("product_list", "\n".join(lines), options)

    def size_prompt(self, product: ProductInfo) -> Prompt:
        lines = [f"{product.name}: choose your size"]
        for size in product.sizes:
            lines.append(f"• {size.name.title()} ({format_modifier(size.price_modifier)})")
        options = [size.name.title() for size in product.sizes]
        options.append(NAV_CAPTIONS["back"])
        return Prompt("size_options", "\n".join(lines), options)

    def customization_prompt(self, c: Customization, product: ProductInfo) -> Prompt:
        lines = [f"Customize your {product.name}:", self.describe(c)]
        price = preview_price(c, product)
        if price is not None:
            lines.append(f"Price: {format_price(price)}")

        options = [NAV_CAPTIONS["size"], NAV_CAPTIONS["sugar"]]
        if product.takes_ice:
            options.append(NAV_CAPTIONS["ice"])
        if product.add_ons:
            options.append(NAV_CAPTIONS["addons"])
        options += [
            NAV_CAPTIONS["quantity"],
            NAV_CAPTIONS["review"],
            NAV_CAPTIONS["cancel"],
            NAV_CAPTIONS["menu"],
        ]
        return Prompt("customization_menu", "\n".join(lines), options)

    def level_prompt(self, which: str) -> Prompt:
        options = [level.title() for level in LEVEL_CHOICES]
        options.append(NAV_CAPTIONS["back"])
        return Prompt(f"{which}_options", f"Choose your {which} level:", options)

    def add_on_prompt(self, c: Customization, product: ProductInfo) -> Prompt:
        lines = ["Available add-ons:", ""]
        options = []
        for add_on in product.add_ons:
            caption = add_on_caption(add_on.name, c.has_add_on(add_on.name))
            lines.append(f"{caption} - {format_price(add_on.price)}")
            options.append(caption)
        options.append(NAV_CAPTIONS["back"])
        return Prompt("addon_options", "\n".join(lines), options)

    def quantity_prompt(self) -> Prompt:
        options = [str(n) for n in range(MIN_QUANTITY, MAX_QUANTITY + 1)]
        options.append(NAV_CAPTIONS["back"])
        return Prompt("quantity_options", "How many would you like?", options)

    def review_prompt(self, c: Customization, product: ProductInfo) -> Prompt:
        lines = ["Please review your order:", "", f"{c.quantity} × {product.name}", self.describe(c)]
        price = preview_price(c, product)
        if price is not None:
            lines.append(f"Total: {format_price(price)}")
        missing = c.missing_fields()
        if missing:
            lines.append("")
            lines.append("Still needed: " + ", ".join(FIELD_LABELS[f] for f in missing))
        options = [NAV_CAPTIONS["confirm"], NAV_CAPTIONS["back"], NAV_CAPTIONS["cancel"]]
        return Prompt("order_review", "\n".join(lines), options)

    def describe(self, c: Customization) -> str:
        """One line per choice, with a dash for anything not chosen yet."""
        lines = [
            f"Size: {(c.size or '-').title()}",
            f"Sugar: {(c.sugar_level or '-').title()}",
        ]
        if c.takes_ice:
            lines.append(f"Ice: {(c.ice_level or '-').title()}")
        lines.append(f"Add-ons: {', '.join(c.add_ons) if c.add_ons else 'none'}")
        lines.append(f"Quantity: {c.quantity}")
        return "\n".join(lines)

    def missing_message(self, fields: List[str]) -> str:
        return "Please choose your " + ", ".join(FIELD_LABELS.get(f, f) for f in fields) + " first."
