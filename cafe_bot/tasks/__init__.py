"""
Customization Flow for Drink Orders.

This package drives one customer's conversation from menu to checkout:
- Typed input events and the text adapter that produces them
- The customization state machine and its prompts
- The order assembler that prices finalized customizations
"""

from .events import (
    ChooseLevel,
    ChooseSize,
    InputEvent,
    Navigate,
    SelectProduct,
    SetQuantity,
    ToggleAddOn,
)

from .models import (
    ConversationSession,
    Customization,
)

from .schemas import (
    CustomizationState,
    StateMachineResult,
)

from .parsing import (
    normalize_caption,
    parse_input,
)

from .message_builder import (
    MessageBuilder,
    Prompt,
)

from .pricing import (
    AssembledOrder,
    LineItem,
    OrderAssembler,
    compute_total,
)

from .state_machine import (
    CustomizationStateMachine,
)

__all__ = [
    # Events
    "ChooseLevel",
    "ChooseSize",
    "InputEvent",
    "Navigate",
    "SelectProduct",
    "SetQuantity",
    "ToggleAddOn",
    # Models
    "ConversationSession",
    "Customization",
    "CustomizationState",
    "StateMachineResult",
    # Parsing
    "normalize_caption",
    "parse_input",
    # Prompts
    "MessageBuilder",
    "Prompt",
    # Pricing
    "AssembledOrder",
    "LineItem",
    "OrderAssembler",
    "compute_total",
    # State machine
    "CustomizationStateMachine",
]
