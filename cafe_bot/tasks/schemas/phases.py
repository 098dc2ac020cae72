"""
Customization State Definitions.

This module defines the CustomizationState enum representing the steps of the
drink customization conversation in the state machine.
"""

from enum import Enum


class CustomizationState(str, Enum):
    """Steps of the customization conversation."""
    BROWSING = "browsing"
    PRODUCT_SELECTED = "product_selected"  # Transient: customization created, size prompt follows
    SELECTING_SIZE = "selecting_size"
    CUSTOMIZING = "customizing"  # Hub between the leaf selection steps
    SELECTING_SUGAR = "selecting_sugar"
    SELECTING_ICE = "selecting_ice"  # Only reachable for iced/frappe drinks
    SELECTING_ADDONS = "selecting_addons"  # Re-entered after every toggle
    SELECTING_QUANTITY = "selecting_quantity"
    REVIEWING = "reviewing"
    FINALIZED = "finalized"
    CANCELLED = "cancelled"


# Leaf steps: each accepts one kind of choice (or "back") and returns to CUSTOMIZING
LEAF_STATES = frozenset({
    CustomizationState.SELECTING_SIZE,
    CustomizationState.SELECTING_SUGAR,
    CustomizationState.SELECTING_ICE,
    CustomizationState.SELECTING_ADDONS,
    CustomizationState.SELECTING_QUANTITY,
})

TERMINAL_STATES = frozenset({
    CustomizationState.FINALIZED,
    CustomizationState.CANCELLED,
})
