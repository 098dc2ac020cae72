"""
Pydantic models for the customization conversation.

- Customization: the choices being built for one drink
- ConversationSession: one customer's conversation state (state tag,
  customization, last activity)

Both serialize to plain JSON so the session store can persist them.
"""

import time
from typing import List, Optional

from pydantic import BaseModel, Field

from ..config import ICED_CATEGORIES
from .schemas.phases import CustomizationState


class Customization(BaseModel):
    """Choices for one drink before checkout."""

    product_id: int
    product_name: str
    category: str
    size: Optional[str] = None
    sugar_level: Optional[str] = None
    ice_level: Optional[str] = None
    # Set semantics (unique by name, order irrelevant); a list keeps it JSON friendly
    add_ons: List[str] = Field(default_factory=list)
    quantity: int = 1

    @property
    def takes_ice(self) -> bool:
        return self.category in ICED_CATEGORIES

    def has_add_on(self, name: str) -> bool:
        return any(a.lower() == name.lower() for a in self.add_ons)

    def toggle_add_on(self, name: str) -> bool:
        """Add the add-on if absent, remove it if present. Returns True if added."""
        if self.has_add_on(name):
            self.add_ons = [a for a in self.add_ons if a.lower() != name.lower()]
            return False
        self.add_ons = self.add_ons + [name]
        return True

    def missing_fields(self) -> List[str]:
        """Required fields that are still unset, in the order they are asked."""
        missing = []
        if not self.size:
            missing.append("size")
        if not self.sugar_level:
            missing.append("sugar_level")
        if self.takes_ice and not self.ice_level:
            missing.append("ice_level")
        if self.quantity < 1:
            missing.append("quantity")
        return missing


class ConversationSession(BaseModel):
    """One customer's conversation state."""

    identity: str
    state: CustomizationState = CustomizationState.BROWSING
    customization: Optional[Customization] = None
    last_activity: float = Field(default_factory=time.time)

    def reset(self) -> None:
        """Drop any in-progress customization and return to browsing."""
        self.state = CustomizationState.BROWSING
        self.customization = None
