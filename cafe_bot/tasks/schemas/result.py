"""
State Machine Result.

Defines the result structure returned by state machine processing.
"""

from dataclasses import dataclass, field
from typing import List, TYPE_CHECKING

if TYPE_CHECKING:
    from ..models import ConversationSession


@dataclass
class StateMachineResult:
    """Result from state machine processing."""
    prompt_type: str
    message: str
    session: "ConversationSession"
    options: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    finalize_requested: bool = False
