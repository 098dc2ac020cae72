"""
Schemas for the customization state machine.

- phases: CustomizationState enum and state groupings
- result: StateMachineResult returned by every transition
"""

from .phases import CustomizationState, LEAF_STATES, TERMINAL_STATES
from .result import StateMachineResult

__all__ = [
    "CustomizationState",
    "LEAF_STATES",
    "TERMINAL_STATES",
    "StateMachineResult",
]
