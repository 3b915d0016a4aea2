from app.services.result import Result
from app.services.state_machine import (
    ConversationMode,
    ConversationStatus,
    InvalidTransitionError,
    MessageSender,
    can_transition,
    hand_off,
    toggle_sources,
    transition,
)

__all__ = [
    "Result",
    "ConversationMode",
    "ConversationStatus",
    "InvalidTransitionError",
    "MessageSender",
    "can_transition",
    "hand_off",
    "toggle_sources",
    "transition",
]
