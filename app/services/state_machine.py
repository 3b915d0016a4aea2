from enum import Enum
from typing import Iterable, List


class ConversationMode(str, Enum):
    AI = "AI"
    OPERATOR = "OPERATOR"


class ConversationStatus(str, Enum):
    ACTIVE = "active"
    RESOLVED = "resolved"


class MessageSender(str, Enum):
    USER = "user"
    AI = "ai"
    OPERATOR = "operator"
    SYSTEM = "system"


VALID_TRANSITIONS = {
    ConversationMode.AI: [ConversationMode.OPERATOR],
    ConversationMode.OPERATOR: [ConversationMode.AI],
}

INITIAL_MODE = ConversationMode.AI


class InvalidTransitionError(Exception):
    def __init__(self, from_mode: ConversationMode, to_mode: ConversationMode):
        self.from_mode = from_mode
        self.to_mode = to_mode
        super().__init__(f"Invalid transition: {from_mode.value} -> {to_mode.value}")


def can_transition(from_mode: ConversationMode, to_mode: ConversationMode) -> bool:
    """Check if transition is valid."""
    allowed = VALID_TRANSITIONS.get(from_mode, [])
    return to_mode in allowed


def transition(from_mode: ConversationMode, to_mode: ConversationMode) -> ConversationMode:
    """Perform mode transition. Raises InvalidTransitionError if not allowed."""
    if not can_transition(from_mode, to_mode):
        raise InvalidTransitionError(from_mode, to_mode)
    return to_mode


def hand_off(current_mode: ConversationMode) -> ConversationMode:
    """Customer asked for a human: AI stops answering."""
    return transition(current_mode, ConversationMode.OPERATOR)


def toggle_sources(target: ConversationMode) -> List[ConversationMode]:
    """Modes an operator may switch to `target` from. Setting the current mode again is a no-op, not an error."""
    return [mode for mode in ConversationMode if mode == target or can_transition(mode, target)]


def needs_handoff(text: str, keywords: Iterable[str]) -> bool:
    """Case-insensitive substring match against the handoff keyword list."""
    lowered = (text or "").lower()
    if not lowered:
        return False
    return any(keyword.lower() in lowered for keyword in keywords if keyword)


def should_auto_reply(mode: ConversationMode) -> bool:
    return mode == ConversationMode.AI
