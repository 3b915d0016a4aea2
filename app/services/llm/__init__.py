from app.services.llm.base import (
    ChatMessage,
    LLMError,
    LLMProvider,
    LLMResponse,
    assistant_turn,
    system_turn,
    user_turn,
)
from app.services.llm.openai_provider import OpenAIProvider

__all__ = [
    "ChatMessage",
    "LLMError",
    "LLMProvider",
    "LLMResponse",
    "OpenAIProvider",
    "assistant_turn",
    "system_turn",
    "user_turn",
]
