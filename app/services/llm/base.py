from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional

ChatMessage = dict


def system_turn(content: str) -> ChatMessage:
    return {"role": "system", "content": content}


def user_turn(content: str) -> ChatMessage:
    return {"role": "user", "content": content}


def assistant_turn(content: str) -> ChatMessage:
    return {"role": "assistant", "content": content}


@dataclass
class LLMResponse:
    content: str
    model: str
    usage: Optional[dict] = None


class LLMError(Exception):
    """Provider answered with an error status or an unreadable body."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class LLMProvider(ABC):
    """
    Chat-completion backend used by the AI responder.

    Implementations raise LLMError (or transport errors) on failure; the
    responder turns those into Result failures. Providers that hold
    connections release them in `aclose`.
    """

    @abstractmethod
    async def generate(
        self,
        messages: List[ChatMessage],
        model: Optional[str] = None,
        temperature: float = 0.7,
        max_tokens: int = 1000,
    ) -> LLMResponse:
        ...

    async def aclose(self) -> None:
        return None

    async def __aenter__(self) -> "LLMProvider":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()
