from typing import List, Optional

from app.database import ensure_utc
from app.schemas.base import CamelModel, MessageText, PhoneNumber
from app.services.state_machine import ConversationMode


class MessageOut(CamelModel):
    sender: str
    text: str
    timestamp: int  # epoch milliseconds

    @classmethod
    def from_message(cls, message) -> "MessageOut":
        return cls(
            sender=message.sender,
            text=message.content,
            timestamp=int(ensure_utc(message.timestamp).timestamp() * 1000),
        )


class CustomerSummary(CamelModel):
    name: Optional[str] = None
    email: Optional[str] = None
    notes: Optional[str] = None


class ConversationOut(CamelModel):
    mode: str
    status: str
    messages: List[MessageOut]
    customer: Optional[CustomerSummary] = None


class SendMessageRequest(CamelModel):
    to: PhoneNumber
    text: MessageText


class SendMessageResponse(CamelModel):
    success: bool
    delivered: bool


class ModeChangeRequest(CamelModel):
    to: PhoneNumber
    mode: ConversationMode


class ModeChangeResponse(CamelModel):
    success: bool
    mode: ConversationMode
