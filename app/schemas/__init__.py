from app.schemas.conversation import ConversationOut, ModeChangeRequest, SendMessageRequest
from app.schemas.copilot import SuggestionPayload
from app.schemas.webhook import WebhookMessage, WebhookResponse

__all__ = [
    "ConversationOut",
    "ModeChangeRequest",
    "SendMessageRequest",
    "SuggestionPayload",
    "WebhookMessage",
    "WebhookResponse",
]
