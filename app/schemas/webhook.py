from typing import Any, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError

MEDIA_PLACEHOLDER = "[Media/Other]"


class WebhookText(BaseModel):
    body: str = ""


class WebhookMessage(BaseModel):
    """One inbound message, Cloud API item or flat `{from, text, id}` body."""

    model_config = ConfigDict(extra="ignore")

    sender: str = Field(validation_alias=AliasChoices("from", "sender"))
    id: Optional[str] = None
    type: Optional[str] = None
    text: Optional[Union[WebhookText, str]] = None

    @property
    def body(self) -> str:
        if isinstance(self.text, str):
            return self.text
        if self.text is not None:
            return self.text.body
        return MEDIA_PLACEHOLDER


class WebhookResponse(BaseModel):
    status: str  # processed, duplicate, ignored
    mode: Optional[str] = None


def extract_webhook_message(payload: Any) -> Optional[WebhookMessage]:
    """Pull the first message out of a webhook body; None when there is none."""
    if not isinstance(payload, dict):
        return None

    candidate = None
    if "entry" in payload:
        try:
            candidate = payload["entry"][0]["changes"][0]["value"]["messages"][0]
        except (KeyError, IndexError, TypeError):
            return None
    elif "from" in payload:
        candidate = payload

    if not isinstance(candidate, dict):
        return None
    try:
        return WebhookMessage.model_validate(candidate)
    except ValidationError:
        return None
