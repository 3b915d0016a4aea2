import hashlib
import hmac
import json
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.responses import PlainTextResponse

from app.dependencies import ServiceContainer, get_container
from app.logging_config import get_logger
from app.schemas.webhook import WebhookResponse, extract_webhook_message
from app.services.inbound_service import InboundMessage

logger = get_logger("webhook")

router = APIRouter()

SIGNATURE_HEADER = "X-Hub-Signature-256"


def verify_signature(secret: str, body: bytes, signature: Optional[str]) -> bool:
    if not signature or not signature.startswith("sha256="):
        return False
    expected = "sha256=" + hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()
    return hmac.compare_digest(signature, expected)


@router.get("/webhook", response_class=PlainTextResponse)
async def verify_webhook(
    hub_mode: Optional[str] = Query(default=None, alias="hub.mode"),
    hub_verify_token: Optional[str] = Query(default=None, alias="hub.verify_token"),
    hub_challenge: Optional[str] = Query(default=None, alias="hub.challenge"),
    container: ServiceContainer = Depends(get_container),
):
    if not hub_mode or not hub_verify_token:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing verification params")
    if hub_mode != "subscribe" or not hmac.compare_digest(hub_verify_token, container.settings.whatsapp_verify_token):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Verification failed")
    logger.info("Webhook verified")
    return hub_challenge or ""


@router.post("/webhook", response_model=WebhookResponse)
async def receive_webhook(request: Request, container: ServiceContainer = Depends(get_container)):
    """Inbound WhatsApp message. Always acknowledged unless the signature is wrong."""
    body = await request.body()

    settings = container.settings
    if settings.is_production and settings.whatsapp_app_secret:
        if not verify_signature(settings.whatsapp_app_secret, body, request.headers.get(SIGNATURE_HEADER)):
            logger.warning("Webhook signature mismatch")
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid signature")

    try:
        payload = json.loads(body or b"null")
    except ValueError:
        logger.warning("Webhook body is not valid JSON")
        return WebhookResponse(status="ignored")

    message = extract_webhook_message(payload)
    if message is None:
        logger.debug("Webhook without a message, ignoring")
        return WebhookResponse(status="ignored")

    outcome = await container.inbound.process(
        InboundMessage(phone_number=message.sender, text=message.body, external_message_id=message.id)
    )
    return WebhookResponse(status=outcome.status, mode=outcome.mode.value if outcome.mode else None)
