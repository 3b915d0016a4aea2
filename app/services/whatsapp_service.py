from typing import Optional

import httpx

from app.logging_config import get_logger

logger = get_logger("whatsapp_service")

GRAPH_API_URL = "https://graph.facebook.com"


class WhatsAppClient:
    """
    Outbound text delivery through the WhatsApp Cloud API.

    `send_text` never raises: failures are logged and reported as False so
    they cannot block persistence or the operator broadcast.
    """

    def __init__(
        self,
        token: Optional[str],
        phone_number_id: Optional[str],
        *,
        api_version: str = "v17.0",
        client: Optional[httpx.AsyncClient] = None,
        timeout_seconds: float = 10.0,
        base_url: str = GRAPH_API_URL,
    ):
        self.token = token
        self.phone_number_id = phone_number_id
        self.api_version = api_version
        self.base_url = base_url.rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout_seconds)

    @property
    def is_configured(self) -> bool:
        return bool(self.token and self.phone_number_id)

    @property
    def messages_url(self) -> str:
        return f"{self.base_url}/{self.api_version}/{self.phone_number_id}/messages"

    async def send_text(self, to: str, text: str) -> bool:
        if not to or not text:
            logger.warning(f"send_text: missing recipient or text (to={to})")
            return False

        if not self.is_configured:
            logger.info("Mock WhatsApp send", extra={"context": {"to": to, "text": text[:200]}})
            return True

        payload = {
            "messaging_product": "whatsapp",
            "to": to,
            "type": "text",
            "text": {"body": text},
        }
        try:
            response = await self._client.post(
                self.messages_url,
                headers={"Authorization": f"Bearer {self.token}"},
                json=payload,
            )
        except Exception as e:
            logger.error(f"Error sending WhatsApp message: {e}", extra={"context": {"to": to}})
            return False

        if response.status_code >= 400:
            logger.error(
                f"WhatsApp API error: status={response.status_code}",
                extra={"context": {"to": to, "body": response.text[:200]}},
            )
            return False

        logger.info(f"Delivered via WhatsApp: to={to}")
        return True

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
