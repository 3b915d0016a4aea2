import json

import httpx

from app.services.whatsapp_service import WhatsAppClient


def _client(handler):
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return WhatsAppClient("token-123", "99887766", client=http), http


class TestSendText:
    async def test_posts_cloud_api_payload(self):
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            seen["auth"] = request.headers["Authorization"]
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"messages": [{"id": "wamid.out"}]})

        whatsapp, http = _client(handler)
        delivered = await whatsapp.send_text("5511999991234", "Olá!")
        await http.aclose()

        assert delivered is True
        assert seen["url"] == "https://graph.facebook.com/v17.0/99887766/messages"
        assert seen["auth"] == "Bearer token-123"
        assert seen["body"] == {
            "messaging_product": "whatsapp",
            "to": "5511999991234",
            "type": "text",
            "text": {"body": "Olá!"},
        }

    async def test_api_error_returns_false(self):
        whatsapp, http = _client(lambda request: httpx.Response(400, json={"error": {"message": "bad"}}))

        assert await whatsapp.send_text("5511999991234", "Olá!") is False
        await http.aclose()

    async def test_network_error_returns_false(self):
        def handler(request):
            raise httpx.ConnectError("unreachable")

        whatsapp, http = _client(handler)

        assert await whatsapp.send_text("5511999991234", "Olá!") is False
        await http.aclose()

    async def test_missing_recipient_or_text(self):
        whatsapp, http = _client(lambda request: httpx.Response(200))

        assert await whatsapp.send_text("", "Olá!") is False
        assert await whatsapp.send_text("5511999991234", "") is False
        await http.aclose()

    async def test_without_token_logs_mock_send(self):
        calls = []
        http = httpx.AsyncClient(transport=httpx.MockTransport(lambda request: calls.append(request)))
        whatsapp = WhatsAppClient(None, None, client=http)

        assert whatsapp.is_configured is False
        assert await whatsapp.send_text("5511999991234", "Olá!") is True
        assert calls == []
        await http.aclose()
