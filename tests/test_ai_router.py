import pytest
from conftest import FakeLLMProvider
from httpx import ASGITransport, AsyncClient

from app.main import create_app
from app.services.inbound_service import InboundMessage

PHONE = "5511999991234"


@pytest.fixture
def ai_client_for(make_container):
    """Client bound to a container whose text generator is `provider`."""

    def _factory(provider):
        container = make_container(provider)
        app = create_app(container=container)
        return container, AsyncClient(transport=ASGITransport(app=app), base_url="http://test")

    return _factory


class TestAIUnavailable:
    async def test_status(self, client):
        data = (await client.get("/api/ai/status")).json()
        assert data == {"available": False, "features": []}

    async def test_suggest(self, client):
        response = await client.post("/api/ai/suggest", json={"phoneNumber": PHONE, "message": "Oi"})
        assert response.status_code == 503
        assert response.json()["code"] == "AI_UNAVAILABLE"

    async def test_improve(self, client):
        response = await client.post("/api/ai/improve", json={"message": "oi"})
        assert response.status_code == 503

    async def test_summarize(self, client):
        response = await client.get(f"/api/ai/summarize/{PHONE}")
        assert response.status_code == 503


class TestAIAvailable:
    async def test_status(self, ai_client_for):
        _, client = ai_client_for(FakeLLMProvider())
        async with client:
            data = (await client.get("/api/ai/status")).json()
        assert data == {"available": True, "features": ["suggestions", "improve", "summarize"]}

    async def test_suggest(self, ai_client_for, seeded):
        provider = FakeLLMProvider("Temos sim! A Picanha Premium está por R$129,90.")
        _, client = ai_client_for(provider)
        async with client:
            response = await client.post("/api/ai/suggest", json={"phoneNumber": PHONE, "message": "tem picanha?"})
        assert response.json() == {"suggestion": "Temos sim! A Picanha Premium está por R$129,90."}

    async def test_suggest_failure(self, ai_client_for, seeded):
        _, client = ai_client_for(FakeLLMProvider(error=RuntimeError("down")))
        async with client:
            response = await client.post("/api/ai/suggest", json={"phoneNumber": PHONE, "message": "Oi"})
        assert response.status_code == 502
        assert response.json()["code"] == "SUGGESTION_FAILED"

    async def test_suggest_validation(self, ai_client_for):
        _, client = ai_client_for(FakeLLMProvider())
        async with client:
            response = await client.post("/api/ai/suggest", json={"phoneNumber": "abc", "message": ""})
        assert response.status_code == 400
        fields = {detail["field"] for detail in response.json()["details"]}
        assert fields == {"phoneNumber", "message"}

    async def test_improve(self, ai_client_for):
        _, client = ai_client_for(FakeLLMProvider("Olá! Como posso ajudar? 😊"))
        async with client:
            response = await client.post("/api/ai/improve", json={"message": "oi, fala", "tone": "friendly"})
        assert response.json() == {
            "original": "oi, fala",
            "improved": "Olá! Como posso ajudar? 😊",
            "tone": "friendly",
            "improvedByAi": True,
        }

    async def test_improve_failure_returns_original(self, ai_client_for):
        _, client = ai_client_for(FakeLLMProvider(error=RuntimeError("down")))
        async with client:
            response = await client.post("/api/ai/improve", json={"message": "oi, fala", "tone": "formal"})
        assert response.status_code == 200
        assert response.json()["improved"] == "oi, fala"
        assert response.json()["improvedByAi"] is False

    async def test_improve_rejects_unknown_tone(self, ai_client_for):
        _, client = ai_client_for(FakeLLMProvider())
        async with client:
            response = await client.post("/api/ai/improve", json={"message": "oi", "tone": "sarcastic"})
        assert response.status_code == 400

    async def test_summarize(self, ai_client_for, seeded):
        provider = FakeLLMProvider("- Cliente quer picanha")
        container, client = ai_client_for(provider)
        await container.inbound.process(InboundMessage(PHONE, "quero falar com atendente", "wamid.1"))
        async with client:
            response = await client.get(f"/api/ai/summarize/{PHONE}")
        assert response.json() == {"phoneNumber": PHONE, "summary": "- Cliente quer picanha"}
        transcript = provider.calls[-1]["messages"][1]["content"]
        assert transcript.startswith("Cliente: quero falar com atendente")

    async def test_summarize_without_messages(self, ai_client_for):
        _, client = ai_client_for(FakeLLMProvider())
        async with client:
            response = await client.get(f"/api/ai/summarize/{PHONE}")
        assert response.status_code == 404
