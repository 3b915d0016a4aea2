from conftest import FakeWebSocket
from httpx import ASGITransport, AsyncClient
from sqlalchemy import select

from app.main import create_app
from app.models import Conversation, Message
from app.services.customer_service import update_customer_name
from app.services.inbound_service import InboundMessage

PHONE = "5511999991234"
OTHER_PHONE = "5521988887777"


async def _start_conversation(container, phone=PHONE, text="Oi", message_id="wamid.1"):
    return await container.inbound.process(InboundMessage(phone, text, message_id))


class TestListConversations:
    async def test_empty(self, client):
        response = await client.get("/api/conversations")
        assert response.status_code == 200
        assert response.json() == {}

    async def test_conversations_keyed_by_phone(self, client, container, session_factory, seeded):
        await _start_conversation(container)
        await _start_conversation(container, OTHER_PHONE, "atendente", "wamid.2")
        async with session_factory() as db:
            await update_customer_name(db, PHONE, "Carlos")
            await db.commit()

        data = (await client.get("/api/conversations")).json()

        assert set(data) == {PHONE, OTHER_PHONE}
        assert data[PHONE]["mode"] == "AI"
        assert data[PHONE]["status"] == "active"
        assert [m["sender"] for m in data[PHONE]["messages"]] == ["user", "ai"]
        assert data[PHONE]["customer"]["name"] == "Carlos"
        assert data[OTHER_PHONE]["mode"] == "OPERATOR"


class TestSendOperatorMessage:
    async def test_persists_broadcasts_and_delivers(self, client, container, session_factory, seeded):
        await _start_conversation(container, text="atendente")
        websocket = FakeWebSocket()
        await container.broadcaster.connect(websocket)

        response = await client.post("/api/send", json={"to": PHONE, "text": "  Olá, sou o Pedro!  "})

        assert response.status_code == 200
        assert response.json() == {"success": True, "delivered": True}
        async with session_factory() as db:
            last = (await db.execute(select(Message).order_by(Message.id.desc()).limit(1))).scalar_one()
        assert last.sender == "operator"
        assert last.content == "Olá, sou o Pedro!"
        assert websocket.events == ["new_message"]
        assert websocket.sent[0]["data"]["message"]["sender"] == "operator"

    async def test_unknown_conversation(self, client):
        response = await client.post("/api/send", json={"to": PHONE, "text": "Olá"})
        assert response.status_code == 404

    async def test_invalid_phone(self, client):
        response = await client.post("/api/send", json={"to": "123", "text": "Olá"})

        assert response.status_code == 400
        body = response.json()
        assert body["code"] == "VALIDATION_ERROR"
        assert body["error"] == "Dados inválidos"
        assert body["details"][0]["field"] == "to"

    async def test_blank_text(self, client):
        response = await client.post("/api/send", json={"to": PHONE, "text": "   "})
        assert response.status_code == 400
        assert response.json()["details"][0]["field"] == "text"

    async def test_text_too_long(self, client):
        response = await client.post("/api/send", json={"to": PHONE, "text": "a" * 4097})
        assert response.status_code == 400


class TestChangeMode:
    async def test_take_over_and_give_back(self, client, container, session_factory, seeded):
        await _start_conversation(container)
        websocket = FakeWebSocket()
        await container.broadcaster.connect(websocket)

        response = await client.post("/api/mode", json={"to": PHONE, "mode": "OPERATOR"})
        assert response.json() == {"success": True, "mode": "OPERATOR"}

        response = await client.post("/api/mode", json={"to": PHONE, "mode": "AI"})
        assert response.json() == {"success": True, "mode": "AI"}

        async with session_factory() as db:
            conversation = (await db.execute(select(Conversation))).scalar_one()
        assert conversation.mode == "AI"
        assert websocket.events == ["mode_change", "mode_change"]
        assert websocket.sent[0]["data"] == {"from": PHONE, "mode": "OPERATOR"}

    async def test_setting_same_mode_is_allowed(self, client, container, seeded):
        await _start_conversation(container)

        response = await client.post("/api/mode", json={"to": PHONE, "mode": "AI"})

        assert response.status_code == 200

    async def test_operator_mode_stops_auto_reply(self, client, container, session_factory, seeded):
        await _start_conversation(container)
        await client.post("/api/mode", json={"to": PHONE, "mode": "OPERATOR"})

        outcome = await _start_conversation(container, text="Oi de novo", message_id="wamid.2")

        assert outcome.reply is None
        async with session_factory() as db:
            senders = (await db.execute(select(Message.sender).order_by(Message.id))).scalars().all()
        assert senders == ["user", "ai", "user"]

    async def test_unknown_conversation(self, client):
        response = await client.post("/api/mode", json={"to": PHONE, "mode": "OPERATOR"})
        assert response.status_code == 404

    async def test_invalid_mode(self, client):
        response = await client.post("/api/mode", json={"to": PHONE, "mode": "ROBOT"})
        assert response.status_code == 400
        assert response.json()["details"][0]["field"] == "mode"


class TestOperatorToken:
    async def _client(self, make_container):
        container = make_container(operator_api_token="op-secret")
        app = create_app(container=container)
        return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")

    async def test_missing_token(self, make_container):
        async with await self._client(make_container) as client:
            response = await client.get("/api/conversations")
        assert response.status_code == 401

    async def test_valid_token(self, make_container):
        async with await self._client(make_container) as client:
            response = await client.get("/api/conversations", headers={"X-Operator-Token": "op-secret"})
        assert response.status_code == 200

    async def test_webhook_does_not_need_operator_token(self, make_container):
        async with await self._client(make_container) as client:
            response = await client.post("/webhook", json={"hello": "world"})
        assert response.status_code == 200
