from fastapi.testclient import TestClient
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine

from app.dependencies import build_container
from app.main import create_app
from app.services.whatsapp_service import WhatsAppClient


class TestHealth:
    async def test_health(self, client):
        response = await client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["mode"] == "demo"
        assert data["ai"] is False

    async def test_ready(self, client):
        response = await client.get("/ready")
        assert response.json() == {"ready": True}

    async def test_not_ready_when_database_unreachable(self, settings, tmp_path):
        engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'missing' / 'nope.db'}")
        whatsapp = WhatsAppClient(None, None)
        container = build_container(settings, engine=engine, whatsapp=whatsapp)
        app = create_app(container=container)

        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            response = await client.get("/ready")

        await container.close()
        assert response.status_code == 503
        assert response.json()["ready"] is False


class TestLifecycle:
    def test_startup_builds_container_and_shutdown_closes_it(self, settings, tmp_path):
        test_settings = settings.model_copy(update={"database_url": f"sqlite+aiosqlite:///{tmp_path / 'app.db'}"})
        app = create_app(test_settings)
        assert app.state.container is None

        with TestClient(app) as client:
            assert app.state.container is not None
            assert app.state.container.settings is test_settings
            assert client.get("/health").json()["status"] == "ok"

        assert app.state.container is None
