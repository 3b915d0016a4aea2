"""Process-wide services, built at startup and closed at shutdown."""

import hmac
from dataclasses import dataclass
from typing import Any, Optional

import redis.asyncio as redis_async
from fastapi import Header, HTTPException, Query, Request, WebSocket, status
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from app.config import Settings
from app.database import create_engine, create_session_factory
from app.logging_config import get_logger
from app.services.ai_service import AIResponder
from app.services.broadcast import OperatorBroadcaster
from app.services.copilot_service import CopilotService
from app.services.inbound_service import InboundMessageProcessor
from app.services.llm import LLMProvider, OpenAIProvider
from app.services.message_service import MessageDedup
from app.services.whatsapp_service import WhatsAppClient

logger = get_logger("dependencies")


@dataclass
class ServiceContainer:
    settings: Settings
    engine: AsyncEngine
    session_factory: async_sessionmaker[AsyncSession]
    responder: AIResponder
    whatsapp: WhatsAppClient
    broadcaster: OperatorBroadcaster
    copilot: CopilotService
    inbound: InboundMessageProcessor
    llm_provider: Optional[LLMProvider] = None
    redis_client: Any = None

    async def close(self) -> None:
        await self.broadcaster.close()
        await self.whatsapp.aclose()
        if self.llm_provider is not None:
            await self.llm_provider.aclose()
        if self.redis_client is not None:
            try:
                await self.redis_client.aclose()
            except Exception as e:
                logger.warning(f"Redis close failed: {e}")
        await self.engine.dispose()


def _build_redis(settings: Settings):
    if not settings.redis_url:
        return None
    return redis_async.from_url(
        settings.redis_url,
        decode_responses=True,
        socket_connect_timeout=0.3,
        socket_timeout=0.3,
    )


def build_container(
    settings: Settings,
    *,
    engine: Optional[AsyncEngine] = None,
    llm_provider: Optional[LLMProvider] = None,
    whatsapp: Optional[WhatsAppClient] = None,
    redis_client: Any = None,
) -> ServiceContainer:
    """Wire every service explicitly; tests pass their own engine, provider and clients."""
    engine = engine or create_engine(settings.database_url, echo=settings.debug)
    session_factory = create_session_factory(engine)

    if llm_provider is None and settings.openai_api_key:
        llm_provider = OpenAIProvider(
            settings.openai_api_key,
            default_model=settings.openai_model,
            timeout_seconds=settings.ai_timeout_seconds,
        )
    if llm_provider is None:
        logger.warning("OPENAI_API_KEY not configured, AI features disabled")

    responder = AIResponder(llm_provider, model=settings.openai_model, timeout_seconds=settings.ai_timeout_seconds)
    whatsapp = whatsapp or WhatsAppClient(
        settings.whatsapp_token,
        settings.whatsapp_phone_number_id,
        api_version=settings.whatsapp_api_version,
        timeout_seconds=settings.whatsapp_timeout_seconds,
    )
    redis_client = redis_client if redis_client is not None else _build_redis(settings)
    broadcaster = OperatorBroadcaster()
    copilot = CopilotService(session_factory, responder, settings)
    inbound = InboundMessageProcessor(
        session_factory,
        copilot,
        responder,
        broadcaster,
        whatsapp,
        dedup=MessageDedup(redis_client, ttl_seconds=settings.dedup_ttl_seconds),
    )
    return ServiceContainer(
        settings=settings,
        engine=engine,
        session_factory=session_factory,
        responder=responder,
        whatsapp=whatsapp,
        broadcaster=broadcaster,
        copilot=copilot,
        inbound=inbound,
        llm_provider=llm_provider,
        redis_client=redis_client,
    )


def get_container(request: Request) -> ServiceContainer:
    return request.app.state.container


def token_matches(expected: Optional[str], provided: Optional[str]) -> bool:
    """No configured token means demo mode: everything is allowed."""
    if not expected:
        return True
    if not provided:
        return False
    return hmac.compare_digest(provided.encode(), expected.encode())


def require_operator(
    request: Request,
    x_operator_token: Optional[str] = Header(default=None, alias="X-Operator-Token"),
) -> None:
    expected = request.app.state.container.settings.operator_api_token
    if not token_matches(expected, x_operator_token):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid operator token")


def websocket_token_ok(websocket: WebSocket, token: Optional[str] = Query(default=None)) -> bool:
    expected = websocket.app.state.container.settings.operator_api_token
    return token_matches(expected, token)
