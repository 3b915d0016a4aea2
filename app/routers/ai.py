"""Operator-side AI assistance: status, reply suggestion, rewrite and conversation summary."""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Path, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.dependencies import ServiceContainer, get_container, require_operator
from app.logging_config import get_logger
from app.schemas.ai import (
    AIStatusResponse,
    ImproveRequest,
    ImproveResponse,
    SuggestRequest,
    SuggestResponse,
    SummaryResponse,
)
from app.schemas.base import PHONE_PATTERN
from app.services.ai_service import SUMMARY_HISTORY_WINDOW
from app.services.message_service import get_recent_messages

logger = get_logger("ai_router")

router = APIRouter(prefix="/api/ai", dependencies=[Depends(require_operator)])

AI_FEATURES = ["suggestions", "improve", "summarize"]


def _unavailable() -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"error": "IA não disponível", "code": "AI_UNAVAILABLE"},
    )


def _failed(error: str, code: str) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_502_BAD_GATEWAY,
        content={"error": error, "code": code},
    )


@router.get("/status", response_model=AIStatusResponse)
async def ai_status(container: ServiceContainer = Depends(get_container)):
    available = container.responder.is_available()
    return AIStatusResponse(available=available, features=AI_FEATURES if available else [])


@router.post("/suggest", response_model=SuggestResponse)
async def suggest_reply(request: SuggestRequest, container: ServiceContainer = Depends(get_container)):
    if not container.responder.is_available():
        return _unavailable()

    context = await container.copilot.build_context(request.phone_number)
    result = await container.responder.generate_operator_suggestion(request.message, context)
    if not result.ok:
        return _failed("Falha ao gerar sugestão", "SUGGESTION_FAILED")
    return SuggestResponse(suggestion=result.value)


@router.post("/improve", response_model=ImproveResponse)
async def improve_message(request: ImproveRequest, container: ServiceContainer = Depends(get_container)):
    if not container.responder.is_available():
        return _unavailable()

    result = await container.responder.improve_message(request.message, request.tone)
    if not result.ok:
        logger.info(f"Improve failed ({result.error_code}), returning original message")
    return ImproveResponse(
        original=request.message,
        improved=result.unwrap_or(request.message),
        tone=request.tone,
        improved_by_ai=result.ok,
    )


@router.get("/summarize/{phone_number}", response_model=SummaryResponse)
async def summarize_conversation(
    phone_number: Annotated[str, Path(pattern=PHONE_PATTERN)],
    db: AsyncSession = Depends(get_db),
    container: ServiceContainer = Depends(get_container),
):
    if not container.responder.is_available():
        return _unavailable()

    history = await get_recent_messages(db, phone_number, limit=SUMMARY_HISTORY_WINDOW)
    if not history:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Conversation has no messages")

    result = await container.responder.summarize_conversation(history)
    if not result.ok:
        return _failed("Falha ao resumir conversa", "SUMMARY_FAILED")
    return SummaryResponse(phone_number=phone_number, summary=result.value)
