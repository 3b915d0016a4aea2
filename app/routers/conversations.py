"""Operator console: conversation list, operator replies and the AI/OPERATOR toggle."""

from typing import Dict

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.dependencies import ServiceContainer, get_container, require_operator
from app.logging_config import get_logger
from app.schemas.conversation import (
    ConversationOut,
    CustomerSummary,
    MessageOut,
    ModeChangeRequest,
    ModeChangeResponse,
    SendMessageRequest,
    SendMessageResponse,
)
from app.services.broadcast import MODE_CHANGE, NEW_MESSAGE
from app.services.conversation_service import get_conversation, list_conversations, set_conversation_mode
from app.services.customer_service import get_customer, get_customers_by_phone
from app.services.message_service import save_message
from app.services.state_machine import MessageSender

logger = get_logger("conversations")

router = APIRouter(prefix="/api", dependencies=[Depends(require_operator)])


@router.get("/conversations", response_model=Dict[str, ConversationOut])
async def get_conversations(db: AsyncSession = Depends(get_db)):
    conversations = await list_conversations(db)
    customers = await get_customers_by_phone(db, [c.phone_number for c in conversations])

    result: Dict[str, ConversationOut] = {}
    for conversation in conversations:
        customer = customers.get(conversation.phone_number)
        result[conversation.phone_number] = ConversationOut(
            mode=conversation.mode,
            status=conversation.status,
            messages=[MessageOut.from_message(message) for message in conversation.messages],
            customer=CustomerSummary.model_validate(customer) if customer else None,
        )
    return result


@router.post("/send", response_model=SendMessageResponse)
async def send_operator_message(
    request: SendMessageRequest,
    db: AsyncSession = Depends(get_db),
    container: ServiceContainer = Depends(get_container),
):
    conversation = await get_conversation(db, request.to)
    if not conversation:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Conversation not found")

    customer = await get_customer(db, request.to)
    message = await save_message(
        db,
        request.to,
        MessageSender.OPERATOR,
        request.text,
        customer_id=customer.id if customer else None,
    )
    await db.commit()

    await container.broadcaster.broadcast(
        NEW_MESSAGE,
        {"from": request.to, "message": MessageOut.from_message(message), "mode": conversation.mode},
    )
    delivered = await container.whatsapp.send_text(request.to, request.text)
    return SendMessageResponse(success=True, delivered=delivered)


@router.post("/mode", response_model=ModeChangeResponse)
async def change_mode(
    request: ModeChangeRequest,
    db: AsyncSession = Depends(get_db),
    container: ServiceContainer = Depends(get_container),
):
    updated = await set_conversation_mode(db, request.to, request.mode)
    if not updated:
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Conversation not found or mode change not allowed",
        )
    await db.commit()

    logger.info(f"Mode changed: phone={request.to}, mode={request.mode.value}")
    await container.broadcaster.broadcast(MODE_CHANGE, {"from": request.to, "mode": request.mode.value})
    return ModeChangeResponse(success=True, mode=request.mode)
