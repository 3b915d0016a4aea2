from typing import List, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.database import utcnow
from app.models import Conversation
from app.services.state_machine import INITIAL_MODE, ConversationMode, ConversationStatus, toggle_sources


async def get_conversation(db: AsyncSession, phone_number: str) -> Optional[Conversation]:
    result = await db.execute(select(Conversation).where(Conversation.phone_number == phone_number))
    return result.scalar_one_or_none()


async def get_or_create_conversation(db: AsyncSession, phone_number: str) -> Conversation:
    """Find conversation by phone number or create a new one in AI mode."""
    conversation = await get_conversation(db, phone_number)

    if not conversation:
        conversation = Conversation(
            phone_number=phone_number,
            mode=INITIAL_MODE.value,
            status=ConversationStatus.ACTIVE.value,
            created_at=utcnow(),
        )
        db.add(conversation)
        await db.flush()

    return conversation


async def set_conversation_mode(db: AsyncSession, phone_number: str, mode: ConversationMode) -> bool:
    """
    Operator toggle as one conditional UPDATE.

    Only rows whose current mode may move to `mode` are touched. Returns False
    when the conversation does not exist or the transition is not allowed.
    """
    sources = [source.value for source in toggle_sources(mode)]
    result = await db.execute(
        update(Conversation)
        .where(Conversation.phone_number == phone_number, Conversation.mode.in_(sources))
        .values(mode=mode.value)
    )
    return result.rowcount > 0


async def hand_off_to_operator(db: AsyncSession, phone_number: str) -> bool:
    """
    AI -> OPERATOR as one conditional UPDATE.

    Returns False if the conversation already left AI mode (e.g. an operator
    took it over concurrently), in which case no handoff must be announced.
    """
    result = await db.execute(
        update(Conversation)
        .where(
            Conversation.phone_number == phone_number,
            Conversation.mode == ConversationMode.AI.value,
        )
        .values(mode=ConversationMode.OPERATOR.value)
    )
    return result.rowcount > 0


async def list_conversations(db: AsyncSession) -> List[Conversation]:
    """All conversations with messages loaded, most recent activity first."""
    result = await db.execute(
        select(Conversation)
        .options(selectinload(Conversation.messages))
        .order_by(Conversation.last_message_at.desc().nulls_last(), Conversation.id.desc())
    )
    return list(result.scalars().all())
