from datetime import datetime
from typing import List, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import utcnow
from app.logging_config import get_logger
from app.models import Conversation, Message
from app.services.state_machine import MessageSender

logger = get_logger("message_service")

DEDUP_KEY_PREFIX = "ebeef:dedup"


async def save_message(
    db: AsyncSession,
    phone_number: str,
    sender: MessageSender,
    content: str,
    *,
    customer_id: Optional[int] = None,
    external_message_id: Optional[str] = None,
    timestamp: Optional[datetime] = None,
) -> Message:
    """Save message and bump the conversation's last_message_at. Caller commits."""
    timestamp = timestamp or utcnow()
    message = Message(
        phone_number=phone_number,
        customer_id=customer_id,
        sender=sender.value,
        content=content,
        external_message_id=external_message_id,
        timestamp=timestamp,
    )
    db.add(message)
    await db.flush()
    await db.execute(
        update(Conversation)
        .where(Conversation.phone_number == phone_number)
        .values(last_message_at=timestamp)
    )
    return message


async def message_id_exists(db: AsyncSession, external_message_id: str) -> bool:
    result = await db.execute(
        select(Message.id).where(Message.external_message_id == external_message_id).limit(1)
    )
    return result.scalar_one_or_none() is not None


async def get_recent_messages(db: AsyncSession, phone_number: str, limit: int = 10) -> List[Message]:
    """Last `limit` messages of a conversation, oldest first."""
    result = await db.execute(
        select(Message)
        .where(Message.phone_number == phone_number)
        .order_by(Message.timestamp.desc(), Message.id.desc())
        .limit(limit)
    )
    messages = list(result.scalars().all())
    messages.reverse()
    return messages


class MessageDedup:
    """
    Duplicate check for inbound WhatsApp message ids.

    Redis is only a fast path: ids are remembered there after the inbound
    message commits. The unique index on messages.external_message_id is
    the source of truth.
    """

    def __init__(self, redis_client=None, ttl_seconds: int = 86400):
        self.redis_client = redis_client
        self.ttl_seconds = ttl_seconds

    @staticmethod
    def _key(external_message_id: str) -> str:
        return f"{DEDUP_KEY_PREFIX}:{external_message_id}"

    async def is_duplicate(self, db: AsyncSession, external_message_id: Optional[str]) -> bool:
        if not external_message_id:
            return False

        if self.redis_client is not None:
            try:
                if await self.redis_client.exists(self._key(external_message_id)):
                    logger.debug(
                        "Duplicate message_id (redis)",
                        extra={"context": {"message_id": external_message_id}},
                    )
                    return True
            except Exception as e:
                logger.warning(f"Dedup redis unavailable, falling back to DB: {e}")

        duplicate = await message_id_exists(db, external_message_id)
        if duplicate:
            logger.debug(
                "Duplicate message_id (messages table)",
                extra={"context": {"message_id": external_message_id}},
            )
        return duplicate

    async def remember(self, external_message_id: Optional[str]) -> None:
        if not external_message_id or self.redis_client is None:
            return
        try:
            await self.redis_client.set(self._key(external_message_id), "1", ex=self.ttl_seconds, nx=True)
        except Exception as e:
            logger.warning(f"Dedup redis write failed: {e}")
