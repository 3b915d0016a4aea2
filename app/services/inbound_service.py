"""
Inbound WhatsApp message pipeline.

1. dedup on the external message id (at most one effect per id)
2. conversation + customer lookup-or-create, persist the user message
3. copilot suggestions (always, whatever the mode)
4. broadcast new_message to the dashboard
5. AI mode only: handoff on keyword, or auto-reply
"""

from dataclasses import dataclass, field
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.logging_config import LoggerAdapter, get_logger
from app.schemas.conversation import MessageOut
from app.schemas.copilot import SuggestionPayload
from app.services.ai_service import AIResponder
from app.services.auto_reply_service import AutoReplyTable, load_auto_reply_table, rule_based_reply
from app.services.broadcast import MODE_CHANGE, NEW_MESSAGE, OperatorBroadcaster
from app.services.conversation_service import get_or_create_conversation, hand_off_to_operator
from app.services.copilot_service import CopilotResult, CopilotService
from app.services.customer_service import get_or_create_customer
from app.services.message_service import MessageDedup, get_recent_messages, message_id_exists, save_message
from app.services.state_machine import (
    ConversationMode,
    MessageSender,
    hand_off,
    needs_handoff,
    should_auto_reply,
)
from app.services.whatsapp_service import WhatsAppClient

logger = get_logger("inbound_service")

AI_HISTORY_LIMIT = 10


@dataclass
class InboundMessage:
    phone_number: str
    text: str
    external_message_id: Optional[str] = None


@dataclass
class InboundOutcome:
    status: str  # processed, duplicate
    mode: Optional[ConversationMode] = None
    handed_off: bool = False
    reply: Optional[str] = None
    reply_source: Optional[str] = None  # ai, fallback, rules
    suggestions: Optional[SuggestionPayload] = None
    delivered: Optional[bool] = None
    events: list = field(default_factory=list)

    @property
    def is_duplicate(self) -> bool:
        return self.status == "duplicate"


class InboundMessageProcessor:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        copilot: CopilotService,
        responder: AIResponder,
        broadcaster: OperatorBroadcaster,
        whatsapp: WhatsAppClient,
        dedup: Optional[MessageDedup] = None,
        replies: Optional[AutoReplyTable] = None,
    ):
        self.session_factory = session_factory
        self.copilot = copilot
        self.responder = responder
        self.broadcaster = broadcaster
        self.whatsapp = whatsapp
        self.dedup = dedup or MessageDedup()
        self.replies = replies or load_auto_reply_table()

    async def process(self, inbound: InboundMessage) -> InboundOutcome:
        log = LoggerAdapter(logger, {"phone": inbound.phone_number, "message_id": inbound.external_message_id})

        stored = await self._store_inbound(inbound, log)
        if stored is None:
            return InboundOutcome(status="duplicate")
        mode, message_out = stored
        await self.dedup.remember(inbound.external_message_id)

        copilot_result = await self.copilot.generate(inbound.phone_number, inbound.text)
        outcome = InboundOutcome(status="processed", mode=mode, suggestions=copilot_result.payload)

        await self._publish(
            outcome,
            NEW_MESSAGE,
            {
                "from": inbound.phone_number,
                "message": message_out,
                "mode": mode.value,
                "suggestions": outcome.suggestions,
            },
        )

        if not should_auto_reply(mode):
            log.info("Message received in OPERATOR mode, waiting for operator")
            return outcome

        if needs_handoff(inbound.text, self.replies.handoff_keywords):
            await self._hand_off(inbound, outcome, log)
        else:
            await self._auto_reply(inbound, copilot_result, outcome, log)
        return outcome

    async def _store_inbound(self, inbound: InboundMessage, log: LoggerAdapter):
        """Persist the user message. Returns (mode, MessageOut) or None for a duplicate."""
        for attempt in (1, 2):
            async with self.session_factory() as db:
                if await self.dedup.is_duplicate(db, inbound.external_message_id):
                    log.debug("Skipping duplicate message")
                    return None
                try:
                    conversation = await get_or_create_conversation(db, inbound.phone_number)
                    customer = await get_or_create_customer(db, inbound.phone_number)
                    message = await save_message(
                        db,
                        inbound.phone_number,
                        MessageSender.USER,
                        inbound.text,
                        customer_id=customer.id,
                        external_message_id=inbound.external_message_id,
                    )
                    await db.commit()
                except IntegrityError:
                    await db.rollback()
                    # Lost a race: either the same message id or the first-contact rows.
                    if inbound.external_message_id and await message_id_exists(db, inbound.external_message_id):
                        log.debug("Skipping duplicate message (unique constraint)")
                        return None
                    if attempt == 2:
                        raise
                    log.info("Concurrent first contact, retrying inbound insert")
                    continue
                return ConversationMode(conversation.mode), MessageOut.from_message(message)
        return None

    async def _hand_off(self, inbound: InboundMessage, outcome: InboundOutcome, log: LoggerAdapter) -> None:
        text = self.replies.handoff_message
        async with self.session_factory() as db:
            switched = await hand_off_to_operator(db, inbound.phone_number)
            if not switched:
                await db.rollback()
                log.info("Handoff skipped, conversation already left AI mode")
                outcome.mode = ConversationMode.OPERATOR
                return
            message = await save_message(db, inbound.phone_number, MessageSender.SYSTEM, text)
            await db.commit()

        outcome.mode = hand_off(ConversationMode.AI)
        outcome.handed_off = True
        outcome.reply = text
        log.info("Conversation handed off to operator")

        await self._publish(
            outcome,
            NEW_MESSAGE,
            {
                "from": inbound.phone_number,
                "message": MessageOut.from_message(message),
                "mode": outcome.mode.value,
            },
        )
        await self._publish(outcome, MODE_CHANGE, {"from": inbound.phone_number, "mode": outcome.mode.value})
        outcome.delivered = await self.whatsapp.send_text(inbound.phone_number, text)

    async def _auto_reply(
        self,
        inbound: InboundMessage,
        copilot_result: CopilotResult,
        outcome: InboundOutcome,
        log: LoggerAdapter,
    ) -> None:
        if self.responder.is_available():
            async with self.session_factory() as db:
                history = await get_recent_messages(db, inbound.phone_number, limit=AI_HISTORY_LIMIT + 1)
            # The message being answered is passed separately.
            history = history[:-1]
            result = await self.responder.generate_customer_response(
                inbound.text,
                copilot_result.context,
                [item.promotion for item in copilot_result.promotions],
                history,
            )
            if result.ok:
                reply, source = result.value, "ai"
            else:
                log.warning(f"AI reply failed ({result.error_code}), sending fallback")
                reply, source = self.replies.ai_failure_message, "fallback"
        else:
            reply, source = rule_based_reply(inbound.text, self.replies), "rules"

        async with self.session_factory() as db:
            message = await save_message(db, inbound.phone_number, MessageSender.AI, reply)
            await db.commit()

        outcome.reply = reply
        outcome.reply_source = source
        await self._publish(
            outcome,
            NEW_MESSAGE,
            {
                "from": inbound.phone_number,
                "message": MessageOut.from_message(message),
                "mode": ConversationMode.AI.value,
            },
        )
        outcome.delivered = await self.whatsapp.send_text(inbound.phone_number, reply)

    async def _publish(self, outcome: InboundOutcome, event: str, data: dict) -> None:
        outcome.events.append(event)
        await self.broadcaster.broadcast(event, data)
