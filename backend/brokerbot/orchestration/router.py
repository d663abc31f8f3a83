"""
Conversation Router

Entry point for every inbound WhatsApp text. Decides who answers
(admin command, human specialist, quote flow or the AI) and runs the
pipeline strictly in order:

classify -> admin check -> human-mode gate -> touch -> welcome ->
handoff -> quote flow -> AI answer

Nothing raised here reaches the web layer: failures are logged, the DB
session is rolled back and the event is dropped.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import List, Optional

from sqlalchemy.orm import Session

from brokerbot.core.config import Settings, get_settings
from brokerbot.core.logging import log_audit_event, logger
from brokerbot.core.security import is_admin_phone
from brokerbot.db.models import Contact, Message, MessageRole
from brokerbot.db.session import SessionLocal
from brokerbot.orchestration.quote import QuoteStateMachine, parse_quote_state
from brokerbot.services.admin import AdminCommandHandler, is_admin_command
from brokerbot.services.contact import is_first_message, upsert_contact
from brokerbot.services.conversation import (
    get_or_create_conversation,
    is_human_mode,
    is_session_expired,
    load_quote_payload,
    store_quote_payload,
    touch_conversation,
)
from brokerbot.services.handoff import HandoffOrchestrator
from brokerbot.services.history import load_history, save_message
from brokerbot.services.identity_lock import IdentityLock, IdentityLockTimeout, get_identity_lock
from brokerbot.services.intent import Intent, get_intent_service
from brokerbot.services.knowledge import detect_product_type, get_product_facts
from brokerbot.services.llm import (
    AnswerService,
    FieldExtractionService,
    get_answer_service,
    get_extraction_service,
    parse_response_markers,
)
from brokerbot.services.whatsapp import WhatsAppClient, compute_delay_seconds, get_whatsapp_client


@dataclass
class InboundMessage:
    """A validated inbound text, already stripped of gateway framing."""
    phone: str
    text: str
    sender_name: str
    message_id: Optional[str] = None
    timestamp: Optional[datetime] = None


def build_welcome_message(contact_name: str) -> str:
    return (
        f"Ola, {contact_name}! Sou o assistente virtual da assessoria.\n\n"
        "Como posso ajudar?\n"
        "1 - Tirar duvidas sobre seguros\n"
        "2 - Cotacao de plano de saude\n"
        "3 - Falar com um especialista"
    )


# Shared quote machine; the graph is compiled once per process
_quote_machine: Optional[QuoteStateMachine] = None


def get_quote_machine() -> QuoteStateMachine:
    global _quote_machine
    if _quote_machine is None:
        _quote_machine = QuoteStateMachine(get_extraction_service())
    return _quote_machine


class ConversationOrchestrator:
    """Routes one inbound message at a time through the conversation pipeline."""

    def __init__(
        self,
        db: Session,
        app_settings: Optional[Settings] = None,
        sender: Optional[WhatsAppClient] = None,
        answer_service: Optional[AnswerService] = None,
        extractor: Optional[FieldExtractionService] = None,
        lock: Optional[IdentityLock] = None,
    ):
        self.db = db
        self.settings = app_settings or get_settings()
        self.sender = sender or get_whatsapp_client()
        self.answer_service = answer_service or get_answer_service()
        self.lock = lock or get_identity_lock()
        if extractor is not None:
            self.quote_machine = QuoteStateMachine(extractor)
        else:
            self.quote_machine = get_quote_machine()

        self.intents = get_intent_service()
        self.admin = AdminCommandHandler(db, self.sender)
        self.handoff = HandoffOrchestrator(db, self.sender, self.settings)
        self.session_timeout = timedelta(minutes=self.settings.SESSION_TIMEOUT_MINUTES)

    async def handle(self, event: InboundMessage) -> None:
        """
        Process one inbound message. Never raises.

        Events for the same phone are serialized by the identity lock.
        """
        try:
            async with self.lock.hold(event.phone):
                await self._process(event)
        except IdentityLockTimeout as e:
            logger.error(f"Dropping message {event.message_id}: {e}")
        except Exception as e:
            logger.exception(f"Failed to process message {event.message_id} from {event.phone}: {e}")
            self.db.rollback()

    async def _process(self, event: InboundMessage) -> None:
        phone = event.phone
        text = (event.text or "").strip()
        if not text:
            logger.info(f"Ignoring empty message from {phone}")
            return

        contact = upsert_contact(self.db, phone, event.sender_name)
        first_message = is_first_message(contact)

        intent = self.intents.classify(text)
        logger.info(f"Message from {phone}: intent={intent.value} first={first_message}")

        # Admin traffic never falls through, allow-listed or not
        if is_admin_command(text):
            if is_admin_phone(phone, self.settings):
                await self.admin.handle(phone, text)
            else:
                logger.warning(f"Ignoring admin command from non-admin phone={phone}")
            return

        conversation = get_or_create_conversation(self.db, phone)
        if is_human_mode(conversation):
            save_message(self.db, phone, MessageRole.USER, text)
            logger.info(f"Human mode active for {phone}, bot stays silent")
            return

        # Expiry must be read before the touch resets the clock
        expired = is_session_expired(conversation, self.session_timeout)
        touch_conversation(self.db, phone)

        quote = parse_quote_state(load_quote_payload(self.db, phone))
        quote_active = quote is not None and quote.is_active
        # While a quote is open, a bare 1/2/3 answers the current question
        quote_answer = quote_active and self.intents.is_menu_shortcut(text)

        # The inbound message is stored once, right after its history window is read
        history = None

        if first_message or expired:
            welcome_only = intent in (Intent.GREETING, Intent.UNKNOWN) and not quote_answer
            history = self._store_inbound(phone, text)
            await self._send_and_record(phone, build_welcome_message(contact.name))
            if welcome_only:
                logger.info(f"Welcome sent to {phone}")
                return

        if history is None:
            history = self._store_inbound(phone, text)

        if intent == Intent.HANDOFF and not quote_answer:
            await self.handoff.execute_handoff(phone, contact, history)
            return

        restart_quote = intent == Intent.QUOTE and not quote_answer
        if quote_active or restart_quote:
            await self._handle_quote(phone, text, None if restart_quote else quote)
            return

        await self._answer(phone, contact, text, intent, history)

    def _store_inbound(self, phone: str, text: str) -> List[Message]:
        """Persist the inbound message, returning the transcript window read just before it."""
        history = load_history(self.db, phone, self.settings.HISTORY_LIMIT)
        save_message(self.db, phone, MessageRole.USER, text)
        return history

    async def _handle_quote(self, phone: str, text: str, quote) -> None:
        transition = await self.quote_machine.handle(quote, text)
        if transition.reply is None:
            logger.error(f"Quote flow produced no reply for {phone}, state left untouched")
            return

        await self.sender.send_text(phone, transition.reply, compute_delay_seconds(self.settings))
        store_quote_payload(self.db, phone, transition.state.to_payload())
        save_message(self.db, phone, MessageRole.ASSISTANT, transition.reply)

        if transition.premium is not None:
            log_audit_event(
                event_type="quote.completed",
                actor_id=phone,
                actor_type="system",
                details={
                    "monthly_total": float(transition.premium.monthly_total),
                    "lives": transition.premium.lives,
                    "age_range": transition.premium.age_range,
                    "plan_type": transition.premium.plan_type,
                },
            )

    async def _answer(
        self,
        phone: str,
        contact: Contact,
        text: str,
        intent: Intent,
        history: List[Message],
    ) -> None:
        product = detect_product_type(text)
        if product is not None:
            logger.info(f"Product hint for {phone}: {product.value}")

        answer = await self.answer_service.generate(
            contact.name,
            history,
            text,
            intent,
            get_product_facts(product),
        )
        parsed = parse_response_markers(answer)

        if parsed.clean_text:
            await self._send_and_record(phone, parsed.clean_text)

        if parsed.quotation_data is not None:
            log_audit_event(
                event_type="quotation.marker",
                actor_id=phone,
                actor_type="ai",
                details=parsed.quotation_data,
            )

        if parsed.should_transfer:
            logger.info(f"Transfer marker from AI answer for {phone}")
            history = load_history(self.db, phone, self.settings.HISTORY_LIMIT)
            await self.handoff.execute_handoff(phone, contact, history)

    async def _send_and_record(self, phone: str, message: str) -> None:
        """Send a conversational reply and record it only once delivered."""
        await self.sender.send_text(phone, message, compute_delay_seconds(self.settings))
        save_message(self.db, phone, MessageRole.ASSISTANT, message)


async def process_inbound_event(event: InboundMessage) -> None:
    """Background task body: own DB session, never raises."""
    db = SessionLocal()
    try:
        orchestrator = ConversationOrchestrator(db)
        await orchestrator.handle(event)
    except Exception as e:
        logger.exception(f"Unhandled error processing inbound event: {e}")
    finally:
        db.close()
