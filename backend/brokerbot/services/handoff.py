"""
Handoff Service - hand a conversation over to a human specialist.

The sequence is strictly ordered. The briefing must be delivered before the
bot goes silent; if it cannot be delivered, human mode is never set and the
bot keeps answering.
"""
from typing import Optional, Sequence

from sqlalchemy.orm import Session

from brokerbot.core.config import Settings, get_settings
from brokerbot.core.logging import log_audit_event, logger
from brokerbot.db.models import Contact, Message, MessageRole
from brokerbot.services.conversation import set_human_mode
from brokerbot.services.history import save_message
from brokerbot.services.whatsapp import WhatsAppClient

BRIEFING_RECENT_MESSAGES = 3
BRIEFING_PREVIEW_CHARS = 120


def build_handoff_briefing(contact: Contact, history: Sequence[Message]) -> str:
    """
    Deterministic briefing for the human specialist. No model call.

    Includes the broker's identity, how many messages were exchanged and
    the broker's last few messages.
    """
    user_messages = [m for m in history if m.role == MessageRole.USER][-BRIEFING_RECENT_MESSAGES:]

    if user_messages:
        bullet_lines = "\n".join(f"- {m.content[:BRIEFING_PREVIEW_CHARS]}" for m in user_messages)
    else:
        bullet_lines = "- (sem mensagens anteriores)"

    return (
        "*TRANSFERENCIA PARA ATENDIMENTO HUMANO*\n\n"
        f"*Corretor:* {contact.name} ({contact.phone})\n"
        f"*Mensagens anteriores:* {len(history)}\n\n"
        "*Ultimas mensagens do corretor:*\n"
        f"{bullet_lines}\n\n"
        "Para retornar ao bot: envie */bot* neste chat"
    )


def build_handoff_confirmation(contact: Contact) -> str:
    return (
        f"Entendido, {contact.name}! Estou transferindo para um especialista da assessoria. "
        "Eles vao ver todo o contexto da conversa e entrar em contato em breve."
    )


class HandoffOrchestrator:
    """Runs the briefing, takeover and confirmation sequence."""

    def __init__(
        self,
        db: Session,
        sender: WhatsAppClient,
        app_settings: Optional[Settings] = None,
    ):
        self.db = db
        self.sender = sender
        self.settings = app_settings or get_settings()

    async def execute_handoff(
        self,
        phone: str,
        contact: Contact,
        history: Sequence[Message],
    ) -> None:
        """
        Hand the conversation to a human.

        Order:
        1. Build the briefing
        2. Send the briefing (no typing delay)
        3. Set human mode, only after the briefing was delivered
        4. Send the confirmation to the broker (short delay)

        Each message is recorded in the transcript right after its send succeeded.

        Raises:
            DeliveryError: if any send fails; remaining steps are skipped
        """
        briefing = build_handoff_briefing(contact, history)
        await self.sender.send_text(phone, briefing, 0)

        set_human_mode(self.db, phone, True)
        save_message(self.db, phone, MessageRole.ASSISTANT, briefing)

        confirmation = build_handoff_confirmation(contact)
        await self.sender.send_text(
            phone, confirmation, self.settings.HANDOFF_CONFIRMATION_DELAY_SECONDS
        )
        save_message(self.db, phone, MessageRole.ASSISTANT, confirmation)

        logger.info(f"Handoff completed for phone={phone}")
        log_audit_event(
            event_type="conversation.handoff",
            actor_id=phone,
            actor_type="system",
            details={"history_count": len(history)},
        )
