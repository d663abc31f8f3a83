"""
Admin Command Service - privileged in-band commands.

Only exact commands are handled here; any other text from an admin phone
flows through normal routing like everyone else's. Callers must check the
allow-list before calling the handler.
"""
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.orm import Session

from brokerbot.core.logging import log_audit_event, logger
from brokerbot.db.models import Conversation
from brokerbot.orchestration.quote.state import parse_quote_state
from brokerbot.services.contact import UNKNOWN_CONTACT_NAME, get_contact
from brokerbot.services.conversation import set_human_mode
from brokerbot.services.history import get_last_message
from brokerbot.services.whatsapp import WhatsAppClient

RESTORE_BOT_COMMAND = "/bot"
STATUS_COMMAND = "/status"
ADMIN_COMMANDS = (RESTORE_BOT_COMMAND, STATUS_COMMAND)

STATUS_PREVIEW_CHARS = 100

RESTORE_BOT_REPLY = "Bot mode restaurado. O assistente voltou a responder neste chat."


def normalize_command(text: Optional[str]) -> str:
    return (text or "").strip().lower()


def is_admin_command(text: Optional[str]) -> bool:
    """True only for the exact restore and status commands."""
    return normalize_command(text) in ADMIN_COMMANDS


@dataclass
class StatusReport:
    """Snapshot of a conversation for operators."""
    phone: str
    human_mode: bool
    contact_name: str
    last_message_preview: Optional[str]
    quote_status: Optional[str]

    def to_dict(self) -> dict:
        return {
            "phone": self.phone,
            "mode": "human" if self.human_mode else "bot",
            "human_mode": self.human_mode,
            "contact_name": self.contact_name,
            "last_message_preview": self.last_message_preview,
            "quote_status": self.quote_status,
        }

    def to_message(self) -> str:
        preview = self.last_message_preview if self.last_message_preview is not None else "(sem mensagens)"
        return (
            "*Status do Chat*\n"
            f"Modo: {'Humano' if self.human_mode else 'Bot'}\n"
            f"Corretor: {self.contact_name}\n"
            f'Ultima mensagem: "{preview}"'
        )


def build_status_report(db: Session, phone: str) -> StatusReport:
    """Read mode, contact name and last transcript entry. No mutation."""
    conversation = db.get(Conversation, phone)
    contact = get_contact(db, phone)
    last_message = get_last_message(db, phone)

    quote = parse_quote_state(conversation.quote_state) if conversation else None

    return StatusReport(
        phone=phone,
        human_mode=bool(conversation and conversation.human_mode),
        contact_name=contact.name if contact else UNKNOWN_CONTACT_NAME,
        last_message_preview=last_message.content[:STATUS_PREVIEW_CHARS] if last_message else None,
        quote_status=quote.status.value if quote else None,
    )


class AdminCommandHandler:
    """Executes admin commands. Replies are system messages, sent without delay."""

    def __init__(self, db: Session, sender: WhatsAppClient):
        self.db = db
        self.sender = sender

    async def handle(self, phone: str, text: str) -> bool:
        """
        Execute an admin command.

        Returns:
            True if the text was a command and was executed
        """
        command = normalize_command(text)

        if command == RESTORE_BOT_COMMAND:
            set_human_mode(self.db, phone, False)
            await self.sender.send_text(phone, RESTORE_BOT_REPLY, 0)
            logger.info(f"/bot executed by {phone}")
            log_audit_event("admin.restore_bot", phone, "admin", {"channel": "whatsapp"})
            return True

        if command == STATUS_COMMAND:
            report = build_status_report(self.db, phone)
            await self.sender.send_text(phone, report.to_message(), 0)
            logger.info(f"/status executed by {phone}")
            log_audit_event("admin.status", phone, "admin", {"channel": "whatsapp"})
            return True

        return False
