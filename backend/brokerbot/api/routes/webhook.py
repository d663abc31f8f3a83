"""
WhatsApp webhook routes (Z-API received-message callback)
"""
from typing import Any, Dict, Optional

from fastapi import APIRouter, BackgroundTasks, Body
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from brokerbot.core import logger
from brokerbot.core.clock import from_epoch_millis
from brokerbot.orchestration.router import InboundMessage, process_inbound_event
from brokerbot.services.contact import UNKNOWN_CONTACT_NAME

router = APIRouter()


class ZApiText(BaseModel):
    message: Optional[str] = None


class ZApiWebhookPayload(BaseModel):
    """Fields of the gateway callback the bot relies on; the rest is ignored."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    phone: str
    from_me: bool = Field(default=False, alias="fromMe")
    is_group: bool = Field(default=False, alias="isGroup")
    sender_name: Optional[str] = Field(default=None, alias="senderName")
    chat_name: Optional[str] = Field(default=None, alias="chatName")
    message_id: Optional[str] = Field(default=None, alias="messageId")
    # Gateway spelling, unix time in milliseconds
    momment: Optional[int] = None
    text: Optional[ZApiText] = None

    def to_inbound(self) -> Optional[InboundMessage]:
        """
        Convert to an inbound message.

        Returns None for events the bot must ignore: its own messages,
        group messages and anything without a text body.
        """
        if self.from_me or self.is_group:
            return None

        body = self.text.message if self.text else None
        if not body or not body.strip():
            return None

        timestamp = None
        if self.momment:
            timestamp = from_epoch_millis(self.momment)

        return InboundMessage(
            phone=self.phone,
            text=body,
            sender_name=self.sender_name or self.chat_name or UNKNOWN_CONTACT_NAME,
            message_id=self.message_id,
            timestamp=timestamp,
        )


@router.post("/whatsapp-webhook")
async def receive_whatsapp_message(
    background_tasks: BackgroundTasks,
    payload: Dict[str, Any] = Body(...),
):
    """
    Receive a gateway callback.

    Always acknowledges at once; processing continues in the background
    so the gateway never waits for the AI or the quote flow.
    """
    try:
        parsed = ZApiWebhookPayload.model_validate(payload)
    except ValidationError as e:
        logger.warning(f"Ignoring malformed webhook payload: {e.error_count()} validation error(s)")
        return {"status": "received"}

    event = parsed.to_inbound()
    if event is None:
        logger.debug(f"Ignoring webhook event {parsed.message_id} (own, group or non-text)")
        return {"status": "received"}

    background_tasks.add_task(process_inbound_event, event)
    return {"status": "received"}
