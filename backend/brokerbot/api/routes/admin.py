"""
Admin API routes
"""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel
from sqlalchemy.orm import Session

from brokerbot.core import log_audit_event, logger, require_admin_token
from brokerbot.db import get_db
from brokerbot.db.models import Conversation
from brokerbot.services.admin import build_status_report
from brokerbot.services.conversation import set_human_mode

router = APIRouter()


# Response schemas
class ConversationStatusResponse(BaseModel):
    phone: str
    mode: str
    human_mode: bool
    contact_name: str
    last_message_preview: Optional[str]
    quote_status: Optional[str]


class RestoreBotResponse(BaseModel):
    phone: str
    human_mode: bool
    message: str


def _get_conversation_or_404(db: Session, phone: str) -> Conversation:
    conversation = db.get(Conversation, phone)
    if not conversation:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Conversation not found",
        )
    return conversation


@router.get("/conversations/{phone}", response_model=ConversationStatusResponse)
async def get_conversation_status(
    phone: str,
    db: Session = Depends(get_db),
    _token: str = Depends(require_admin_token),
):
    """Mode, broker name, last message and quote status of a conversation."""
    _get_conversation_or_404(db, phone)
    report = build_status_report(db, phone)
    return ConversationStatusResponse(**report.to_dict())


@router.post("/conversations/{phone}/restore-bot", response_model=RestoreBotResponse)
async def restore_bot(
    phone: str,
    db: Session = Depends(get_db),
    _token: str = Depends(require_admin_token),
):
    """Hand a conversation back to the bot."""
    _get_conversation_or_404(db, phone)
    set_human_mode(db, phone, False)

    logger.info(f"Bot restored for {phone} via admin API")
    log_audit_event(
        event_type="admin.restore_bot",
        actor_id="admin_api",
        actor_type="admin",
        details={"phone": phone, "channel": "http"},
    )

    return RestoreBotResponse(
        phone=phone,
        human_mode=False,
        message="Bot mode restored",
    )
