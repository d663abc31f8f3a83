"""
Conversation Service - per-identity session record and mode gate.

All mutations here are field-scoped: touching activity never rewrites
human_mode or the embedded quote state, and vice versa.
"""
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from brokerbot.core.clock import utcnow
from brokerbot.core.config import settings
from brokerbot.core.logging import logger
from brokerbot.db.models import Conversation


DEFAULT_SESSION_TIMEOUT = timedelta(minutes=settings.SESSION_TIMEOUT_MINUTES)


def get_or_create_conversation(db: Session, phone: str) -> Conversation:
    """
    Get the conversation for a phone, creating it only if absent.

    Idempotent: an existing row is returned untouched, so repeated calls
    never disturb human_mode or the quote state.
    """
    conversation = db.get(Conversation, phone)
    if conversation is not None:
        return conversation

    now = utcnow()
    conversation = Conversation(
        phone=phone,
        human_mode=False,
        last_activity_at=now,
        quote_state=None,
        created_at=now,
    )
    db.add(conversation)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        conversation = db.get(Conversation, phone)
    else:
        logger.info(f"Conversation created for phone={phone}")

    db.refresh(conversation)
    return conversation


def is_human_mode(conversation: Conversation) -> bool:
    """Returns True if a human agent has taken over this conversation."""
    return bool(conversation.human_mode)


def is_session_expired(
    conversation: Conversation,
    timeout: timedelta = DEFAULT_SESSION_TIMEOUT,
    now: Optional[datetime] = None,
) -> bool:
    """
    Returns True if the last activity is at least `timeout` old.

    Pure predicate, used to re-send the welcome menu on stale conversations.
    """
    if conversation.last_activity_at is None:
        return True
    now = now or utcnow()
    return now - conversation.last_activity_at >= timeout


def set_human_mode(db: Session, phone: str, mode: bool) -> None:
    """
    Set the takeover flag.

    Single authorized mutator of human_mode: the handoff flow sets it,
    the admin restore command clears it.
    """
    get_or_create_conversation(db, phone)
    db.execute(
        update(Conversation)
        .where(Conversation.phone == phone)
        .values(human_mode=mode, updated_at=utcnow())
    )
    db.commit()
    db.expire_all()
    logger.info(f"human_mode={mode} for phone={phone}")


def touch_conversation(db: Session, phone: str, now: Optional[datetime] = None) -> None:
    """Update only the activity timestamp to keep the session alive."""
    db.execute(
        update(Conversation)
        .where(Conversation.phone == phone)
        .values(last_activity_at=now or utcnow())
    )
    db.commit()
    db.expire_all()


def load_quote_payload(db: Session, phone: str) -> Optional[Dict[str, Any]]:
    """Raw embedded quote payload, unvalidated."""
    conversation = db.get(Conversation, phone)
    if conversation is None:
        return None
    return conversation.quote_state


def store_quote_payload(db: Session, phone: str, payload: Optional[Dict[str, Any]]) -> None:
    """Replace the embedded quote payload in a single write."""
    db.execute(
        update(Conversation)
        .where(Conversation.phone == phone)
        .values(quote_state=payload, updated_at=utcnow())
    )
    db.commit()
    db.expire_all()
