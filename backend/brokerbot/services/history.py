"""
History Service - transcript persistence and retrieval
"""
from typing import List, Optional

from sqlalchemy.orm import Session

from brokerbot.core.config import settings
from brokerbot.db.models import Message, MessageRole


def load_history(db: Session, phone: str, limit: Optional[int] = None) -> List[Message]:
    """
    Load the last N messages for a phone, oldest first.

    Call this BEFORE saving the current inbound message, otherwise the
    message appears twice in the generated context.
    """
    limit = limit or settings.HISTORY_LIMIT
    messages = (
        db.query(Message)
        .filter(Message.phone == phone)
        .order_by(Message.created_at.desc(), Message.message_id.desc())
        .limit(limit)
        .all()
    )
    return list(reversed(messages))


def save_message(db: Session, phone: str, role: MessageRole, content: str) -> Message:
    """
    Append a transcript entry.

    User messages are saved after the history is loaded; assistant messages
    only after their send succeeded.
    """
    message = Message(phone=phone, role=role, content=content)
    db.add(message)
    db.commit()
    db.refresh(message)
    return message


def get_last_message(db: Session, phone: str) -> Optional[Message]:
    """Most recent transcript entry for a phone."""
    return (
        db.query(Message)
        .filter(Message.phone == phone)
        .order_by(Message.created_at.desc(), Message.message_id.desc())
        .first()
    )
