"""
Conversation (session) database model
"""

from sqlalchemy import Column, String, DateTime, Boolean, JSON

from brokerbot.core.clock import utcnow
from brokerbot.db.base import Base


class Conversation(Base):
    """
    Per-identity session record.

    human_mode: a human operator has taken over, automated branches stay silent.
    last_activity_at: drives the inactivity timeout that re-sends the welcome menu.
    quote_state: embedded quote flow payload (see orchestration.quote.state), opaque here.
    """

    __tablename__ = "conversations"

    phone = Column(String(32), primary_key=True)
    human_mode = Column(Boolean, default=False, nullable=False)
    last_activity_at = Column(DateTime, default=utcnow, nullable=False)
    quote_state = Column(JSON, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    def __repr__(self) -> str:
        mode = "human" if self.human_mode else "bot"
        return f"<Conversation ({mode})>"
