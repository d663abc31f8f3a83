"""
Message database model (append-only conversation transcript)
"""
from enum import Enum as PyEnum

from sqlalchemy import Column, String, DateTime, Enum, Integer, Text

from brokerbot.core.clock import utcnow
from brokerbot.db.base import Base


class MessageRole(str, PyEnum):
    USER = "user"
    ASSISTANT = "assistant"


class Message(Base):
    """Transcript entry. Rows are inserted, never updated."""

    __tablename__ = "messages"

    message_id = Column(Integer, primary_key=True, autoincrement=True)
    phone = Column(String(32), nullable=False, index=True)
    role = Column(Enum(MessageRole), nullable=False)
    content = Column(Text, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)

    def __repr__(self) -> str:
        return f"<Message {self.role.value} at {self.created_at}>"
