"""
Database models package
"""
from brokerbot.db.models.contact import Contact
from brokerbot.db.models.conversation import Conversation
from brokerbot.db.models.message import Message, MessageRole

__all__ = [
    "Contact",
    "Conversation",
    "Message",
    "MessageRole",
]
