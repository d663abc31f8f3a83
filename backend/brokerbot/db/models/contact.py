"""
Contact database model (broker identity and display name)
"""

from sqlalchemy import Column, String, DateTime

from brokerbot.core.clock import utcnow
from brokerbot.db.base import Base


class Contact(Base):
    """Broker contact, keyed by phone number."""

    __tablename__ = "contacts"

    phone = Column(String(32), primary_key=True)
    name = Column(String(255), nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    # Stamped explicitly on every inbound event (see services.contact.upsert_contact)
    updated_at = Column(DateTime, default=utcnow, nullable=False)

    def __repr__(self) -> str:
        return f"<Contact {self.name}>"
