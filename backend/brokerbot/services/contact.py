"""
Contact Service - broker identity persistence
"""
from datetime import timedelta

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from brokerbot.core.clock import utcnow
from brokerbot.core.logging import logger
from brokerbot.db.models import Contact

# Timestamps stamped in the same transaction are not guaranteed identical
FIRST_MESSAGE_TOLERANCE = timedelta(seconds=1)

UNKNOWN_CONTACT_NAME = "Desconhecido"


def upsert_contact(db: Session, phone: str, sender_name: str) -> Contact:
    """
    Create or update a contact, always syncing the latest display name.

    The broker may rename themselves in WhatsApp, so the name is overwritten
    on every inbound event and updated_at is stamped even when it is unchanged.
    """
    now = utcnow()
    name = (sender_name or "").strip() or UNKNOWN_CONTACT_NAME

    contact = db.get(Contact, phone)
    if contact is None:
        contact = Contact(phone=phone, name=name, created_at=now, updated_at=now)
        db.add(contact)
        try:
            db.commit()
        except IntegrityError:
            # Concurrent delivery created the row first
            db.rollback()
            contact = db.get(Contact, phone)
            contact.name = name
            contact.updated_at = now
            db.commit()
        else:
            logger.info(f"New contact created for phone={phone}")
    else:
        contact.name = name
        contact.updated_at = now
        db.commit()

    db.refresh(contact)
    return contact


def is_first_message(contact: Contact) -> bool:
    """
    Detect whether this event is the contact's first ever message.

    Uses timestamp proximity instead of equality between created_at and updated_at.
    """
    if contact.created_at is None or contact.updated_at is None:
        return False
    return abs(contact.updated_at - contact.created_at) < FIRST_MESSAGE_TOLERANCE


def get_contact(db: Session, phone: str):
    """Fetch a contact by phone, or None."""
    return db.get(Contact, phone)
