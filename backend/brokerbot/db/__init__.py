"""
Database package
"""
from brokerbot.db.base import Base
from brokerbot.db.session import engine, SessionLocal, get_db
from brokerbot.db.models import *


def init_db() -> None:
    """Create all tables on the configured engine."""
    Base.metadata.create_all(bind=engine)


__all__ = [
    "Base",
    "engine",
    "SessionLocal",
    "get_db",
    "init_db",
]
