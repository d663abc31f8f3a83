"""
Database session and engine configuration
"""
from typing import Any, Dict, Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import sessionmaker, Session

from brokerbot.core.config import settings


def engine_options(database_url: str) -> Dict[str, Any]:
    """Driver-specific engine arguments for a database URL."""
    if make_url(database_url).get_backend_name() == "sqlite":
        # Background tasks open sessions outside the creating thread
        return {"connect_args": {"check_same_thread": False}}
    # Postgres drops idle connections behind load balancers
    return {"pool_pre_ping": True}


engine = create_engine(
    settings.DATABASE_URL,
    echo=settings.DATABASE_ECHO,
    **engine_options(settings.DATABASE_URL),
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """Request-scoped session for the admin routes."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
