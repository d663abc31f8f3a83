"""
Test configuration and fixtures for BrokerBot backend tests.
"""
import os

# Must be set before the application settings are first loaded
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["APP_ENV"] = "development"
os.environ["LANGFUSE_PUBLIC_KEY"] = ""

import pytest
from typing import Callable, Generator, List, Optional, Tuple
from fastapi.testclient import TestClient
from langchain_core.language_models import FakeListChatModel
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from main import app
from brokerbot.core.config import Settings, get_settings
from brokerbot.db.base import Base
from brokerbot.db.session import get_db
from brokerbot.orchestration.router import ConversationOrchestrator
from brokerbot.services.identity_lock import InMemoryIdentityLock
from brokerbot.services.llm import AnswerService, FieldExtractionService
from brokerbot.services.whatsapp import DeliveryError


ADMIN_PHONE = "5511900000001"
BROKER_PHONE = "5511988887777"
ADMIN_TOKEN = "test-admin-token"

# Use in-memory SQLite for testing
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class FakeSender:
    """Records outbound messages; can be told to fail."""

    def __init__(self):
        self.sent: List[Tuple[str, str, int]] = []
        self.fail_when: Optional[Callable[[str], bool]] = None

    async def send_text(self, phone: str, message: str, delay_seconds: int = 0) -> None:
        if self.fail_when is not None and self.fail_when(message):
            raise DeliveryError(phone, "gateway unavailable")
        self.sent.append((phone, message, delay_seconds))

    def fail_always(self) -> None:
        self.fail_when = lambda message: True

    def fail_on(self, fragment: str) -> None:
        self.fail_when = lambda message: fragment in message

    @property
    def messages(self) -> List[str]:
        return [message for _, message, _ in self.sent]


@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """Create a fresh database for each test."""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def app_settings() -> Settings:
    """Explicit settings for components under test."""
    return Settings(
        APP_ENV="development",
        DATABASE_URL="sqlite://",
        ADMIN_PHONE_NUMBERS=ADMIN_PHONE,
        ADMIN_API_TOKEN=ADMIN_TOKEN,
        HUMAN_DELAY_MIN_SECONDS=1,
        HUMAN_DELAY_MAX_SECONDS=3,
        HANDOFF_CONFIRMATION_DELAY_SECONDS=1,
        SESSION_TIMEOUT_MINUTES=30,
        LLM_TIMEOUT_SECONDS=5,
        LANGFUSE_PUBLIC_KEY="",
    )


@pytest.fixture(scope="function")
def client(db: Session, app_settings: Settings) -> Generator[TestClient, None, None]:
    """Create a test client with database and settings overrides."""
    app.dependency_overrides[get_db] = lambda: db
    app.dependency_overrides[get_settings] = lambda: app_settings
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def sender() -> FakeSender:
    return FakeSender()


@pytest.fixture
def make_extractor(app_settings: Settings):
    """Extraction service backed by a fake model with canned outputs."""
    def _make(responses: Optional[List[str]] = None) -> FieldExtractionService:
        llm = FakeListChatModel(responses=responses or ["NENHUM"])
        return FieldExtractionService(app_settings, llm=llm)
    return _make


@pytest.fixture
def make_orchestrator(db: Session, app_settings: Settings, sender: FakeSender, make_extractor):
    """Orchestrator wired to the fake sender and fake models."""
    def _make(
        answers: Optional[List[str]] = None,
        extractions: Optional[List[str]] = None,
    ) -> ConversationOrchestrator:
        answer_llm = FakeListChatModel(responses=answers or ["Resposta do assistente."])
        return ConversationOrchestrator(
            db,
            app_settings=app_settings,
            sender=sender,
            answer_service=AnswerService(app_settings, llm=answer_llm),
            extractor=make_extractor(extractions),
            lock=InMemoryIdentityLock(timeout_seconds=5),
        )
    return _make


@pytest.fixture
def admin_headers() -> dict:
    """Headers for the admin HTTP API."""
    return {"X-Admin-Token": ADMIN_TOKEN}


@pytest.fixture
def admin_phone() -> str:
    return ADMIN_PHONE


@pytest.fixture
def broker_phone() -> str:
    return BROKER_PHONE
