"""
Tests for the conversation router pipeline.
"""

from datetime import timedelta
from typing import List

import pytest
from sqlalchemy.orm import Session

from brokerbot.core.clock import utcnow
from brokerbot.db.models import Contact, Conversation, MessageRole
from brokerbot.orchestration.quote import QuoteStatus, parse_quote_state
from brokerbot.orchestration.router import ConversationOrchestrator, InboundMessage
from brokerbot.services.contact import upsert_contact
from brokerbot.services.conversation import (
    get_or_create_conversation,
    load_quote_payload,
    set_human_mode,
    store_quote_payload,
    touch_conversation,
)
from brokerbot.services.history import load_history, save_message
from brokerbot.services.identity_lock import InMemoryIdentityLock
from brokerbot.services.llm import FALLBACK_REPLY


def seed_known_broker(db: Session, phone: str, name: str = "Bruno") -> Contact:
    """A broker who has talked to the bot before and is mid-session."""
    contact = upsert_contact(db, phone, name)
    contact.created_at = utcnow() - timedelta(days=1)
    db.commit()
    get_or_create_conversation(db, phone)
    return contact


def event(phone: str, text: str, name: str = "Bruno") -> InboundMessage:
    return InboundMessage(phone=phone, text=text, sender_name=name)


def transcript(db: Session, phone: str) -> List[tuple]:
    return [(m.role, m.content) for m in load_history(db, phone, limit=50)]


class RecordingAnswerService:
    """Answer service stand-in that records the context it was given."""

    def __init__(self, reply: str = "Resposta registrada."):
        self.reply = reply
        self.calls = []

    async def generate(self, contact_name, history, current_message, intent, facts=None):
        self.calls.append({
            "history": [m.content for m in history],
            "current_message": current_message,
            "facts": facts,
        })
        return self.reply


class TestWelcome:
    """Welcome menu on first contact and after inactivity."""

    @pytest.mark.asyncio
    async def test_first_greeting_gets_welcome_only(self, db: Session, sender, make_orchestrator, broker_phone):
        orchestrator = make_orchestrator()
        await orchestrator.handle(event(broker_phone, "oi", "Bruno Lima"))

        assert len(sender.sent) == 1
        _, welcome, delay = sender.sent[0]
        assert welcome.startswith("Ola, Bruno Lima!")
        assert "2 - Cotacao de plano de saude" in welcome
        assert 1 <= delay <= 3
        assert transcript(db, broker_phone) == [
            (MessageRole.USER, "oi"),
            (MessageRole.ASSISTANT, welcome),
        ]

    @pytest.mark.asyncio
    async def test_first_question_gets_welcome_and_answer(self, db: Session, sender, make_orchestrator, broker_phone):
        orchestrator = make_orchestrator(answers=["A carencia para parto e de 300 dias."])
        await orchestrator.handle(event(broker_phone, "qual a carencia para parto?"))

        assert len(sender.sent) == 2
        assert sender.messages[0].startswith("Ola, Bruno!")
        assert sender.messages[1] == "A carencia para parto e de 300 dias."
        assert transcript(db, broker_phone) == [
            (MessageRole.USER, "qual a carencia para parto?"),
            (MessageRole.ASSISTANT, sender.messages[0]),
            (MessageRole.ASSISTANT, "A carencia para parto e de 300 dias."),
        ]

    @pytest.mark.asyncio
    async def test_first_question_context_excludes_itself(self, db: Session, sender, app_settings,
                                                          make_extractor, broker_phone):
        answers = RecordingAnswerService()
        orchestrator = ConversationOrchestrator(
            db,
            app_settings=app_settings,
            sender=sender,
            answer_service=answers,
            extractor=make_extractor(),
            lock=InMemoryIdentityLock(timeout_seconds=5),
        )
        await orchestrator.handle(event(broker_phone, "qual a carencia para parto?"))

        call, = answers.calls
        assert call["history"] == []
        assert call["current_message"] == "qual a carencia para parto?"
        assert [role for role, _ in transcript(db, broker_phone)] == [
            MessageRole.USER, MessageRole.ASSISTANT, MessageRole.ASSISTANT,
        ]

    @pytest.mark.asyncio
    async def test_expired_session_resends_welcome(self, db: Session, sender, make_orchestrator, broker_phone):
        seed_known_broker(db, broker_phone)
        touch_conversation(db, broker_phone, now=utcnow() - timedelta(minutes=31))

        orchestrator = make_orchestrator()
        await orchestrator.handle(event(broker_phone, "bom dia"))

        assert len(sender.sent) == 1
        assert sender.messages[0].startswith("Ola, Bruno!")
        conversation = db.get(Conversation, broker_phone)
        assert utcnow() - conversation.last_activity_at < timedelta(minutes=1)

    @pytest.mark.asyncio
    async def test_active_session_greeting_goes_to_ai(self, db: Session, sender, make_orchestrator, broker_phone):
        seed_known_broker(db, broker_phone)
        orchestrator = make_orchestrator(answers=["Ola de novo! Em que posso ajudar?"])

        await orchestrator.handle(event(broker_phone, "oi"))
        assert sender.messages == ["Ola de novo! Em que posso ajudar?"]

    @pytest.mark.asyncio
    async def test_empty_text_is_ignored(self, db: Session, sender, make_orchestrator, broker_phone):
        orchestrator = make_orchestrator()
        await orchestrator.handle(event(broker_phone, "   "))
        assert sender.sent == []
        assert db.get(Contact, broker_phone) is None


class TestHumanModeGate:
    """The bot stays silent while a human owns the conversation."""

    @pytest.mark.asyncio
    async def test_silent_for_every_intent(self, db: Session, sender, make_orchestrator, broker_phone):
        seed_known_broker(db, broker_phone)
        set_human_mode(db, broker_phone, True)
        orchestrator = make_orchestrator()

        texts = ["oi", "2", "3", "quero uma cotacao", "qual o valor do seguro auto?", "quero falar com um humano"]
        for text in texts:
            await orchestrator.handle(event(broker_phone, text))

        assert sender.sent == []
        assert transcript(db, broker_phone) == [(MessageRole.USER, text) for text in texts]
        assert db.get(Conversation, broker_phone).human_mode is True

    @pytest.mark.asyncio
    async def test_silent_even_after_inactivity(self, db: Session, sender, make_orchestrator, broker_phone):
        seed_known_broker(db, broker_phone)
        set_human_mode(db, broker_phone, True)
        touch_conversation(db, broker_phone, now=utcnow() - timedelta(hours=5))

        await make_orchestrator().handle(event(broker_phone, "oi"))
        assert sender.sent == []


class TestAnswers:
    """AI answer path."""

    @pytest.mark.asyncio
    async def test_current_message_not_in_history(self, db: Session, sender, app_settings,
                                                  make_extractor, broker_phone):
        seed_known_broker(db, broker_phone)
        save_message(db, broker_phone, MessageRole.USER, "tenho um cliente empresa")
        save_message(db, broker_phone, MessageRole.ASSISTANT, "Certo, como posso ajudar?")

        answers = RecordingAnswerService()
        orchestrator = ConversationOrchestrator(
            db,
            app_settings=app_settings,
            sender=sender,
            answer_service=answers,
            extractor=make_extractor(),
            lock=InMemoryIdentityLock(timeout_seconds=5),
        )
        await orchestrator.handle(event(broker_phone, "qual a cobertura do seguro empresarial?"))

        call, = answers.calls
        assert call["history"] == ["tenho um cliente empresa", "Certo, como posso ajudar?"]
        assert call["current_message"] == "qual a cobertura do seguro empresarial?"
        assert call["facts"] is not None
        assert transcript(db, broker_phone)[-2:] == [
            (MessageRole.USER, "qual a cobertura do seguro empresarial?"),
            (MessageRole.ASSISTANT, "Resposta registrada."),
        ]

    @pytest.mark.asyncio
    async def test_failed_send_is_not_recorded(self, db: Session, sender, make_orchestrator, broker_phone):
        seed_known_broker(db, broker_phone)
        sender.fail_always()

        await make_orchestrator().handle(event(broker_phone, "qual a carencia para parto?"))

        assert transcript(db, broker_phone) == [(MessageRole.USER, "qual a carencia para parto?")]

    @pytest.mark.asyncio
    async def test_empty_model_output_uses_fallback(self, db: Session, sender, make_orchestrator, broker_phone):
        seed_known_broker(db, broker_phone)
        await make_orchestrator(answers=[" "]).handle(event(broker_phone, "qual a carencia?"))
        assert sender.messages == [FALLBACK_REPLY]

    @pytest.mark.asyncio
    async def test_quotation_marker_is_stripped(self, db: Session, sender, make_orchestrator, broker_phone):
        seed_known_broker(db, broker_phone)
        answer = 'Segue o resumo. [QUOTATION_COMPLETE]{"lives": 2}'
        await make_orchestrator(answers=[answer]).handle(event(broker_phone, "me resume o que falamos"))

        assert sender.messages == ["Segue o resumo."]
        assert transcript(db, broker_phone)[-1] == (MessageRole.ASSISTANT, "Segue o resumo.")


class TestHandoffRouting:
    """Explicit and model-initiated handoffs."""

    @pytest.mark.asyncio
    async def test_handoff_intent(self, db: Session, sender, make_orchestrator, broker_phone):
        seed_known_broker(db, broker_phone)
        await make_orchestrator().handle(event(broker_phone, "quero falar com um consultor"))

        assert len(sender.sent) == 2
        assert sender.messages[0].startswith("*TRANSFERENCIA PARA ATENDIMENTO HUMANO*")
        assert "quero falar com um consultor" not in sender.messages[0]
        assert db.get(Conversation, broker_phone).human_mode is True

    @pytest.mark.asyncio
    async def test_transfer_marker_triggers_handoff(self, db: Session, sender, make_orchestrator, broker_phone):
        seed_known_broker(db, broker_phone)
        orchestrator = make_orchestrator(answers=["Claro, vou chamar um especialista. [TRANSFER]"])

        await orchestrator.handle(event(broker_phone, "pode me passar para alguem da equipe?"))

        assert sender.messages[0] == "Claro, vou chamar um especialista."
        assert sender.messages[1].startswith("*TRANSFERENCIA PARA ATENDIMENTO HUMANO*")
        assert "pode me passar para alguem da equipe?" in sender.messages[1]
        assert len(sender.sent) == 3
        assert db.get(Conversation, broker_phone).human_mode is True

    @pytest.mark.asyncio
    async def test_failed_briefing_keeps_bot_answering(self, db: Session, sender, make_orchestrator, broker_phone):
        seed_known_broker(db, broker_phone)
        sender.fail_on("TRANSFERENCIA")

        await make_orchestrator().handle(event(broker_phone, "quero falar com um consultor"))
        assert db.get(Conversation, broker_phone).human_mode is False


class TestQuoteRouting:
    """Quote flow through the router."""

    @pytest.mark.asyncio
    async def test_full_quote(self, db: Session, sender, make_orchestrator, broker_phone):
        seed_known_broker(db, broker_phone)
        orchestrator = make_orchestrator()

        for text in ["2", "3", "30-40", "sp", "2"]:
            await orchestrator.handle(event(broker_phone, text))

        assert db.get(Conversation, broker_phone).human_mode is False
        quote = parse_quote_state(load_quote_payload(db, broker_phone))
        assert quote.status == QuoteStatus.CONFIRMING

        await orchestrator.handle(event(broker_phone, "sim"))

        assert "R$ 1294/mes" in sender.messages[-1]
        quote = parse_quote_state(load_quote_payload(db, broker_phone))
        assert quote.status == QuoteStatus.COMPLETE
        assert len(sender.sent) == 6

    @pytest.mark.asyncio
    async def test_menu_digit_answers_quote_question(self, db: Session, sender, make_orchestrator, broker_phone):
        seed_known_broker(db, broker_phone)
        orchestrator = make_orchestrator()

        await orchestrator.handle(event(broker_phone, "quero uma cotacao"))
        # "3" is the handoff shortcut, but here it answers "how many lives"
        await orchestrator.handle(event(broker_phone, "3"))

        assert db.get(Conversation, broker_phone).human_mode is False
        quote = parse_quote_state(load_quote_payload(db, broker_phone))
        assert quote.lives == 3

    @pytest.mark.asyncio
    async def test_quote_request_restarts_open_quote(self, db: Session, sender, make_orchestrator, broker_phone):
        seed_known_broker(db, broker_phone)
        orchestrator = make_orchestrator()

        await orchestrator.handle(event(broker_phone, "2"))
        await orchestrator.handle(event(broker_phone, "5"))
        await orchestrator.handle(event(broker_phone, "quero refazer a cotacao"))

        quote = parse_quote_state(load_quote_payload(db, broker_phone))
        assert quote.lives is None
        assert quote.current_step.value == "lives"

    @pytest.mark.asyncio
    async def test_corrupt_quote_state_is_ignored(self, db: Session, sender, make_orchestrator, broker_phone):
        seed_known_broker(db, broker_phone)
        store_quote_payload(db, broker_phone, {"kind": "health_quote", "status": "???"})

        await make_orchestrator(answers=["Resposta livre."]).handle(event(broker_phone, "qual a carencia?"))
        assert sender.messages == ["Resposta livre."]

    @pytest.mark.asyncio
    async def test_failed_quote_reply_keeps_state(self, db: Session, sender, make_orchestrator, broker_phone):
        seed_known_broker(db, broker_phone)
        orchestrator = make_orchestrator()
        await orchestrator.handle(event(broker_phone, "2"))
        before = load_quote_payload(db, broker_phone)

        sender.fail_always()
        await orchestrator.handle(event(broker_phone, "3"))

        assert load_quote_payload(db, broker_phone) == before
