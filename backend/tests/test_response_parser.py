"""
Tests for answer generation helpers and response marker parsing.
"""

import pytest
from langchain_core.language_models import FakeListChatModel

from brokerbot.services.intent import Intent
from brokerbot.services.knowledge import ProductType, detect_product_type, get_product_facts
from brokerbot.services.llm import FALLBACK_REPLY, AnswerService, parse_response_markers
from brokerbot.services.llm.answer_service import build_system_prompt


class TestMarkers:
    """Control markers embedded in model output."""

    def test_plain_text(self):
        parsed = parse_response_markers("A carencia e de 30 dias.")
        assert parsed.clean_text == "A carencia e de 30 dias."
        assert parsed.should_transfer is False
        assert parsed.quotation_data is None

    def test_transfer_marker(self):
        parsed = parse_response_markers("Vou transferir voce agora. [TRANSFER]")
        assert parsed.clean_text == "Vou transferir voce agora."
        assert parsed.should_transfer is True

    def test_quotation_marker(self):
        parsed = parse_response_markers('Pronto! [QUOTATION_COMPLETE]{"lives": 3, "city": "Curitiba"}')
        assert parsed.clean_text == "Pronto!"
        assert parsed.quotation_data == {"lives": 3, "city": "Curitiba"}

    @pytest.mark.parametrize("payload", ["{nao e json}", '{"lives": }'])
    def test_malformed_quotation_is_stripped(self, payload):
        parsed = parse_response_markers(f"Pronto! [QUOTATION_COMPLETE]{payload}")
        assert parsed.quotation_data is None
        assert "QUOTATION_COMPLETE" not in parsed.clean_text

    def test_both_markers(self):
        parsed = parse_response_markers('[TRANSFER] Ok. [QUOTATION_COMPLETE]{"lives": 1}')
        assert parsed.should_transfer is True
        assert parsed.quotation_data == {"lives": 1}
        assert parsed.clean_text == "Ok."

    def test_marker_only_leaves_nothing_to_send(self):
        assert parse_response_markers("[TRANSFER]").clean_text == ""

    def test_none(self):
        assert parse_response_markers(None).clean_text == ""


class TestSystemPrompt:
    """Prompt assembly."""

    def test_prompt_names_broker_and_hides_intent_label(self):
        prompt = build_system_prompt("Marina", Intent.QA)
        assert "Marina" in prompt
        assert "qa" not in prompt.split()
        assert "[TRANSFER]" in prompt

    def test_facts_are_injected(self):
        facts = get_product_facts(ProductType.AUTO)
        prompt = build_system_prompt("Marina", Intent.QA, facts)
        assert "Fatos de referencia" in prompt

    @pytest.mark.parametrize("text,product", [
        ("qual a franquia do seguro do carro?", ProductType.AUTO),
        ("cliente quer plano de saúde", ProductType.SAUDE),
        ("seguro para cnpj novo", ProductType.EMPRESARIAL),
        ("qual o horario de atendimento?", None),
    ])
    def test_product_detection(self, text, product):
        assert detect_product_type(text) == product


class TestAnswerService:
    """Model call bounds."""

    @pytest.mark.asyncio
    async def test_returns_model_answer(self, app_settings):
        service = AnswerService(app_settings, llm=FakeListChatModel(responses=["  Resposta.  "]))
        answer = await service.generate("Marina", [], "qual a carencia?", Intent.QA)
        assert answer == "Resposta."

    @pytest.mark.asyncio
    async def test_empty_answer_falls_back(self, app_settings):
        service = AnswerService(app_settings, llm=FakeListChatModel(responses=[""]))
        answer = await service.generate("Marina", [], "qual a carencia?", Intent.QA)
        assert answer == FALLBACK_REPLY
