"""
Answer Generation Service

Free-form answers to broker questions about insurance products.
This is an open AI task, bounded by:
- a timeout on every call
- a fixed fallback reply on any failure or empty output
- curated product facts injected into the system prompt
"""
import asyncio
from typing import List, Optional, Sequence

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage

from brokerbot.core.config import Settings, get_settings
from brokerbot.core.langfuse_handler import llm_run_config
from brokerbot.core.logging import logger
from brokerbot.db.models import Message, MessageRole
from brokerbot.services.intent import Intent
from brokerbot.services.knowledge import InsuranceFacts


FALLBACK_REPLY = (
    "Desculpe, ocorreu um problema ao processar sua mensagem. "
    "Por favor, tente novamente em alguns instantes."
)

INTENT_CONTEXT = {
    Intent.QUOTE: "O corretor quer uma cotacao. Explique que a cotacao guiada comeca quando ele enviar *2*.",
    Intent.HANDOFF: "O corretor quer falar com uma pessoa. Confirme a transferencia e inclua [TRANSFER] na resposta.",
    Intent.GREETING: "O corretor esta iniciando a conversa. Cumprimente e pergunte como pode ajudar.",
}
DEFAULT_INTENT_CONTEXT = "Responda a duvida do corretor com base nos fatos de seguros disponiveis."

SYSTEM_PROMPT = """Voce e o assistente virtual da assessoria de seguros. Voce ajuda corretores com duvidas sobre produtos, coberturas, exclusoes e regras de aceitacao.

Corretor atual: {contact_name}
{intent_context}

Regras:
- Responda sempre em portugues do Brasil, em tom profissional e objetivo
- Nunca invente valores em R$, coberturas ou regras de aceitacao que nao estejam nos fatos abaixo
- Se nao souber, diga: "Nao tenho essa informacao no momento. Posso transferir para um especialista da assessoria, deseja?"
- Se o corretor aceitar a transferencia ou pedir um humano, termine a resposta com [TRANSFER]
- Recuse com educacao assuntos fora de seguros
- Nunca se apresente como humano
{facts_section}"""


def build_system_prompt(
    contact_name: str,
    intent: Intent,
    facts: Optional[InsuranceFacts] = None,
) -> str:
    """Build the answer system prompt. Routing labels are never shown verbatim."""
    facts_section = ""
    if facts is not None:
        facts_section = "\nFatos de referencia:\n" + facts.to_prompt()

    return SYSTEM_PROMPT.format(
        contact_name=contact_name,
        intent_context=INTENT_CONTEXT.get(intent, DEFAULT_INTENT_CONTEXT),
        facts_section=facts_section,
    )


def history_to_messages(history: Sequence[Message]) -> List[BaseMessage]:
    """Convert stored transcript entries into chat messages."""
    messages: List[BaseMessage] = []
    for entry in history:
        if entry.role == MessageRole.ASSISTANT:
            messages.append(AIMessage(content=entry.content))
        else:
            messages.append(HumanMessage(content=entry.content))
    return messages


class AnswerService:
    """Generates conversational answers through the configured chat model."""

    def __init__(
        self,
        app_settings: Optional[Settings] = None,
        llm: Optional[BaseChatModel] = None,
    ):
        self.settings = app_settings or get_settings()
        self._llm = llm

    @property
    def llm(self) -> BaseChatModel:
        if self._llm is None:
            from brokerbot.orchestration.routing import get_llm
            self._llm = get_llm(self.settings)
        return self._llm

    async def generate(
        self,
        contact_name: str,
        history: Sequence[Message],
        current_message: str,
        intent: Intent,
        facts: Optional[InsuranceFacts] = None,
    ) -> str:
        """
        Generate an answer for the current message.

        Args:
            contact_name: Broker display name
            history: Prior transcript, oldest first, WITHOUT the current message
            current_message: The inbound text being answered
            intent: Routing intent, used to adjust the instructions
            facts: Product facts to ground the answer

        Returns:
            The model's answer, or the fixed fallback reply
        """
        messages: List[BaseMessage] = [
            SystemMessage(content=build_system_prompt(contact_name, intent, facts)),
            *history_to_messages(history),
            HumanMessage(content=current_message),
        ]

        try:
            response = await asyncio.wait_for(
                self.llm.ainvoke(messages, config=llm_run_config("broker_answer")),
                timeout=self.settings.LLM_TIMEOUT_SECONDS,
            )
        except asyncio.TimeoutError:
            logger.warning(f"Answer generation timed out after {self.settings.LLM_TIMEOUT_SECONDS}s")
            return FALLBACK_REPLY
        except Exception as e:
            logger.warning(f"LLM invocation failed in generate: {e}")
            return FALLBACK_REPLY

        content = response.content if isinstance(response.content, str) else ""
        if not content.strip():
            logger.warning("LLM returned an empty answer, using fallback")
            return FALLBACK_REPLY

        return content.strip()


# Singleton instance
_answer_service: Optional[AnswerService] = None


def get_answer_service() -> AnswerService:
    """Get or create answer service singleton."""
    global _answer_service
    if _answer_service is None:
        _answer_service = AnswerService()
    return _answer_service
