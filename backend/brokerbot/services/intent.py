"""
Intent Detection Service

Classifies a broker's message into one of the routing intents.
Pure keyword matching - no LLM call, deterministic and case-insensitive.

Valid intents:
- greeting: conversation opener ("oi", "bom dia")
- qa: question about insurance products, answered by the AI
- quote: broker wants a health plan quote
- handoff: broker wants to talk to a human specialist
- unknown: too short to decide
"""
from enum import Enum
from typing import Dict, List, Optional


class Intent(str, Enum):
    """Routing intents for an inbound message."""
    GREETING = "greeting"
    QA = "qa"
    QUOTE = "quote"
    HANDOFF = "handoff"
    UNKNOWN = "unknown"


class IntentService:
    """
    Service for classifying broker intent.

    Rules are evaluated in fixed precedence: standalone menu digits, handoff
    keywords, quote keywords, greeting prefixes, then message length.
    Handoff is checked before quote because some handoff phrases mention
    insurance words.
    """

    # Menu shortcuts only match when the whole message is the digit
    MENU_SHORTCUTS: Dict[str, Intent] = {
        "1": Intent.QA,
        "2": Intent.QUOTE,
        "3": Intent.HANDOFF,
    }

    HANDOFF_KEYWORDS: List[str] = [
        "/humano", "falar com humano", "falar com uma pessoa", "atendente",
        "pessoa real", "quero falar com", "preciso de um humano",
        "falar com alguem", "falar com alguém", "especialista", "consultor",
        "me transfere", "transferir",
    ]

    QUOTE_KEYWORDS: List[str] = [
        "cotar", "cotação", "cotacao", "quero cotar", "fazer uma cotação",
        "preciso de uma cotação", "preciso de cotacao", "cotação de",
        "cotar um", "cotar uma", "orçamento", "orcamento",
    ]

    GREETING_KEYWORDS: List[str] = [
        "oi", "olá", "ola", "bom dia", "boa tarde", "boa noite",
        "hey", "hello", "tudo bem", "tudo bom", "e aí", "e ai",
        "opa", "fala", "bão",
    ]

    # Anything longer than this is worth a Q&A attempt
    SHORT_MESSAGE_THRESHOLD = 3

    def classify(self, text: Optional[str]) -> Intent:
        """
        Classify a message into an intent.

        Args:
            text: Raw inbound text

        Returns:
            The routing intent
        """
        text_lower = (text or "").lower().strip()

        shortcut = self.MENU_SHORTCUTS.get(text_lower)
        if shortcut is not None:
            return shortcut

        if self._contains_any(text_lower, self.HANDOFF_KEYWORDS):
            return Intent.HANDOFF

        if self._contains_any(text_lower, self.QUOTE_KEYWORDS):
            return Intent.QUOTE

        if any(text_lower.startswith(keyword) for keyword in self.GREETING_KEYWORDS):
            return Intent.GREETING

        if len(text_lower) > self.SHORT_MESSAGE_THRESHOLD:
            return Intent.QA

        return Intent.UNKNOWN

    def is_menu_shortcut(self, text: Optional[str]) -> bool:
        """True when the whole trimmed message is one of the menu digits."""
        return (text or "").strip() in self.MENU_SHORTCUTS

    def _contains_any(self, text: str, keywords: List[str]) -> bool:
        """Check if text contains any of the keywords."""
        return any(keyword in text for keyword in keywords)


# Singleton instance
_intent_service: Optional[IntentService] = None


def get_intent_service() -> IntentService:
    """Get or create intent service singleton."""
    global _intent_service
    if _intent_service is None:
        _intent_service = IntentService()
    return _intent_service


def classify_intent(text: Optional[str]) -> Intent:
    """Classify text with the shared intent service."""
    return get_intent_service().classify(text)
