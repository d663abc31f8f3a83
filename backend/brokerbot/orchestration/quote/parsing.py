"""
Deterministic answer parsing for the quote form.

City and plan type are resolved from static tables only; confirmation
answers are keyword-matched on accent-stripped, lowercased text.
"""
import re
import unicodedata
from enum import Enum
from typing import Dict, List, Optional, Tuple

from brokerbot.orchestration.quote.state import PlanType, QuoteStep


ALLOWED_CITIES: List[str] = [
    "Sao Paulo",
    "Rio de Janeiro",
    "Belo Horizonte",
    "Curitiba",
    "Porto Alegre",
]

# Normalized alias -> canonical city
CITY_ALIASES: Dict[str, str] = {
    "sp": "Sao Paulo",
    "sao paulo": "Sao Paulo",
    "sampa": "Sao Paulo",
    "rio": "Rio de Janeiro",
    "rj": "Rio de Janeiro",
    "rio de janeiro": "Rio de Janeiro",
    "bh": "Belo Horizonte",
    "belo horizonte": "Belo Horizonte",
    "cwb": "Curitiba",
    "curitiba": "Curitiba",
    "poa": "Porto Alegre",
    "porto alegre": "Porto Alegre",
}

PLAN_TYPE_ANSWERS: Dict[str, PlanType] = {
    "1": PlanType.ENFERMARIA,
    "enfermaria": PlanType.ENFERMARIA,
    "2": PlanType.APARTAMENTO,
    "apartamento": PlanType.APARTAMENTO,
    "apto": PlanType.APARTAMENTO,
}

APPROVAL_KEYWORDS = ["sim", "correto", "ok", "yes", "isso", "certo", "1", "confirmar", "confirma"]
REJECTION_KEYWORDS = ["nao", "errado", "corrigir", "erro", "2", "mudar", "alterar"]

# Checked in order; the first field mentioned is the one re-collected
FIELD_KEYWORDS: List[Tuple[QuoteStep, List[str]]] = [
    (QuoteStep.LIVES, ["vidas", "vida", "quantidade"]),
    (QuoteStep.AGE_RANGE, ["idade", "faixa", "etaria"]),
    (QuoteStep.CITY, ["cidade", "local", "regiao"]),
    (QuoteStep.PLAN_TYPE, ["acomodacao", "plano", "tipo", "apartamento", "enfermaria"]),
]


class ConfirmAnswer(str, Enum):
    APPROVE = "approve"
    REJECT = "reject"
    UNCLEAR = "unclear"


def normalize_text(text: Optional[str]) -> str:
    """Lowercase, trim and strip diacritics."""
    decomposed = unicodedata.normalize("NFD", (text or "").lower().strip())
    return "".join(ch for ch in decomposed if unicodedata.category(ch) != "Mn")


def resolve_city(text: Optional[str]) -> Optional[str]:
    return CITY_ALIASES.get(normalize_text(text))


def resolve_plan_type(text: Optional[str]) -> Optional[PlanType]:
    return PLAN_TYPE_ANSWERS.get(normalize_text(text))


def classify_confirmation(text: Optional[str]) -> ConfirmAnswer:
    """
    Classify an answer to the confirmation summary.

    Rejection wins when both match, so "nao esta correto" is a rejection.
    Naming a field without a yes/no ("a idade") also counts as a rejection.
    """
    normalized = normalize_text(text)
    if any(keyword in normalized for keyword in REJECTION_KEYWORDS):
        return ConfirmAnswer.REJECT
    if any(keyword in normalized for keyword in APPROVAL_KEYWORDS):
        return ConfirmAnswer.APPROVE
    if field_to_correct(normalized) is not None:
        return ConfirmAnswer.REJECT
    return ConfirmAnswer.UNCLEAR


def field_to_correct(text: Optional[str]) -> Optional[QuoteStep]:
    """Which single field a rejection mentions, or None when ambiguous."""
    normalized = normalize_text(text)
    for step, keywords in FIELD_KEYWORDS:
        # Keywords anchor at a word start: "idades" matches, "cidade" does not
        if re.search(r"\b(?:" + "|".join(keywords) + ")", normalized):
            return step
    return None
