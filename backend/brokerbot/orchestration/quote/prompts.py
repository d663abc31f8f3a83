"""
Quote flow messages (WhatsApp markup: *bold*, _italic_).
"""
from typing import Dict, List

from brokerbot.orchestration.quote.parsing import ALLOWED_CITIES
from brokerbot.orchestration.quote.state import PlanType, QuoteState, QuoteStep
from brokerbot.services.calculation import HEALTH_PLAN, PremiumResult


CITY_LIST = "\n".join(f"• {city}" for city in ALLOWED_CITIES)

STEP_PROMPTS: Dict[QuoteStep, str] = {
    QuoteStep.LIVES: (
        "*Cotacao de Plano de Saude*\n\n"
        "Vamos montar sua cotacao em poucos passos.\n\n"
        "Primeiro, *quantas vidas* (pessoas) entram no plano?\n\n"
        "_(Ex: 1, 3, 10)_"
    ),
    QuoteStep.AGE_RANGE: (
        "Perfeito! Agora me diga a *faixa etaria* dos beneficiarios.\n\n"
        "_(Ex: 20-30, 35-45, 50-60)_"
    ),
    QuoteStep.CITY: (
        "Otimo! Qual a *cidade* da cotacao?\n\n"
        f"Cidades disponiveis:\n{CITY_LIST}"
    ),
    QuoteStep.PLAN_TYPE: (
        "Entendido! Qual o *tipo de acomodacao*?\n\n"
        "1 - *Enfermaria*\n"
        "2 - *Apartamento*\n\n"
        "_(Responda com 1, 2 ou o nome)_"
    ),
}

# Three tiers per step: re-ask, strict format hint, offer a consultant
RETRY_MESSAGES: Dict[QuoteStep, List[str]] = {
    QuoteStep.LIVES: [
        "Hmm, nao entendi bem. Quantas pessoas entram no plano? _(Ex: 2)_",
        "Me diga somente o numero de vidas, por exemplo: *4*",
        "Nao consegui identificar o numero de vidas. Quer pular essa pergunta e falar com um consultor?",
    ],
    QuoteStep.AGE_RANGE: [
        "Nao entendi a faixa etaria. Qual a faixa de idade dos beneficiarios? _(Ex: 25-35)_",
        "Me diga somente a faixa no formato *XX-YY*, por exemplo: *30-40*",
        "Tive dificuldade em identificar a faixa etaria. Quer pular e falar com um consultor?",
    ],
    QuoteStep.CITY: [
        f"Essa cidade nao esta disponivel para cotacao. As opcoes sao:\n{CITY_LIST}",
        "Por favor, escolha uma das cidades da lista. Qual delas fica mais perto?",
        "Nao consegui identificar a cidade. Quer pular e falar com um consultor?",
    ],
    QuoteStep.PLAN_TYPE: [
        "Nao entendi a acomodacao. Responda *1* para Enfermaria ou *2* para Apartamento.",
        "Escolha somente *1* (Enfermaria) ou *2* (Apartamento).",
        "Nao consegui identificar o tipo de plano. Quer pular e falar com um consultor?",
    ],
    QuoteStep.CONFIRM: [
        "Nao entendi sua resposta. Responda *sim* para confirmar ou *nao* para corrigir os dados.",
        "Por favor, responda somente *sim* ou *nao*.",
        "Tive dificuldade em entender sua resposta. Quer falar com um consultor?",
    ],
}

MAX_RETRY_TIER = 3


def retry_message(step: QuoteStep, attempt: int) -> str:
    """Escalating retry text; attempts past the last tier reuse it."""
    messages = RETRY_MESSAGES[step]
    tier = max(1, min(attempt, MAX_RETRY_TIER))
    return messages[tier - 1]


def plan_type_label(plan_type: PlanType) -> str:
    return "Apartamento" if plan_type == PlanType.APARTAMENTO else "Enfermaria"


def build_confirmation_message(quote: QuoteState) -> str:
    return (
        "Vou confirmar os dados da cotacao:\n\n"
        f"*Vidas:* {quote.lives}\n"
        f"*Faixa etaria:* {quote.age_range} anos\n"
        f"*Cidade:* {quote.city}\n"
        f"*Acomodacao:* {plan_type_label(quote.plan_type)}\n\n"
        "Esta tudo correto? Responda *sim* para gerar a cotacao ou *nao* para corrigir."
    )


def build_quote_message(quote: QuoteState, premium: PremiumResult) -> str:
    coverage_lines = "\n".join(f"- {coverage}" for coverage in HEALTH_PLAN.coverages)
    waiting_lines = "\n".join(f"- {days}: {what}" for days, what in HEALTH_PLAN.waiting_periods)
    plan_label = plan_type_label(quote.plan_type)

    return (
        "*Plano de Saude - Cotacao*\n\n"
        f"*Operadora:* {HEALTH_PLAN.operator}\n"
        f"*Plano:* {HEALTH_PLAN.plan_name}\n"
        f"*Acomodacao:* {plan_label}\n\n"
        f"*Coberturas incluidas:*\n{coverage_lines}\n\n"
        f"*Carencias:*\n{waiting_lines}\n\n"
        f"*Valor estimado:* R$ {premium.monthly_total}/mes\n"
        f"_({quote.lives} vida(s) | faixa {quote.age_range} anos | {quote.city} | {plan_label})_\n\n"
        "---\n"
        "Quer cotar outro plano? Ou prefere falar com um consultor?"
    )


def prompt_for(quote: QuoteState) -> str:
    """Prompt for the quote's current step."""
    if quote.current_step == QuoteStep.CONFIRM:
        return build_confirmation_message(quote)
    return STEP_PROMPTS[quote.current_step]
