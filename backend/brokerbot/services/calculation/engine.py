"""
Deterministic Calculation Engine
All pricing calculations are handled here, NOT by LLM.
"""
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, List, Optional, Tuple


@dataclass(frozen=True)
class HealthPlan:
    """Static rate table for the demo health plan."""
    operator: str
    plan_name: str
    coverages: List[str]
    waiting_periods: List[Tuple[str, str]]
    base_monthly_price: Decimal
    apartamento_multiplier: Decimal
    # (band label, upper bound of the band midpoint, multiplier); None means open-ended
    age_bands: List[Tuple[str, Optional[int], Decimal]] = field(default_factory=list)


HEALTH_PLAN = HealthPlan(
    operator="Saude Segura",
    plan_name="Essencial Plus",
    coverages=[
        "Consultas medicas ilimitadas",
        "Internacao hospitalar",
        "Exames laboratoriais e de imagem",
        "Pronto-socorro 24h",
        "Cirurgias eletivas e de urgencia",
        "Quimioterapia e radioterapia",
    ],
    waiting_periods=[
        ("30 dias", "urgencias e emergencias"),
        ("180 dias", "cirurgias eletivas"),
        ("300 dias", "partos"),
    ],
    base_monthly_price=Decimal("280"),
    apartamento_multiplier=Decimal("1.4"),
    age_bands=[
        ("0-18", 18, Decimal("0.7")),
        ("19-23", 23, Decimal("0.8")),
        ("24-28", 28, Decimal("0.9")),
        ("29-33", 33, Decimal("1.0")),
        ("34-38", 38, Decimal("1.1")),
        ("39-43", 43, Decimal("1.2")),
        ("44-48", 48, Decimal("1.4")),
        ("49-53", 53, Decimal("1.6")),
        ("54-58", 58, Decimal("1.9")),
        ("59+", None, Decimal("2.3")),
    ],
)


@dataclass
class PremiumResult:
    """Result of a monthly premium calculation."""
    monthly_total: Decimal
    lives: int
    age_range: str
    age_band: str
    age_multiplier: Decimal
    tier_multiplier: Decimal
    plan_type: str
    breakdown: Dict[str, float]


def round_whole_currency(amount: Decimal) -> Decimal:
    """Round to whole reais, halves away from zero."""
    return amount.quantize(Decimal("1"), rounding=ROUND_HALF_UP)


def parse_age_range(age_range: str) -> Tuple[int, int]:
    """
    Parse a canonical "min-max" age range.

    Raises:
        ValueError: If the range is malformed or not ordered
    """
    try:
        low_text, high_text = age_range.split("-")
        low, high = int(low_text), int(high_text)
    except (AttributeError, ValueError):
        raise ValueError(f"Invalid age range: {age_range!r}")
    if not 0 <= low < high <= 120:
        raise ValueError(f"Invalid age range: {age_range!r}")
    return low, high


def find_age_band(age_range: str, plan: HealthPlan = HEALTH_PLAN) -> Tuple[str, Decimal]:
    """
    Select the age band for a range by bucketing its midpoint.

    Returns:
        (band label, multiplier)
    """
    low, high = parse_age_range(age_range)
    midpoint = Decimal(low + high) / 2

    for label, upper, multiplier in plan.age_bands:
        if upper is None or midpoint <= upper:
            return label, multiplier

    label, _, multiplier = plan.age_bands[-1]
    return label, multiplier


def calculate_monthly_premium(
    lives: int,
    age_range: str,
    plan_type: str,
    plan: HealthPlan = HEALTH_PLAN,
) -> PremiumResult:
    """
    Calculate the estimated monthly premium for a health plan quote.

    Deterministic formula:
    total = round(base_price x lives x age_multiplier x tier_multiplier)

    The tier multiplier only applies to "apartamento" accommodation.

    Args:
        lives: Number of covered people (1-100)
        age_range: Canonical "min-max" range
        plan_type: "enfermaria" or "apartamento"
        plan: Rate table to price against

    Returns:
        PremiumResult with breakdown

    Raises:
        ValueError: If any input is outside the accepted domain
    """
    if lives < 1 or lives > 100:
        raise ValueError("lives must be between 1 and 100")
    if plan_type not in ("enfermaria", "apartamento"):
        raise ValueError(f"Unknown plan type: {plan_type!r}")

    age_band, age_multiplier = find_age_band(age_range, plan)
    tier_multiplier = plan.apartamento_multiplier if plan_type == "apartamento" else Decimal("1")

    raw_total = plan.base_monthly_price * lives * age_multiplier * tier_multiplier
    monthly_total = round_whole_currency(raw_total)

    return PremiumResult(
        monthly_total=monthly_total,
        lives=lives,
        age_range=age_range,
        age_band=age_band,
        age_multiplier=age_multiplier,
        tier_multiplier=tier_multiplier,
        plan_type=plan_type,
        breakdown={
            "base_monthly_price": float(plan.base_monthly_price),
            "lives": lives,
            "age_multiplier": float(age_multiplier),
            "tier_multiplier": float(tier_multiplier),
            "raw_total": float(raw_total),
            "monthly_total": float(monthly_total),
        },
    )
