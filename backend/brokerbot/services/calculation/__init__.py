"""
Calculation services package
"""
from brokerbot.services.calculation.engine import (
    calculate_monthly_premium,
    find_age_band,
    PremiumResult,
    HEALTH_PLAN,
)

__all__ = [
    "calculate_monthly_premium",
    "find_age_band",
    "PremiumResult",
    "HEALTH_PLAN",
]
