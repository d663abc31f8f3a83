"""
Services package
"""
from brokerbot.services.calculation import calculate_monthly_premium
from brokerbot.services.intent import Intent, classify_intent

__all__ = [
    "calculate_monthly_premium",
    "Intent",
    "classify_intent",
]
