"""
Health quote flow - guided form collection and pricing
"""
from brokerbot.orchestration.quote.machine import QuoteStateMachine, QuoteTransition
from brokerbot.orchestration.quote.state import (
    PlanType,
    QuoteState,
    QuoteStatus,
    QuoteStep,
    new_quote_state,
    parse_quote_state,
)

__all__ = [
    "QuoteStateMachine",
    "QuoteTransition",
    "PlanType",
    "QuoteState",
    "QuoteStatus",
    "QuoteStep",
    "new_quote_state",
    "parse_quote_state",
]
