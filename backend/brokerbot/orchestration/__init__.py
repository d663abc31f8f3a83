"""
Orchestration package - conversation routing and the LangGraph quote flow
"""
from brokerbot.orchestration.routing import get_llm, LLMProvider
from brokerbot.orchestration.quote import (
    QuoteStateMachine,
    QuoteTransition,
    QuoteState,
    QuoteStatus,
    QuoteStep,
    parse_quote_state,
)

__all__ = [
    # Routing
    "get_llm",
    "LLMProvider",
    # Quote flow
    "QuoteStateMachine",
    "QuoteTransition",
    "QuoteState",
    "QuoteStatus",
    "QuoteStep",
    "parse_quote_state",
]
