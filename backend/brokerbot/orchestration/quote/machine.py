"""
Quote State Machine

Implements the guided health quote flow using LangGraph.
Each inbound message runs exactly one step node: the graph routes from
START on (status, current_step) and every node ends the run, so a
single message can never advance the form more than one transition.

The machine is pure with respect to storage and transport: it returns
the next state and the reply, and the caller sends and persists.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, Optional, TypedDict

from langgraph.graph import END, START, StateGraph

from brokerbot.core.clock import utcnow
from brokerbot.core.logging import logger
from brokerbot.orchestration.quote.parsing import (
    ConfirmAnswer,
    classify_confirmation,
    field_to_correct,
    resolve_city,
    resolve_plan_type,
)
from brokerbot.orchestration.quote.prompts import (
    STEP_PROMPTS,
    build_quote_message,
    prompt_for,
    retry_message,
)
from brokerbot.orchestration.quote.state import (
    QuoteState,
    QuoteStatus,
    QuoteStep,
    TERMINAL_STATUSES,
    new_quote_state,
)
from brokerbot.services.calculation import PremiumResult, calculate_monthly_premium
from brokerbot.services.llm.extraction_service import FieldExtractionService


class QuoteGraphState(TypedDict, total=False):
    """State flowing through one graph run."""
    quote: Optional[QuoteState]
    text: str
    reply: Optional[str]
    premium: Optional[PremiumResult]


@dataclass
class QuoteTransition:
    """
    Outcome of handling one message.

    `reply` is None only when the stored state could not be dispatched;
    the caller then sends nothing and keeps the stored state.
    """
    state: Optional[QuoteState]
    reply: Optional[str]
    premium: Optional[PremiumResult] = None


# Step -> graph node for the collecting steps
COLLECT_NODES: Dict[QuoteStep, str] = {
    QuoteStep.LIVES: "collect_lives",
    QuoteStep.AGE_RANGE: "collect_age_range",
    QuoteStep.CITY: "collect_city",
    QuoteStep.PLAN_TYPE: "collect_plan_type",
}


def advance(quote: QuoteState, now: datetime) -> QuoteState:
    """
    Move to the next field still missing, or to confirmation when none is.

    After a correction only the cleared field is re-asked.
    """
    missing = quote.missing_fields()
    if missing:
        return quote.model_copy(update={
            "status": QuoteStatus.COLLECTING,
            "current_step": missing[0],
            "retry_count": 0,
            "updated_at": now,
        })
    return quote.model_copy(update={
        "status": QuoteStatus.CONFIRMING,
        "current_step": QuoteStep.CONFIRM,
        "retry_count": 0,
        "updated_at": now,
    })


def record_failure(quote: QuoteState, now: datetime) -> QuoteState:
    return quote.model_copy(update={
        "retry_count": quote.retry_count + 1,
        "updated_at": now,
    })


class QuoteStateMachine:
    """
    Quote State Machine controller.

    Wraps the compiled LangGraph dispatch graph and exposes a single
    `handle` entry point per inbound message.
    """

    def __init__(self, extractor: FieldExtractionService):
        self.extractor = extractor
        self.graph = self._build_graph()

    def _build_graph(self):
        workflow = StateGraph(QuoteGraphState)

        nodes: Dict[str, Callable] = {
            "start_quote": self.start_quote,
            "collect_lives": self.collect_lives,
            "collect_age_range": self.collect_age_range,
            "collect_city": self.collect_city,
            "collect_plan_type": self.collect_plan_type,
            "confirm": self.confirm,
            "unexpected": self.unexpected,
        }
        for name, node in nodes.items():
            workflow.add_node(name, node)
            workflow.add_edge(name, END)

        workflow.add_conditional_edges(
            START,
            self.route,
            {name: name for name in nodes},
        )

        return workflow.compile()

    async def handle(self, existing: Optional[QuoteState], text: str) -> QuoteTransition:
        """
        Handle one inbound message for the quote flow.

        Args:
            existing: Validated stored state, or None
            text: Inbound message text

        Returns:
            QuoteTransition with the state to persist and the reply to send
        """
        if existing is None:
            logger.info("Quote flow step=new status=new")
        else:
            logger.info(f"Quote flow step={existing.current_step.value} status={existing.status.value}")
        result = await self.graph.ainvoke({
            "quote": existing,
            "text": text or "",
            "reply": None,
            "premium": None,
        })
        return QuoteTransition(
            state=result.get("quote"),
            reply=result.get("reply"),
            premium=result.get("premium"),
        )

    # --- routing ---

    def route(self, state: QuoteGraphState) -> str:
        quote = state.get("quote")

        if quote is None or quote.status in TERMINAL_STATUSES:
            return "start_quote"

        if quote.status == QuoteStatus.COLLECTING and quote.current_step in COLLECT_NODES:
            return COLLECT_NODES[quote.current_step]

        if quote.status == QuoteStatus.CONFIRMING and quote.current_step == QuoteStep.CONFIRM:
            return "confirm"

        return "unexpected"

    # --- nodes ---

    async def start_quote(self, state: QuoteGraphState) -> Dict[str, Any]:
        return {
            "quote": new_quote_state(),
            "reply": STEP_PROMPTS[QuoteStep.LIVES],
        }

    async def collect_lives(self, state: QuoteGraphState) -> Dict[str, Any]:
        lives = await self.extractor.extract_lives(state["text"])
        return self._collected(state["quote"], "lives", lives)

    async def collect_age_range(self, state: QuoteGraphState) -> Dict[str, Any]:
        age_range = await self.extractor.extract_age_range(state["text"])
        return self._collected(state["quote"], "age_range", age_range)

    async def collect_city(self, state: QuoteGraphState) -> Dict[str, Any]:
        return self._collected(state["quote"], "city", resolve_city(state["text"]))

    async def collect_plan_type(self, state: QuoteGraphState) -> Dict[str, Any]:
        return self._collected(state["quote"], "plan_type", resolve_plan_type(state["text"]))

    async def confirm(self, state: QuoteGraphState) -> Dict[str, Any]:
        quote: QuoteState = state["quote"]
        text = state["text"]
        now = utcnow()
        answer = classify_confirmation(text)

        if answer == ConfirmAnswer.APPROVE:
            premium = calculate_monthly_premium(
                quote.lives, quote.age_range, quote.plan_type.value
            )
            completed = quote.model_copy(update={
                "status": QuoteStatus.COMPLETE,
                "current_step": QuoteStep.DONE,
                "retry_count": 0,
                "updated_at": now,
            })
            return {
                "quote": completed,
                "reply": build_quote_message(completed, premium),
                "premium": premium,
            }

        if answer == ConfirmAnswer.REJECT:
            field = field_to_correct(text)
            if field is None:
                # Full restart, keeping when the quote was first requested
                restarted = new_quote_state(now=now, started_at=quote.started_at)
                return {"quote": restarted, "reply": prompt_for(restarted)}

            corrected = advance(quote.model_copy(update={field.value: None}), now)
            return {"quote": corrected, "reply": prompt_for(corrected)}

        failed = record_failure(quote, now)
        return {
            "quote": failed,
            "reply": retry_message(QuoteStep.CONFIRM, failed.retry_count),
        }

    async def unexpected(self, state: QuoteGraphState) -> Dict[str, Any]:
        quote = state.get("quote")
        logger.error(
            f"Unexpected quote state status={quote.status.value} step={quote.current_step.value}, dropping message"
        )
        return {"reply": None}

    def _collected(self, quote: QuoteState, field: str, value: Any) -> Dict[str, Any]:
        now = utcnow()
        if value is None:
            failed = record_failure(quote, now)
            return {
                "quote": failed,
                "reply": retry_message(quote.current_step, failed.retry_count),
            }

        advanced = advance(quote.model_copy(update={field: value}), now)
        return {"quote": advanced, "reply": prompt_for(advanced)}
