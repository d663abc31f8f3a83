"""
Quote State Definition

Defines the health quote form state embedded in the conversation row.
The stored payload is tagged with a `kind` and validated on every read:
anything that fails validation is treated as "no quote in progress".
"""
from datetime import datetime
from enum import Enum
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, Field, ValidationError, model_validator

from brokerbot.core.clock import utcnow
from brokerbot.core.logging import logger


class QuoteStatus(str, Enum):
    COLLECTING = "collecting"
    CONFIRMING = "confirming"
    COMPLETE = "complete"
    ABANDONED = "abandoned"


class QuoteStep(str, Enum):
    LIVES = "lives"
    AGE_RANGE = "age_range"
    CITY = "city"
    PLAN_TYPE = "plan_type"
    CONFIRM = "confirm"
    DONE = "done"


class PlanType(str, Enum):
    ENFERMARIA = "enfermaria"
    APARTAMENTO = "apartamento"


# Collection order of the form fields
FIELD_STEPS: List[QuoteStep] = [
    QuoteStep.LIVES,
    QuoteStep.AGE_RANGE,
    QuoteStep.CITY,
    QuoteStep.PLAN_TYPE,
]

ACTIVE_STATUSES = (QuoteStatus.COLLECTING, QuoteStatus.CONFIRMING)
TERMINAL_STATUSES = (QuoteStatus.COMPLETE, QuoteStatus.ABANDONED)


class QuoteState(BaseModel):
    """Health quote form state."""
    kind: Literal["health_quote"] = "health_quote"
    status: QuoteStatus
    current_step: QuoteStep
    retry_count: int = Field(default=0, ge=0)

    lives: Optional[int] = Field(default=None, ge=1, le=100)
    age_range: Optional[str] = Field(default=None, pattern=r"^\d{1,3}-\d{1,3}$")
    city: Optional[str] = None
    plan_type: Optional[PlanType] = None

    started_at: datetime
    updated_at: datetime

    @model_validator(mode="after")
    def check_consistency(self) -> "QuoteState":
        if self.status == QuoteStatus.CONFIRMING and self.missing_fields():
            raise ValueError("confirming quote must have every field collected")
        return self

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES

    def field_value(self, step: QuoteStep) -> Any:
        return getattr(self, step.value)

    def missing_fields(self) -> List[QuoteStep]:
        """Form fields still without a value, in collection order."""
        return [step for step in FIELD_STEPS if self.field_value(step) is None]

    def to_payload(self) -> dict:
        """JSON-safe dict for the conversation row."""
        return self.model_dump(mode="json")


def new_quote_state(
    now: Optional[datetime] = None,
    started_at: Optional[datetime] = None,
) -> QuoteState:
    """Fresh form at the first step."""
    now = now or utcnow()
    return QuoteState(
        status=QuoteStatus.COLLECTING,
        current_step=QuoteStep.LIVES,
        retry_count=0,
        started_at=started_at or now,
        updated_at=now,
    )


def parse_quote_state(payload: Any) -> Optional[QuoteState]:
    """
    Validate a stored payload.

    Returns None for absent, foreign or corrupt payloads so the flow
    restarts instead of trusting partial data.
    """
    if payload is None:
        return None
    try:
        return QuoteState.model_validate(payload)
    except ValidationError as e:
        logger.warning(f"Discarding invalid quote state: {e.error_count()} validation error(s)")
        return None
