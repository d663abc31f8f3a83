"""
Bounded LLM Services for the broker assistant

These services use LLMs for specific, constrained tasks:
- Answer generation (timeout-bounded, fixed fallback reply)
- Field extraction (zero temperature, validated output)

Response markers emitted by the answer model are parsed deterministically.
"""
from brokerbot.services.llm.answer_service import (
    AnswerService,
    FALLBACK_REPLY,
    get_answer_service,
)
from brokerbot.services.llm.extraction_service import (
    FieldExtractionService,
    get_extraction_service,
)
from brokerbot.services.llm.response_parser import ParsedResponse, parse_response_markers

__all__ = [
    "AnswerService",
    "FALLBACK_REPLY",
    "get_answer_service",
    "FieldExtractionService",
    "get_extraction_service",
    "ParsedResponse",
    "parse_response_markers",
]
