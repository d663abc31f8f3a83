"""
Response marker parsing.

The answer model may embed control markers for the system:
- [TRANSFER]: hand the conversation to a human after replying
- [QUOTATION_COMPLETE]{...}: a finished quotation payload as JSON

Markers are always stripped before the text reaches the broker.
"""
import json
import re
from dataclasses import dataclass
from typing import Any, Dict, Optional


TRANSFER_MARKER = "[TRANSFER]"
QUOTATION_PATTERN = re.compile(r"\[QUOTATION_COMPLETE\](\{.*\})", re.DOTALL)


@dataclass
class ParsedResponse:
    clean_text: str
    should_transfer: bool = False
    quotation_data: Optional[Dict[str, Any]] = None


def parse_response_markers(text: Optional[str]) -> ParsedResponse:
    """Split a generated answer into display text and control signals."""
    clean_text = text or ""
    should_transfer = False
    quotation_data = None

    if TRANSFER_MARKER in clean_text:
        should_transfer = True
        clean_text = clean_text.replace(TRANSFER_MARKER, "").strip()

    match = QUOTATION_PATTERN.search(clean_text)
    if match:
        try:
            payload = json.loads(match.group(1))
        except json.JSONDecodeError:
            payload = None
        # Only JSON objects count as a quotation payload
        if isinstance(payload, dict):
            quotation_data = payload
        clean_text = QUOTATION_PATTERN.sub("", clean_text).strip()

    return ParsedResponse(
        clean_text=clean_text,
        should_transfer=should_transfer,
        quotation_data=quotation_data,
    )
