"""
Field Extraction Service

Extracts quote form fields from free text.
This is a bounded AI task - output is validated against the same rules as
the deterministic path, and anything that does not parse is discarded.

Extractable fields:
- Number of lives (integer 1-100)
- Age range ("min-max", 0 <= min < max <= 120)

Regex patterns run first; the model is only called when they miss.
"""
import asyncio
import re
from typing import List, Optional, Pattern

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import HumanMessage, SystemMessage

from brokerbot.core.config import Settings, get_settings
from brokerbot.core.langfuse_handler import llm_run_config
from brokerbot.core.logging import logger


LIVES_PROMPT = (
    "Voce extrai o numero de vidas (pessoas) de um texto em portugues. "
    "Responda APENAS com um numero inteiro ou NENHUM."
)

AGE_RANGE_PROMPT = (
    "Voce extrai a faixa etaria de um texto em portugues. "
    'Responda APENAS no formato "XX-YY" (ex: "25-35") ou NENHUMA.'
)


class FieldExtractionService:
    """
    Service for extracting quote fields from broker messages.

    Uses regex patterns for the common formats and falls back to a
    zero-temperature model call with a tiny output budget.
    """

    MIN_LIVES = 1
    MAX_LIVES = 100
    MAX_AGE = 120

    LIVES_EXACT = re.compile(r"^\s*(\d+)\s*$")
    LIVES_INLINE = re.compile(r"\b(\d{1,3})\b")

    AGE_RANGE_PATTERNS: List[Pattern] = [
        re.compile(r"\b(\d{1,3})\s*[-–]\s*(\d{1,3})\b"),       # "20-30"
        re.compile(r"\b(\d{1,3})\s+a\s+(\d{1,3})\b", re.I),    # "20 a 30"
        re.compile(r"entre\s+(\d{1,3})\s+e\s+(\d{1,3})\b", re.I),
        re.compile(r"de\s+(\d{1,3})\s+a\s+(\d{1,3})\b", re.I),
    ]
    AGE_RANGE_ANSWER = re.compile(r"^(\d{1,3})\s*-\s*(\d{1,3})$")

    def __init__(
        self,
        app_settings: Optional[Settings] = None,
        llm: Optional[BaseChatModel] = None,
    ):
        self.settings = app_settings or get_settings()
        self._llm = llm

    @property
    def llm(self) -> BaseChatModel:
        if self._llm is None:
            from brokerbot.orchestration.routing import get_llm
            self._llm = get_llm(
                self.settings,
                temperature=0,
                max_tokens=self.settings.EXTRACTION_MAX_TOKENS,
            )
        return self._llm

    # --- lives ---

    def parse_lives(self, text: str) -> Optional[int]:
        """Deterministic lives extraction, no model call."""
        exact = self.LIVES_EXACT.match(text or "")
        if exact:
            return self._valid_lives(int(exact.group(1)))

        inline = self.LIVES_INLINE.search(text or "")
        if inline:
            return self._valid_lives(int(inline.group(1)))

        return None

    async def extract_lives(self, text: str) -> Optional[int]:
        """
        Extract the number of lives.

        Returns:
            Integer within 1-100, or None when nothing valid was found
        """
        if self.LIVES_EXACT.match(text or ""):
            # A bare number is authoritative even when out of range
            return self.parse_lives(text)

        lives = self.parse_lives(text)
        if lives is not None:
            return lives

        raw = await self._ask(LIVES_PROMPT, text, "extract_lives")
        if not raw or raw.upper().startswith("NENHUM"):
            return None
        try:
            return self._valid_lives(int(raw))
        except ValueError:
            logger.debug(f"Discarded lives extraction output: {raw!r}")
            return None

    # --- age range ---

    def parse_age_range(self, text: str) -> Optional[str]:
        """Deterministic age range extraction, no model call."""
        for pattern in self.AGE_RANGE_PATTERNS:
            match = pattern.search(text or "")
            if match:
                age_range = self._valid_age_range(int(match.group(1)), int(match.group(2)))
                if age_range:
                    return age_range
        return None

    async def extract_age_range(self, text: str) -> Optional[str]:
        """
        Extract an age range.

        Returns:
            Canonical "min-max" string, or None when nothing valid was found
        """
        age_range = self.parse_age_range(text)
        if age_range:
            return age_range

        raw = await self._ask(AGE_RANGE_PROMPT, text, "extract_age_range")
        if not raw or raw.upper().startswith("NENHUM"):
            return None
        match = self.AGE_RANGE_ANSWER.match(raw.strip('"\' '))
        if not match:
            logger.debug(f"Discarded age range extraction output: {raw!r}")
            return None
        return self._valid_age_range(int(match.group(1)), int(match.group(2)))

    # --- helpers ---

    def _valid_lives(self, value: int) -> Optional[int]:
        if self.MIN_LIVES <= value <= self.MAX_LIVES:
            return value
        return None

    def _valid_age_range(self, low: int, high: int) -> Optional[str]:
        if 0 <= low < high <= self.MAX_AGE:
            return f"{low}-{high}"
        return None

    async def _ask(self, system_prompt: str, text: str, run_name: str) -> Optional[str]:
        """Single constrained model call. Failures mean "no value"."""
        messages = [
            SystemMessage(content=system_prompt),
            HumanMessage(content=text),
        ]
        try:
            response = await asyncio.wait_for(
                self.llm.ainvoke(messages, config=llm_run_config(run_name)),
                timeout=self.settings.LLM_TIMEOUT_SECONDS,
            )
        except asyncio.TimeoutError:
            logger.warning(f"{run_name} timed out after {self.settings.LLM_TIMEOUT_SECONDS}s")
            return None
        except Exception as e:
            logger.warning(f"LLM invocation failed in {run_name}: {e}")
            return None

        content = response.content if isinstance(response.content, str) else ""
        return content.strip() or None


# Singleton instance
_extraction_service: Optional[FieldExtractionService] = None


def get_extraction_service() -> FieldExtractionService:
    """Get or create extraction service singleton."""
    global _extraction_service
    if _extraction_service is None:
        _extraction_service = FieldExtractionService()
    return _extraction_service
