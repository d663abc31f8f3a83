"""
Logging configuration with field masking for sensitive data
"""
import logging
import re
from typing import Any

from brokerbot.core.config import settings


# Patterns to mask in logs
MASK_PATTERNS = [
    (r'"phone":\s*"[^"]*"', '"phone": "***"'),
    (r'"senderName":\s*"[^"]*"', '"senderName": "***"'),
    (r'"(client[-_]?token|api[-_]?key)":\s*"[^"]*"', '"\\1": "***"'),
    # Phone numbers in free text: keep country/area prefix and the last two digits
    (r'\b(\d{4})\d{5,7}(\d{2})\b', r'\1*****\2'),
]


class MaskingFormatter(logging.Formatter):
    """Custom formatter that masks sensitive fields."""

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        for pattern, replacement in MASK_PATTERNS:
            message = re.sub(pattern, replacement, message, flags=re.IGNORECASE)
        return message


def setup_logging() -> logging.Logger:
    """Configure application logging."""
    logger = logging.getLogger("brokerbot")
    logger.setLevel(logging.DEBUG if settings.DEBUG else logging.INFO)

    if logger.handlers:
        return logger

    # Console handler
    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.DEBUG if settings.DEBUG else logging.INFO)

    # Format with masking
    formatter = MaskingFormatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )
    console_handler.setFormatter(formatter)

    logger.addHandler(console_handler)

    return logger


# Global logger instance
logger = setup_logging()


def log_audit_event(
    event_type: str,
    actor_id: str,
    actor_type: str,
    details: dict[str, Any],
) -> None:
    """Log an audit event for handoffs, admin commands and completed quotes."""
    logger.info(
        f"AUDIT: {event_type} | actor={actor_id} ({actor_type}) | details={details}"
    )
