"""
LangFuse Observability Integration
Provides tracing and monitoring for LLM calls.
"""
from typing import Any, Dict, Optional

from langfuse.callback import CallbackHandler

from brokerbot.core.config import settings
from brokerbot.core.logging import logger


_langfuse_handler: Optional[CallbackHandler] = None


def get_langfuse_handler() -> Optional[CallbackHandler]:
    """
    Get LangFuse callback handler for LLM observability.
    Returns None if LangFuse is not configured.
    """
    global _langfuse_handler

    if not settings.LANGFUSE_PUBLIC_KEY:
        return None

    if _langfuse_handler is None:
        try:
            _langfuse_handler = CallbackHandler(
                public_key=settings.LANGFUSE_PUBLIC_KEY,
                secret_key=settings.LANGFUSE_SECRET_KEY,
                host=settings.LANGFUSE_HOST,
            )
            logger.info("LangFuse handler initialized successfully")
        except Exception as e:
            logger.warning(f"Failed to initialize LangFuse: {e}")
            return None

    return _langfuse_handler


def llm_run_config(run_name: str) -> Dict[str, Any]:
    """Runnable config for an LLM call, with tracing attached when available."""
    config: Dict[str, Any] = {"run_name": run_name}
    handler = get_langfuse_handler()
    if handler is not None:
        config["callbacks"] = [handler]
    return config


def flush_langfuse():
    """Flush pending traces to LangFuse."""
    global _langfuse_handler
    if _langfuse_handler is not None:
        try:
            _langfuse_handler.flush()
        except Exception as e:
            logger.warning(f"Failed to flush LangFuse: {e}")
