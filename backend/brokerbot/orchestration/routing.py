"""
LLM Provider Routing - environment-configured provider selection
"""
from enum import Enum
from typing import Optional

import boto3
from langchain_aws import ChatBedrock
from langchain_community.chat_models import ChatOllama
from langchain_core.language_models import BaseChatModel
from langchain_openai import ChatOpenAI

from brokerbot.core.config import Settings, get_settings
from brokerbot.core.logging import logger


class LLMProvider(str, Enum):
    BEDROCK = "bedrock"
    OLLAMA = "ollama"
    OPENAI = "openai"


def get_llm(
    app_settings: Optional[Settings] = None,
    temperature: Optional[float] = None,
    max_tokens: Optional[int] = None,
) -> BaseChatModel:
    """
    Get a chat model for the configured provider.

    Free-form answers use the configured temperature and token budget;
    field extraction asks for temperature 0 and a tiny budget.
    """
    app_settings = app_settings or get_settings()
    if temperature is None:
        temperature = app_settings.LLM_TEMPERATURE
    if max_tokens is None:
        max_tokens = app_settings.LLM_MAX_TOKENS

    provider = app_settings.LLM_PROVIDER
    logger.info(f"Using LLM provider: {provider} (temperature={temperature}, max_tokens={max_tokens})")

    if provider == LLMProvider.OPENAI.value:
        return _get_openai_llm(app_settings, temperature, max_tokens)
    if provider == LLMProvider.BEDROCK.value:
        return _get_bedrock_llm(app_settings, temperature, max_tokens)
    return _get_ollama_llm(app_settings, temperature, max_tokens)


def _get_ollama_llm(app_settings: Settings, temperature: float, max_tokens: int) -> BaseChatModel:
    """Get Ollama LLM instance."""
    return ChatOllama(
        model=app_settings.OLLAMA_MODEL,
        base_url=app_settings.OLLAMA_BASE_URL,
        temperature=temperature,
        num_predict=max_tokens,
    )


def _get_openai_llm(app_settings: Settings, temperature: float, max_tokens: int) -> BaseChatModel:
    """Get OpenAI chat model instance."""
    return ChatOpenAI(
        api_key=app_settings.OPENAI_API_KEY,
        model=app_settings.OPENAI_MODEL,
        temperature=temperature,
        max_tokens=max_tokens,
        timeout=app_settings.LLM_TIMEOUT_SECONDS,
    )


def _get_bedrock_llm(app_settings: Settings, temperature: float, max_tokens: int) -> BaseChatModel:
    """Get AWS Bedrock LLM instance."""
    bedrock_runtime = boto3.client(
        "bedrock-runtime",
        region_name=app_settings.AWS_REGION,
        aws_access_key_id=app_settings.AWS_ACCESS_KEY_ID,
        aws_secret_access_key=app_settings.AWS_SECRET_ACCESS_KEY,
    )

    return ChatBedrock(
        client=bedrock_runtime,
        model_id=app_settings.BEDROCK_MODEL_ID,
        model_kwargs={"temperature": temperature, "max_tokens": max_tokens},
    )
