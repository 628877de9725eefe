"""LLM client factory."""

import logging
from enum import Enum
from typing import Dict, Optional, Type, Union

from config.settings import Settings
from .base_client import BaseLLMClient
from .openai_client import OpenAIClient
from .anthropic_client import AnthropicClient

logger = logging.getLogger(__name__)


class LLMProvider(str, Enum):
    """Supported LLM providers."""
    OPENAI = "openai"
    ANTHROPIC = "anthropic"


_CLIENT_CLASSES: Dict[LLMProvider, Type[BaseLLMClient]] = {
    LLMProvider.OPENAI: OpenAIClient,
    LLMProvider.ANTHROPIC: AnthropicClient,
}


def create_llm_client(
    provider: Union[LLMProvider, str],
    api_key: Optional[str] = None,
    model: Optional[str] = None,
    timeout: float = 30.0
) -> BaseLLMClient:
    """
    Create an LLM client for the specified provider.

    Args:
        provider: LLM provider, as enum or its string value
        api_key: API key for the provider
        model: Default model override
        timeout: Request timeout in seconds

    Raises:
        ValueError: If provider is not supported
    """
    try:
        provider = LLMProvider(provider)
    except ValueError:
        raise ValueError(f"Unsupported LLM provider: {provider}") from None

    return _CLIENT_CLASSES[provider](api_key=api_key, model=model, timeout=timeout)


def client_from_settings(settings: Settings) -> BaseLLMClient:
    """Build the generation client described by the application settings."""
    api_key = settings.get_llm_api_key()
    if not api_key:
        logger.warning(
            f"No API key for {settings.llm_provider}. "
            "Replies will fail until one is configured."
        )

    client = create_llm_client(
        provider=settings.llm_provider,
        api_key=api_key,
        model=settings.llm_model,
        timeout=settings.generation_timeout
    )
    logger.info(f"LLM client initialized: {client.get_provider_name()} ({client.get_model_name()})")
    return client
