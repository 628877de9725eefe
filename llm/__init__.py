"""LLM client abstraction layer."""

from .base_client import BaseLLMClient, Message, LLMResponse
from .errors import (
    GenerationFailure,
    AuthError,
    RateLimited,
    GenerationTimeout,
    GenerationUnavailable,
)
from .factory import create_llm_client, client_from_settings, LLMProvider

__all__ = [
    "BaseLLMClient",
    "Message",
    "LLMResponse",
    "GenerationFailure",
    "AuthError",
    "RateLimited",
    "GenerationTimeout",
    "GenerationUnavailable",
    "create_llm_client",
    "client_from_settings",
    "LLMProvider",
]
