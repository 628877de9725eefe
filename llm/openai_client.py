"""OpenAI LLM client implementation."""

import os
import logging
from typing import Optional, List

import openai

from .base_client import BaseLLMClient, Message, LLMResponse
from .errors import (
    GenerationFailure,
    AuthError,
    RateLimited,
    GenerationTimeout,
    GenerationUnavailable,
)

logger = logging.getLogger(__name__)


class OpenAIClient(BaseLLMClient):
    """OpenAI GPT client implementation."""

    DEFAULT_MODEL = "gpt-3.5-turbo"

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        timeout: float = 30.0
    ):
        """
        Initialize OpenAI client.

        Args:
            api_key: OpenAI API key (falls back to OPENAI_API_KEY env var)
            model: Model to use when a call does not override it
            timeout: Request timeout in seconds
        """
        self.api_key = api_key or os.environ.get("OPENAI_API_KEY")
        self.model = model or self.DEFAULT_MODEL
        self.timeout = timeout
        self.client = None

        if self.api_key:
            self.client = openai.OpenAI(
                api_key=self.api_key,
                timeout=timeout,
                max_retries=1
            )
            logger.info(f"OpenAI client initialized with model: {self.model}")
        else:
            logger.warning("No OpenAI API key provided")

    def chat(
        self,
        messages: List[Message],
        temperature: float = 0.7,
        max_tokens: int = 4000,
        model: Optional[str] = None
    ) -> LLMResponse:
        """Send chat completion request to OpenAI."""
        if not self.client:
            raise GenerationUnavailable("OpenAI client not initialized. Check API key.")

        kwargs = {
            "model": model or self.model,
            "messages": [{"role": msg.role, "content": msg.content} for msg in messages],
            "temperature": temperature,
            "max_completion_tokens": max_tokens,
        }

        try:
            response = self.client.chat.completions.create(**kwargs)
        except openai.AuthenticationError as e:
            logger.error(f"OpenAI rejected credentials: {e}")
            raise AuthError("Invalid OpenAI API key") from e
        except openai.RateLimitError as e:
            logger.error(f"OpenAI rate limit exceeded: {e}")
            raise RateLimited("OpenAI rate limit exceeded") from e
        except openai.APITimeoutError as e:
            logger.error(f"OpenAI request timed out after {self.timeout}s")
            raise GenerationTimeout("OpenAI request timed out") from e
        except openai.APIError as e:
            logger.error(f"OpenAI API error: {e}")
            raise GenerationFailure(str(e)) from e

        if not response.choices:
            raise GenerationUnavailable("OpenAI returned no choices")

        choice = response.choices[0]
        content = (choice.message.content or "").strip()

        usage = None
        if response.usage:
            usage = {
                "prompt_tokens": response.usage.prompt_tokens,
                "completion_tokens": response.usage.completion_tokens,
                "total_tokens": response.usage.total_tokens,
            }

        return LLMResponse(
            content=content,
            usage=usage,
            finish_reason=choice.finish_reason
        )

    def get_provider_name(self) -> str:
        """Get the provider name."""
        return "openai"

    def get_model_name(self) -> str:
        """Get the model name."""
        return self.model
