"""Anthropic Claude LLM client implementation."""

import os
import logging
from typing import Optional, List

import anthropic

from .base_client import BaseLLMClient, Message, LLMResponse
from .errors import (
    GenerationFailure,
    AuthError,
    RateLimited,
    GenerationTimeout,
    GenerationUnavailable,
)

logger = logging.getLogger(__name__)


class AnthropicClient(BaseLLMClient):
    """Anthropic Claude client implementation."""

    DEFAULT_MODEL = "claude-sonnet-4-20250514"

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        timeout: float = 30.0
    ):
        """
        Initialize Anthropic client.

        Args:
            api_key: Anthropic API key (falls back to ANTHROPIC_API_KEY env var)
            model: Model to use when a call does not override it
            timeout: Request timeout in seconds
        """
        self.api_key = api_key or os.environ.get("ANTHROPIC_API_KEY")
        self.model = model or self.DEFAULT_MODEL
        self.timeout = timeout
        self.client = None

        if self.api_key:
            self.client = anthropic.Anthropic(
                api_key=self.api_key,
                timeout=timeout,
                max_retries=1
            )
            logger.info(f"Anthropic client initialized with model: {self.model}")
        else:
            logger.warning("No Anthropic API key provided")

    def chat(
        self,
        messages: List[Message],
        temperature: float = 0.7,
        max_tokens: int = 4000,
        model: Optional[str] = None
    ) -> LLMResponse:
        """Send chat completion request to Anthropic."""
        if not self.client:
            raise GenerationUnavailable("Anthropic client not initialized. Check API key.")

        # Separate system message from conversation
        system_content = ""
        conversation_messages = []

        for msg in messages:
            if msg.role == "system":
                system_content += msg.content + "\n"
            else:
                conversation_messages.append({
                    "role": msg.role,
                    "content": msg.content
                })

        kwargs = {
            "model": self._resolve_model(model),
            "max_tokens": max_tokens,
            "temperature": min(temperature, 1.0),  # Anthropic caps at 1.0
            "messages": conversation_messages,
        }

        if system_content:
            kwargs["system"] = system_content.strip()

        try:
            response = self.client.messages.create(**kwargs)
        except anthropic.AuthenticationError as e:
            logger.error(f"Anthropic rejected credentials: {e}")
            raise AuthError("Invalid Anthropic API key") from e
        except anthropic.RateLimitError as e:
            logger.error(f"Anthropic rate limit exceeded: {e}")
            raise RateLimited("Anthropic rate limit exceeded") from e
        except anthropic.APITimeoutError as e:
            logger.error(f"Anthropic request timed out after {self.timeout}s")
            raise GenerationTimeout("Anthropic request timed out") from e
        except anthropic.APIError as e:
            logger.error(f"Anthropic API error: {e}")
            raise GenerationFailure(str(e)) from e

        content = ""
        for block in response.content:
            if block.type == "text":
                content += block.text

        usage = None
        if response.usage:
            usage = {
                "prompt_tokens": response.usage.input_tokens,
                "completion_tokens": response.usage.output_tokens,
                "total_tokens": response.usage.input_tokens + response.usage.output_tokens,
            }

        return LLMResponse(
            content=content.strip(),
            usage=usage,
            finish_reason=response.stop_reason
        )

    def _resolve_model(self, model: Optional[str]) -> str:
        # Bot config stores OpenAI model names by default; ignore those here
        if model and model.startswith("claude"):
            return model
        return self.model

    def get_provider_name(self) -> str:
        """Get the provider name."""
        return "anthropic"

    def get_model_name(self) -> str:
        """Get the model name."""
        return self.model
