"""Conversation context assembler for the reply prompt."""

import logging
from typing import TYPE_CHECKING, List

from pydantic import BaseModel

from llm.base_client import Message
from .history import RollingHistoryManager
from .models import CategoryLog
from .store import DurableMemoryStore
from .tiers import load_category_log

if TYPE_CHECKING:
    from providers.config_provider import ConfigProvider
    from providers.reference_docs import ReferenceProvider

logger = logging.getLogger(__name__)


class AssembledPrompt(BaseModel):
    """Messages plus the generation parameters read from the bot config."""
    messages: List[Message]
    model: str
    max_tokens: int
    temperature: float


class ContextAssembler:
    """
    Builds the reply prompt from every memory tier.

    System content, in order: base instructions, category summaries (if any),
    reference documentation (if any), then the specificity directive last.
    After it come the buffered turns as alternating user/assistant messages
    and finally the new user utterance.
    """

    CATEGORY_HEADER = "What you remember from previous conversations with this person, by theme:"
    REFERENCE_HEADER = "Reference material you may rely on:"
    SPECIFICITY_DIRECTIVE = """IMPORTANT: Always respond specifically to what the person has just said.
Refer to the concrete details they shared and to what you remember about them.
Never answer with generic phrases, empty greetings or boilerplate encouragement.
Do not sign your message; the signature is added automatically."""

    def __init__(
        self,
        store: DurableMemoryStore,
        history: RollingHistoryManager,
        config_provider: "ConfigProvider",
        reference_provider: "ReferenceProvider"
    ):
        self.store = store
        self.history = history
        self.config_provider = config_provider
        self.reference_provider = reference_provider

    def build(self, conversation_id: str, user_text: str) -> AssembledPrompt:
        """
        Assemble the prompt for a new user utterance.

        Args:
            conversation_id: Conversation ID
            user_text: The new user message

        Returns:
            AssembledPrompt ready for the LLM client
        """
        config = self.config_provider.get()
        categories = load_category_log(self.store, conversation_id, refresh=True)

        system_parts = [config.system_prompt.strip()]

        category_block = self.format_categories(categories)
        if category_block:
            system_parts.append(category_block)

        reference = self.reference_provider.get_reference_text().strip()
        if reference:
            system_parts.append(f"{self.REFERENCE_HEADER}\n{reference}")

        system_parts.append(self.SPECIFICITY_DIRECTIVE)

        messages = [Message(role="system", content="\n\n".join(system_parts))]
        for turn in self.history.current(conversation_id):
            messages.append(Message(role="user", content=turn.user_text))
            messages.append(Message(role="assistant", content=turn.assistant_text))
        messages.append(Message(role="user", content=user_text))

        logger.debug(
            f"Assembled prompt for {conversation_id}: {len(messages)} messages, "
            f"{len(categories)} categories, reference={'yes' if reference else 'no'}"
        )

        return AssembledPrompt(
            messages=messages,
            model=config.model,
            max_tokens=config.max_tokens,
            temperature=config.temperature
        )

    def format_categories(self, categories: CategoryLog) -> str:
        lines = []
        for category, summaries in categories.items():
            if not summaries:
                continue
            lines.append(f"{category}:")
            for summary in summaries:
                lines.append(f"  - ({summary.timestamp.date().isoformat()}) {summary.text}")

        if not lines:
            return ""
        return self.CATEGORY_HEADER + "\n" + "\n".join(lines)
