"""Conversation orchestrator: reply path plus background memory generation."""

import logging
from datetime import date, datetime
from typing import Callable, Dict, List, Optional
from zoneinfo import ZoneInfo

from config.settings import Settings

# LLM components
from llm.factory import client_from_settings
from llm.base_client import BaseLLMClient
from llm.errors import GenerationFailure, GenerationUnavailable

# Memory components
from memory.backend import KeyValueBackend
from memory.sqlite_store import SQLiteKeyValueBackend
from memory.rest_store import RestKeyValueBackend
from memory.store import DurableMemoryStore
from memory.history import RollingHistoryManager
from memory.summarizer import CategorySummarizer
from memory.clinical import ClinicalNoteGenerator
from memory.diary import DailyDiaryGenerator
from memory.overall import OverallSummaryAggregator
from memory.context_manager import ContextAssembler
from memory.sanitizer import ResponseSanitizer
from memory.vocabulary import MemoryVocabulary
from memory.background import BackgroundTaskRunner
from memory.errors import InvalidInput, require_conversation_id
from memory.models import (
    Turn,
    CategorySummary,
    ClinicalNote,
    DiaryEntry,
    OverallSummary,
    utc_now,
)
from memory.tiers import load_category_log, load_clinical_notes, load_diary

# Collaborators
from providers.config_provider import ConfigProvider, StoredConfigProvider
from providers.reference_docs import (
    ReferenceProvider,
    StaticReferenceProvider,
    DirectoryReferenceProvider,
)

logger = logging.getLogger(__name__)

APOLOGY_MESSAGE = (
    "⚠️ Lo siento, hubo un error al procesar tu mensaje. Por favor, intenta de nuevo."
)


class ConversationOrchestrator:
    """Entry point used by the chat transport and admin layers."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        llm_client: Optional[BaseLLMClient] = None,
        store: Optional[DurableMemoryStore] = None,
        config_provider: Optional[ConfigProvider] = None,
        reference_provider: Optional[ReferenceProvider] = None,
        clock: Callable[[], datetime] = utc_now
    ):
        """
        Initialize orchestrator.

        Args:
            settings: Application settings
            llm_client: Pre-built LLM client (otherwise created from settings)
            store: Pre-built memory store (otherwise created from settings)
            config_provider: Source of the mutable bot config
            reference_provider: Source of reference documentation
            clock: Source of the current time
        """
        self.settings = settings or Settings()
        self.clock = clock
        self.tz = ZoneInfo(self.settings.timezone)

        self.backend: Optional[KeyValueBackend] = None
        if store is None:
            self.backend = self._init_backend()
            store = DurableMemoryStore(backend=self.backend)
        self.store = store

        self.llm_client = llm_client or self._init_llm_client()
        self.config_provider = config_provider or StoredConfigProvider(self.backend)
        self.reference_provider = reference_provider or self._init_reference_provider()

        self._init_memory()
        self.background = BackgroundTaskRunner(max_workers=self.settings.background_workers)

    def _init_backend(self) -> Optional[KeyValueBackend]:
        """Pick the durable backend from settings (REST, then SQLite, then none)."""
        if self.settings.kv_rest_url:
            return RestKeyValueBackend(
                base_url=self.settings.kv_rest_url,
                token=self.settings.kv_rest_token,
                timeout=self.settings.store_timeout
            )
        if self.settings.db_path:
            return SQLiteKeyValueBackend(
                db_path=self.settings.db_path,
                timeout=self.settings.store_timeout
            )
        return None

    def _init_llm_client(self) -> BaseLLMClient:
        return client_from_settings(self.settings)

    def _init_reference_provider(self) -> ReferenceProvider:
        if self.settings.reference_docs_dir:
            return DirectoryReferenceProvider(self.settings.reference_docs_dir)
        return StaticReferenceProvider("")

    def _init_memory(self):
        """Wire the memory tiers around the shared store."""
        vocabulary = MemoryVocabulary()

        self.history = RollingHistoryManager(
            store=self.store,
            capacity=self.settings.history_capacity
        )
        self.summarizer = CategorySummarizer(
            store=self.store,
            history=self.history,
            llm_client=self.llm_client,
            vocabulary=vocabulary,
            interval=self.settings.summary_interval,
            category_cap=self.settings.category_cap,
            min_turns=self.settings.summary_min_turns,
            clock=self.clock
        )
        self.clinical = ClinicalNoteGenerator(
            store=self.store,
            history=self.history,
            llm_client=self.llm_client,
            interval=self.settings.clinical_interval,
            clock=self.clock
        )
        self.diary = DailyDiaryGenerator(
            store=self.store,
            history=self.history,
            llm_client=self.llm_client,
            tz=self.tz,
            context_entries=self.settings.diary_context_entries,
            clock=self.clock
        )
        self.overall = OverallSummaryAggregator(
            store=self.store,
            llm_client=self.llm_client,
            clock=self.clock
        )
        self.assembler = ContextAssembler(
            store=self.store,
            history=self.history,
            config_provider=self.config_provider,
            reference_provider=self.reference_provider
        )
        self.sanitizer = ResponseSanitizer(
            signature=self.settings.signature,
            vocabulary=vocabulary
        )

    def on_turn(self, conversation_id: str, user_text: str) -> Optional[str]:
        """
        Produce the reply to one user message.

        Background generators are scheduled after the turn is recorded and are
        never awaited here.

        Args:
            conversation_id: Conversation ID
            user_text: The user's message

        Returns:
            Sanitized reply text, or None when the input is invalid

        Raises:
            GenerationFailure: When the reply could not be generated
        """
        try:
            conversation_id = require_conversation_id(conversation_id)
            user_text = self._require_text(user_text)
        except InvalidInput as e:
            logger.warning(f"Ignoring turn: {e}")
            return None

        self.history.load(conversation_id)
        prompt = self.assembler.build(conversation_id, user_text)

        if self.settings.verbose:
            print(f"[{conversation_id}] prompt with {len(prompt.messages)} messages")

        response = self.llm_client.chat(
            messages=prompt.messages,
            temperature=prompt.temperature,
            max_tokens=prompt.max_tokens,
            model=prompt.model
        )
        reply = self.sanitizer.sanitize(response.content)
        if not reply:
            raise GenerationUnavailable("Reply was empty after sanitizing")

        state = self.history.append(
            conversation_id,
            Turn(user_text=user_text, assistant_text=reply, timestamp=self.clock())
        )
        logger.info(f"Conversation {conversation_id}: replied to turn {state.turn_count}")

        self._schedule_memory_work(conversation_id)
        return reply

    def respond(self, conversation_id: str, user_text: str) -> Optional[str]:
        """Like on_turn, but a generation failure becomes the fixed apology."""
        try:
            return self.on_turn(conversation_id, user_text)
        except GenerationFailure as e:
            logger.error(f"Reply generation failed for {conversation_id}: {e}")
            return APOLOGY_MESSAGE

    def welcome(self) -> str:
        return self.config_provider.get().welcome_message

    def _schedule_memory_work(self, conversation_id: str):
        self.background.submit("category-summary", self.summarizer.maybe_run, conversation_id)
        self.background.submit("clinical-note", self.clinical.maybe_run, conversation_id)
        self.background.submit("daily-diary", self.diary.maybe_run, conversation_id)

    @staticmethod
    def _require_text(user_text: Optional[str]) -> str:
        if not isinstance(user_text, str) or not user_text.strip():
            raise InvalidInput("user text is empty")
        return user_text.strip()

    # Read surface for the admin layer

    def get_history(self, conversation_id: str) -> List[Turn]:
        try:
            conversation_id = require_conversation_id(conversation_id)
        except InvalidInput:
            return []
        self.history.load(conversation_id)
        return self.history.current(conversation_id)

    def get_category_summaries(self, conversation_id: str) -> Dict[str, List[CategorySummary]]:
        try:
            conversation_id = require_conversation_id(conversation_id)
        except InvalidInput:
            return {}
        return load_category_log(self.store, conversation_id, refresh=True)

    def get_clinical_history(self, conversation_id: str) -> List[ClinicalNote]:
        try:
            conversation_id = require_conversation_id(conversation_id)
        except InvalidInput:
            return []
        return load_clinical_notes(self.store, conversation_id, refresh=True)

    def get_diary(self, conversation_id: str) -> List[DiaryEntry]:
        try:
            conversation_id = require_conversation_id(conversation_id)
        except InvalidInput:
            return []
        return load_diary(self.store, conversation_id, refresh=True)

    def get_or_generate_overall_summary(self, conversation_id: str) -> Optional[OverallSummary]:
        return self.overall.get_or_generate(conversation_id)

    def regenerate_overall_summary(self, conversation_id: str) -> Optional[OverallSummary]:
        return self.overall.regenerate(conversation_id)

    def regenerate_diary_entry(self, conversation_id: str, target_date: date) -> Optional[DiaryEntry]:
        return self.diary.regenerate(conversation_id, target_date)

    def drain(self, timeout: Optional[float] = None) -> bool:
        """Wait for scheduled background work; True when all of it finished."""
        return self.background.drain(timeout)

    def shutdown(self, wait: bool = True):
        self.background.shutdown(wait_for_tasks=wait)
