"""Category summarizer: periodically condenses recent history into a categorized log."""

import logging
from datetime import datetime
from typing import Callable, List, Optional

from rapidfuzz import fuzz, process, utils

from llm.base_client import BaseLLMClient, Message
from llm.errors import GenerationFailure
from .errors import InvalidInput, require_conversation_id
from .history import RollingHistoryManager
from .models import CategorySummary, Turn, HistoryState, utc_now
from .store import DurableMemoryStore, Namespace
from .tiers import parse_category_log, dump_category_log, load_summary_marker
from .triggers import should_summarize
from .vocabulary import MemoryVocabulary

logger = logging.getLogger(__name__)


class CategorySummarizer:
    """
    Every N turns, classifies the recent conversation into one category of a
    closed taxonomy and files a short summary under it.

    The summary marker only advances after the summary itself has been
    written, so an interrupted pass is retried rather than lost.
    """

    CLASSIFY_PROMPT = """You classify what a person talking to a virtual psychologist is mainly dealing with.
Choose exactly ONE category from this list:
{categories}

Answer with the category name only, nothing else."""

    SUMMARY_PROMPT = """You keep session memory for a virtual psychologist.
Summarize the conversation excerpt below in 2-3 sentences covering:
- the person's emotional state
- the main topics discussed
- progress made or difficulties that came up

Write in the third person, in the same language as the conversation."""

    CLASSIFY_WINDOW = 5
    FUZZY_CUTOFF = 75

    def __init__(
        self,
        store: DurableMemoryStore,
        history: RollingHistoryManager,
        llm_client: BaseLLMClient,
        vocabulary: Optional[MemoryVocabulary] = None,
        interval: int = 10,
        category_cap: int = 5,
        min_turns: int = 5,
        clock: Callable[[], datetime] = utc_now
    ):
        """
        Initialize summarizer.

        Args:
            store: Shared memory store
            history: Rolling history manager
            llm_client: LLM client for classification and summarization
            vocabulary: Category taxonomy
            interval: Turns between passes (N)
            category_cap: Entries kept per category (K)
            min_turns: Buffered turns required before the first pass
            clock: Source of timestamps
        """
        self.store = store
        self.history = history
        self.llm_client = llm_client
        self.vocabulary = vocabulary or MemoryVocabulary()
        self.interval = interval
        self.category_cap = category_cap
        self.min_turns = min_turns
        self.clock = clock

    def maybe_run(self, conversation_id: str) -> Optional[CategorySummary]:
        """Run a pass if one is due. Returns the new summary, if any."""
        try:
            conversation_id = require_conversation_id(conversation_id)
        except InvalidInput as e:
            logger.warning(f"Skipping category summary: {e}")
            return None

        state = self.history.state(conversation_id)
        marker = load_summary_marker(self.store, conversation_id, refresh=True)

        if not should_summarize(
            turn_count=state.turn_count,
            last_marker=marker,
            interval=self.interval,
            buffered_turns=len(state.turns),
            min_turns=self.min_turns
        ):
            return None

        return self.run(conversation_id, state, marker)

    def run(
        self,
        conversation_id: str,
        state: HistoryState,
        marker: int
    ) -> Optional[CategorySummary]:
        """Classify, summarize, persist, then advance the marker."""
        window_size = min(len(state.turns), state.turn_count - marker)
        window = state.turns[-window_size:]

        category = self.classify(state.turns[-self.CLASSIFY_WINDOW:])

        try:
            text = self.summarize(window)
        except GenerationFailure as e:
            logger.error(
                f"Category summary for {conversation_id} failed at turn "
                f"{state.turn_count}: {e}"
            )
            return None

        if not text:
            logger.warning(f"Empty category summary for {conversation_id}, pass skipped")
            return None

        summary = CategorySummary(
            category=category,
            text=text,
            timestamp=self.clock(),
            turn_count_at_generation=state.turn_count
        )

        def append_capped(raw):
            log = parse_category_log(raw)
            entries = log.setdefault(category, [])
            entries.append(summary)
            if len(entries) > self.category_cap:
                log[category] = entries[-self.category_cap:]
            return dump_category_log(log)

        self.store.update(conversation_id, Namespace.CATEGORY_SUMMARIES, append_capped)

        # An unpersisted summary must not be hidden behind a persisted marker
        persisted = self.store.is_synced(conversation_id, Namespace.CATEGORY_SUMMARIES)
        if not persisted:
            logger.warning(
                f"Category summary for {conversation_id} kept in-process only; "
                "the pass will re-run after a restart"
            )
        self.store.update(
            conversation_id,
            Namespace.SUMMARY_MARKER,
            lambda current: state.turn_count if state.turn_count > int(current or 0) else None,
            durable=persisted
        )

        logger.info(
            f"Category summary [{category}] stored for {conversation_id} "
            f"at turn {state.turn_count}"
        )
        return summary

    def classify(self, turns: List[Turn]) -> str:
        """Map recent user utterances onto the taxonomy; falls back to the catch-all."""
        fallback = self.vocabulary.fallback_category
        utterances = "\n".join(f"- {turn.user_text}" for turn in turns)
        messages = [
            Message(
                role="system",
                content=self.CLASSIFY_PROMPT.format(
                    categories="\n".join(self.vocabulary.categories)
                )
            ),
            Message(role="user", content=f"Recent messages:\n{utterances}")
        ]

        try:
            response = self.llm_client.chat(
                messages=messages,
                temperature=0.0,
                max_tokens=10
            )
        except GenerationFailure as e:
            logger.warning(f"Classification failed, using '{fallback}': {e}")
            return fallback

        return self.normalize_category(response.content)

    def normalize_category(self, answer: str) -> str:
        fallback = self.vocabulary.fallback_category
        lines = (answer or "").strip().splitlines()
        cleaned = lines[0].strip(" .:*\"'`") if lines else ""
        if not cleaned:
            return fallback

        for category in self.vocabulary.categories:
            if category.lower() == cleaned.lower():
                return category

        match = process.extractOne(
            cleaned,
            self.vocabulary.categories,
            scorer=fuzz.WRatio,
            processor=utils.default_process,
            score_cutoff=self.FUZZY_CUTOFF
        )
        if match:
            return match[0]

        logger.warning(f"Unrecognised category '{cleaned[:40]}', using '{fallback}'")
        return fallback

    def summarize(self, turns: List[Turn]) -> str:
        """Ask for a 2-3 sentence summary of the window. Raises GenerationFailure."""
        transcript = "\n".join(
            f"USER: {turn.user_text}\nASSISTANT: {turn.assistant_text}"
            for turn in turns
        )
        messages = [
            Message(role="system", content=self.SUMMARY_PROMPT),
            Message(role="user", content=f"Conversation excerpt:\n\n{transcript}")
        ]
        response = self.llm_client.chat(
            messages=messages,
            temperature=0.3,
            max_tokens=250
        )
        return response.content.strip()

