"""Overall summary aggregator: on-demand rollup of every memory tier."""

import logging
from datetime import datetime
from typing import Callable, Optional

from llm.base_client import BaseLLMClient, Message
from llm.errors import GenerationUnavailable
from .errors import InvalidInput, require_conversation_id
from .models import OverallSummary, utc_now
from .store import DurableMemoryStore, Namespace
from .tiers import load_category_log, load_clinical_notes, load_diary, load_overall_summary

logger = logging.getLogger(__name__)


class OverallSummaryAggregator:
    """Folds diary, clinical notes and category summaries into one cached narrative."""

    SYSTEM_PROMPT = """You are a psychologist preparing an overall case summary.
Combine the diary entries, session notes and thematic summaries below into one
coherent narrative: who the person is, the main themes, how things evolved over
time, progress made and what remains open. Avoid repetition and do not invent facts."""

    NOTE_CHAR_LIMIT = 1200

    def __init__(
        self,
        store: DurableMemoryStore,
        llm_client: BaseLLMClient,
        clock: Callable[[], datetime] = utc_now
    ):
        self.store = store
        self.llm_client = llm_client
        self.clock = clock

    def get_or_generate(self, conversation_id: str) -> Optional[OverallSummary]:
        """
        Return the cached summary, generating it on first request.

        Returns:
            The summary, or None when there is nothing to aggregate

        Raises:
            GenerationFailure: When generation is needed and fails
        """
        try:
            conversation_id = require_conversation_id(conversation_id)
        except InvalidInput as e:
            logger.warning(f"Skipping overall summary: {e}")
            return None

        cached = load_overall_summary(self.store, conversation_id, refresh=True)
        if cached:
            return cached
        return self.regenerate(conversation_id)

    def regenerate(self, conversation_id: str) -> Optional[OverallSummary]:
        """Build a fresh summary and overwrite the cached one."""
        try:
            conversation_id = require_conversation_id(conversation_id)
        except InvalidInput as e:
            logger.warning(f"Skipping overall summary: {e}")
            return None

        diary = load_diary(self.store, conversation_id, refresh=True)
        notes = load_clinical_notes(self.store, conversation_id, refresh=True)
        if not diary and not notes:
            return None

        categories = load_category_log(self.store, conversation_id, refresh=True)

        sections = []
        if diary:
            sections.append("DIARY:\n" + "\n\n".join(
                f"[{entry.date.isoformat()}] {entry.text}" for entry in diary
            ))
        if notes:
            sections.append("SESSION NOTES:\n" + "\n\n".join(
                f"Session {note.session_number}:\n{self._truncate(note.text)}"
                for note in notes
            ))
        if categories:
            sections.append("THEMATIC SUMMARIES:\n" + "\n".join(
                f"- [{category}] {summary.text}"
                for category, summaries in categories.items()
                for summary in summaries
            ))

        messages = [
            Message(role="system", content=self.SYSTEM_PROMPT),
            Message(role="user", content="\n\n".join(sections))
        ]
        response = self.llm_client.chat(
            messages=messages,
            temperature=0.4,
            max_tokens=1200
        )

        text = response.content.strip()
        if not text:
            raise GenerationUnavailable("Empty overall summary")

        summary = OverallSummary(text=text, generated_at=self.clock())
        self.store.set(conversation_id, Namespace.OVERALL_SUMMARY, summary.model_dump(mode="json"))
        logger.info(f"Overall summary regenerated for {conversation_id}")
        return summary

    def _truncate(self, text: str) -> str:
        if len(text) <= self.NOTE_CHAR_LIMIT:
            return text
        return text[:self.NOTE_CHAR_LIMIT].rstrip() + "..."
