"""Daily diary generator: one narrative entry per conversation-local day."""

import logging
from datetime import date, datetime, tzinfo, timezone
from typing import Callable, List, Optional

from llm.base_client import BaseLLMClient, Message
from llm.errors import GenerationFailure
from .errors import InvalidInput, require_conversation_id
from .history import RollingHistoryManager
from .models import DiaryEntry, Turn, utc_now
from .store import DurableMemoryStore, Namespace
from .tiers import load_diary, load_diary_marker
from .triggers import should_write_diary, select_diary_turns, local_date

logger = logging.getLogger(__name__)


class DailyDiaryGenerator:
    """
    Writes a diary entry the first time a conversation is active on a new day.

    Entries are keyed by date and upserted, so regenerating a day replaces
    its entry instead of adding a second one.
    """

    SYSTEM_PROMPT = """You write a short personal diary entry about one day of conversations
between a person and their virtual psychologist.
Write one or two paragraphs in the third person, in the language of the conversation:
how the person felt, what they talked about, and anything that changed since previous days.
Use the previous entries only for continuity; describe only the day given."""

    def __init__(
        self,
        store: DurableMemoryStore,
        history: RollingHistoryManager,
        llm_client: BaseLLMClient,
        tz: tzinfo = timezone.utc,
        context_entries: int = 3,
        clock: Callable[[], datetime] = utc_now
    ):
        """
        Initialize generator.

        Args:
            store: Shared memory store
            history: Rolling history manager
            llm_client: LLM client for diary generation
            tz: Timezone defining the conversation-local calendar day
            context_entries: Prior entries included for continuity
            clock: Source of the current time
        """
        self.store = store
        self.history = history
        self.llm_client = llm_client
        self.tz = tz
        self.context_entries = context_entries
        self.clock = clock

    def today(self) -> date:
        return local_date(self.clock(), self.tz)

    def maybe_run(self, conversation_id: str) -> Optional[DiaryEntry]:
        """Write today's entry if the marker has not reached today yet."""
        try:
            conversation_id = require_conversation_id(conversation_id)
        except InvalidInput as e:
            logger.warning(f"Skipping diary entry: {e}")
            return None

        today = self.today()
        marker = load_diary_marker(self.store, conversation_id, refresh=True)
        if not should_write_diary(today, marker):
            return None

        return self.generate_for_date(conversation_id, today, has_marker=marker is not None)

    def regenerate(self, conversation_id: str, target_date: date) -> Optional[DiaryEntry]:
        """Explicitly rewrite the entry for target_date."""
        try:
            conversation_id = require_conversation_id(conversation_id)
        except InvalidInput as e:
            logger.warning(f"Skipping diary regeneration: {e}")
            return None

        marker = load_diary_marker(self.store, conversation_id, refresh=True)
        return self.generate_for_date(conversation_id, target_date, has_marker=marker is not None)

    def generate_for_date(
        self,
        conversation_id: str,
        target_date: date,
        has_marker: bool
    ) -> Optional[DiaryEntry]:
        state = self.history.state(conversation_id)
        turns = select_diary_turns(state.turns, target_date, self.tz, has_marker)
        if not turns:
            logger.info(f"No turns for {conversation_id} on {target_date}, diary skipped")
            return None

        previous = [
            entry for entry in load_diary(self.store, conversation_id, refresh=True)
            if entry.date < target_date
        ]
        if self.context_entries:
            previous = previous[-self.context_entries:]
        else:
            previous = []

        try:
            text = self.generate(target_date, turns, previous)
        except GenerationFailure as e:
            logger.error(f"Diary for {conversation_id} on {target_date} failed: {e}")
            return None

        if not text:
            logger.warning(f"Empty diary entry for {conversation_id} on {target_date}, skipped")
            return None

        entry = DiaryEntry(
            date=target_date,
            text=text,
            timestamp=self.clock(),
            turn_count=state.turn_count
        )

        def upsert(raw):
            entries = dict(raw or {})
            entries[target_date.isoformat()] = entry.model_dump(mode="json")
            return entries

        def advance(current):
            if current and date.fromisoformat(current) >= target_date:
                return None
            return target_date.isoformat()

        self.store.update(conversation_id, Namespace.DIARY, upsert)

        # Persist the marker only once the entry it covers is persisted
        persisted = self.store.is_synced(conversation_id, Namespace.DIARY)
        if not persisted:
            logger.warning(
                f"Diary entry for {conversation_id} on {target_date} kept in-process only; "
                "it will be regenerated after a restart"
            )
        self.store.update(conversation_id, Namespace.DIARY_MARKER, advance, durable=persisted)

        logger.info(f"Diary entry for {target_date} stored for {conversation_id}")
        return entry

    def generate(
        self,
        target_date: date,
        turns: List[Turn],
        previous: List[DiaryEntry]
    ) -> str:
        """Request the narrative entry. Raises GenerationFailure."""
        continuity = "\n\n".join(
            f"[{entry.date.isoformat()}]\n{entry.text}" for entry in previous
        ) or "No previous entries."

        transcript = "\n".join(
            f"{local_date(turn.timestamp, self.tz).isoformat()} "
            f"{turn.timestamp.astimezone(self.tz).strftime('%H:%M')} "
            f"USER: {turn.user_text}\nASSISTANT: {turn.assistant_text}"
            for turn in turns
        )

        messages = [
            Message(role="system", content=self.SYSTEM_PROMPT),
            Message(
                role="user",
                content=(
                    f"Previous diary entries:\n{continuity}\n\n"
                    f"Day to describe: {target_date.isoformat()}\n\n"
                    f"Conversation:\n{transcript}"
                )
            )
        ]
        response = self.llm_client.chat(
            messages=messages,
            temperature=0.5,
            max_tokens=600
        )
        return response.content.strip()
