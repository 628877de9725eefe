"""Clinical note generator: structured session notes every M turns."""

import logging
from datetime import datetime
from typing import Callable, List, Optional

from llm.base_client import BaseLLMClient, Message
from llm.errors import GenerationFailure
from .errors import InvalidInput, require_conversation_id
from .history import RollingHistoryManager
from .models import CategoryLog, ClinicalNote, Turn, utc_now
from .store import DurableMemoryStore, Namespace
from .tiers import load_category_log, load_clinical_notes
from .triggers import should_write_clinical_note

logger = logging.getLogger(__name__)


class ClinicalNoteGenerator:
    """
    Writes one structured note per clinical interval.

    Idempotent per turn count: the guard is evaluated before generation and
    again, against freshly hydrated state, right before the note is stored.
    """

    SYSTEM_PROMPT = """You are a clinical psychologist writing a session note for your own records.
Use the longitudinal context and the session transcript provided.

Write the note with exactly these sections:
AUTOREPORT: what the person reports about themselves, in their own terms
INTERVENTIONS: what the assistant did (validation, questions, techniques suggested)
OBSERVATIONS: emotional state, patterns and risk indicators observed
STRENGTHS: resources and protective factors shown by the person
RECOMMENDATIONS: what to explore or reinforce in the next sessions

Be concise and factual. Do not invent details that are not in the transcript."""

    def __init__(
        self,
        store: DurableMemoryStore,
        history: RollingHistoryManager,
        llm_client: BaseLLMClient,
        interval: int = 10,
        clock: Callable[[], datetime] = utc_now
    ):
        """
        Initialize generator.

        Args:
            store: Shared memory store
            history: Rolling history manager
            llm_client: LLM client for note generation
            interval: Turns per clinical session (M)
            clock: Source of timestamps
        """
        self.store = store
        self.history = history
        self.llm_client = llm_client
        self.interval = interval
        self.clock = clock

    def maybe_run(self, conversation_id: str) -> Optional[ClinicalNote]:
        """Generate the note for the current turn count if one is due."""
        try:
            conversation_id = require_conversation_id(conversation_id)
        except InvalidInput as e:
            logger.warning(f"Skipping clinical note: {e}")
            return None

        state = self.history.state(conversation_id)
        count = state.turn_count
        notes = load_clinical_notes(self.store, conversation_id, refresh=True)

        if not should_write_clinical_note(count, self.interval, notes):
            return None

        window = state.turns[-self.interval:]
        categories = load_category_log(self.store, conversation_id)

        try:
            text = self.generate(window, categories, session_number=len(notes) + 1)
        except GenerationFailure as e:
            logger.error(f"Clinical note for {conversation_id} at turn {count} failed: {e}")
            return None

        if not text:
            logger.warning(f"Empty clinical note for {conversation_id} at turn {count}, skipped")
            return None

        return self.persist(conversation_id, count, text)

    def persist(self, conversation_id: str, count: int, text: str) -> Optional[ClinicalNote]:
        """Append the note unless another run already stored one for this count."""
        stored = {}

        def append_once(raw):
            notes = [ClinicalNote.model_validate(item) for item in (raw or [])]
            if not should_write_clinical_note(count, self.interval, notes):
                return None
            note = ClinicalNote(
                session_number=len(notes) + 1,
                text=text,
                timestamp=self.clock(),
                turn_count_at_generation=count
            )
            stored["note"] = note
            return [item.model_dump(mode="json") for item in notes + [note]]

        if not self.store.update(conversation_id, Namespace.CLINICAL_NOTES, append_once):
            logger.info(
                f"Clinical note for {conversation_id} at turn {count} already exists, "
                "discarding duplicate"
            )
            return None

        note = stored["note"]
        logger.info(
            f"Clinical note #{note.session_number} stored for {conversation_id} at turn {count}"
        )
        return note

    def generate(
        self,
        turns: List[Turn],
        categories: CategoryLog,
        session_number: int
    ) -> str:
        """Request the sectioned note. Raises GenerationFailure."""
        context_lines = []
        for category, summaries in categories.items():
            for summary in summaries:
                context_lines.append(
                    f"- [{category}] ({summary.timestamp.date().isoformat()}) {summary.text}"
                )
        longitudinal = "\n".join(context_lines) or "No previous summaries."

        transcript = "\n".join(
            f"USER: {turn.user_text}\nASSISTANT: {turn.assistant_text}"
            for turn in turns
        )

        messages = [
            Message(role="system", content=self.SYSTEM_PROMPT),
            Message(
                role="user",
                content=(
                    f"Session number: {session_number}\n\n"
                    f"Longitudinal context:\n{longitudinal}\n\n"
                    f"Session transcript:\n{transcript}"
                )
            )
        ]
        response = self.llm_client.chat(
            messages=messages,
            temperature=0.3,
            max_tokens=900
        )
        return response.content.strip()
