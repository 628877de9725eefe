"""Tests for the ClinicalNoteGenerator."""

from memory.clinical import ClinicalNoteGenerator
from memory.history import RollingHistoryManager
from memory.models import ClinicalNote, CategorySummary, Turn
from memory.store import DurableMemoryStore, Namespace
from memory.tiers import load_clinical_notes
from llm.errors import RateLimited
from fakes import ScriptedLLMClient, FakeClock, InMemoryBackend


class TestClinicalNoteGenerator:
    """Test clinical note generation every M turns."""

    def setup_method(self):
        """Set up test fixtures."""
        self.clock = FakeClock()
        self.backend = InMemoryBackend()
        self.store = DurableMemoryStore(backend=self.backend)
        self.history = RollingHistoryManager(self.store, capacity=50)
        self.llm = ScriptedLLMClient()
        self.generator = ClinicalNoteGenerator(
            store=self.store,
            history=self.history,
            llm_client=self.llm,
            interval=10,
            clock=self.clock
        )

    def add_turns(self, n: int):
        for _ in range(n):
            count = self.history.turn_count("c1") + 1
            self.history.append(
                "c1",
                Turn(user_text=f"message {count}", assistant_text=f"reply {count}",
                     timestamp=self.clock())
            )

    def foreign_note(self, count: int) -> dict:
        return ClinicalNote(
            session_number=1,
            text="Written by another worker.",
            timestamp=self.clock(),
            turn_count_at_generation=count
        ).model_dump(mode="json")

    def test_not_due_between_multiples(self):
        """Test no note off the interval."""
        self.add_turns(9)
        assert self.generator.maybe_run("c1") is None
        self.add_turns(2)
        assert self.generator.maybe_run("c1") is None
        assert self.llm.calls_of("clinical") == []

    def test_fires_at_multiple(self):
        """Test a note is written at turn 10."""
        self.add_turns(10)
        note = self.generator.maybe_run("c1")

        assert note.session_number == 1
        assert note.turn_count_at_generation == 10
        assert "RECOMMENDATIONS" in note.text
        assert load_clinical_notes(self.store, "c1") == [note]

    def test_uses_last_interval_turns(self):
        """Test the transcript covers the last M turns only."""
        self.add_turns(20)
        self.generator.maybe_run("c1")

        prompt = self.llm.calls_of("clinical")[0]["messages"][-1].content
        assert prompt.count("USER:") == 10
        assert "message 11\n" in prompt
        assert "message 10\n" not in prompt

    def test_includes_category_context(self):
        """Test category summaries are passed as longitudinal context."""
        summary = CategorySummary(
            category="Stress",
            text="Exams are close.",
            timestamp=self.clock(),
            turn_count_at_generation=10
        )
        self.store.set("c1", Namespace.CATEGORY_SUMMARIES, {"Stress": [summary.model_dump(mode="json")]})
        self.add_turns(10)
        self.generator.maybe_run("c1")

        prompt = self.llm.calls_of("clinical")[0]["messages"][-1].content
        assert "[Stress] (2026-10-19) Exams are close." in prompt

    def test_idempotent_per_turn_count(self):
        """Test running twice at the same count keeps one note."""
        self.add_turns(10)
        assert self.generator.maybe_run("c1") is not None
        assert self.generator.maybe_run("c1") is None

        assert len(load_clinical_notes(self.store, "c1")) == 1
        assert len(self.llm.calls_of("clinical")) == 1

    def test_session_numbers_increase(self):
        """Test consecutive sessions are numbered."""
        self.add_turns(10)
        self.generator.maybe_run("c1")
        self.add_turns(10)
        note = self.generator.maybe_run("c1")

        assert note.session_number == 2
        assert note.turn_count_at_generation == 20

    def test_duplicate_written_during_generation_is_discarded(self):
        """Test the guard is re-checked right before storing."""
        def racing_worker(messages):
            # Another process stores its note while this one is generating
            self.backend.data["chat:c1:clinical-notes"] = [self.foreign_note(10)]
            return "AUTOREPORT: duplicate"

        self.llm.responders["clinical"] = racing_worker
        self.add_turns(10)

        assert self.generator.maybe_run("c1") is None
        notes = load_clinical_notes(self.store, "c1")
        assert len(notes) == 1
        assert notes[0].text == "Written by another worker."

    def test_persist_rejects_existing_count(self):
        """Test persist refuses a second note for the same count."""
        self.store.set("c1", Namespace.CLINICAL_NOTES, [self.foreign_note(10)])

        assert self.generator.persist("c1", 10, "Late note") is None
        assert len(load_clinical_notes(self.store, "c1")) == 1

    def test_generation_failure_stores_nothing(self):
        """Test a failed generation leaves the notes untouched and can retry."""
        self.llm.responders["clinical"] = RateLimited("slow down")
        self.add_turns(10)

        assert self.generator.maybe_run("c1") is None
        assert load_clinical_notes(self.store, "c1") == []

        self.llm.responders["clinical"] = "AUTOREPORT: retried"
        note = self.generator.maybe_run("c1")
        assert note.text == "AUTOREPORT: retried"

    def test_empty_note_skipped(self):
        """Test an empty generation is not stored."""
        self.llm.responders["clinical"] = "  \n"
        self.add_turns(10)

        assert self.generator.maybe_run("c1") is None
        assert load_clinical_notes(self.store, "c1") == []

    def test_invalid_conversation_is_noop(self):
        """Test a blank conversation id does not raise."""
        assert self.generator.maybe_run("   ") is None
