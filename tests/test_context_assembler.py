"""Tests for the ContextAssembler."""

from datetime import datetime, timezone

from config.settings import BotConfig
from memory.context_manager import ContextAssembler
from memory.history import RollingHistoryManager
from memory.models import CategorySummary, Turn
from memory.store import DurableMemoryStore, Namespace
from memory.tiers import dump_category_log
from providers.config_provider import StaticConfigProvider
from providers.reference_docs import StaticReferenceProvider


class TestContextAssembler:
    """Test prompt assembly from every memory tier."""

    def setup_method(self):
        """Set up test fixtures."""
        self.store = DurableMemoryStore()
        self.history = RollingHistoryManager(self.store)
        self.config = BotConfig(
            system_prompt="BASE INSTRUCTIONS",
            model="gpt-4o-mini",
            max_tokens=200,
            temperature=0.5
        )
        self.reference = StaticReferenceProvider("")
        self.assembler = ContextAssembler(
            store=self.store,
            history=self.history,
            config_provider=StaticConfigProvider(self.config),
            reference_provider=self.reference
        )

    def seed_categories(self):
        summary = CategorySummary(
            category="Anxiety",
            text="Worried about a job interview.",
            timestamp=datetime(2026, 10, 12, tzinfo=timezone.utc),
            turn_count_at_generation=10
        )
        self.store.set("c1", Namespace.CATEGORY_SUMMARIES, dump_category_log({"Anxiety": [summary]}))

    def test_minimal_prompt(self):
        """Test a new conversation gets base instructions, directive and the message."""
        prompt = self.assembler.build("c1", "Hola")

        assert len(prompt.messages) == 2
        system = prompt.messages[0]
        assert system.role == "system"
        assert system.content.startswith("BASE INSTRUCTIONS")
        assert system.content.endswith(ContextAssembler.SPECIFICITY_DIRECTIVE)
        assert ContextAssembler.CATEGORY_HEADER not in system.content
        assert ContextAssembler.REFERENCE_HEADER not in system.content
        assert prompt.messages[1].role == "user"
        assert prompt.messages[1].content == "Hola"

    def test_blocks_in_order(self):
        """Test base, categories, reference, then directive."""
        self.seed_categories()
        self.reference.text = "Grounding technique 5-4-3-2-1."

        system = self.assembler.build("c1", "Hola").messages[0].content

        base = system.index("BASE INSTRUCTIONS")
        categories = system.index(ContextAssembler.CATEGORY_HEADER)
        reference = system.index(ContextAssembler.REFERENCE_HEADER)
        directive = system.index(ContextAssembler.SPECIFICITY_DIRECTIVE)
        assert base < categories < reference < directive

    def test_category_block_format(self):
        """Test summaries are listed under their category with dates."""
        self.seed_categories()
        system = self.assembler.build("c1", "Hola").messages[0].content

        assert "Anxiety:\n  - (2026-10-12) Worried about a job interview." in system

    def test_history_as_alternating_messages(self):
        """Test buffered turns precede the new utterance."""
        for i in range(3):
            self.history.append("c1", Turn(user_text=f"u{i}", assistant_text=f"a{i}"))

        messages = self.assembler.build("c1", "now").messages

        assert [m.role for m in messages] == [
            "system", "user", "assistant", "user", "assistant", "user", "assistant", "user"
        ]
        assert [m.content for m in messages[1:]] == ["u0", "a0", "u1", "a1", "u2", "a2", "now"]

    def test_generation_params_from_config(self):
        """Test model and sampling parameters come from the bot config."""
        prompt = self.assembler.build("c1", "Hola")

        assert prompt.model == "gpt-4o-mini"
        assert prompt.max_tokens == 200
        assert prompt.temperature == 0.5

    def test_config_read_on_every_build(self):
        """Test config edits apply to the next prompt."""
        self.assembler.build("c1", "Hola")
        self.config.system_prompt = "EDITED"

        assert self.assembler.build("c1", "Hola").messages[0].content.startswith("EDITED")

    def test_conversations_isolated(self):
        """Test one conversation's memory does not leak into another."""
        self.seed_categories()
        self.history.append("c1", Turn(user_text="private", assistant_text="ok"))

        prompt = self.assembler.build("c2", "Hola")
        assert len(prompt.messages) == 2
        assert ContextAssembler.CATEGORY_HEADER not in prompt.messages[0].content
