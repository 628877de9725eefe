"""Tests for config, reference and messaging providers."""

import pytest
import requests
from unittest.mock import Mock

from config.settings import BotConfig
from providers.config_provider import StaticConfigProvider, StoredConfigProvider
from providers.messaging import (
    DeliveryFailure,
    ELLIPSIS,
    FALLBACK_TEXT,
    TelegramGateway,
    prepare_outbound_text,
)
from providers.reference_docs import DirectoryReferenceProvider
from fakes import InMemoryBackend


class TestConfigProviders:
    """Test bot config sources."""

    def test_static_defaults(self):
        """Test defaults when nothing is given."""
        config = StaticConfigProvider().get()
        assert config.model == "gpt-3.5-turbo"
        assert config.max_tokens == 300
        assert config.temperature == 0.7

    def test_stored_defaults_when_empty(self):
        """Test defaults apply before anything is saved."""
        provider = StoredConfigProvider(InMemoryBackend())
        assert provider.get() == BotConfig()

    def test_stored_round_trip(self):
        """Test a saved config is read back from the backend."""
        backend = InMemoryBackend()
        StoredConfigProvider(backend).save(BotConfig(system_prompt="Custom", temperature=0.2))

        config = StoredConfigProvider(backend).get()
        assert config.system_prompt == "Custom"
        assert config.temperature == 0.2
        assert "bot:config" in backend.data

    def test_invalid_stored_config_falls_back(self):
        """Test malformed stored data yields defaults."""
        backend = InMemoryBackend()
        backend.data["bot:config"] = {"temperature": 9.0}

        assert StoredConfigProvider(backend).get() == BotConfig()

    def test_failed_save_kept_locally(self):
        """Test the in-process copy is used while the backend is down."""
        backend = InMemoryBackend()
        backend.fail_writes = True
        backend.fail_reads = True
        provider = StoredConfigProvider(backend)

        assert provider.save(BotConfig(welcome_message="Hi")) is False
        assert provider.get().welcome_message == "Hi"

    def test_without_backend(self):
        """Test saving works in-process only."""
        provider = StoredConfigProvider()
        assert provider.save(BotConfig(model="gpt-4o")) is True
        assert provider.get().model == "gpt-4o"


class TestDirectoryReferenceProvider:
    """Test reference documentation loading."""

    def test_concatenates_documents(self, tmp_path):
        """Test text and markdown files are joined in name order."""
        (tmp_path / "b_breathing.md").write_text("Box breathing.", encoding="utf-8")
        (tmp_path / "a_grounding.txt").write_text("5-4-3-2-1.", encoding="utf-8")
        (tmp_path / "image.png").write_bytes(b"\x89PNG")

        text = DirectoryReferenceProvider(str(tmp_path)).get_reference_text()
        assert text == "### a_grounding\n5-4-3-2-1.\n\n### b_breathing\nBox breathing."

    def test_missing_directory(self, tmp_path):
        """Test a missing folder yields no block."""
        provider = DirectoryReferenceProvider(str(tmp_path / "nope"))
        assert provider.get_reference_text() == ""

    def test_truncated(self, tmp_path):
        """Test the block is bounded."""
        (tmp_path / "long.txt").write_text("x" * 500, encoding="utf-8")
        text = DirectoryReferenceProvider(str(tmp_path), max_chars=100).get_reference_text()
        assert len(text) == 100

    def test_read_once(self, tmp_path):
        """Test documents are cached after the first read."""
        doc = tmp_path / "doc.txt"
        doc.write_text("first", encoding="utf-8")
        provider = DirectoryReferenceProvider(str(tmp_path))
        provider.get_reference_text()
        doc.write_text("second", encoding="utf-8")

        assert "first" in provider.get_reference_text()


class TestPrepareOutboundText:
    """Test gateway text constraints."""

    def test_strips_emphasis(self):
        assert prepare_outbound_text("Esto es **importante**") == "Esto es importante"

    def test_empty_uses_fallback(self):
        assert prepare_outbound_text("") == FALLBACK_TEXT
        assert prepare_outbound_text(None) == FALLBACK_TEXT

    def test_truncates_with_ellipsis(self):
        result = prepare_outbound_text("a" * 5000, max_length=4096)
        assert len(result) == 4096
        assert result.endswith(ELLIPSIS)

    def test_short_text_untouched(self):
        assert prepare_outbound_text("Hola") == "Hola"


class TestTelegramGateway:
    """Test Telegram delivery."""

    def setup_method(self):
        """Set up test fixtures."""
        self.gateway = TelegramGateway(token="123:abc")
        self.gateway.session = Mock()

    def test_send_message(self):
        """Test sendMessage payload."""
        self.gateway.session.post.return_value = Mock(status_code=200, json=lambda: {"ok": True})

        self.gateway.send_message("42", "**Hola**")

        args, kwargs = self.gateway.session.post.call_args
        assert args[0] == "https://api.telegram.org/bot123:abc/sendMessage"
        assert kwargs["json"] == {"chat_id": "42", "text": "Hola"}

    def test_send_message_error_status(self):
        """Test non-200 responses raise DeliveryFailure."""
        self.gateway.session.post.return_value = Mock(status_code=400, text="Bad Request")

        with pytest.raises(DeliveryFailure):
            self.gateway.send_message("42", "Hola")

    def test_send_message_network_error(self):
        """Test transport errors raise DeliveryFailure."""
        self.gateway.session.post.side_effect = requests.exceptions.ConnectionError("down")

        with pytest.raises(DeliveryFailure):
            self.gateway.send_message("42", "Hola")

    def test_send_message_non_json_body(self):
        """Test an unparseable success body raises DeliveryFailure."""
        response = Mock(status_code=200)
        response.json.side_effect = ValueError("Expecting value")
        self.gateway.session.post.return_value = response

        with pytest.raises(DeliveryFailure):
            self.gateway.send_message("42", "Hola")

    def test_typing_failure_swallowed(self):
        """Test a failed typing indicator does not raise."""
        self.gateway.session.post.side_effect = requests.exceptions.Timeout("slow")
        self.gateway.send_typing("42")

        args, kwargs = self.gateway.session.post.call_args
        assert kwargs["json"] == {"chat_id": "42", "action": "typing"}
