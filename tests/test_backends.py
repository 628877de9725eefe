"""Tests for the SQLite and REST key/value backends."""

import json
import sqlite3

import pytest
import requests
from unittest.mock import Mock, patch

from memory.errors import PersistenceFailure
from memory.rest_store import RestKeyValueBackend
from memory.sqlite_store import SQLiteKeyValueBackend


class TestSQLiteKeyValueBackend:
    """Test SQLite persistence."""

    def test_round_trip(self, tmp_path):
        """Test values are stored as JSON and read back."""
        backend = SQLiteKeyValueBackend(db_path=str(tmp_path / "memory.db"))
        backend.set("chat:1:history", {"turns": [], "turn_count": 3})

        assert backend.get("chat:1:history") == {"turns": [], "turn_count": 3}

    def test_missing_key(self, tmp_path):
        """Test absent keys read as None."""
        backend = SQLiteKeyValueBackend(db_path=str(tmp_path / "memory.db"))
        assert backend.get("chat:1:diary") is None

    def test_last_write_wins(self, tmp_path):
        """Test overwriting a key."""
        backend = SQLiteKeyValueBackend(db_path=str(tmp_path / "memory.db"))
        backend.set("chat:1:summary-marker", 10)
        backend.set("chat:1:summary-marker", 20)
        assert backend.get("chat:1:summary-marker") == 20

    def test_survives_new_instance(self, tmp_path):
        """Test data persists across backend instances."""
        path = str(tmp_path / "memory.db")
        SQLiteKeyValueBackend(db_path=path).set("chat:1:diary-marker", "2026-10-19")
        assert SQLiteKeyValueBackend(db_path=path).get("chat:1:diary-marker") == "2026-10-19"

    def test_corrupt_value(self, tmp_path):
        """Test undecodable rows raise PersistenceFailure."""
        path = tmp_path / "memory.db"
        backend = SQLiteKeyValueBackend(db_path=str(path))
        conn = sqlite3.connect(path)
        conn.execute(
            "INSERT INTO kv_store (key, value, updated_at) VALUES (?, ?, ?)",
            ("chat:1:history", "{not json", "2026-10-19")
        )
        conn.commit()
        conn.close()

        with pytest.raises(PersistenceFailure):
            backend.get("chat:1:history")


class TestRestKeyValueBackend:
    """Test the REST key/value protocol."""

    def setup_method(self):
        """Set up test fixtures."""
        self.backend = RestKeyValueBackend(
            base_url="https://kv.example.com/",
            token="secret",
            timeout=2
        )

    def test_initialization(self):
        """Test base URL normalisation and auth header."""
        assert self.backend.base_url == "https://kv.example.com"
        assert self.backend.session.headers["Authorization"] == "Bearer secret"

    def test_get_decodes_json_result(self):
        """Test GET decodes the JSON string result."""
        response = Mock(status_code=200)
        response.json.return_value = {"result": json.dumps({"turn_count": 4})}

        with patch.object(self.backend.session, "get", return_value=response) as mock_get:
            assert self.backend.get("chat:1:history") == {"turn_count": 4}

        assert mock_get.call_args[0][0] == "https://kv.example.com/get/chat%3A1%3Ahistory"
        assert mock_get.call_args[1]["timeout"] == 2

    def test_get_missing(self):
        """Test a null result reads as None."""
        response = Mock(status_code=200)
        response.json.return_value = {"result": None}

        with patch.object(self.backend.session, "get", return_value=response):
            assert self.backend.get("chat:1:history") is None

    def test_set_posts_json_body(self):
        """Test SET posts the JSON-encoded value."""
        response = Mock(status_code=200)
        response.json.return_value = {"result": "OK"}

        with patch.object(self.backend.session, "post", return_value=response) as mock_post:
            self.backend.set("chat:1:summary-marker", 10)

        assert mock_post.call_args[0][0] == "https://kv.example.com/set/chat%3A1%3Asummary-marker"
        assert mock_post.call_args[1]["data"] == b"10"

    def test_http_error(self):
        """Test non-200 responses raise PersistenceFailure."""
        response = Mock(status_code=500)

        with patch.object(self.backend.session, "post", return_value=response):
            with pytest.raises(PersistenceFailure):
                self.backend.set("chat:1:summary-marker", 10)

    def test_timeout(self):
        """Test transport errors raise PersistenceFailure."""
        with patch.object(
            self.backend.session,
            "get",
            side_effect=requests.exceptions.Timeout("slow")
        ):
            with pytest.raises(PersistenceFailure):
                self.backend.get("chat:1:history")

    def test_error_body(self):
        """Test API-level errors raise PersistenceFailure."""
        response = Mock(status_code=200)
        response.json.return_value = {"error": "WRONGPASS"}

        with patch.object(self.backend.session, "get", return_value=response):
            with pytest.raises(PersistenceFailure):
                self.backend.get("chat:1:history")
