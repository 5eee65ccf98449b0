"""Tests for per-user chat transcripts."""

import json
from pathlib import Path

import pytest
from pydantic import ValidationError as PydanticValidationError

from siteadmin.config import Settings
from siteadmin.services.chat_history import ChatHistoryStore


class TestForUser:
    def test_file_per_user(self, tmp_path: Path):
        assert ChatHistoryStore.for_user(tmp_path, 7).path == tmp_path / "chat_7.json"

    def test_default_file_without_user(self, tmp_path: Path):
        assert ChatHistoryStore.for_user(tmp_path, None).path == tmp_path / "chat_default.json"
        assert ChatHistoryStore.for_user(tmp_path, 0).path == tmp_path / "chat_default.json"


class TestHistory:
    def test_empty_by_default(self, tmp_path: Path):
        assert ChatHistoryStore(tmp_path / "chat.json").history() == []

    def test_append_stamps_messages(self, tmp_path: Path):
        store = ChatHistoryStore(tmp_path / "chat.json")

        store.append("user", "Hello")
        messages = store.append("assistant", "Hi there")

        assert [(m.role, m.text) for m in messages] == [("user", "Hello"), ("assistant", "Hi there")]
        assert all(m.timestamp for m in messages)
        assert store.history() == messages

    def test_unknown_role_stored_as_user(self, tmp_path: Path):
        store = ChatHistoryStore(tmp_path / "chat.json")
        assert store.append("system", "x")[0].role == "user"

    def test_cap_keeps_most_recent(self, tmp_path: Path):
        store = ChatHistoryStore(tmp_path / "chat.json", max_entries=40)

        for i in range(45):
            store.append("user", f"message {i}")

        history = store.history()
        assert len(history) == 40
        assert history[0].text == "message 5"
        assert history[-1].text == "message 44"

    @pytest.mark.parametrize("max_entries", [0, -3])
    def test_cap_must_be_positive(self, tmp_path: Path, max_entries: int):
        with pytest.raises(ValueError):
            ChatHistoryStore(tmp_path / "chat.json", max_entries=max_entries)

    def test_settings_reject_non_positive_cap(self):
        with pytest.raises(PydanticValidationError):
            Settings(chat_history_max_entries=0)

    def test_cap_of_one(self, tmp_path: Path):
        store = ChatHistoryStore(tmp_path / "chat.json", max_entries=1)
        store.append("user", "first")
        store.append("assistant", "second")
        assert [m.text for m in store.history()] == ["second"]

    def test_malformed_entries_dropped_on_load(self, tmp_path: Path):
        path = tmp_path / "chat.json"
        path.write_text(json.dumps([
            {"role": "system", "text": "ignored"},
            {"role": "user", "text": "kept"},
            "garbage",
            {"role": "assistant", "text": "also kept"},
        ]))

        history = ChatHistoryStore(path).history()

        assert [m.text for m in history] == ["kept", "also kept"]

    def test_corrupt_file_reads_empty(self, tmp_path: Path):
        path = tmp_path / "chat.json"
        path.write_text("[{")
        assert ChatHistoryStore(path).history() == []


class TestReplaceAndClear:
    def test_replace_trims(self, tmp_path: Path):
        store = ChatHistoryStore(tmp_path / "chat.json", max_entries=2)

        kept = store.replace([
            {"role": "user", "text": "one"},
            {"role": "assistant", "text": "two"},
            {"role": "user", "text": "three"},
        ])

        assert [m.text for m in kept] == ["two", "three"]
        assert [m.text for m in store.history()] == ["two", "three"]

    def test_clear(self, tmp_path: Path):
        store = ChatHistoryStore(tmp_path / "chat.json")
        store.append("user", "Hello")

        store.clear()

        assert store.history() == []
        assert json.loads(store.path.read_text()) == []
