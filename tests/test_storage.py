# Save this file as: tests/test_storage.py
"""
Unit tests for the JSON-backed settings, history and dictionary stores.
"""

import json

from voicetype.storage.dictionary import DictionaryStore
from voicetype.storage.history import HistoryStore
from voicetype.storage.settings import Settings, SettingsStore
from voicetype.stt.base import TranscriptionResult


class TestSettingsStore:
    """Tests for persisted user preferences."""

    def test_defaults_when_missing(self, tmp_path):
        """No file yet means default settings."""
        settings = SettingsStore(str(tmp_path)).load()
        assert settings == Settings()
        assert settings.streaming_enabled is True
        assert settings.engine == "whisper"

    def test_save_and_load(self, tmp_path):
        """Saved settings load back."""
        store = SettingsStore(str(tmp_path / "nested"))
        store.save(Settings(language="de", engine="vosk", microphone_index=2))
        loaded = store.load()
        assert loaded.language == "de"
        assert loaded.engine == "vosk"
        assert loaded.microphone_index == 2

    def test_unknown_keys_are_ignored(self, tmp_path):
        """Keys from other versions do not break loading."""
        (tmp_path / "config.json").write_text(json.dumps({"language": "fr", "theme": "dark"}))
        settings = SettingsStore(str(tmp_path)).load()
        assert settings.language == "fr"

    def test_corrupt_file_gives_defaults(self, tmp_path):
        """Unreadable JSON falls back to defaults."""
        (tmp_path / "config.json").write_text("{not json")
        assert SettingsStore(str(tmp_path)).load() == Settings()


def result(text, ts):
    return TranscriptionResult(text, 0.9, 1.0, 10, "en", timestamp=ts)


class TestHistoryStore:
    """Tests for the capped, newest-first history."""

    def test_newest_first_and_capped(self, tmp_path):
        """Only the most recent entries are kept."""
        store = HistoryStore(str(tmp_path), max_entries=3)
        for i in range(5):
            store.append(result(f"entry {i}", 1000 + i))
        assert [r.text for r in store.load()] == ["entry 4", "entry 3", "entry 2"]

    def test_file_layout(self, tmp_path):
        """Entries live under a 'transcriptions' key."""
        store = HistoryStore(str(tmp_path))
        store.append(result("hello", 1234))
        data = json.loads((tmp_path / "history.json").read_text())
        assert data["transcriptions"][0]["text"] == "hello"
        assert data["transcriptions"][0]["timestamp"] == 1234

    def test_clear(self, tmp_path):
        """clear empties the history."""
        store = HistoryStore(str(tmp_path))
        store.append(result("hello", 1))
        store.clear()
        assert store.load() == []

    def test_corrupt_file_starts_empty(self, tmp_path):
        """A damaged file reads as no history."""
        (tmp_path / "history.json").write_text("[[[")
        assert HistoryStore(str(tmp_path)).load() == []


class TestDictionaryStore:
    """Tests for custom vocabulary."""

    def test_add_and_remove(self, tmp_path):
        """Words are stored once and can be removed."""
        store = DictionaryStore(str(tmp_path))
        store.add_word("kubectl")
        store.add_word("Anthropic")
        store.add_word("kubectl")
        assert store.load() == ["kubectl", "Anthropic"]

        store.remove_word("kubectl")
        assert store.load() == ["Anthropic"]

    def test_empty_when_missing(self, tmp_path):
        """No file means no words."""
        assert DictionaryStore(str(tmp_path)).load() == []
