# Save this file as: voicetype/storage/history.py

import json
import os
import threading
from typing import List

from voicetype.stt.base import TranscriptionResult
from voicetype.utils.logger import logger
from config.config import pipeline_config


class HistoryStore:
    """Recent transcriptions, newest first, capped at max_entries."""

    def __init__(self, data_dir: str = None, max_entries: int = None):
        self.data_dir = data_dir or pipeline_config.data_dir
        self.path = os.path.join(self.data_dir, "history.json")
        self.max_entries = max_entries or pipeline_config.history_limit
        self._lock = threading.Lock()

    def load(self) -> List[TranscriptionResult]:
        if not os.path.exists(self.path):
            return []
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"Could not read history ({e}), starting empty")
            return []
        return [TranscriptionResult.from_dict(item) for item in data.get("transcriptions", [])]

    def append(self, result: TranscriptionResult):
        with self._lock:
            entries = self.load()
            entries.insert(0, result)
            self._save(entries[:self.max_entries])

    def clear(self):
        with self._lock:
            self._save([])

    def _save(self, entries: List[TranscriptionResult]):
        os.makedirs(self.data_dir, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump({"transcriptions": [e.to_dict() for e in entries]}, f, indent=2)
