# Save this file as: voicetype/storage/dictionary.py

import json
import os
from typing import List

from voicetype.utils.logger import logger
from config.config import pipeline_config


class DictionaryStore:
    """
    Custom words (names, jargon). They become the Vosk grammar when
    use_dictionary_grammar is enabled.
    """

    def __init__(self, data_dir: str = None):
        self.data_dir = data_dir or pipeline_config.data_dir
        self.path = os.path.join(self.data_dir, "dictionary.json")

    def load(self) -> List[str]:
        if not os.path.exists(self.path):
            return []
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                return list(json.load(f).get("words", []))
        except (OSError, ValueError) as e:
            logger.warning(f"Could not read dictionary ({e})")
            return []

    def add_word(self, word: str):
        words = self.load()
        if word not in words:
            words.append(word)
            self._save(words)

    def remove_word(self, word: str):
        self._save([w for w in self.load() if w != word])

    def _save(self, words: List[str]):
        os.makedirs(self.data_dir, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump({"words": words}, f, indent=2)
