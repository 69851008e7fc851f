# Save this file as: voicetype/storage/settings.py

import json
import os
from dataclasses import asdict, dataclass, fields
from typing import Optional

from voicetype.utils.logger import logger
from config.config import pipeline_config


@dataclass
class Settings:
    """User preferences persisted between runs"""
    language: str = "en"
    auto_detect_language: bool = False
    streaming_enabled: bool = True

    engine: str = "whisper"
    whisper_model: str = "small"
    wav2vec_model: str = "facebook/wav2vec2-large-960h"
    vosk_model_path: str = ""
    use_dictionary_grammar: bool = False

    microphone_index: Optional[int] = None


class SettingsStore:
    """Flat JSON document, read and written on demand."""

    def __init__(self, data_dir: str = None):
        self.data_dir = data_dir or pipeline_config.data_dir
        self.path = os.path.join(self.data_dir, "config.json")

    def load(self) -> Settings:
        if not os.path.exists(self.path):
            return Settings()
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"Could not read settings ({e}), using defaults")
            return Settings()

        known = {f.name for f in fields(Settings)}
        return Settings(**{k: v for k, v in data.items() if k in known})

    def save(self, settings: Settings):
        os.makedirs(self.data_dir, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(asdict(settings), f, indent=2)
