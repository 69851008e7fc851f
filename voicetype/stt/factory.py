# Save this file as: voicetype/stt/factory.py

from typing import Iterable, Optional

from voicetype.stt.base import SpeechEngine
from voicetype.utils.logger import logger

ENGINE_TYPES = ("whisper", "wav2vec", "vosk")


def create_engine(settings, phrases: Optional[Iterable[str]] = None) -> SpeechEngine:
    """
    Build the backend named by settings.engine.

    Backend modules are imported here so that only the selected
    model stack (faster-whisper, torch/transformers or vosk) gets loaded.
    """
    engine_type = (settings.engine or "").lower()
    language = "auto" if settings.auto_detect_language else settings.language
    logger.info(f"Creating speech engine '{engine_type}' (language={language})")

    if engine_type == "whisper":
        from voicetype.stt.whisper_stt import WhisperEngine
        return WhisperEngine(model_size=settings.whisper_model, language=language)

    if engine_type == "wav2vec":
        from voicetype.stt.wav2vec import Wav2VecEngine
        return Wav2VecEngine(model_name=settings.wav2vec_model, language=settings.language)

    if engine_type == "vosk":
        from voicetype.stt.vosk_stt import VoskEngine
        return VoskEngine(
            model_path=settings.vosk_model_path,
            language=settings.language,
            phrases=phrases if settings.use_dictionary_grammar else None
        )

    raise ValueError(f"Unknown engine '{settings.engine}'. Expected one of {', '.join(ENGINE_TYPES)}")
