# Save this file as: voicetype/stt/vosk_stt.py
"""
Vosk (Kaldi) backend with optional vocabulary-constrained grammar.

When a phrase list is given, the recognizer only considers those phrases
(plus "[unk]" for anything else), which suits command words and names
from the user dictionary.
"""

import json
import os
import threading
import time
from typing import Iterable, Optional

import numpy as np
from vosk import KaldiRecognizer, Model, SetLogLevel

from voicetype.stt.base import SpeechEngine, TranscriptionResult, validate_audio
from voicetype.stt.errors import InferenceError, ModelLoadError
from voicetype.utils.logger import logger

# Suppress Vosk internal logs
SetLogLevel(-1)

# Reported when the recognizer gives no per-word confidence
PLACEHOLDER_CONFIDENCE = 0.9


class VoskEngine(SpeechEngine):

    def __init__(self, model_path: str, language: str = "en", phrases: Optional[Iterable[str]] = None):
        logger.info(f"Loading Vosk model from {model_path}...")
        if not os.path.isdir(model_path):
            raise ModelLoadError(f"Vosk model not found: {model_path}")

        try:
            self.model = Model(model_path)
        except Exception as e:
            logger.error(f"Failed to load Vosk model: {e}")
            raise ModelLoadError(f"Failed to load Vosk model: {e}") from e
        logger.info("Vosk model loaded successfully")

        self.model_path = model_path
        self.language = language
        self.grammar = self.build_grammar(phrases)
        # Recognizers hold mutable decoding state; one call at a time
        self._lock = threading.Lock()

    @staticmethod
    def build_grammar(phrases: Optional[Iterable[str]]) -> Optional[str]:
        """JSON phrase list for KaldiRecognizer, or None for open vocabulary."""
        if not phrases:
            return None
        cleaned = sorted({p.strip().lower() for p in phrases if p and p.strip()})
        if not cleaned:
            return None
        return json.dumps(cleaned + ["[unk]"])

    @property
    def name(self) -> str:
        return "Vosk"

    def transcribe(self, samples: np.ndarray, sample_rate: int) -> TranscriptionResult:
        start_time = time.perf_counter()
        duration = validate_audio(samples, sample_rate, self.sample_rate)

        # Vosk wants int16 PCM bytes
        pcm = (np.clip(np.asarray(samples, dtype=np.float32), -1.0, 1.0) * 32767).astype(np.int16)

        try:
            with self._lock:
                if self.grammar:
                    recognizer = KaldiRecognizer(self.model, float(sample_rate), self.grammar)
                else:
                    recognizer = KaldiRecognizer(self.model, float(sample_rate))
                recognizer.SetWords(True)
                recognizer.AcceptWaveform(pcm.tobytes())
                result = json.loads(recognizer.FinalResult())
        except Exception as e:
            logger.error(f"Vosk Error: {e}")
            raise InferenceError(f"Vosk inference failed: {e}") from e

        text = result.get("text", "").replace("[unk]", "").strip()
        text = " ".join(text.split())
        words = result.get("result") or []
        if words:
            confidence = sum(w.get("conf", 0.0) for w in words) / len(words)
        else:
            confidence = PLACEHOLDER_CONFIDENCE

        processing_time_ms = int((time.perf_counter() - start_time) * 1000)
        logger.info(f"Vosk transcription completed in {processing_time_ms}ms: {len(text)} chars")

        return TranscriptionResult(
            text=text,
            confidence=confidence,
            duration_seconds=duration,
            processing_time_ms=processing_time_ms,
            detected_language=self.language,
        )
