# Save this file as: voicetype/stt/whisper_stt.py

import math
import time
from typing import Optional

import numpy as np
from faster_whisper import WhisperModel

from voicetype.stt.base import SpeechEngine, TranscriptionResult, validate_audio
from voicetype.stt.errors import InferenceError, ModelLoadError
from voicetype.utils.logger import logger


class WhisperEngine(SpeechEngine):
    """
    Statistical acoustic model backend (Whisper through CTranslate2).
    CTranslate2 models serve concurrent calls, so no lock is taken here.
    """

    # Whisper hallucinations on silence - ONLY phrases that indicate no real speech
    hallucinations = {
        "thanks for watching", "thank you for watching",
        "subtitles by", "subtitle by",
        "please subscribe", "like and subscribe"
    }

    def __init__(
        self,
        model_size: str = "small",
        device: str = "auto",
        compute_type: str = "default",
        language: Optional[str] = None,
        beam_size: int = 5
    ):
        logger.info(f"Loading Whisper Model: {model_size}...")
        try:
            self.model = WhisperModel(model_size, device=device, compute_type=compute_type)
            logger.info("Whisper Model loaded successfully.")
        except Exception as e:
            logger.error(f"Critical error loading Whisper: {e}")
            raise ModelLoadError(f"Failed to load Whisper model '{model_size}': {e}") from e

        self.model_size = model_size
        # None lets Whisper detect the language
        self.language = None if language in (None, "", "auto") else language
        self.beam_size = beam_size

    @property
    def name(self) -> str:
        return f"Whisper ({self.model_size})"

    def transcribe(self, samples: np.ndarray, sample_rate: int) -> TranscriptionResult:
        start_time = time.perf_counter()
        duration = validate_audio(samples, sample_rate, self.sample_rate)

        audio_data = np.asarray(samples, dtype=np.float32)
        max_val = np.max(np.abs(audio_data)) if len(audio_data) else 0.0
        if max_val > 0:
            audio_data = audio_data / max_val

        try:
            segments, info = self.model.transcribe(
                audio_data,
                beam_size=self.beam_size,
                language=self.language,
                condition_on_previous_text=False,
                vad_filter=True,  # Use Whisper's built-in VAD to filter silence
                vad_parameters=dict(min_silence_duration_ms=500)
            )
            # segments is lazy; decoding happens while iterating
            segments = list(segments)
        except Exception as e:
            logger.error(f"Whisper Error: {e}")
            raise InferenceError(f"Whisper inference failed: {e}") from e

        text = " ".join(segment.text.strip() for segment in segments).strip()
        if text.lower().strip(" .!?-") in self.hallucinations:
            logger.debug(f"Filtered hallucination: '{text}'")
            text = ""

        if segments:
            mean_logprob = sum(s.avg_logprob for s in segments) / len(segments)
            confidence = min(1.0, max(0.0, math.exp(mean_logprob)))
        else:
            confidence = 0.0

        processing_time_ms = int((time.perf_counter() - start_time) * 1000)
        logger.info(f"Whisper transcription completed in {processing_time_ms}ms: {len(text)} chars")

        return TranscriptionResult(
            text=text,
            confidence=confidence,
            duration_seconds=duration,
            processing_time_ms=processing_time_ms,
            detected_language=getattr(info, "language", None) or self.language,
        )
