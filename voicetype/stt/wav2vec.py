# Save this file as: voicetype/stt/wav2vec.py

import threading
import time

import numpy as np
import torch
from transformers import Wav2Vec2ForCTC, Wav2Vec2Processor

from voicetype.stt.base import SpeechEngine, TranscriptionResult, validate_audio
from voicetype.stt.errors import InferenceError, ModelLoadError
from voicetype.utils.logger import logger


class Wav2VecEngine(SpeechEngine):
    """
    Speech-to-Text using Wav2Vec2 CTC models.
    """

    def __init__(self, model_name="facebook/wav2vec2-large-960h", language="en"):
        logger.info(f"Loading STT Model: {model_name}...")

        try:
            self.processor = Wav2Vec2Processor.from_pretrained(model_name)
            self.model = Wav2Vec2ForCTC.from_pretrained(model_name)
            self.model.eval()

            # Move to GPU if available (Big speedup!)
            self.device = "cuda" if torch.cuda.is_available() else "cpu"
            self.model = self.model.to(self.device)
            logger.info(f"STT Model running on {self.device}.")

        except Exception as e:
            logger.error(f"Critical error loading STT model: {e}")
            raise ModelLoadError(f"Failed to load Wav2Vec2 model '{model_name}': {e}") from e

        self.model_name = model_name
        self.language = language
        # One forward pass at a time per model instance
        self._lock = threading.Lock()

    @property
    def name(self) -> str:
        return f"Wav2Vec2 ({self.model_name})"

    def transcribe(self, samples: np.ndarray, sample_rate: int) -> TranscriptionResult:
        start_time = time.perf_counter()
        duration = validate_audio(samples, sample_rate, self.sample_rate)

        # Normalize Volume: quiet audio makes CTC models fail
        audio_data = np.asarray(samples, dtype=np.float32)
        max_val = np.max(np.abs(audio_data))
        if max_val > 0:
            audio_data = audio_data / max_val

        try:
            with self._lock:
                input_values = self.processor(
                    audio_data,
                    sampling_rate=self.sample_rate,
                    return_tensors="pt"
                ).input_values.to(self.device)

                with torch.no_grad():
                    logits = self.model(input_values).logits

            probs = torch.softmax(logits, dim=-1)
            confidence = float(probs.max(dim=-1).values.mean())
            predicted_ids = torch.argmax(logits, dim=-1)
            transcription = self.processor.batch_decode(predicted_ids)[0]
        except Exception as e:
            logger.error(f"STT Error: {e}")
            raise InferenceError(f"Wav2Vec2 inference failed: {e}") from e

        text = transcription.lower().strip()
        processing_time_ms = int((time.perf_counter() - start_time) * 1000)
        logger.info(f"Wav2Vec2 transcription completed in {processing_time_ms}ms: {len(text)} chars")

        return TranscriptionResult(
            text=text,
            confidence=confidence,
            duration_seconds=duration,
            processing_time_ms=processing_time_ms,
            detected_language=self.language,
        )
