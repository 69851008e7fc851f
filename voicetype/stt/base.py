# Save this file as: voicetype/stt/base.py

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, asdict
from typing import Optional

import numpy as np

from voicetype.stt.errors import AudioTooShortError, InvalidSampleRateError
from config.config import pipeline_config


@dataclass(frozen=True)
class TranscriptionResult:
    """Result of one transcribe() call"""
    text: str
    confidence: float
    duration_seconds: float
    processing_time_ms: int
    detected_language: Optional[str] = None
    timestamp: int = field(default_factory=lambda: int(time.time()))

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "TranscriptionResult":
        return cls(
            text=data.get("text", ""),
            confidence=float(data.get("confidence", 0.0)),
            duration_seconds=float(data.get("duration_seconds", 0.0)),
            processing_time_ms=int(data.get("processing_time_ms", 0)),
            detected_language=data.get("detected_language"),
            timestamp=int(data.get("timestamp", 0)),
        )


def validate_audio(
    samples: np.ndarray,
    sample_rate: int,
    required_rate: int = 16000,
    min_duration: float = None
) -> float:
    """
    Check the engine preconditions and return the audio duration in seconds.
    A mismatched rate is the caller's mistake; it is never corrected here.
    """
    if sample_rate != required_rate:
        raise InvalidSampleRateError(sample_rate, required_rate)

    if min_duration is None:
        min_duration = pipeline_config.engine_min_duration_s

    duration = len(samples) / sample_rate
    if duration < min_duration:
        raise AudioTooShortError(duration, min_duration)
    return duration


class SpeechEngine(ABC):
    """
    Abstract base class for offline speech recognition backends.
    Every backend takes a complete mono buffer and returns one result.

    Implementations must allow concurrent transcribe() calls on the same
    instance; backends with per-call mutable state lock internally.
    """

    sample_rate: int = 16000

    @property
    @abstractmethod
    def name(self) -> str:
        pass

    @abstractmethod
    def transcribe(self, samples: np.ndarray, sample_rate: int) -> TranscriptionResult:
        """
        Transcribe a mono float32 buffer.

        Raises:
            InvalidSampleRateError: sample_rate differs from self.sample_rate
            AudioTooShortError: buffer shorter than the engine minimum
            InferenceError: the backend failed
        """
        pass
