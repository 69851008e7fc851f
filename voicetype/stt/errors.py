# Save this file as: voicetype/stt/errors.py

class EngineError(Exception):
    """Base class for speech engine failures."""


class AudioTooShortError(EngineError):
    def __init__(self, duration: float, minimum: float):
        self.duration = duration
        self.minimum = minimum
        super().__init__(f"Audio too short ({duration:.2f}s, minimum {minimum:.1f} seconds)")


class InvalidSampleRateError(EngineError):
    def __init__(self, rate: int, expected: int = 16000):
        self.rate = rate
        self.expected = expected
        super().__init__(f"Invalid sample rate: {rate}Hz (expected {expected}Hz)")


class ModelLoadError(EngineError):
    """Model could not be loaded. Raised at construction time only."""


class InferenceError(EngineError):
    """Recognition failed while transcribing."""
