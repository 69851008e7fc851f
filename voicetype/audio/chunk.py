# Save this file as: voicetype/audio/chunk.py

from dataclasses import dataclass, field
import numpy as np


@dataclass(frozen=True)
class AudioBuffer:
    """Mono float32 samples tagged with their sample rate"""

    samples: np.ndarray                    # PCM samples (float32, -1 to 1)
    sample_rate: int                       # Sampling rate in Hz

    def __post_init__(self):
        samples = np.asarray(self.samples, dtype=np.float32)
        if samples.ndim > 1:
            # Interleaved frames (n, channels) are averaged down to mono
            samples = samples.mean(axis=1).astype(np.float32)
        object.__setattr__(self, 'samples', samples)

    @classmethod
    def empty(cls, sample_rate: int) -> "AudioBuffer":
        return cls(np.array([], dtype=np.float32), sample_rate)

    @property
    def duration(self) -> float:
        """Duration in seconds"""
        if self.sample_rate <= 0:
            return 0.0
        return len(self.samples) / self.sample_rate

    def __len__(self) -> int:
        return len(self.samples)


@dataclass
class SampleAccumulator:
    """Growable store for audio arriving in device-sized blocks"""

    blocks: list = field(default_factory=list)
    total: int = 0

    def add(self, samples: np.ndarray) -> int:
        """Add samples to the store"""
        self.blocks.append(np.asarray(samples, dtype=np.float32))
        self.total += len(samples)
        return len(samples)

    def get_all(self) -> np.ndarray:
        """Copy of everything accumulated so far, in arrival order"""
        if not self.blocks:
            return np.array([], dtype=np.float32)
        return np.concatenate(self.blocks)

    def reset(self):
        """Clear store"""
        self.blocks = []
        self.total = 0
