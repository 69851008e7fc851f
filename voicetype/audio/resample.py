# Save this file as: voicetype/audio/resample.py
"""
Sample-rate conversion for mono float32 audio.

Two tiers:
- resample_hq: band-limited (librosa) for file decoding, whole buffer at once.
- resample_linear: floor/ceil linear interpolation for realtime snapshots.
"""

import math

import librosa
import numpy as np

from config.config import pipeline_config


class ResampleError(Exception):
    """Raised when the high-quality resampler cannot be built or run."""


def _as_float32(samples) -> np.ndarray:
    return np.asarray(samples, dtype=np.float32).reshape(-1)


def resample_hq(samples, from_rate: int, to_rate: int, res_type: str = None) -> np.ndarray:
    """
    High-quality resampling used when decoding files.

    Output length follows the backend and may differ from the exact
    ratio by a sample; the result feeds a recognizer, not a lossless chain.
    """
    audio = _as_float32(samples)
    if from_rate == to_rate:
        return audio
    if len(audio) == 0:
        return np.array([], dtype=np.float32)
    if from_rate <= 0 or to_rate <= 0:
        raise ResampleError(f"Invalid rates: {from_rate}Hz -> {to_rate}Hz")

    try:
        resampled = librosa.resample(
            audio,
            orig_sr=from_rate,
            target_sr=to_rate,
            res_type=res_type or pipeline_config.hq_resample_type
        )
    except Exception as e:
        raise ResampleError(f"Failed to resample {from_rate}Hz -> {to_rate}Hz: {e}") from e

    return resampled.astype(np.float32, copy=False)


def resample_linear(samples, from_rate: int, to_rate: int) -> np.ndarray:
    """
    Low-latency linear interpolation used for live snapshots.

    Output length is ceil(len / (from_rate / to_rate)). Equal rates return a copy.
    """
    audio = _as_float32(samples)
    if from_rate == to_rate:
        return audio.copy()
    if len(audio) == 0:
        return np.array([], dtype=np.float32)
    if from_rate <= 0 or to_rate <= 0:
        raise ResampleError(f"Invalid rates: {from_rate}Hz -> {to_rate}Hz")

    ratio = from_rate / to_rate
    output_len = math.ceil(len(audio) / ratio)

    src_idx = np.arange(output_len, dtype=np.float64) * ratio
    idx_floor = np.floor(src_idx).astype(np.int64)
    idx_floor = np.minimum(idx_floor, len(audio) - 1)
    idx_ceil = np.minimum(idx_floor + 1, len(audio) - 1)
    frac = (src_idx - idx_floor).astype(np.float32)

    s1 = audio[idx_floor]
    s2 = audio[idx_ceil]
    return (s1 + (s2 - s1) * frac).astype(np.float32)
