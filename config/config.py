# Save this file as: config/config.py
import os
from dataclasses import dataclass


@dataclass
class PipelineConfig:
    # Every recognizer consumes 16kHz mono
    target_sample_rate: int = int(os.getenv('TARGET_SAMPLE_RATE', 16000))

    # Minimum durations (seconds)
    engine_min_duration_s: float = float(os.getenv('ENGINE_MIN_DURATION_S', 0.5))
    session_min_duration_s: float = float(os.getenv('SESSION_MIN_DURATION_S', 0.3))
    snapshot_min_duration_s: float = float(os.getenv('SNAPSHOT_MIN_DURATION_S', 1.0))

    # LOWER INTERVAL makes partial text appear sooner, at the cost of more inference
    streaming_interval_ms: int = int(os.getenv('STREAMING_INTERVAL_MS', 1000))
    snapshot_timeout_ms: int = int(os.getenv('SNAPSHOT_TIMEOUT_MS', 500))
    stop_timeout_ms: int = int(os.getenv('STOP_TIMEOUT_MS', 2000))

    history_limit: int = int(os.getenv('HISTORY_LIMIT', 50))
    data_dir: str = os.path.expanduser(os.getenv('VOICETYPE_DATA_DIR', '~/.voicetype'))

    # librosa res_type used when decoding files
    hq_resample_type: str = os.getenv('HQ_RESAMPLE_TYPE', 'soxr_hq')

    @property
    def streaming_interval(self) -> float:
        return self.streaming_interval_ms / 1000

    @property
    def snapshot_timeout(self) -> float:
        return self.snapshot_timeout_ms / 1000

    @property
    def stop_timeout(self) -> float:
        return self.stop_timeout_ms / 1000


# Load configurations
pipeline_config = PipelineConfig()
