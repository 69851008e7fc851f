# Save this file as: tests/conftest.py
"""
Shared fixtures: fake capture device, stub engine, recording sink.
No microphone or model files are needed for the test suite.
"""

import threading
import time

import numpy as np
import pytest

from config.config import PipelineConfig
from voicetype.audio.capture import CaptureDevice, CaptureOwner
from voicetype.audio.chunk import AudioBuffer
from voicetype.output.sink import OutputSink
from voicetype.stt.base import SpeechEngine, TranscriptionResult, validate_audio


def tone(seconds: float, rate: int = 16000, freq: float = 440.0, amplitude: float = 0.5) -> np.ndarray:
    t = np.arange(int(seconds * rate)) / rate
    return (amplitude * np.sin(2 * np.pi * freq * t)).astype(np.float32)


class FakeDevice(CaptureDevice):
    """In-memory device: snapshot() and stop() return preset audio."""

    def __init__(self, snapshot_audio=None, final_audio=None, sample_rate=16000, fail_start=False):
        self.snapshot_audio = snapshot_audio if snapshot_audio is not None else tone(1.5, sample_rate)
        self.final_audio = final_audio if final_audio is not None else self.snapshot_audio
        self.sample_rate = sample_rate
        self.fail_start = fail_start
        self.started = 0
        self.stopped = 0

    def start(self):
        if self.fail_start:
            raise OSError("No input device")
        self.started += 1

    def snapshot(self) -> AudioBuffer:
        return AudioBuffer(self.snapshot_audio.copy(), self.sample_rate)

    def stop(self) -> AudioBuffer:
        self.stopped += 1
        return AudioBuffer(self.final_audio.copy(), self.sample_rate)


class StubEngine(SpeechEngine):
    """Returns canned text. `text_for` maps a sample count to text when given."""

    def __init__(self, text="test", text_for=None, error=None):
        self.text = text
        self.text_for = text_for
        self.error = error
        self.calls = []
        self._lock = threading.Lock()

    @property
    def name(self) -> str:
        return "Stub"

    def transcribe(self, samples, sample_rate) -> TranscriptionResult:
        duration = validate_audio(samples, sample_rate, self.sample_rate)
        with self._lock:
            self.calls.append((len(samples), sample_rate))
        if self.error is not None:
            raise self.error
        text = self.text_for(len(samples)) if self.text_for else self.text
        return TranscriptionResult(
            text=text,
            confidence=0.9,
            duration_seconds=duration,
            processing_time_ms=1,
            detected_language="en",
        )


class RecordingSink(OutputSink):
    def __init__(self):
        self.fragments = []

    def dispatch(self, text: str):
        self.fragments.append(text)

    @property
    def typed(self) -> str:
        return "".join(self.fragments)


class EventLog:
    def __init__(self):
        self.events = []
        self._lock = threading.Lock()

    def __call__(self, event):
        with self._lock:
            self.events.append(event)

    def of_type(self, event_type: str):
        with self._lock:
            return [e for e in self.events if e["type"] == event_type]


def wait_until(predicate, timeout=2.0, interval=0.01) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()


@pytest.fixture
def fast_config(tmp_path):
    return PipelineConfig(
        streaming_interval_ms=20,
        snapshot_timeout_ms=200,
        stop_timeout_ms=500,
        data_dir=str(tmp_path),
    )


@pytest.fixture
def owner_factory():
    """Build started CaptureOwners around a device; all are closed at teardown."""
    owners = []

    def make(device=None):
        device = device or FakeDevice()
        owner = CaptureOwner(device_factory=lambda: device)
        owner.start()
        owners.append(owner)
        return owner, device

    yield make
    for owner in owners:
        owner.close(timeout=1.0)


@pytest.fixture
def stub_engine():
    return StubEngine()


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def events():
    return EventLog()
