# Save this file as: tests/test_file_transcription.py
"""
Tests for batch file transcription and the decode -> resample -> transcribe path.
"""

import wave

import numpy as np
import pytest

from voicetype.audio.resample import resample_hq
from voicetype.pipeline.file_transcription import transcribe_files
from voicetype.stt.errors import InferenceError
from voicetype.stt.holder import EngineHolder
from conftest import StubEngine, tone


def write_wav(path, samples, rate):
    pcm = (np.clip(samples, -1.0, 1.0) * 32767).astype("<i2")
    with wave.open(str(path), "wb") as wf:
        wf.setnchannels(1)
        wf.setsampwidth(2)
        wf.setframerate(rate)
        wf.writeframes(pcm.tobytes())
    return str(path)


class TestEndToEnd:
    """Synthetic audio through resampling into a stub engine."""

    def test_sine_at_44100_through_engine(self):
        """Three seconds at 44.1 kHz come out as a three second result."""
        engine = StubEngine(text="test")
        audio = resample_hq(tone(3.0, 44100), 44100, 16000)

        result = engine.transcribe(audio, 16000)

        assert result.text == "test"
        assert result.duration_seconds == pytest.approx(3.0, abs=0.01)

    def test_wav_file_through_engine(self, tmp_path, events):
        """A 44.1 kHz WAV file is decoded, resampled and transcribed."""
        path = write_wav(tmp_path / "speech.wav", tone(3.0, 44100), 44100)
        engine = StubEngine(text="test")

        results = transcribe_files([path], EngineHolder(engine), events)

        assert len(results) == 1
        assert results[0].error is None
        assert results[0].file_name == "speech.wav"
        assert results[0].transcription.text == "test"
        assert results[0].transcription.duration_seconds == pytest.approx(3.0, abs=0.01)


class TestTranscribeFiles:
    """Tests for per-file error handling and progress events."""

    def test_failures_do_not_stop_the_batch(self, tmp_path, events):
        """Each failing file gets its own error and later files still run."""
        good = write_wav(tmp_path / "good.wav", tone(1.0), 16000)
        text_file = tmp_path / "notes.txt"
        text_file.write_text("hello")
        missing = str(tmp_path / "missing.mp3")

        results = transcribe_files([str(text_file), missing, good], EngineHolder(StubEngine()), events)

        assert results[0].error == "Unsupported audio format"
        assert results[1].error.startswith("Failed to decode")
        assert results[2].error is None
        assert results[2].transcription.text == "test"

    def test_progress_events(self, tmp_path, events):
        """Decoding and transcribing are announced per file, then completion."""
        a = write_wav(tmp_path / "a.wav", tone(1.0), 16000)
        b = write_wav(tmp_path / "b.wav", tone(1.0), 16000)

        transcribe_files([a, b], EngineHolder(StubEngine()), events)

        types = [e["type"] for e in events.events]
        assert types == [
            "decoding_started", "transcribing_started",
            "decoding_started", "transcribing_started",
            "completed",
        ]
        assert events.events[2]["current"] == 2
        assert events.events[2]["total"] == 2
        assert events.events[2]["file_name"] == "b.wav"

    def test_no_engine(self, tmp_path):
        """Without an engine each file reports it."""
        path = write_wav(tmp_path / "a.wav", tone(1.0), 16000)
        results = transcribe_files([path], EngineHolder())
        assert results[0].error == "No engine initialized"

    def test_engine_error_message(self, tmp_path):
        """Engine failures are reported with their message."""
        path = write_wav(tmp_path / "a.wav", tone(1.0), 16000)
        results = transcribe_files([path], EngineHolder(StubEngine(error=InferenceError("model crashed"))))
        assert results[0].error == "model crashed"

    def test_too_short_file(self, tmp_path):
        """Files under the engine minimum fail with a too-short error."""
        path = write_wav(tmp_path / "blip.wav", tone(0.1), 16000)
        results = transcribe_files([path], EngineHolder(StubEngine()))
        assert "too short" in results[0].error

    def test_to_dict(self, tmp_path):
        """Results serialize for the control server."""
        path = write_wav(tmp_path / "a.wav", tone(1.0), 16000)
        data = transcribe_files([path], EngineHolder(StubEngine()))[0].to_dict()
        assert data["file_name"] == "a.wav"
        assert data["transcription"]["text"] == "test"
        assert data["error"] is None
