# Save this file as: voicetype/pipeline/streaming.py

import threading
import time
from typing import Optional

from voicetype.audio.capture import CaptureOwner
from voicetype.audio.resample import resample_linear
from voicetype.output.sink import OutputSink, safe_dispatch
from voicetype.pipeline.message import EventSink, EventType, emit_event
from voicetype.stt.errors import EngineError
from voicetype.stt.holder import EngineHolder
from voicetype.utils.logger import logger
from config.config import PipelineConfig, pipeline_config


class StreamingTranscriber:
    """
    Re-transcribes the growing recording while the key is held and types
    whatever the recognizer added since the last pass.

    Only growth is typed. When a later pass returns a shorter hypothesis
    nothing is dispatched; text already typed is never corrected.
    """

    def __init__(
        self,
        capture: CaptureOwner,
        engines: EngineHolder,
        sink: OutputSink,
        active: threading.Event,
        emit_lock: threading.Lock,
        event_sink: Optional[EventSink] = None,
        config: PipelineConfig = pipeline_config,
        session_id: Optional[int] = None,
    ):
        self.capture = capture
        self.engines = engines
        self.sink = sink
        self.active = active
        self.emit_lock = emit_lock
        self.event_sink = event_sink
        self.config = config
        self.session_id = session_id

        self.last_emitted_length = 0
        self.emitted_text = ""

    def run(self):
        logger.info("Streaming transcription started")
        while self.active.is_set():
            time.sleep(self.config.streaming_interval)

            # Released while we slept
            if not self.active.is_set():
                break

            try:
                self.poll_once()
            except Exception as e:
                logger.error(f"Streaming iteration failed: {e}")
        logger.info("Streaming transcription ended")

    def poll_once(self) -> Optional[str]:
        """One snapshot -> transcribe -> diff pass. Returns the dispatched fragment, if any."""
        snapshot = self.capture.request_snapshot(self.config.snapshot_timeout, self.session_id)
        if snapshot is None:
            return None

        duration = snapshot.duration
        if duration < self.config.snapshot_min_duration_s:
            return None
        logger.debug(f"Got {len(snapshot)} samples ({duration:.1f}s)")

        rate = self.config.target_sample_rate
        audio = resample_linear(snapshot.samples, snapshot.sample_rate, rate)

        with self.engines.read() as engine:
            if engine is None:
                logger.debug("No speech engine loaded, skipping snapshot")
                return None
            try:
                result = engine.transcribe(audio, rate)
            except EngineError as e:
                logger.warning(f"Streaming transcription error: {e}")
                return None

        return self.consume(result.text, duration)

    def consume(self, text: str, duration: float = 0.0) -> Optional[str]:
        """Dispatch the part of `text` beyond what was already typed."""
        current_text = text.strip()
        if not current_text:
            return None

        fragment = None
        with self.emit_lock:
            # Inference may outlive the key press; never type after release
            if not self.active.is_set():
                logger.debug("Recording released during inference, dropping partial result")
                return None

            if len(current_text) > self.last_emitted_length:
                new_text = current_text[self.last_emitted_length:]
                if new_text.strip():
                    logger.debug(f"Typing new text: '{new_text}'")
                    safe_dispatch(self.sink, new_text)
                    fragment = new_text
                self.last_emitted_length = len(current_text)
                self.emitted_text = current_text

        emit_event(
            self.event_sink,
            EventType.PARTIAL_RESULT,
            text=current_text,
            is_final=False,
            duration_seconds=duration
        )
        return fragment
