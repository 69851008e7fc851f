# Save this file as: voicetype/pipeline/session.py

import threading
from typing import Optional

from voicetype.audio.capture import CaptureOwner, CaptureTimeoutError
from voicetype.audio.chunk import AudioBuffer
from voicetype.audio.resample import resample_linear
from voicetype.output.sink import OutputSink, safe_dispatch
from voicetype.pipeline.message import CaptureCommand, EventSink, EventType, emit_event
from voicetype.pipeline.streaming import StreamingTranscriber
from voicetype.storage.history import HistoryStore
from voicetype.storage.settings import Settings, SettingsStore
from voicetype.stt.base import TranscriptionResult
from voicetype.stt.errors import AudioTooShortError, EngineError
from voicetype.stt.holder import EngineHolder
from voicetype.utils.logger import logger
from config.config import PipelineConfig, pipeline_config


def reconcile(emitted_text: str, final_text: str) -> str:
    """
    What still has to be typed once the final transcript is known.

    Nothing streamed: the whole final text. Final text longer than what
    was streamed: the tail past the streamed length. Otherwise nothing,
    the streamed text stands.
    """
    if not emitted_text:
        return final_text
    if len(final_text) > len(emitted_text):
        remaining = final_text[len(emitted_text):]
        return remaining if remaining.strip() else ""
    return ""


class SessionController:
    """
    Push-to-talk lifecycle: press() starts a recording and the streaming
    loop, release() stops it and finalizes on a short-lived thread.
    Only one session runs at a time; overlapping presses are rejected.
    """

    def __init__(
        self,
        capture: CaptureOwner,
        engines: EngineHolder,
        sink: OutputSink,
        settings_store: Optional[SettingsStore] = None,
        history: Optional[HistoryStore] = None,
        event_sink: Optional[EventSink] = None,
        config: PipelineConfig = pipeline_config,
    ):
        self.capture = capture
        self.engines = engines
        self.sink = sink
        self.settings_store = settings_store
        self.history = history
        self.event_sink = event_sink
        self.config = config

        self._active = threading.Event()
        self._emit_lock = threading.Lock()
        self._state_lock = threading.Lock()

        self.streamer: Optional[StreamingTranscriber] = None
        self._stream_thread: Optional[threading.Thread] = None
        self._finalize_thread: Optional[threading.Thread] = None
        self._session_id = 0

        self.capture.start()

    @property
    def is_recording(self) -> bool:
        return self._active.is_set()

    @property
    def is_busy(self) -> bool:
        finalizing = self._finalize_thread is not None and self._finalize_thread.is_alive()
        return self._active.is_set() or finalizing

    def _emit(self, event_type: EventType, **payload):
        emit_event(self.event_sink, event_type, **payload)

    def _load_settings(self) -> Settings:
        if self.settings_store is None:
            return Settings()
        try:
            return self.settings_store.load()
        except Exception as e:
            logger.warning(f"Could not load settings, using defaults: {e}")
            return Settings()

    def press(self) -> bool:
        """Start a session. False if one is already recording or finalizing."""
        with self._state_lock:
            if self._active.is_set():
                logger.debug("Already recording, press ignored")
                return False
            if self._finalize_thread is not None and self._finalize_thread.is_alive():
                logger.warning("Previous recording is still being processed, press rejected")
                return False

            settings = self._load_settings()
            self.streamer = None
            # Fresh flag per session so a lingering loop never sees a later session
            self._active = threading.Event()
            self._active.set()
            self._session_id = self.capture.send(CaptureCommand.START)
            logger.info("Key PRESSED - Starting recording")
            self._emit(EventType.RECORDING_STATUS, status="recording")

            if settings.streaming_enabled:
                self.streamer = StreamingTranscriber(
                    self.capture,
                    self.engines,
                    self.sink,
                    active=self._active,
                    emit_lock=self._emit_lock,
                    event_sink=self.event_sink,
                    config=self.config,
                    session_id=self._session_id,
                )
                self._stream_thread = threading.Thread(
                    target=self.streamer.run, daemon=True, name="StreamingTranscriber"
                )
                self._stream_thread.start()
            else:
                logger.info("Streaming disabled in settings")
            return True

    def release(self) -> Optional[threading.Thread]:
        """Stop the session and finalize it in the background. Returns the finalize thread."""
        with self._state_lock:
            if not self._active.is_set():
                return None

            # Clear the flag and read what was typed in one step, so the
            # streaming loop cannot type anything we did not account for
            with self._emit_lock:
                self._active.clear()
                emitted_text = self.streamer.emitted_text if self.streamer else ""

            logger.info(f"Key RELEASED - Stopping recording (streamed so far: '{emitted_text}')")
            self.capture.send(CaptureCommand.STOP)
            self._emit(EventType.RECORDING_STATUS, status="processing")

            self._finalize_thread = threading.Thread(
                target=self.finalize, args=(emitted_text, self._session_id), daemon=True, name="SessionFinalize"
            )
            self._finalize_thread.start()
            return self._finalize_thread

    def finalize(self, emitted_text: str = "", session_id: Optional[int] = None) -> Optional[TranscriptionResult]:
        """Wait for the full recording, transcribe it and type what streaming missed."""
        try:
            try:
                buffer = self.capture.wait_for_complete(self.config.stop_timeout, session_id)
            except CaptureTimeoutError as e:
                logger.error(f"Failed to receive audio data: {e}")
                self._emit(EventType.ERROR, stage="capture", detail=str(e))
                return None
            return self._transcribe_final(buffer, emitted_text)
        finally:
            self._emit(EventType.RECORDING_STATUS, status="idle")

    def _transcribe_final(self, buffer: AudioBuffer, emitted_text: str) -> Optional[TranscriptionResult]:
        duration = buffer.duration
        logger.info(f"Captured {duration:.2f}s of audio ({len(buffer)} samples at {buffer.sample_rate}Hz)")
        if duration < self.config.session_min_duration_s:
            logger.warning("Recording too short")
            return None

        rate = self.config.target_sample_rate
        if buffer.sample_rate != rate:
            logger.info(f"Resampling from {buffer.sample_rate}Hz to {rate}Hz")
        audio = resample_linear(buffer.samples, buffer.sample_rate, rate)

        self._emit(EventType.TRANSCRIBING_STARTED)
        with self.engines.read() as engine:
            if engine is None:
                logger.error("Speech engine not initialized")
                self._emit(EventType.ERROR, stage="transcription", detail="Speech engine not initialized")
                return None
            try:
                result = engine.transcribe(audio, rate)
            except AudioTooShortError as e:
                logger.warning(f"Recording too short for the engine: {e}")
                return None
            except EngineError as e:
                logger.error(f"Transcription failed: {e}")
                self._emit(EventType.ERROR, stage="transcription", detail=str(e))
                return None

        final_text = result.text.strip()
        if not final_text:
            logger.warning("Transcription returned empty text")
            return None
        logger.info(f"Transcribed: '{final_text}'")

        self._emit(
            EventType.FINAL_RESULT,
            text=final_text,
            is_final=True,
            duration_seconds=result.duration_seconds
        )

        remaining = reconcile(emitted_text, final_text)
        if remaining:
            logger.debug(f"Typing remaining text: '{remaining}'")
            safe_dispatch(self.sink, remaining)

        if self.history is not None:
            try:
                self.history.append(result)
            except Exception as e:
                logger.error(f"Failed to save transcription history: {e}")

        self._emit(EventType.COMPLETED, text=final_text)
        return result

    def wait_idle(self, timeout: Optional[float] = None):
        """Join the streaming and finalize threads of the last session."""
        for thread in (self._stream_thread, self._finalize_thread):
            if thread is not None:
                thread.join(timeout)

    def close(self):
        self.release()
        self.wait_idle(timeout=self.config.stop_timeout + self.config.streaming_interval)
        self.capture.close()
