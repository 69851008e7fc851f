# Save this file as: voicetype/pipeline/orchestrator.py

from typing import Any, Callable, Dict, List, Optional

import numpy as np

from voicetype.audio.capture import CaptureOwner, MicrophoneCapture
from voicetype.output.sink import ConsoleSink, OutputSink
from voicetype.pipeline.file_transcription import FileTranscriptionResult, transcribe_files
from voicetype.pipeline.message import EventType, emit_event
from voicetype.pipeline.session import SessionController
from voicetype.storage.dictionary import DictionaryStore
from voicetype.storage.history import HistoryStore
from voicetype.storage.settings import SettingsStore
from voicetype.stt.base import SpeechEngine
from voicetype.stt.errors import EngineError
from voicetype.stt.factory import create_engine
from voicetype.stt.holder import EngineHolder
from voicetype.utils.logger import logger
from config.config import pipeline_config


class VoiceTyper:
    def __init__(
        self,
        sink: Optional[OutputSink] = None,
        event_sink: Optional[Callable[[Dict[str, Any]], None]] = None,
        data_dir: Optional[str] = None,
        engine: Optional[SpeechEngine] = None,
    ):
        self.event_sink = event_sink
        self.settings_store = SettingsStore(data_dir)
        self.history = HistoryStore(data_dir)
        self.dictionary = DictionaryStore(data_dir)

        settings = self.settings_store.load()
        logger.info(f"Initializing Pipeline (engine={settings.engine}, language={settings.language})...")

        # 1. Speech engine (Brain)
        self.engines = EngineHolder(engine or create_engine(settings, phrases=self.dictionary.load()))
        self._warmup_engine()

        # 2. Audio capture, owned by its own thread
        self.capture = CaptureOwner(
            device_factory=lambda: MicrophoneCapture(device_index=settings.microphone_index)
        )

        # 3. Push-to-talk session
        self.session = SessionController(
            self.capture,
            self.engines,
            sink or ConsoleSink(),
            settings_store=self.settings_store,
            history=self.history,
            event_sink=event_sink,
        )
        emit_event(self.event_sink, EventType.RECORDING_STATUS, status="idle")

    def _warmup_engine(self):
        logger.info("Warming up speech engine...")
        dummy_audio = np.zeros(pipeline_config.target_sample_rate, dtype=np.float32)
        with self.engines.read() as engine:
            try:
                engine.transcribe(dummy_audio, pipeline_config.target_sample_rate)
                logger.info("Warmup complete.")
            except EngineError as e:
                logger.warning(f"Warmup warning: {e}")

    def press(self) -> bool:
        return self.session.press()

    def release(self):
        return self.session.release()

    def reload_engine(self):
        """Rebuild the engine from current settings and swap it in."""
        settings = self.settings_store.load()
        engine = create_engine(settings, phrases=self.dictionary.load())
        self.engines.swap(engine)

    def transcribe_files(self, paths: List[str]) -> List[FileTranscriptionResult]:
        return transcribe_files(paths, self.engines, self.event_sink)

    def stop(self):
        self.session.close()
        logger.info("Pipeline Stopped.")
