# Save this file as: voicetype/pipeline/file_transcription.py

import os
from dataclasses import dataclass
from typing import Iterable, List, Optional

from voicetype.audio.decoder import AudioDecoder, DecodeError
from voicetype.audio.resample import ResampleError
from voicetype.pipeline.message import EventSink, EventType, emit_event
from voicetype.stt.base import TranscriptionResult
from voicetype.stt.errors import EngineError
from voicetype.stt.holder import EngineHolder
from voicetype.utils.logger import logger


@dataclass
class FileTranscriptionResult:
    file_path: str
    file_name: str
    transcription: Optional[TranscriptionResult] = None
    error: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "file_path": self.file_path,
            "file_name": self.file_name,
            "transcription": self.transcription.to_dict() if self.transcription else None,
            "error": self.error,
        }


def transcribe_files(
    paths: Iterable[str],
    engines: EngineHolder,
    event_sink: Optional[EventSink] = None,
) -> List[FileTranscriptionResult]:
    """
    Decode and transcribe each file with the active engine.
    A failing file gets an error entry; the batch carries on.
    """
    paths = [os.fspath(p) for p in paths]
    total = len(paths)
    results = []

    for index, path in enumerate(paths):
        file_name = os.path.basename(path) or "unknown"
        progress = dict(current=index + 1, total=total, file_name=file_name)

        emit_event(event_sink, EventType.DECODING_STARTED, **progress)
        if not AudioDecoder.is_supported(path):
            results.append(FileTranscriptionResult(path, file_name, error="Unsupported audio format"))
            continue

        try:
            audio, sample_rate = AudioDecoder.decode_file(path)
        except (DecodeError, ResampleError) as e:
            logger.error(f"Failed to decode {file_name}: {e}")
            results.append(FileTranscriptionResult(path, file_name, error=f"Failed to decode: {e}"))
            continue

        emit_event(event_sink, EventType.TRANSCRIBING_STARTED, **progress)
        with engines.read() as engine:
            if engine is None:
                results.append(FileTranscriptionResult(path, file_name, error="No engine initialized"))
                continue
            try:
                transcription = engine.transcribe(audio, sample_rate)
            except EngineError as e:
                logger.error(f"Failed to transcribe {file_name}: {e}")
                results.append(FileTranscriptionResult(path, file_name, error=str(e)))
                continue

        results.append(FileTranscriptionResult(path, file_name, transcription=transcription))

    emit_event(event_sink, EventType.COMPLETED, current=total, total=total, file_name="")
    return results
