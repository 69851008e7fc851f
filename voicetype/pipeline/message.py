# Save this file as: voicetype/pipeline/message.py

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Optional

from voicetype.audio.chunk import AudioBuffer
from voicetype.utils.logger import logger

EventSink = Callable[[Dict[str, Any]], None]


class CaptureCommand(Enum):
    """Requests sent to the capture owner, processed in arrival order."""
    START = "start"
    STOP = "stop"
    GET_SNAPSHOT = "get_snapshot"


@dataclass(frozen=True)
class AudioSnapshot:
    """Reply to GET_SNAPSHOT. Capture keeps running."""
    buffer: AudioBuffer
    session_id: int = 0


@dataclass(frozen=True)
class AudioComplete:
    """Reply to STOP. The session's full recording."""
    buffer: AudioBuffer
    session_id: int = 0


class EventType(str, Enum):
    DECODING_STARTED = "decoding_started"
    TRANSCRIBING_STARTED = "transcribing_started"
    PARTIAL_RESULT = "partial_result"
    FINAL_RESULT = "final_result"
    COMPLETED = "completed"
    RECORDING_STATUS = "recording_status"
    ERROR = "error"


def emit_event(event_sink: Optional[EventSink], event_type: EventType, **payload):
    """Deliver an event dict to the UI layer. Sink failures never reach the pipeline."""
    if event_sink is None:
        return
    try:
        event_sink({"type": event_type.value, **payload})
    except Exception as e:
        logger.debug(f"Event sink error: {e}")
