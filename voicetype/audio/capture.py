# Save this file as: voicetype/audio/capture.py

import queue
import threading
import time
from abc import ABC, abstractmethod
from threading import Thread
from typing import Callable, Optional

import numpy as np

from voicetype.audio.chunk import AudioBuffer, SampleAccumulator
from voicetype.pipeline.message import AudioComplete, AudioSnapshot, CaptureCommand
from voicetype.utils.logger import logger


class CaptureTimeoutError(Exception):
    """No AudioComplete arrived in time after STOP."""


class CaptureDevice(ABC):
    """A live input device. Only the capture owner thread touches one."""

    @abstractmethod
    def start(self):
        """Open the device and begin accumulating audio. Raises on failure."""
        pass

    @abstractmethod
    def snapshot(self) -> AudioBuffer:
        """Audio accumulated so far, without stopping capture."""
        pass

    @abstractmethod
    def stop(self) -> AudioBuffer:
        """Stop capture, release the device and return everything recorded."""
        pass


class MicrophoneCapture(CaptureDevice):
    """PyAudio input stream that accumulates float32 mono samples."""

    def __init__(self, device_index: Optional[int] = None, mic_sample_rate: Optional[int] = None):
        self.device_index = device_index
        self.mic_rate = int(mic_sample_rate) if mic_sample_rate else None
        self.channels = 1

        self.audio_buffer = SampleAccumulator()
        self._lock = threading.Lock()

        self.p = None
        self.stream = None

    def start(self):
        import pyaudio

        self.p = pyaudio.PyAudio()
        try:
            if self.device_index is None:
                info = self.p.get_default_input_device_info()
            else:
                info = self.p.get_device_info_by_index(self.device_index)

            if self.mic_rate is None:
                self.mic_rate = int(info.get("defaultSampleRate", 48000))
            self.channels = max(1, min(int(info.get("maxInputChannels", 1)), 2))

            self.stream = self.p.open(
                format=pyaudio.paFloat32,
                channels=self.channels,
                rate=self.mic_rate,
                input=True,
                input_device_index=info.get("index", self.device_index),
                frames_per_buffer=1024,
                stream_callback=self._audio_callback
            )
            self.stream.start_stream()
            logger.info(f"Microphone '{info.get('name', '?')}' opened @ {self.mic_rate}Hz, {self.channels}ch")
        except Exception:
            self._cleanup()
            raise

    def _audio_callback(self, in_data, frame_count, time_info, status):
        import pyaudio

        raw_audio = np.frombuffer(in_data, dtype=np.float32)
        if self.channels > 1:
            raw_audio = raw_audio.reshape(-1, self.channels).mean(axis=1)
        with self._lock:
            self.audio_buffer.add(raw_audio)
        return (None, pyaudio.paContinue)

    def snapshot(self) -> AudioBuffer:
        with self._lock:
            return AudioBuffer(self.audio_buffer.get_all(), self.mic_rate)

    def stop(self) -> AudioBuffer:
        self._cleanup()
        with self._lock:
            samples = self.audio_buffer.get_all()
            self.audio_buffer.reset()
        logger.info(f"Microphone capture stopped ({len(samples)} samples)")
        return AudioBuffer(samples, self.mic_rate)

    def _cleanup(self):
        if self.stream:
            try:
                self.stream.stop_stream()
                self.stream.close()
            finally:
                self.stream = None
        if self.p:
            self.p.terminate()
            self.p = None


_SHUTDOWN = object()


class CaptureOwner:
    """
    Dedicated thread that exclusively owns the capture device.

    Other threads send CaptureCommand values on `commands` and read
    AudioSnapshot / AudioComplete replies from `results`. Commands are handled
    one at a time in arrival order. Replies are only produced while a device is
    open, so consumers must wait with a timeout and filter replies by type.

    Every START opens a new session id and replies carry the id of the
    recording they came from. A reply from an earlier session that arrives
    late (after its finalizer gave up) is dropped instead of being handed to
    the session that is current now.
    """

    def __init__(self, device_factory: Optional[Callable[[], CaptureDevice]] = None):
        self.device_factory = device_factory or MicrophoneCapture
        self.commands: "queue.Queue" = queue.Queue()
        self.results: "queue.Queue" = queue.Queue()
        self._device: Optional[CaptureDevice] = None
        self._device_session = 0
        self._session_id = 0
        self._session_lock = threading.Lock()
        self._thread: Optional[Thread] = None

    def start(self) -> Thread:
        if self._thread is None or not self._thread.is_alive():
            self._thread = Thread(target=self._run, daemon=True, name='CaptureOwner')
            self._thread.start()
        return self._thread

    def send(self, command: CaptureCommand) -> int:
        """Queue a command. Returns the session id it applies to; START opens a new one."""
        with self._session_lock:
            if command is CaptureCommand.START:
                self._session_id += 1
            session_id = self._session_id
            self.commands.put((command, session_id))
        return session_id

    @property
    def current_session(self) -> int:
        return self._session_id

    def close(self, timeout: Optional[float] = 2.0):
        """Shut the worker down. The only way its loop ends."""
        self.commands.put(_SHUTDOWN)
        if self._thread is not None:
            self._thread.join(timeout)

    @property
    def alive(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def _run(self):
        logger.info("Capture owner thread started")
        while True:
            item = self.commands.get()
            if item is _SHUTDOWN:
                break
            command, session_id = item
            try:
                self._handle(command, session_id)
            except Exception as e:
                logger.error(f"Capture command {command} failed: {e}")

        if self._device is not None:
            try:
                self._device.stop()
            except Exception as e:
                logger.error(f"Failed to release capture device: {e}")
            self._device = None
        logger.info("Capture owner thread: channel closed, exiting")

    def _handle(self, command: CaptureCommand, session_id: int = 0):
        if command is CaptureCommand.START:
            if self._device is not None:
                # The open recording now answers for the newest session
                logger.debug("Capture already running, START ignored")
                self._device_session = session_id
                return
            logger.info(f"Starting audio capture (session {session_id})")
            device = self.device_factory()
            try:
                device.start()
            except Exception as e:
                logger.error(f"Failed to start audio capture: {e}")
                return
            self._device = device
            self._device_session = session_id

        elif command is CaptureCommand.GET_SNAPSHOT:
            if self._device is None:
                return
            self.results.put(AudioSnapshot(self._device.snapshot(), self._device_session))

        elif command is CaptureCommand.STOP:
            if self._device is None:
                return
            logger.info(f"Stopping audio capture (session {self._device_session})")
            device, self._device = self._device, None
            try:
                buffer = device.stop()
            except Exception as e:
                logger.error(f"Failed to stop audio capture: {e}")
                return
            self.results.put(AudioComplete(buffer, self._device_session))

    def _is_stale(self, message) -> bool:
        if message.session_id < self.current_session:
            logger.warning(
                f"Dropping {type(message).__name__} from session {message.session_id}, "
                f"session {self.current_session} is current"
            )
            return True
        return False

    def request_snapshot(self, timeout: float, session_id: Optional[int] = None) -> Optional[AudioBuffer]:
        """Ask for a snapshot; None if no device is open or the reply is late."""
        if session_id is None:
            session_id = self.current_session
        self.send(CaptureCommand.GET_SNAPSHOT)
        deadline = time.monotonic() + timeout
        while True:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return None
            try:
                message = self.results.get(timeout=remaining)
            except queue.Empty:
                return None
            if self._is_stale(message):
                continue
            if isinstance(message, AudioSnapshot) and message.session_id == session_id:
                return message.buffer
            # The finalizer's AudioComplete, or a reply for a newer session
            self.results.put(message)
            return None

    def wait_for_complete(self, timeout: float, session_id: Optional[int] = None) -> AudioBuffer:
        """Block until this session's AudioComplete, discarding snapshots and other sessions' audio."""
        if session_id is None:
            session_id = self.current_session
        deadline = time.monotonic() + timeout
        while True:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise CaptureTimeoutError(f"No audio received within {timeout:.1f}s")
            try:
                message = self.results.get(timeout=remaining)
            except queue.Empty:
                raise CaptureTimeoutError(f"No audio received within {timeout:.1f}s")
            if isinstance(message, AudioComplete) and message.session_id == session_id:
                return message.buffer
            if isinstance(message, AudioComplete):
                logger.warning(f"Discarding final audio of session {message.session_id}, waiting for {session_id}")
            else:
                logger.debug("Discarding in-flight snapshot while waiting for final audio")

    def stop_and_collect(self, timeout: float) -> AudioBuffer:
        session_id = self.send(CaptureCommand.STOP)
        return self.wait_for_complete(timeout, session_id)
