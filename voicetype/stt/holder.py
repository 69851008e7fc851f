# Save this file as: voicetype/stt/holder.py

import threading
from contextlib import contextmanager
from typing import Iterator, Optional

from voicetype.stt.base import SpeechEngine
from voicetype.utils.logger import logger


class EngineHolder:
    """
    The one active SpeechEngine, shared-read / exclusive-write.

    Many threads may hold read() at once and transcribe concurrently;
    swap() waits for readers to leave and blocks new ones while it runs.
    """

    def __init__(self, engine: Optional[SpeechEngine] = None):
        self._engine = engine
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @contextmanager
    def read(self) -> Iterator[Optional[SpeechEngine]]:
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1
        try:
            yield self._engine
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    def swap(self, engine: Optional[SpeechEngine]) -> Optional[SpeechEngine]:
        """Install a new engine and return the previous one."""
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True
        try:
            previous, self._engine = self._engine, engine
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()

        logger.info(f"Speech engine switched to {engine.name if engine else 'none'}")
        return previous

    @property
    def loaded(self) -> bool:
        return self._engine is not None
