# Save this file as: voicetype/output/sink.py

from abc import ABC, abstractmethod
from typing import Callable

from voicetype.utils.logger import logger


class OutputSink(ABC):
    """
    Where dictated text goes (typed or pasted into the focused window).
    Fire-and-forget: callers log failures and carry on.
    """

    @abstractmethod
    def dispatch(self, text: str):
        pass


class ConsoleSink(OutputSink):
    """Prints fragments as they arrive, without newlines."""

    def dispatch(self, text: str):
        print(text, end="", flush=True)


class CallbackSink(OutputSink):

    def __init__(self, callback: Callable[[str], None]):
        self.callback = callback

    def dispatch(self, text: str):
        self.callback(text)


def safe_dispatch(sink: OutputSink, text: str):
    """Hand text to the sink; failures are logged, never raised."""
    try:
        sink.dispatch(text)
    except Exception as e:
        logger.error(f"Output sink failed to dispatch {len(text)} chars: {e}")
