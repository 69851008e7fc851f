# Save this file as: tests/test_streaming.py
"""
Unit tests for StreamingTranscriber: diffing, release gating and snapshot handling.
"""

import threading

import pytest

from voicetype.pipeline.message import CaptureCommand
from voicetype.pipeline.streaming import StreamingTranscriber
from voicetype.stt.errors import InferenceError
from voicetype.stt.holder import EngineHolder
from conftest import FakeDevice, StubEngine, tone, wait_until


def make_streamer(sink, events=None, capture=None, engine=None, config=None, active=True):
    flag = threading.Event()
    if active:
        flag.set()
    kwargs = {"config": config} if config is not None else {}
    return StreamingTranscriber(
        capture,
        EngineHolder(engine),
        sink,
        active=flag,
        emit_lock=threading.Lock(),
        event_sink=events,
        **kwargs
    )


class TestConsume:
    """Tests for the growth-only diff policy."""

    def test_growth_is_typed_and_shrink_is_ignored(self, sink, events):
        """hello, hello world, hello wor -> 'hello', ' world', nothing."""
        streamer = make_streamer(sink, events)

        assert streamer.consume("hello") == "hello"
        assert streamer.consume("hello world") == " world"
        assert streamer.consume("hello wor") is None

        assert sink.fragments == ["hello", " world"]
        assert streamer.emitted_text == "hello world"
        assert streamer.last_emitted_length == len("hello world")

    def test_partial_events_carry_full_hypothesis(self, sink, events):
        """Every accepted pass reports its whole text as a non-final partial."""
        streamer = make_streamer(sink, events)
        streamer.consume("  hello  ", duration=1.5)
        streamer.consume("hello there")

        partials = events.of_type("partial_result")
        assert [p["text"] for p in partials] == ["hello", "hello there"]
        assert all(p["is_final"] is False for p in partials)
        assert partials[0]["duration_seconds"] == 1.5

    def test_empty_text_is_ignored(self, sink, events):
        """Blank hypotheses produce neither output nor events."""
        streamer = make_streamer(sink, events)
        assert streamer.consume("   ") is None
        assert sink.fragments == []
        assert events.events == []

    def test_nothing_typed_after_release(self, sink, events):
        """A result arriving after the flag is cleared is dropped."""
        streamer = make_streamer(sink, events)
        streamer.consume("hello")
        streamer.active.clear()

        assert streamer.consume("hello world") is None
        assert sink.fragments == ["hello"]
        assert streamer.emitted_text == "hello"
        assert events.of_type("partial_result")[-1]["text"] == "hello"

    def test_inactive_from_the_start(self, sink):
        """An inactive flag blocks even the first fragment."""
        streamer = make_streamer(sink, active=False)
        assert streamer.consume("hello") is None
        assert sink.fragments == []

    def test_same_length_change_types_nothing(self, sink):
        """A rewrite of equal length keeps the typed text."""
        streamer = make_streamer(sink)
        streamer.consume("hello")
        assert streamer.consume("jello") is None
        assert streamer.emitted_text == "hello"

    def test_sink_failure_does_not_break_stream(self, events):
        """Dispatch errors are logged and state still advances."""
        class BrokenSink:
            def dispatch(self, text):
                raise RuntimeError("no focused window")

        streamer = make_streamer(BrokenSink(), events)
        assert streamer.consume("hello") == "hello"
        assert streamer.emitted_text == "hello"


class TestPollOnce:
    """Tests for one snapshot/transcribe pass."""

    def test_snapshot_is_resampled_and_transcribed(self, owner_factory, sink, fast_config):
        """A 2 s snapshot at 48 kHz reaches the engine as 32000 samples at 16 kHz."""
        owner, _ = owner_factory(FakeDevice(snapshot_audio=tone(2.0, 48000), sample_rate=48000))
        owner.send(CaptureCommand.START)
        engine = StubEngine(text="hello")
        streamer = make_streamer(sink, capture=owner, engine=engine, config=fast_config)

        assert streamer.poll_once() == "hello"
        assert engine.calls == [(32000, 16000)]

    def test_short_snapshot_is_skipped(self, owner_factory, sink, fast_config):
        """Snapshots under one second never reach the engine."""
        owner, _ = owner_factory(FakeDevice(snapshot_audio=tone(0.6)))
        owner.send(CaptureCommand.START)
        engine = StubEngine()
        streamer = make_streamer(sink, capture=owner, engine=engine, config=fast_config)

        assert streamer.poll_once() is None
        assert engine.calls == []

    def test_no_reply_is_skipped(self, owner_factory, sink, fast_config):
        """Without an open device the pass times out quietly."""
        owner, _ = owner_factory()
        engine = StubEngine()
        streamer = make_streamer(sink, capture=owner, engine=engine, config=fast_config)

        assert streamer.poll_once() is None
        assert engine.calls == []

    def test_engine_error_is_swallowed(self, owner_factory, sink, fast_config):
        """A failing pass types nothing and leaves the loop running."""
        owner, _ = owner_factory()
        owner.send(CaptureCommand.START)
        engine = StubEngine(error=InferenceError("decoder crashed"))
        streamer = make_streamer(sink, capture=owner, engine=engine, config=fast_config)

        assert streamer.poll_once() is None
        assert sink.fragments == []

    def test_no_engine_loaded(self, owner_factory, sink, fast_config):
        """An empty engine slot skips the pass."""
        owner, _ = owner_factory()
        owner.send(CaptureCommand.START)
        streamer = make_streamer(sink, capture=owner, engine=None, config=fast_config)
        assert streamer.poll_once() is None


class TestRunLoop:
    """Tests for the periodic loop."""

    def test_loop_types_then_exits_on_release(self, owner_factory, sink, fast_config):
        """The loop streams while active and ends once the flag clears."""
        owner, _ = owner_factory()
        owner.send(CaptureCommand.START)
        streamer = make_streamer(sink, capture=owner, engine=StubEngine(text="hello"), config=fast_config)

        thread = threading.Thread(target=streamer.run, daemon=True)
        thread.start()
        assert wait_until(lambda: streamer.emitted_text == "hello")

        streamer.active.clear()
        thread.join(timeout=2.0)

        assert not thread.is_alive()
        assert sink.fragments == ["hello"]

    @pytest.mark.parametrize("texts", [["one", "one two", "one two three"]])
    def test_successive_passes_type_the_growth(self, sink, texts):
        """Concatenated fragments equal the longest hypothesis."""
        streamer = make_streamer(sink)
        for text in texts:
            streamer.consume(text)
        assert sink.typed == texts[-1]
