"""
Unit tests for RequestHandle and StreamingSession.

Tests streaming bridge functionality including:
- Ordered delivery and accumulation
- Approximate token counts
- Chunks pushed from a provider-owned thread
- Single terminal transition
- Failure propagation
- Single-use sessions
"""

import threading
from unittest.mock import MagicMock

import pytest

from promptstream.core.session import RequestHandle, StreamingSession
from promptstream.core.types import RequestState
from promptstream.utils.errors import MissingAPIKeyError, ProviderError

# =============================================================================
# Fixtures
# =============================================================================


class CountingSink:
    """StreamSink that counts callbacks."""

    def __init__(self):
        self.chunks = []
        self.completed = 0
        self.errors = []

    def on_chunk(self, text):
        self.chunks.append(text)

    def on_complete(self):
        self.completed += 1

    def on_error(self, error):
        self.errors.append(error)


@pytest.fixture
def sink() -> CountingSink:
    """Provide a counting sink."""
    return CountingSink()


@pytest.fixture
def handle(sink: CountingSink) -> RequestHandle:
    """Provide a fresh request handle."""
    return RequestHandle(sink, provider="test", model="test-model")


# =============================================================================
# RequestHandle Tests
# =============================================================================


class TestRequestHandle:
    """Tests for the request lifecycle."""

    def test_initial_state(self, handle):
        """Test a new handle is CREATED and not done."""
        assert handle.state == RequestState.CREATED
        assert not handle.done
        assert handle.chunk_count == 0

    def test_emit_moves_to_streaming(self, handle, sink):
        """Test emitting a chunk starts streaming."""
        assert handle.emit("Hel") is True

        assert handle.state == RequestState.STREAMING
        assert sink.chunks == ["Hel"]
        assert handle.char_count == 3

    def test_empty_chunk_is_dropped(self, handle, sink):
        """Test empty text is not delivered."""
        assert handle.emit("") is False
        assert sink.chunks == []
        assert handle.state == RequestState.CREATED

    def test_complete_once(self, handle, sink):
        """Test only the first terminal transition takes effect."""
        assert handle.complete() is True
        assert handle.complete() is False
        assert handle.fail(ProviderError("test", "late")) is False

        assert sink.completed == 1
        assert sink.errors == []
        assert handle.state == RequestState.COMPLETED
        assert handle.done

    def test_fail_once(self, handle, sink):
        """Test a failure blocks later completion."""
        error = ProviderError("test", "boom")

        assert handle.fail(error) is True
        assert handle.complete() is False

        assert sink.errors == [error]
        assert sink.completed == 0
        assert handle.error is error
        assert handle.state == RequestState.FAILED

    def test_chunks_after_terminal_are_dropped(self, handle, sink):
        """Test chunks arriving after completion never reach the sink."""
        handle.emit("a")
        handle.complete()

        assert handle.emit("b") is False
        assert sink.chunks == ["a"]

    def test_wait(self, handle):
        """Test wait returns once the handle terminates."""
        assert handle.wait(timeout=0.01) is False

        handle.complete()

        assert handle.wait(timeout=0.01) is True


# =============================================================================
# StreamingSession Tests
# =============================================================================


class TestStreamingSession:
    """Tests for the push-to-pull bridge."""

    def test_concatenates_in_order(self, scripted_provider_factory, recording_output):
        """Test chunks are forwarded in order and accumulated."""
        provider = scripted_provider_factory(chunks=["Hel", "lo", " world"])

        outcome = StreamingSession(recording_output).run("Say hello", provider)

        assert recording_output.chunks == ["Hel", "lo", " world"]
        assert outcome.full_text == "Hello world"
        assert outcome.chunk_count == 3
        assert provider.prompts == ["Say hello"]

    def test_token_counts_are_character_lengths(self, scripted_provider_factory, recording_output):
        """Test approximate token counts equal character counts."""
        provider = scripted_provider_factory(chunks=["Hello"])

        outcome = StreamingSession(recording_output).run("Say hello", provider)

        assert outcome.approximate_output_tokens == 5
        assert outcome.approximate_input_tokens == len("Say hello")

    def test_outcome_identifies_provider(self, scripted_provider_factory, recording_output):
        """Test the outcome records provider and model."""
        provider = scripted_provider_factory(chunks=["x"], model="m-1")

        outcome = StreamingSession(recording_output).run("p", provider)

        assert outcome.provider == "scripted"
        assert outcome.model == "m-1"
        assert outcome.latency_ms >= 0

    def test_no_chunks(self, scripted_provider_factory, recording_output):
        """Test a stream with no chunks completes with empty text."""
        provider = scripted_provider_factory(chunks=[])

        outcome = StreamingSession(recording_output).run("p", provider)

        assert outcome.full_text == ""
        assert outcome.approximate_output_tokens == 0
        assert recording_output.chunks == []

    def test_chunks_from_background_thread(self, scripted_provider_factory, recording_output):
        """Test run blocks until a worker thread finishes the stream."""
        chunks = [f"c{i} " for i in range(50)]
        provider = scripted_provider_factory(chunks=chunks, threaded=True)

        outcome = StreamingSession(recording_output).run("p", provider)
        provider.close()

        assert outcome.full_text == "".join(chunks)
        assert recording_output.chunks == chunks

    def test_failure_is_raised(self, scripted_provider_factory, recording_output):
        """Test a reported failure is raised from run."""
        error = ProviderError("scripted", "HTTP 500")
        provider = scripted_provider_factory(chunks=["partial"], error=error)

        with pytest.raises(ProviderError) as exc_info:
            StreamingSession(recording_output).run("p", provider)

        assert exc_info.value is error
        # Chunks already delivered stay delivered
        assert recording_output.chunks == ["partial"]

    def test_failure_from_background_thread(self, scripted_provider_factory, recording_output):
        """Test failures reported by a worker thread reach the caller."""
        provider = scripted_provider_factory(
            chunks=["a"], error=ProviderError("scripted", "reset"), threaded=True
        )

        with pytest.raises(ProviderError, match="reset"):
            StreamingSession(recording_output).run("p", provider)
        provider.close()

    def test_start_stream_exception_is_raised(self, scripted_provider_factory, recording_output):
        """Test errors raised before streaming starts propagate unchanged."""
        provider = scripted_provider_factory()
        error = MissingAPIKeyError("scripted", "API_KEY")
        provider.start_stream = MagicMock(side_effect=error)

        with pytest.raises(MissingAPIKeyError) as exc_info:
            StreamingSession(recording_output).run("p", provider)

        assert exc_info.value is error
        assert recording_output.chunks == []

    def test_single_use(self, scripted_provider_factory, recording_output):
        """Test a session cannot be run twice."""
        session = StreamingSession(recording_output)
        session.run("p", scripted_provider_factory(chunks=["x"]))

        with pytest.raises(RuntimeError):
            session.run("p", scripted_provider_factory(chunks=["y"]))

    def test_resolved_only_once(self, recording_output):
        """Test a late failure does not replace a completed outcome."""
        session = StreamingSession(recording_output)

        session.on_chunk("done")
        session.on_complete()
        session.on_error(ProviderError("test", "late"))

        assert session.resolved
        assert session._slot.result().full_text == "done"

    def test_concurrent_output_is_serialized_per_handle(self, recording_output):
        """Test chunks from several threads through one handle are all kept."""
        session = StreamingSession(recording_output)
        handle = RequestHandle(session, provider="test")

        def push(prefix):
            for i in range(100):
                handle.emit(f"{prefix}{i};")

        threads = [threading.Thread(target=push, args=(p,)) for p in "abcd"]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        handle.complete()

        outcome = session._slot.result()
        assert outcome.chunk_count == 400
        assert outcome.full_text == "".join(recording_output.chunks)
