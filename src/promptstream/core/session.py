"""
Streaming session bridge.

Provider transports push chunks at us, possibly from a thread they own.
StreamingSession turns that into one blocking ``run()`` call: every chunk
is forwarded to the output sink as soon as it arrives, and ``run()``
returns the accumulated text once the transport reaches a terminal state.
"""

from __future__ import annotations

import threading
import time
from concurrent.futures import Future
from typing import TYPE_CHECKING

from promptstream.core.types import ChatOutcome, OutputSink, RequestState, StreamSink
from promptstream.utils.logging import get_logger
from promptstream.utils.tokens import estimate_tokens

if TYPE_CHECKING:
    from promptstream.providers.base import BaseProvider

logger = get_logger(__name__)


class RequestHandle:
    """
    One in-flight streaming call.

    Transports report progress through ``emit``, ``complete`` and ``fail``.
    The handle enforces the lifecycle CREATED -> STREAMING -> COMPLETED or
    FAILED: exactly one terminal transition happens, and anything reported
    after it is dropped.
    """

    def __init__(self, sink: StreamSink, provider: str = "", model: str = ""):
        self.provider = provider
        self.model = model
        self._sink = sink
        self._state = RequestState.CREATED
        self._lock = threading.Lock()
        self._done = threading.Event()
        self.chunk_count = 0
        self.char_count = 0
        self.error: BaseException | None = None

    @property
    def state(self) -> RequestState:
        return self._state

    @property
    def done(self) -> bool:
        return self._done.is_set()

    def emit(self, text: str) -> bool:
        """
        Deliver one chunk to the sink.

        Returns:
            True if the chunk was delivered, False if it was empty or the
            request had already terminated
        """
        if not text:
            return False
        with self._lock:
            if self._state.is_terminal:
                logger.debug("Dropping chunk after terminal state", provider=self.provider)
                return False
            self._state = RequestState.STREAMING
            self.chunk_count += 1
            self.char_count += len(text)
            self._sink.on_chunk(text)
        return True

    def complete(self) -> bool:
        """Mark the stream finished. Returns False if already terminal."""
        with self._lock:
            if self._state.is_terminal:
                return False
            self._state = RequestState.COMPLETED
            self._sink.on_complete()
        self._done.set()
        return True

    def fail(self, error: BaseException) -> bool:
        """Mark the stream failed. Returns False if already terminal."""
        with self._lock:
            if self._state.is_terminal:
                logger.debug(
                    "Ignoring failure after terminal state",
                    provider=self.provider,
                    error_type=type(error).__name__,
                )
                return False
            self._state = RequestState.FAILED
            self.error = error
            self._sink.on_error(error)
        self._done.set()
        return True

    def wait(self, timeout: float | None = None) -> bool:
        """Block until the handle reaches a terminal state."""
        return self._done.wait(timeout)

    def __repr__(self) -> str:
        return (
            f"RequestHandle(provider={self.provider!r}, state={self._state.value}, "
            f"chunks={self.chunk_count})"
        )


class StreamingSession:
    """
    Push-to-pull bridge for a single request.

    The session is the sink handed to the provider. It owns the
    accumulation buffer and a single-assignment completion slot; nothing
    is shared between sessions.

    Example:
        session = StreamingSession(output=console_sink)
        outcome = session.run(prompt_text, provider)
        print(outcome.approximate_output_tokens)
    """

    def __init__(self, output: OutputSink):
        self._output = output
        self._buffer: list[str] = []
        self._slot: Future[ChatOutcome] = Future()
        self._slot_lock = threading.Lock()
        self._started = False
        self._start_time = 0.0
        self._input_tokens = 0
        self._provider = ""
        self._model = ""

    # -------------------------------------------------------------------------
    # StreamSink
    # -------------------------------------------------------------------------

    def on_chunk(self, text: str) -> None:
        self._output(text)
        self._buffer.append(text)

    def on_complete(self) -> None:
        full_text = "".join(self._buffer)
        outcome = ChatOutcome(
            full_text=full_text,
            approximate_output_tokens=estimate_tokens(full_text),
            approximate_input_tokens=self._input_tokens,
            provider=self._provider,
            model=self._model,
            chunk_count=len(self._buffer),
            latency_ms=(time.time() - self._start_time) * 1000,
        )
        self._resolve(outcome=outcome)

    def on_error(self, error: BaseException) -> None:
        self._resolve(error=error)

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    @property
    def resolved(self) -> bool:
        return self._slot.done()

    def run(self, prompt_text: str, provider: BaseProvider) -> ChatOutcome:
        """
        Stream one request and block until it finishes.

        Args:
            prompt_text: Prompt to send
            provider: Provider client to stream from

        Returns:
            ChatOutcome with the concatenated chunks

        Raises:
            RuntimeError: If the session has already been used
            Exception: Whatever failure the provider reported
        """
        if self._started:
            raise RuntimeError("StreamingSession is single-use")
        self._started = True
        self._start_time = time.time()
        self._input_tokens = estimate_tokens(prompt_text)
        self._provider = provider.name
        self._model = provider.model

        try:
            provider.start_stream(prompt_text, self)
        except Exception as e:
            self._resolve(error=e)

        return self._slot.result()

    def _resolve(
        self,
        outcome: ChatOutcome | None = None,
        error: BaseException | None = None,
    ) -> None:
        with self._slot_lock:
            if self._slot.done():
                logger.debug("Completion slot already resolved", provider=self._provider)
                return
            if error is not None:
                self._slot.set_exception(error)
            else:
                self._slot.set_result(outcome)
