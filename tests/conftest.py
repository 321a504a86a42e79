"""
Pytest configuration and fixtures for promptstream tests.
"""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Callable, ClassVar

import pytest

from promptstream.core.config import ModelConfig
from promptstream.core.session import RequestHandle
from promptstream.core.types import ProviderKind, StreamSink
from promptstream.providers.base import BaseProvider


class RecordingOutput:
    """Output sink that records every chunk it receives."""

    def __init__(self) -> None:
        self.chunks: list[str] = []

    def __call__(self, text: str) -> None:
        self.chunks.append(text)

    @property
    def text(self) -> str:
        return "".join(self.chunks)


class ScriptedProvider(BaseProvider):
    """
    Provider that replays a fixed list of chunks.

    With ``threaded=True`` the chunks are pushed from a worker thread,
    like a transport that owns its own I/O thread.
    """

    name: ClassVar[str] = "scripted"
    kind: ClassVar[ProviderKind] = ProviderKind.HTTP_SSE
    SUPPORTED_TUNING: ClassVar[frozenset[str]] = frozenset({"max_tokens", "temperature", "top_p"})

    def __init__(
        self,
        chunks: list[str] | None = None,
        error: Exception | None = None,
        threaded: bool = False,
        model: str = "scripted-model",
        **kwargs,
    ):
        super().__init__(model=model, **kwargs)
        self.chunks = chunks or []
        self.error = error
        self.threaded = threaded
        self.prompts: list[str] = []
        self.closed = False
        self._thread: threading.Thread | None = None

    def start_stream(self, prompt_text: str, sink: StreamSink) -> RequestHandle:
        self.prompts.append(prompt_text)
        handle = self._new_handle(sink)
        if self.threaded:
            self._thread = threading.Thread(target=self._pump, args=(handle,), daemon=True)
            self._thread.start()
        else:
            self._pump(handle)
        return handle

    def _pump(self, handle: RequestHandle) -> None:
        for chunk in self.chunks:
            handle.emit(chunk)
        if self.error is not None:
            handle.fail(self.error)
        else:
            handle.complete()

    def close(self) -> None:
        if self._thread is not None:
            self._thread.join(5)
        self.closed = True


@pytest.fixture
def recording_output() -> RecordingOutput:
    """Provide an output sink that records chunks."""
    return RecordingOutput()


@pytest.fixture
def scripted_provider_factory() -> Callable[..., ScriptedProvider]:
    """Provide a factory for scripted providers."""
    return ScriptedProvider


@pytest.fixture
def write_file(tmp_path: Path) -> Callable[[str, bytes], Path]:
    """Write raw bytes to a file under tmp_path and return its path."""

    def _write(name: str, data: bytes) -> Path:
        path = tmp_path / name
        path.write_bytes(data)
        return path

    return _write


@pytest.fixture
def sse_config() -> ModelConfig:
    """Provide an HTTP/SSE model configuration."""
    return ModelConfig.for_provider(
        ProviderKind.HTTP_SSE,
        model_id="gemini-pro",
        region_or_endpoint="https://llm.example.com/v1/stream",
    )


@pytest.fixture
def env_credentials() -> Callable[[dict[str, str]], Callable[[str], str | None]]:
    """Build a credential resolver backed by a dict instead of os.environ."""

    def _make(values: dict[str, str]) -> Callable[[str], str | None]:
        return values.get

    return _make
