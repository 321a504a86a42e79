"""
HTTP endpoint provider streaming Server-Sent Events.

Talks to a Gemini-style ``generateContent`` endpoint: one JSON POST, then
a line-oriented ``data: <json>`` event stream read synchronously on the
calling thread.
"""

from __future__ import annotations

import json
import time
from collections.abc import Iterator
from typing import Any, ClassVar

import httpx

from promptstream.core.config import DEFAULT_API_KEY_ENV
from promptstream.core.session import RequestHandle
from promptstream.core.types import ProviderKind, StreamSink
from promptstream.providers.base import BaseProvider
from promptstream.utils.errors import (
    MalformedStreamFrameError,
    ProviderError,
    ProviderResponseError,
    ProviderTimeoutError,
    ProviderUnavailableError,
)
from promptstream.utils.tokens import estimate_tokens

DATA_PREFIX = "data: "
DONE_SENTINEL = "[DONE]"


def escape_json_text(text: str) -> str:
    """
    Escape text for embedding in a JSON string literal.

    Only backslash, double quote and newline are escaped; every other
    character (including ``\\r``, tabs and other control characters) is
    passed through unchanged.
    """
    return text.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n")


def build_request_body(prompt_text: str) -> str:
    """Request body with the prompt embedded as the single content part."""
    return '{"contents":[{"parts":[{"text":"%s"}]}]}' % escape_json_text(prompt_text)


def extract_texts(payload: str, provider: str = "http_sse") -> list[str]:
    """
    Pull ``candidates[].content.parts[].text`` values out of one frame.

    Raises:
        MalformedStreamFrameError: If the payload is not JSON
    """
    try:
        data: Any = json.loads(payload)
    except json.JSONDecodeError as e:
        raise MalformedStreamFrameError(provider, payload, cause=e) from e

    if not isinstance(data, dict):
        return []

    texts: list[str] = []
    for candidate in data.get("candidates") or []:
        if not isinstance(candidate, dict):
            continue
        content = candidate.get("content") or {}
        if not isinstance(content, dict):
            continue
        for part in content.get("parts") or []:
            if isinstance(part, dict) and isinstance(part.get("text"), str):
                texts.append(part["text"])
    return texts


def iter_frames(lines: Iterator[str]) -> Iterator[str]:
    """Yield ``data:`` payloads until the stream ends or ``[DONE]`` arrives."""
    for line in lines:
        if not line.startswith(DATA_PREFIX):
            continue
        payload = line[len(DATA_PREFIX) :].strip()
        if payload == DONE_SENTINEL:
            return
        yield payload


class HttpSseProvider(BaseProvider):
    """
    REST + Server-Sent Events provider.

    The API key is read from the environment variable named by
    ``credential_reference`` (``API_KEY`` by default) and sent as a bearer
    token. The request body has no room for generation parameters, so
    tuning parameters are dropped with a warning.

    Example:
        provider = HttpSseProvider(
            model="gemini-pro",
            region_or_endpoint="https://example.com/v1/models/gemini-pro:streamGenerateContent",
        )
        handle = provider.start_stream("Explain this code", sink)
    """

    name: ClassVar[str] = "http_sse"
    kind: ClassVar[ProviderKind] = ProviderKind.HTTP_SSE
    SUPPORTED_TUNING: ClassVar[frozenset[str]] = frozenset()

    def __init__(
        self,
        model: str,
        region_or_endpoint: str = "",
        credential_reference: str | None = None,
        client: httpx.Client | None = None,
        **kwargs: Any,
    ):
        """
        Initialize the HTTP/SSE provider.

        Args:
            model: Model name (informational; the endpoint selects the model)
            region_or_endpoint: Endpoint URL receiving the POST
            credential_reference: Environment variable holding the API key
            client: Optional pre-built httpx.Client (tests inject a mock transport)
            **kwargs: Passed to BaseProvider
        """
        super().__init__(
            model=model,
            region_or_endpoint=region_or_endpoint,
            credential_reference=credential_reference or DEFAULT_API_KEY_ENV,
            **kwargs,
        )
        self._client = client
        self._owns_client = client is None

    @property
    def endpoint(self) -> str:
        return self.region_or_endpoint

    def _get_client(self) -> httpx.Client:
        if self._client is None:
            self._client = httpx.Client(timeout=httpx.Timeout(self.timeout))
        return self._client

    def start_stream(self, prompt_text: str, sink: StreamSink) -> RequestHandle:
        """
        POST the prompt and read the event stream until it ends.

        Blocks until the stream terminates; chunks reach the sink on the
        calling thread as each frame is read.

        Raises:
            MissingAPIKeyError: If the API key variable is unset or empty
        """
        api_key = self._require_api_key(self.credential_reference or DEFAULT_API_KEY_ENV)

        handle = self._new_handle(sink)
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {api_key}",
            "Accept": "text/event-stream",
        }
        body = build_request_body(prompt_text)

        self.logger.request_sent(self.model, estimate_tokens(prompt_text), endpoint=self.endpoint)
        start_time = time.time()

        try:
            with self._get_client().stream(
                "POST",
                self.endpoint,
                content=body.encode("utf-8"),
                headers=headers,
            ) as response:
                self.logger.info("HTTP status", status_code=response.status_code)
                if response.status_code != 200:
                    error_body = response.read().decode("utf-8", errors="replace")
                    raise ProviderResponseError(self.name, response.status_code, error_body)

                self._pump(response.iter_lines(), handle)

        except ProviderError as e:
            self.logger.failure(e)
            handle.fail(e)
            return handle

        except httpx.ConnectError as e:
            self.logger.failure(e)
            handle.fail(
                ProviderUnavailableError(
                    self.name,
                    details={"endpoint": self.endpoint, "error": str(e)},
                )
            )
            return handle

        except httpx.TimeoutException as e:
            self.logger.failure(e)
            handle.fail(ProviderTimeoutError(self.name, self.timeout))
            return handle

        except httpx.HTTPError as e:
            self.logger.failure(e)
            handle.fail(ProviderError(self.name, f"HTTP error: {e}", cause=e))
            return handle

        self.logger.stream_ended(
            self.model,
            handle.char_count,
            (time.time() - start_time) * 1000,
            chunks=handle.chunk_count,
        )
        handle.complete()
        return handle

    def _pump(self, lines: Iterator[str], handle: RequestHandle) -> None:
        for payload in iter_frames(lines):
            try:
                texts = extract_texts(payload, self.name)
            except MalformedStreamFrameError as e:
                self.logger.debug("Skipping malformed frame", frame=e.frame[:80])
                continue
            for text in texts:
                handle.emit(text)

    def close(self) -> None:
        if self._client is not None and self._owns_client:
            self._client.close()
            self._client = None
