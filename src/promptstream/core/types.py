"""
Core type definitions for promptstream.

This module contains the Enums and Dataclasses shared by the gateway,
the streaming session and the provider clients.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Protocol

# =============================================================================
# Enums
# =============================================================================


class ProviderKind(str, Enum):
    """Backends a request can be routed to."""

    BEDROCK = "bedrock"  # Managed cloud model invocation (AWS Bedrock)
    HTTP_SSE = "http_sse"  # REST endpoint answering with Server-Sent Events
    AZURE_OPENAI = "azure_openai"  # Generic chat-completion client


class RequestState(str, Enum):
    """Lifecycle of a single streaming request."""

    CREATED = "created"
    STREAMING = "streaming"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (RequestState.COMPLETED, RequestState.FAILED)


# =============================================================================
# Result Types
# =============================================================================


@dataclass(frozen=True)
class ChatOutcome:
    """Final result of one streamed chat request."""

    full_text: str
    approximate_output_tokens: int
    approximate_input_tokens: int = 0
    provider: str = ""
    model: str = ""
    chunk_count: int = 0
    latency_ms: float = 0.0


# =============================================================================
# Streaming Protocols
# =============================================================================


class StreamSink(Protocol):
    """Receiver for push-style chunk delivery from a provider transport."""

    def on_chunk(self, text: str) -> None: ...

    def on_complete(self) -> None: ...

    def on_error(self, error: BaseException) -> None: ...


# Where chunk text is shown to the user (the console in the CLI)
OutputSink = Callable[[str], None]

# Looks up a credential by name, returning None when it is not set
CredentialResolver = Callable[[str], "str | None"]
