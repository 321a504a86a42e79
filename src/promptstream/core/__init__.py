"""Core module.

- Text loading with encoding fallback
- Model configuration and tuning files
- StreamingSession: push-to-pull bridge over provider streams
- ChatGateway: provider selection and request driving
"""

from promptstream.core.types import ChatOutcome, ProviderKind, RequestState
from promptstream.core.loader import build_prompt, load_prompt, load_text
from promptstream.core.config import (
    LoggingConfig,
    ModelConfig,
    TuningParameters,
    load_tuning_file,
)
from promptstream.core.session import RequestHandle, StreamingSession
from promptstream.core.gateway import ChatGateway, create_client, send_and_stream

__all__ = [
    # Types
    "ChatOutcome",
    "ProviderKind",
    "RequestState",
    # Loader
    "load_text",
    "load_prompt",
    "build_prompt",
    # Config
    "ModelConfig",
    "TuningParameters",
    "LoggingConfig",
    "load_tuning_file",
    # Session
    "RequestHandle",
    "StreamingSession",
    # Gateway
    "ChatGateway",
    "create_client",
    "send_and_stream",
]
