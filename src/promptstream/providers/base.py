"""
Abstract base class for all LLM providers.

Defines the streaming interface every provider variant implements, so the
streaming session never needs to know which transport is underneath.
"""

from __future__ import annotations

import os
from abc import ABC, abstractmethod
from typing import ClassVar

from promptstream.core.config import TuningParameters
from promptstream.core.session import RequestHandle
from promptstream.core.types import CredentialResolver, ProviderKind, StreamSink
from promptstream.utils.errors import MissingAPIKeyError
from promptstream.utils.logging import ProviderLogger


class BaseProvider(ABC):
    """
    Abstract base class for LLM providers.

    Subclasses implement ``start_stream``: open a streaming request, push
    chunks through the returned RequestHandle and finish it with
    ``complete()`` or ``fail()``. Whether that happens on a background
    thread or on the calling thread is up to the subclass.

    Example implementation:
        class EchoProvider(BaseProvider):
            name = "echo"

            def start_stream(self, prompt_text, sink):
                handle = self._new_handle(sink)
                handle.emit(prompt_text)
                handle.complete()
                return handle
    """

    name: ClassVar[str] = "base"
    kind: ClassVar[ProviderKind | None] = None

    # Tuning parameter names (TuningParameters fields) the backend honors
    SUPPORTED_TUNING: ClassVar[frozenset[str]] = frozenset()

    def __init__(
        self,
        model: str,
        region_or_endpoint: str = "",
        credential_reference: str | None = None,
        tuning: TuningParameters | None = None,
        timeout: float = 120.0,
        credential_resolver: CredentialResolver | None = None,
        logger: ProviderLogger | None = None,
    ):
        """
        Initialize the provider.

        Args:
            model: Model identifier
            region_or_endpoint: Cloud region or endpoint URL
            credential_reference: Profile name or API key environment variable
            tuning: Requested generation parameters
            timeout: Transport timeout in seconds
            credential_resolver: Looks up credentials by name (default: os.getenv)
            logger: Provider logger (default: one named after the provider)
        """
        self.model = model
        self.region_or_endpoint = region_or_endpoint
        self.credential_reference = credential_reference
        self.timeout = timeout
        self.credential_resolver: CredentialResolver = credential_resolver or os.getenv
        self.logger = logger or ProviderLogger(self.name)
        self.tuning = self._accept_tuning(tuning or TuningParameters())

    @abstractmethod
    def start_stream(self, prompt_text: str, sink: StreamSink) -> RequestHandle:
        """
        Open a streaming request.

        Args:
            prompt_text: Full prompt text (never empty)
            sink: Receives chunks, then exactly one of on_complete/on_error

        Returns:
            Handle for the in-flight request

        Raises:
            MissingAPIKeyError: If credentials are missing (before any I/O)
        """

    def _new_handle(self, sink: StreamSink) -> RequestHandle:
        return RequestHandle(sink, provider=self.name, model=self.model)

    def _accept_tuning(self, tuning: TuningParameters) -> TuningParameters:
        """Drop tuning parameters this backend does not accept, with a warning."""
        requested = tuning.as_dict()
        unsupported = sorted(set(requested) - self.SUPPORTED_TUNING)
        if unsupported:
            self.logger.warning(
                "Unsupported tuning parameter ignored",
                parameters=unsupported,
                model=self.model,
            )
        return TuningParameters(
            **{k: v for k, v in requested.items() if k in self.SUPPORTED_TUNING}
        )

    def _require_api_key(self, env_var: str) -> str:
        """Resolve an API key or fail before any network call is made."""
        api_key = self.credential_resolver(env_var)
        if not api_key:
            error = MissingAPIKeyError(self.name, env_var)
            self.logger.failure(error)
            raise error
        return api_key

    def close(self) -> None:
        """Release transport resources. Default implementation does nothing."""

    def get_model_info(self) -> dict[str, object]:
        """
        Get information about the current model.

        Returns:
            Dictionary with model details
        """
        return {
            "provider": self.name,
            "model": self.model,
            "region_or_endpoint": self.region_or_endpoint,
            "supported_tuning": sorted(self.SUPPORTED_TUNING),
            "tuning": self.tuning.as_dict(),
        }

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(model={self.model!r})"
