"""
Azure OpenAI provider implementation.

Generic chat-completion client: streams ``chat.completions`` deltas from an
Azure OpenAI deployment on the calling thread.
"""

from __future__ import annotations

import time
from typing import Any, ClassVar

from openai import (
    APIConnectionError,
    APIStatusError,
    APITimeoutError,
    AuthenticationError,
    AzureOpenAI,
    OpenAIError,
    RateLimitError,
)

from promptstream.core.config import DEFAULT_AZURE_API_KEY_ENV, DEFAULT_AZURE_API_VERSION
from promptstream.core.session import RequestHandle
from promptstream.core.types import ProviderKind, StreamSink
from promptstream.providers.base import BaseProvider
from promptstream.utils.errors import (
    ConfigurationError,
    ProviderAuthenticationError,
    ProviderError,
    ProviderRateLimitError,
    ProviderResponseError,
    ProviderTimeoutError,
    ProviderUnavailableError,
)
from promptstream.utils.tokens import estimate_tokens


class AzureOpenAIProvider(BaseProvider):
    """
    Azure OpenAI provider.

    ``model`` is the deployment name and ``region_or_endpoint`` the
    resource endpoint (https://<resource>.openai.azure.com). The API key
    comes from the environment variable named by ``credential_reference``
    (``AZURE_OPENAI_API_KEY`` by default). All tuning parameters are
    honored.

    Example:
        provider = AzureOpenAIProvider(
            model="gpt-4o",
            region_or_endpoint="https://my-resource.openai.azure.com",
        )
        handle = provider.start_stream("Explain this code", sink)
    """

    name: ClassVar[str] = "azure_openai"
    kind: ClassVar[ProviderKind] = ProviderKind.AZURE_OPENAI
    SUPPORTED_TUNING: ClassVar[frozenset[str]] = frozenset({"max_tokens", "temperature", "top_p"})

    def __init__(
        self,
        model: str,
        region_or_endpoint: str = "",
        credential_reference: str | None = None,
        api_version: str = DEFAULT_AZURE_API_VERSION,
        client: AzureOpenAI | None = None,
        **kwargs: Any,
    ):
        """
        Initialize the Azure OpenAI provider.

        Args:
            model: Deployment name
            region_or_endpoint: Azure OpenAI endpoint URL
            credential_reference: Environment variable holding the API key
            api_version: Azure OpenAI REST API version
            client: Optional pre-built AzureOpenAI client
            **kwargs: Passed to BaseProvider
        """
        super().__init__(
            model=model,
            region_or_endpoint=region_or_endpoint,
            credential_reference=credential_reference or DEFAULT_AZURE_API_KEY_ENV,
            **kwargs,
        )
        self.api_version = api_version
        self._client = client
        self._owns_client = client is None

    def _get_client(self) -> AzureOpenAI:
        if self._client is None:
            api_key = self._require_api_key(self.credential_reference or DEFAULT_AZURE_API_KEY_ENV)
            if not self.region_or_endpoint:
                raise ConfigurationError(
                    "Azure OpenAI endpoint is not configured",
                    config_key="region_or_endpoint",
                )
            self._client = AzureOpenAI(
                azure_endpoint=self.region_or_endpoint,
                api_key=api_key,
                api_version=self.api_version,
                timeout=self.timeout,
                max_retries=0,
            )
        return self._client

    def start_stream(self, prompt_text: str, sink: StreamSink) -> RequestHandle:
        """
        Stream a chat completion, blocking until the stream ends.

        Raises:
            MissingAPIKeyError: If the API key variable is unset or empty
            ConfigurationError: If no endpoint is configured
        """
        client = self._get_client()
        handle = self._new_handle(sink)

        self.logger.request_sent(self.model, estimate_tokens(prompt_text))
        start_time = time.time()

        try:
            stream = client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": prompt_text}],
                stream=True,
                **self.tuning.as_dict(),
            )
            for chunk in stream:
                # Azure sends content-filter results as chunks without choices
                if not chunk.choices:
                    continue
                delta = chunk.choices[0].delta
                if delta is not None and delta.content:
                    handle.emit(delta.content)

        except OpenAIError as e:
            error = self._map_error(e)
            self.logger.failure(error)
            handle.fail(error)
            return handle

        self.logger.stream_ended(
            self.model,
            handle.char_count,
            (time.time() - start_time) * 1000,
            chunks=handle.chunk_count,
        )
        handle.complete()
        return handle

    def _map_error(self, error: OpenAIError) -> ProviderError:
        if isinstance(error, AuthenticationError):
            return ProviderAuthenticationError(self.name)
        if isinstance(error, RateLimitError):
            return ProviderRateLimitError(self.name)
        if isinstance(error, APITimeoutError):
            return ProviderTimeoutError(self.name, self.timeout)
        if isinstance(error, APIConnectionError):
            return ProviderUnavailableError(self.name, details={"error": str(error)})
        if isinstance(error, APIStatusError):
            return ProviderResponseError(self.name, error.status_code, error.response.text)
        return ProviderError(self.name, str(error), cause=error)

    def close(self) -> None:
        """Close the client this provider built; an injected client is left open."""
        if self._client is not None and self._owns_client:
            self._client.close()
            self._client = None
