"""
AWS Bedrock provider implementation.

Uses the Bedrock Runtime ConverseStream API. The event stream is consumed
on a background thread, so ``start_stream`` returns as soon as the request
has been handed off.
"""

from __future__ import annotations

import itertools
import threading
import time
from typing import Any, ClassVar

import boto3
from botocore.config import Config
from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    NoCredentialsError,
    ProfileNotFound,
    ReadTimeoutError,
)

from promptstream.core.session import RequestHandle
from promptstream.core.types import ProviderKind, StreamSink
from promptstream.providers.base import BaseProvider
from promptstream.utils.errors import (
    ConfigurationError,
    ProviderAuthenticationError,
    ProviderError,
    ProviderRateLimitError,
    ProviderTimeoutError,
    ProviderUnavailableError,
)
from promptstream.utils.tokens import estimate_tokens

# TuningParameters field -> ConverseStream inferenceConfig key
INFERENCE_CONFIG_KEYS: dict[str, str] = {
    "max_tokens": "maxTokens",
    "temperature": "temperature",
    "top_p": "topP",
}

_AUTH_ERROR_CODES = {"AccessDeniedException", "UnrecognizedClientException", "ExpiredTokenException"}
_THROTTLE_ERROR_CODES = {"ThrottlingException", "TooManyRequestsException"}
_UNAVAILABLE_ERROR_CODES = {"ServiceUnavailableException", "InternalServerException"}

_stream_ids = itertools.count(1)


class BedrockProvider(BaseProvider):
    """
    AWS Bedrock provider (managed cloud model invocation).

    Credentials are resolved by boto3's default chain (environment,
    shared config, instance role). ``credential_reference``, when set, is
    used as the AWS profile name. All three tuning parameters are passed
    through as ``inferenceConfig``.

    Example:
        provider = BedrockProvider(
            model="anthropic.claude-3-5-sonnet-20240620-v1:0",
            region_or_endpoint="ap-northeast-1",
        )
        handle = provider.start_stream("Explain this code", sink)
    """

    name: ClassVar[str] = "bedrock"
    kind: ClassVar[ProviderKind] = ProviderKind.BEDROCK
    SUPPORTED_TUNING: ClassVar[frozenset[str]] = frozenset(INFERENCE_CONFIG_KEYS)

    def __init__(
        self,
        model: str,
        region_or_endpoint: str = "",
        credential_reference: str | None = None,
        client: Any | None = None,
        **kwargs: Any,
    ):
        """
        Initialize the Bedrock provider.

        Args:
            model: Bedrock model id (e.g. anthropic.claude-3-5-sonnet-20240620-v1:0)
            region_or_endpoint: AWS region name
            credential_reference: Optional AWS profile name
            client: Optional pre-built bedrock-runtime client
            **kwargs: Passed to BaseProvider
        """
        super().__init__(
            model=model,
            region_or_endpoint=region_or_endpoint,
            credential_reference=credential_reference,
            **kwargs,
        )
        self._client = client
        self._thread: threading.Thread | None = None

    @property
    def region(self) -> str:
        return self.region_or_endpoint

    def _get_client(self) -> Any:
        """Create the bedrock-runtime client on first use."""
        if self._client is None:
            try:
                session = boto3.Session(profile_name=self.credential_reference)
            except ProfileNotFound as e:
                raise ConfigurationError(
                    f"AWS profile not found: {self.credential_reference}",
                    config_key="credential_reference",
                ) from e
            self._client = session.client(
                "bedrock-runtime",
                region_name=self.region or None,
                config=Config(
                    read_timeout=self.timeout,
                    retries={"total_max_attempts": 1},
                ),
            )
        return self._client

    def _build_request(self, prompt_text: str) -> dict[str, Any]:
        request: dict[str, Any] = {
            "modelId": self.model,
            "messages": [{"role": "user", "content": [{"text": prompt_text}]}],
        }
        inference_config = {
            INFERENCE_CONFIG_KEYS[name]: value for name, value in self.tuning.as_dict().items()
        }
        if inference_config:
            request["inferenceConfig"] = inference_config
        return request

    def start_stream(self, prompt_text: str, sink: StreamSink) -> RequestHandle:
        """
        Start a ConverseStream call on a background thread.

        Returns immediately with the handle; chunks reach the sink from the
        worker thread.

        Raises:
            ConfigurationError: If the named AWS profile does not exist
        """
        client = self._get_client()
        handle = self._new_handle(sink)
        request = self._build_request(prompt_text)

        self.logger.request_sent(self.model, estimate_tokens(prompt_text), region=self.region)

        self._thread = threading.Thread(
            target=self._pump,
            args=(client, request, handle),
            name=f"bedrock-stream-{next(_stream_ids)}",
            daemon=True,
        )
        self._thread.start()
        return handle

    def _pump(self, client: Any, request: dict[str, Any], handle: RequestHandle) -> None:
        start_time = time.time()
        try:
            response = client.converse_stream(**request)
            for event in response["stream"]:
                self._handle_event(event, handle)
        except Exception as e:
            error = self._map_error(e)
            self.logger.failure(error)
            handle.fail(error)
            return

        self.logger.stream_ended(
            self.model,
            handle.char_count,
            (time.time() - start_time) * 1000,
            chunks=handle.chunk_count,
        )
        handle.complete()

    def _handle_event(self, event: dict[str, Any], handle: RequestHandle) -> None:
        if "contentBlockDelta" in event:
            text = event["contentBlockDelta"].get("delta", {}).get("text")
            if text:
                handle.emit(text)
        elif "messageStop" in event:
            self.logger.debug("Message stop", stop_reason=event["messageStop"].get("stopReason"))
        elif "metadata" in event:
            usage = event["metadata"].get("usage", {})
            self.logger.debug(
                "Usage reported",
                input_tokens=usage.get("inputTokens"),
                output_tokens=usage.get("outputTokens"),
            )

    def _map_error(self, error: Exception) -> ProviderError:
        """Translate botocore failures into the ProviderError family."""
        if isinstance(error, ProviderError):
            return error
        if isinstance(error, ClientError):
            code = error.response.get("Error", {}).get("Code", "")
            message = error.response.get("Error", {}).get("Message", str(error))
            if code in _AUTH_ERROR_CODES:
                return ProviderAuthenticationError(self.name, details={"code": code, "message": message})
            if code in _THROTTLE_ERROR_CODES:
                return ProviderRateLimitError(self.name, details={"code": code})
            if code in _UNAVAILABLE_ERROR_CODES:
                return ProviderUnavailableError(self.name, details={"code": code, "message": message})
            status = error.response.get("ResponseMetadata", {}).get("HTTPStatusCode")
            return ProviderError(
                self.name,
                f"Can't invoke '{self.model}': {message}",
                status_code=status,
                details={"code": code},
                cause=error,
            )
        if isinstance(error, NoCredentialsError):
            return ProviderAuthenticationError(self.name, details={"error": str(error)})
        if isinstance(error, ReadTimeoutError):
            return ProviderTimeoutError(self.name, self.timeout)
        if isinstance(error, BotoCoreError):
            return ProviderUnavailableError(self.name, details={"error": str(error)})
        return ProviderError(self.name, f"Can't invoke '{self.model}': {error}", cause=error)

    def join(self, timeout: float | None = None) -> None:
        """Wait for the background stream thread to exit."""
        if self._thread is not None:
            self._thread.join(timeout)

    def close(self) -> None:
        self.join()
