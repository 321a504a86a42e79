"""
Exception hierarchy for promptstream.

Three families hang off PromptStreamError: input validation (prompt files
and tuning values), configuration (providers and credentials) and provider
failures (anything the backend or its transport reports). The CLI maps
every family to exit status 1; nothing below it exits the process.
"""

from __future__ import annotations

from typing import Any, ClassVar


class PromptStreamError(Exception):
    """Root of every error raised by promptstream."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.cause = cause

    def __str__(self) -> str:
        if not self.details:
            return self.message
        extra = ", ".join(f"{key}={value}" for key, value in self.details.items())
        return f"{self.message} ({extra})"

    def to_dict(self) -> dict[str, Any]:
        """Structured form for JSON logs."""
        return {
            "error": type(self).__name__,
            "message": self.message,
            "details": self.details,
        }


# =============================================================================
# Input Validation
# =============================================================================


class ValidationError(PromptStreamError):
    """A value supplied by the user is unusable."""

    def __init__(
        self,
        message: str,
        field: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, details)
        self.field = field


class EmptyPromptError(ValidationError):
    """Nothing but whitespace would be sent to the model."""

    def __init__(self, field: str = "prompt"):
        super().__init__(f"{field} cannot be empty.", field=field)


class InvalidDocumentError(ValidationError):
    """An input file could not be turned into text."""

    def __init__(
        self,
        path: str,
        reason: str,
        details: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(f"{path}: {reason}", field="path", details=details)
        self.path = path
        self.reason = reason
        self.cause = cause


class PromptFileNotFoundError(InvalidDocumentError):
    def __init__(self, path: str):
        super().__init__(path, "file does not exist")


class EncodingFailureError(InvalidDocumentError):
    """Neither the primary nor the fallback encoding could decode the file."""

    def __init__(self, path: str, encodings: tuple[str, ...], cause: Exception | None = None):
        super().__init__(
            path,
            "not decodable as " + " or ".join(encodings),
            details={"encodings": list(encodings)},
            cause=cause,
        )
        self.encodings = encodings


# =============================================================================
# Configuration
# =============================================================================


class ConfigurationError(PromptStreamError):
    """Provider selection or provider settings are unusable."""

    def __init__(
        self,
        message: str,
        config_key: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, details)
        self.config_key = config_key


class MissingAPIKeyError(ConfigurationError):
    """The environment variable expected to hold the API key is unset or empty."""

    def __init__(self, provider: str, env_var: str):
        super().__init__(
            f"{provider}: environment variable {env_var} is not set",
            config_key=env_var,
        )
        self.provider = provider
        self.env_var = env_var


class UnsupportedProviderError(ConfigurationError):
    def __init__(self, provider: object, available: list[str]):
        super().__init__(
            f"unknown provider {provider!r}; expected one of: {', '.join(available)}",
            config_key="provider",
        )
        self.provider = provider


# =============================================================================
# Provider Failures
# =============================================================================


class ProviderError(PromptStreamError):
    """
    The backend rejected the request or the stream broke.

    Errors raised before any I/O propagate from ``start_stream``; errors
    after the transport started are delivered through the request handle.
    """

    def __init__(
        self,
        provider: str,
        message: str,
        status_code: int | None = None,
        details: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(f"[{provider}] {message}", details, cause)
        self.provider = provider
        self.status_code = status_code


class _CannedProviderError(ProviderError):
    """Provider error whose message and status are fixed per subclass."""

    summary: ClassVar[str] = ""
    status: ClassVar[int | None] = None

    def __init__(self, provider: str, details: dict[str, Any] | None = None):
        super().__init__(provider, self.summary, status_code=self.status, details=details)


class ProviderAuthenticationError(_CannedProviderError):
    summary = "credentials were rejected"
    status = 401


class ProviderRateLimitError(_CannedProviderError):
    summary = "request was throttled"
    status = 429


class ProviderUnavailableError(_CannedProviderError):
    summary = "service is unreachable"
    status = 503


class ProviderTimeoutError(ProviderError):
    def __init__(self, provider: str, timeout: float, details: dict[str, Any] | None = None):
        super().__init__(provider, f"no response within {timeout}s", status_code=408, details=details)
        self.timeout = timeout


class ProviderResponseError(ProviderError):
    """Non-200 HTTP status. ``body`` is the response body exactly as received."""

    def __init__(self, provider: str, status_code: int, body: str):
        super().__init__(provider, f"HTTP {status_code}: {body}", status_code=status_code)
        self.body = body


class MalformedStreamFrameError(ProviderError):
    """One event-stream frame is not valid JSON. Never escapes the read loop."""

    def __init__(self, provider: str, frame: str, cause: Exception | None = None):
        super().__init__(provider, "malformed stream frame", details={"frame": frame[:200]}, cause=cause)
        self.frame = frame
