"""Utility modules for promptstream."""

from promptstream.utils.errors import (
    ConfigurationError,
    EmptyPromptError,
    EncodingFailureError,
    MissingAPIKeyError,
    PromptFileNotFoundError,
    PromptStreamError,
    ProviderError,
    ProviderResponseError,
    UnsupportedProviderError,
    ValidationError,
)
from promptstream.utils.logging import get_logger, setup_logging
from promptstream.utils.tokens import estimate_tokens

__all__ = [
    # Tokens
    "estimate_tokens",
    # Errors
    "PromptStreamError",
    "ProviderError",
    "ProviderResponseError",
    "ConfigurationError",
    "MissingAPIKeyError",
    "UnsupportedProviderError",
    "ValidationError",
    "EmptyPromptError",
    "PromptFileNotFoundError",
    "EncodingFailureError",
    # Logging
    "get_logger",
    "setup_logging",
]
