"""LLM Provider implementations."""

from promptstream.providers.azure_openai import AzureOpenAIProvider
from promptstream.providers.base import BaseProvider
from promptstream.providers.bedrock import BedrockProvider
from promptstream.providers.factory import (
    create_provider,
    get_provider_class,
    is_provider_available,
    list_providers,
    resolve_provider_kind,
)
from promptstream.providers.http_sse import HttpSseProvider

__all__ = [
    # Base
    "BaseProvider",
    # Factory
    "create_provider",
    "get_provider_class",
    "list_providers",
    "is_provider_available",
    "resolve_provider_kind",
    # Providers
    "BedrockProvider",
    "HttpSseProvider",
    "AzureOpenAIProvider",
]
