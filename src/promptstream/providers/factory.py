"""
Provider factory for creating LLM provider instances.

The set of providers is closed: one class per ProviderKind. Adding a
backend means adding a ProviderKind member and a BaseProvider subclass.
"""

from __future__ import annotations

from typing import Any

from promptstream.core.config import ModelConfig, resolve_provider_kind
from promptstream.core.types import ProviderKind
from promptstream.providers.base import BaseProvider
from promptstream.utils.errors import UnsupportedProviderError

# Provider registry
_PROVIDER_REGISTRY: dict[ProviderKind, type[BaseProvider]] = {}


def _register_builtin_providers() -> None:
    """Register built-in providers."""
    # Import here to avoid circular imports
    from promptstream.providers.azure_openai import AzureOpenAIProvider
    from promptstream.providers.bedrock import BedrockProvider
    from promptstream.providers.http_sse import HttpSseProvider

    _PROVIDER_REGISTRY[ProviderKind.BEDROCK] = BedrockProvider
    _PROVIDER_REGISTRY[ProviderKind.HTTP_SSE] = HttpSseProvider
    _PROVIDER_REGISTRY[ProviderKind.AZURE_OPENAI] = AzureOpenAIProvider


def get_provider_class(kind: ProviderKind | str) -> type[BaseProvider]:
    """Look up the provider class for a kind."""
    if not _PROVIDER_REGISTRY:
        _register_builtin_providers()
    resolved = resolve_provider_kind(kind)
    if resolved not in _PROVIDER_REGISTRY:
        raise UnsupportedProviderError(kind, list_providers())
    return _PROVIDER_REGISTRY[resolved]


def create_provider(config: ModelConfig, **kwargs: Any) -> BaseProvider:
    """
    Construct the provider selected by a ModelConfig.

    Construction performs no I/O and does not resolve credentials.

    Args:
        config: Model configuration
        **kwargs: Injected collaborators (credential_resolver, logger, client)

    Returns:
        Configured provider instance

    Raises:
        UnsupportedProviderError: If the provider kind is unknown

    Example:
        provider = create_provider(ModelConfig.for_provider("bedrock"))
    """
    provider_class = get_provider_class(config.provider_kind)

    options: dict[str, Any] = {
        "model": config.model_id,
        "region_or_endpoint": config.region_or_endpoint,
        "credential_reference": config.credential_reference,
        "tuning": config.tuning,
        "timeout": config.timeout,
    }
    if provider_class.kind is ProviderKind.AZURE_OPENAI:
        options["api_version"] = config.api_version

    return provider_class(**options, **kwargs)


def list_providers() -> list[str]:
    """
    List all provider kinds.

    Returns:
        List of provider names
    """
    return [kind.value for kind in ProviderKind]


def is_provider_available(name: str) -> bool:
    """
    Check if a provider kind exists.

    Args:
        name: Provider name

    Returns:
        True if provider is available
    """
    return name in list_providers()
