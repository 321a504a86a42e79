"""
Gateway facade.

Selects and builds a provider client from a ModelConfig and drives one
StreamingSession per request.
"""

from __future__ import annotations

from typing import Any

from promptstream.core.config import ModelConfig, resolve_provider_kind
from promptstream.core.session import StreamingSession
from promptstream.core.types import ChatOutcome, OutputSink
from promptstream.providers.base import BaseProvider
from promptstream.providers.factory import create_provider
from promptstream.utils.errors import EmptyPromptError
from promptstream.utils.logging import (
    get_logger,
    log_stream_failed,
    log_stream_finished,
    log_stream_started,
    request_context,
)
from promptstream.utils.tokens import estimate_tokens

logger = get_logger(__name__)


def validate_prompt(prompt_text: str) -> str:
    """
    Reject prompts with no content.

    Raises:
        EmptyPromptError: If the prompt is empty or whitespace only
    """
    if not prompt_text or not prompt_text.strip():
        raise EmptyPromptError()
    return prompt_text


class ChatGateway:
    """
    Entry point for streaming chat requests.

    Collaborators passed as keyword arguments (credential_resolver,
    logger, client) are handed to every provider the gateway builds.

    Example:
        gateway = ChatGateway()
        outcome = gateway.send_and_stream(config, prompt_text, output=print_chunk)
        if outcome is not None:
            print(outcome.approximate_output_tokens)
    """

    def __init__(self, **provider_kwargs: Any):
        self.provider_kwargs = provider_kwargs

    def create_client(self, config: ModelConfig) -> BaseProvider:
        """
        Build the provider selected by config.

        Raises:
            UnsupportedProviderError: If the provider kind is unknown
        """
        return create_provider(config, **self.provider_kwargs)

    def send_and_stream(
        self,
        config: ModelConfig,
        prompt_text: str,
        output: OutputSink,
    ) -> ChatOutcome | None:
        """
        Stream one request to the configured provider.

        An empty prompt is not an error: a warning is logged, no client is
        built and None is returned.

        Args:
            config: Model configuration
            prompt_text: Prompt to send
            output: Receives each chunk as soon as it arrives

        Returns:
            ChatOutcome, or None if the prompt was empty

        Raises:
            UnsupportedProviderError: If the provider kind is unknown
            MissingAPIKeyError: If the provider's credential is missing
            ProviderError: If the provider rejects or breaks the stream
        """
        try:
            validate_prompt(prompt_text)
        except EmptyPromptError as e:
            logger.warning("Prompt is empty, skipping request", error=e.message)
            return None

        kind = resolve_provider_kind(config.provider_kind)
        with request_context(provider=kind.value, model=config.model_id):
            started_at = log_stream_started(logger, estimate_tokens(prompt_text))

            provider = self.create_client(config)
            try:
                outcome = StreamingSession(output).run(prompt_text, provider)
            except Exception as e:
                log_stream_failed(logger, e)
                raise
            finally:
                provider.close()

            log_stream_finished(
                logger,
                started_at,
                outcome.approximate_output_tokens,
                chunks=outcome.chunk_count,
            )
        return outcome


def create_client(config: ModelConfig, **provider_kwargs: Any) -> BaseProvider:
    """Build the provider selected by config."""
    return ChatGateway(**provider_kwargs).create_client(config)


def send_and_stream(
    config: ModelConfig,
    prompt_text: str,
    output: OutputSink,
    **provider_kwargs: Any,
) -> ChatOutcome | None:
    """Stream one request; see ChatGateway.send_and_stream."""
    return ChatGateway(**provider_kwargs).send_and_stream(config, prompt_text, output)
