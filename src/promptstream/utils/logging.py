"""
Structured logging for promptstream.

structlog renders either human-readable console lines or JSON lines. Both
go to stderr: stdout carries nothing but the streamed model response.
"""

from __future__ import annotations

import logging
import sys
import time
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import structlog
from structlog.types import Processor


class _StderrHandler(logging.StreamHandler):
    """StreamHandler bound to whatever sys.stderr is at emit time."""

    def __init__(self, level: int = logging.NOTSET):
        logging.Handler.__init__(self, level)

    @property
    def stream(self) -> Any:
        return sys.stderr


def _stderr_logger_factory(*args: Any) -> structlog.PrintLogger:
    return structlog.PrintLogger(file=sys.stderr)


def _renderer(json_format: bool) -> list[Processor]:
    if json_format:
        return [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    return [
        structlog.dev.ConsoleRenderer(
            colors=sys.stderr.isatty(),
            exception_formatter=structlog.dev.plain_traceback,
        )
    ]


def setup_logging(
    level: str = "INFO",
    json_format: bool = False,
    log_file: str | None = None,
) -> None:
    """
    Configure structlog and the standard library loggers used by boto3,
    httpx and openai.

    Args:
        level: DEBUG, INFO, WARNING or ERROR (unknown names mean INFO)
        json_format: Emit one JSON object per line instead of console text
        log_file: Also append standard-library log records to this file

    Example:
        setup_logging(level="DEBUG")
        setup_logging(json_format=True)
    """
    threshold = getattr(logging, level.upper(), logging.INFO)

    handlers: list[logging.Handler] = [_StderrHandler()]
    if log_file:
        handlers.append(logging.FileHandler(log_file))
    logging.basicConfig(level=threshold, format="%(message)s", handlers=handlers, force=True)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso"),
            *_renderer(json_format),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(threshold),
        context_class=dict,
        logger_factory=_stderr_logger_factory,
        cache_logger_on_first_use=False,
    )


def get_logger(name: str) -> structlog.BoundLogger:
    """
    Get a logger for a module.

    Example:
        logger = get_logger(__name__)
        logger.info("Loaded tuning parameters", path="llm.properties", max_tokens=2048)
    """
    return structlog.get_logger(name)


@contextmanager
def request_context(**values: Any) -> Iterator[None]:
    """
    Bind values to every log line emitted inside the block.

    Example:
        with request_context(provider="bedrock", model="anthropic.claude-3"):
            logger.info("Stream started")  # carries provider and model
    """
    with structlog.contextvars.bound_contextvars(**values):
        yield


# =============================================================================
# Request lifecycle events
# =============================================================================


def log_stream_started(logger: structlog.BoundLogger, input_tokens: int, **extra: Any) -> float:
    """Log the start of a request; returns the start time for log_stream_finished."""
    logger.info("Stream started", approximate_input_tokens=input_tokens, **extra)
    return time.time()


def log_stream_finished(
    logger: structlog.BoundLogger,
    started_at: float,
    output_tokens: int,
    **extra: Any,
) -> None:
    logger.info(
        "Stream finished",
        approximate_output_tokens=output_tokens,
        duration_ms=round((time.time() - started_at) * 1000, 2),
        **extra,
    )


def log_stream_failed(logger: structlog.BoundLogger, error: BaseException, **extra: Any) -> None:
    logger.error(
        "Stream failed",
        error_type=type(error).__name__,
        error_message=str(error),
        **extra,
    )


class ProviderLogger:
    """
    Logger bound to one provider.

    Every event carries ``provider=<name>``; transports report the request
    they send, the end of the stream and any failure through it.
    """

    def __init__(self, provider_name: str):
        self.provider_name = provider_name
        self._log = structlog.get_logger(f"promptstream.providers.{provider_name}", provider=provider_name)

    def debug(self, message: str, **extra: Any) -> None:
        self._log.debug(message, **extra)

    def info(self, message: str, **extra: Any) -> None:
        self._log.info(message, **extra)

    def warning(self, message: str, **extra: Any) -> None:
        self._log.warning(message, **extra)

    def error(self, message: str, **extra: Any) -> None:
        self._log.error(message, **extra)

    def request_sent(self, model: str, input_tokens: int, **extra: Any) -> None:
        self._log.info("Request sent", model=model, input_tokens=input_tokens, **extra)

    def stream_ended(self, model: str, output_chars: int, latency_ms: float, **extra: Any) -> None:
        self._log.debug(
            "Stream ended",
            model=model,
            output_chars=output_chars,
            latency_ms=round(latency_ms, 2),
            **extra,
        )

    def failure(self, error: BaseException, **extra: Any) -> None:
        self._log.error(
            "Provider failure",
            error_type=type(error).__name__,
            error_message=str(error),
            **extra,
        )


setup_logging()
