"""
promptstream configuration system.

Model selection comes from CLI flags or environment variables; optional
generation tuning comes from a Java-style properties file.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from promptstream.core.loader import load_text
from promptstream.core.types import ProviderKind
from promptstream.utils.errors import InvalidDocumentError, UnsupportedProviderError, ValidationError
from promptstream.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_API_KEY_ENV = "API_KEY"
DEFAULT_AZURE_API_KEY_ENV = "AZURE_OPENAI_API_KEY"
DEFAULT_AZURE_API_VERSION = "2024-06-01"
GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"

# Bedrock model ids the tool has been used with
BEDROCK_MODELS: dict[str, str] = {
    "claude-3-5-sonnet": "anthropic.claude-3-5-sonnet-20240620-v1:0",
    "claude-3-5-sonnet-v2": "apac.anthropic.claude-3-5-sonnet-20241022-v2:0",
    "claude-3-7-sonnet": "apac.anthropic.claude-3-7-sonnet-20250219-v1:0",
    "claude-sonnet-4": "apac.anthropic.claude-sonnet-4-20250514-v1:0",
}

# Per-provider defaults: model id, region or endpoint, credential reference
PROVIDER_DEFAULTS: dict[ProviderKind, dict[str, str | None]] = {
    ProviderKind.BEDROCK: {
        "model_id": BEDROCK_MODELS["claude-3-5-sonnet"],
        "region_or_endpoint": "ap-northeast-1",
        "credential_reference": None,
    },
    ProviderKind.HTTP_SSE: {
        "model_id": "gemini-pro",
        "region_or_endpoint": None,
        "credential_reference": DEFAULT_API_KEY_ENV,
    },
    ProviderKind.AZURE_OPENAI: {
        "model_id": "gpt-4o",
        "region_or_endpoint": None,
        "credential_reference": DEFAULT_AZURE_API_KEY_ENV,
    },
}

# Property-file keys mapped to TuningParameters fields
TUNING_KEYS: dict[str, str] = {
    "maxTokens": "max_tokens",
    "temperature": "temperature",
    "topP": "top_p",
}


def default_sse_endpoint(model_id: str) -> str:
    """Streaming endpoint for a Gemini model id."""
    return f"{GEMINI_BASE_URL}/models/{model_id}:streamGenerateContent?alt=sse"


def resolve_provider_kind(kind: ProviderKind | str) -> ProviderKind:
    """
    Coerce a name into a ProviderKind.

    Raises:
        UnsupportedProviderError: If the name is not a known kind
    """
    try:
        return ProviderKind(kind)
    except ValueError as e:
        raise UnsupportedProviderError(kind, [member.value for member in ProviderKind]) from e


@dataclass(frozen=True)
class TuningParameters:
    """Optional generation controls; None means provider default."""

    max_tokens: int | None = None
    temperature: float | None = None
    top_p: float | None = None

    def __post_init__(self) -> None:
        if self.max_tokens is not None and self.max_tokens <= 0:
            raise ValidationError(
                f"max_tokens must be a positive integer, got {self.max_tokens}",
                field="max_tokens",
            )
        if self.temperature is not None and not 0.0 <= self.temperature <= 2.0:
            raise ValidationError(
                f"temperature must be within [0, 2], got {self.temperature}",
                field="temperature",
            )
        if self.top_p is not None and not 0.0 <= self.top_p <= 1.0:
            raise ValidationError(
                f"top_p must be within [0, 1], got {self.top_p}",
                field="top_p",
            )

    def as_dict(self) -> dict[str, int | float]:
        """Only the parameters that are actually set."""
        values = {
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
            "top_p": self.top_p,
        }
        return {name: value for name, value in values.items() if value is not None}

    def merged(self, override: TuningParameters) -> TuningParameters:
        """Return a copy where every parameter set in override wins."""
        return replace(self, **override.as_dict())

    @property
    def is_empty(self) -> bool:
        return not self.as_dict()


@dataclass(frozen=True)
class ModelConfig:
    """
    Everything needed to construct one provider client.

    Example:
        config = ModelConfig.for_provider(ProviderKind.BEDROCK)

        config = ModelConfig.for_provider(
            "http_sse",
            model_id="gemini-1.5-flash",
            tuning=TuningParameters(temperature=0.5),
        )
    """

    provider_kind: ProviderKind
    model_id: str
    region_or_endpoint: str
    credential_reference: str | None = None
    tuning: TuningParameters = field(default_factory=TuningParameters)
    timeout: float = 120.0
    api_version: str = DEFAULT_AZURE_API_VERSION

    def __post_init__(self) -> None:
        # Unknown kinds are kept as given and rejected when a client is built
        if self.provider_kind in {member.value for member in ProviderKind}:
            object.__setattr__(self, "provider_kind", ProviderKind(self.provider_kind))

    @classmethod
    def for_provider(
        cls,
        provider_kind: ProviderKind | str,
        model_id: str | None = None,
        region_or_endpoint: str | None = None,
        credential_reference: str | None = None,
        tuning: TuningParameters | None = None,
        **kwargs: Any,
    ) -> ModelConfig:
        """
        Build a config, filling unset values from the provider defaults.

        Args:
            provider_kind: Backend to use
            model_id: Model identifier (Bedrock model id, Gemini model, Azure deployment)
            region_or_endpoint: AWS region, or endpoint URL for HTTP providers
            credential_reference: AWS profile, or name of the API key env var
            tuning: Optional generation parameters
            **kwargs: timeout / api_version overrides

        Raises:
            UnsupportedProviderError: If provider_kind is not a known ProviderKind value
        """
        kind = resolve_provider_kind(provider_kind)
        defaults = PROVIDER_DEFAULTS[kind]
        final_model = model_id or defaults["model_id"] or ""

        final_target = region_or_endpoint or defaults["region_or_endpoint"]
        if final_target is None and kind is ProviderKind.HTTP_SSE:
            final_target = default_sse_endpoint(final_model)

        return cls(
            provider_kind=kind,
            model_id=final_model,
            region_or_endpoint=final_target or "",
            credential_reference=credential_reference or defaults["credential_reference"],
            tuning=tuning or TuningParameters(),
            **kwargs,
        )

    @classmethod
    def from_env(cls, dotenv_path: str | None = None) -> ModelConfig:
        """
        Load configuration from environment variables.

        Args:
            dotenv_path: Optional path to .env file

        Returns:
            ModelConfig instance
        """
        if dotenv_path:
            load_dotenv(dotenv_path)
        else:
            load_dotenv()

        def get_env(key: str, default: Any = None) -> Any:
            return os.getenv(key, default) or default

        def get_env_float(key: str, default: float) -> float:
            val = os.getenv(key)
            return float(val) if val else default

        kind = get_env("PROMPTSTREAM_PROVIDER", ProviderKind.BEDROCK.value)
        region_or_endpoint = get_env("PROMPTSTREAM_REGION_OR_ENDPOINT")
        if region_or_endpoint is None and kind == ProviderKind.AZURE_OPENAI.value:
            region_or_endpoint = get_env("AZURE_OPENAI_ENDPOINT")

        return cls.for_provider(
            kind,
            model_id=get_env("PROMPTSTREAM_MODEL"),
            region_or_endpoint=region_or_endpoint,
            credential_reference=get_env("PROMPTSTREAM_CREDENTIAL"),
            timeout=get_env_float("PROMPTSTREAM_TIMEOUT", 120.0),
            api_version=get_env("OPENAI_API_VERSION", DEFAULT_AZURE_API_VERSION),
        )

    def with_tuning(self, tuning: TuningParameters) -> ModelConfig:
        """Copy of this config with tuning parameters layered on top."""
        return replace(self, tuning=self.tuning.merged(tuning))

    def to_dict(self) -> dict[str, Any]:
        """Convert configuration to dictionary (no secrets are stored here)."""
        return {
            "provider": self.provider_kind.value,
            "model_id": self.model_id,
            "region_or_endpoint": self.region_or_endpoint,
            "credential_reference": self.credential_reference,
            "tuning": self.tuning.as_dict(),
            "timeout": self.timeout,
        }


@dataclass
class LoggingConfig:
    """Configuration for logging."""

    level: str = "INFO"
    json_format: bool = False
    log_file: str | None = None

    @classmethod
    def from_env(cls) -> LoggingConfig:
        json_flag = os.getenv("LOG_JSON", "").lower() in ("true", "1", "yes")
        return cls(
            level=os.getenv("LOG_LEVEL", "INFO"),
            json_format=json_flag,
            log_file=os.getenv("LOG_FILE") or None,
        )


# =============================================================================
# Tuning property file
# =============================================================================


def parse_tuning_properties(text: str) -> TuningParameters:
    """
    Parse properties text into TuningParameters.

    Accepts ``key=value`` and ``key: value`` lines; ``#`` and ``!`` start
    comments. Unknown keys are ignored.

    Raises:
        ValidationError: On a line without a separator, a non-numeric
            value, or a value out of range
    """
    values: dict[str, int | float] = {}
    for lineno, raw_line in enumerate(text.splitlines(), start=1):
        line = raw_line.strip()
        if not line or line[0] in "#!":
            continue

        positions = [pos for pos in (line.find("="), line.find(":")) if pos != -1]
        if not positions:
            raise ValidationError(f"line {lineno}: expected key=value", details={"line": line})
        sep = min(positions)
        key, value = line[:sep].strip(), line[sep + 1 :].strip()

        field_name = TUNING_KEYS.get(key)
        if field_name is None:
            logger.debug("Ignoring unknown tuning key", key=key, line=lineno)
            continue
        try:
            values[field_name] = int(value) if field_name == "max_tokens" else float(value)
        except ValueError as e:
            raise ValidationError(
                f"line {lineno}: {key} is not a number: {value!r}", field=field_name
            ) from e

    return TuningParameters(**values)


def load_tuning_file(path: str | Path) -> TuningParameters:
    """
    Load tuning parameters from a properties file.

    A missing, unreadable or malformed file is not fatal: a warning is
    logged and no tuning parameters are set.

    Args:
        path: Path to the properties file

    Returns:
        TuningParameters (empty on any problem)
    """
    try:
        text = load_text(path)
    except InvalidDocumentError as e:
        logger.warning("Could not read tuning file, using provider defaults", path=str(path), error=str(e))
        return TuningParameters()

    try:
        tuning = parse_tuning_properties(text)
    except ValidationError as e:
        logger.warning("Malformed tuning file, using provider defaults", path=str(path), error=e.message)
        return TuningParameters()

    logger.info("Loaded tuning parameters", path=str(path), **tuning.as_dict())
    return tuning
