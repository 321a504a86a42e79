"""
promptstream - stream LLM answers for a prompt and a piece of source code.

Basic Usage:
    from promptstream import ChatGateway, ModelConfig, load_prompt

    config = ModelConfig.for_provider("bedrock", region_or_endpoint="ap-northeast-1")
    prompt = load_prompt("review.txt", "App.java")
    outcome = ChatGateway().send_and_stream(config, prompt, output=print)
    if outcome is not None:
        print(outcome.approximate_output_tokens)
"""

from promptstream.core.config import ModelConfig, TuningParameters, load_tuning_file
from promptstream.core.gateway import ChatGateway, send_and_stream
from promptstream.core.loader import load_prompt, load_text
from promptstream.core.session import StreamingSession
from promptstream.core.types import ChatOutcome, ProviderKind

__version__ = "0.1.0"
__all__ = [
    # Gateway
    "ChatGateway",
    "send_and_stream",
    "StreamingSession",
    # Config
    "ModelConfig",
    "TuningParameters",
    "load_tuning_file",
    # Loader
    "load_text",
    "load_prompt",
    # Types
    "ChatOutcome",
    "ProviderKind",
    # Version
    "__version__",
]
