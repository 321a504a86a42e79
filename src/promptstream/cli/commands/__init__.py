"""
CLI command implementations for promptstream.

Commands:
    chat - Stream a model's answer to stdout
"""

from __future__ import annotations

from promptstream.cli.commands import chat

__all__ = [
    "chat",
]
