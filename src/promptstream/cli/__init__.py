"""
promptstream Command-Line Interface.

Commands:
    chat      - Stream a model's answer for a prompt file and a content file
    providers - List available LLM providers
    models    - List Bedrock model presets
    config    - Show the configuration resolved from the environment

Example:
    $ promptstream chat --prompt review.txt --code App.java
    $ promptstream chat --prompt review.txt --code App.java --prop llm.properties
    $ promptstream providers
"""

from __future__ import annotations

from promptstream.cli.main import app, cli, main

__all__ = [
    "app",
    "cli",
    "main",
]
