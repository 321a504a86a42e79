"""
Integration test fixtures for promptstream.

Provides input files and a CLI runner for end-to-end tests of the
``promptstream`` command.
"""

from __future__ import annotations

from pathlib import Path

import pytest
from typer.testing import CliRunner


@pytest.fixture
def runner() -> CliRunner:
    """Provide a Typer CLI runner."""
    return CliRunner()


@pytest.fixture
def prompt_files(tmp_path: Path) -> dict[str, Path]:
    """Write a prompt file, a content file and a tuning file."""
    prompt = tmp_path / "prompt.txt"
    prompt.write_text("Review the following code.\n", encoding="utf-8")

    code = tmp_path / "App.java"
    code.write_bytes("// コメント\nclass App {}\n".encode("shift_jis"))

    tuning = tmp_path / "llm.properties"
    tuning.write_text("maxTokens=1024\ntemperature=0.4\n", encoding="utf-8")

    blank = tmp_path / "blank.txt"
    blank.write_text("   \n", encoding="utf-8")

    return {"prompt": prompt, "code": code, "tuning": tuning, "blank": blank}
