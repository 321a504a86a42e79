"""
Encoding-tolerant text loading.

Files are decoded as UTF-8 first and, if that fails outright, as Shift-JIS.
Text that happens to be valid UTF-8 is trusted as-is; misdecoded
(mojibake) content is not detected.
"""

from __future__ import annotations

from pathlib import Path

from promptstream.utils.errors import EncodingFailureError, PromptFileNotFoundError
from promptstream.utils.logging import get_logger

logger = get_logger(__name__)

# Tried in order; the first is the primary encoding
ENCODINGS: tuple[str, ...] = ("utf-8", "shift_jis")


def load_text(path: str | Path) -> str:
    """
    Read a text file, trying UTF-8 then Shift-JIS.

    Args:
        path: File to read

    Returns:
        Decoded content with surrounding whitespace stripped

    Raises:
        PromptFileNotFoundError: If the path does not exist
        EncodingFailureError: If neither encoding can decode the file;
            the UTF-8 error is attached as the cause
    """
    path = Path(path)
    if not path.exists():
        raise PromptFileNotFoundError(str(path))

    data = path.read_bytes()
    primary, fallback = ENCODINGS

    try:
        text = data.decode(primary)
        logger.debug("Decoded file", path=str(path), encoding=primary)
        return text.strip()
    except UnicodeDecodeError as e:
        primary_error = e

    logger.debug("UTF-8 decoding failed, retrying with fallback", path=str(path), encoding=fallback)
    try:
        text = data.decode(fallback)
    except UnicodeDecodeError as e:
        logger.debug("Fallback decoding failed", path=str(path), error=str(e))
        raise EncodingFailureError(str(path), ENCODINGS, cause=primary_error) from primary_error

    return text.strip()


def build_prompt(base_prompt: str, content: str) -> str:
    """Join the prompt template and the content to analyze."""
    return f"{base_prompt}\n{content}"


def load_prompt(prompt_path: str | Path, content_path: str | Path) -> str:
    """
    Load both input files and assemble the prompt text.

    Args:
        prompt_path: Base prompt (instructions) file
        content_path: Code or content file to analyze

    Returns:
        Prompt text sent to the model
    """
    logger.info("Loading prompt files", prompt=str(prompt_path), content=str(content_path))
    return build_prompt(load_text(prompt_path), load_text(content_path))
