"""
Token estimation utilities.

Token counts are an approximation: one character is treated as one token.
This is close enough for Japanese-heavy prompts and is what the console
reports; no tokenizer is consulted.
"""

from __future__ import annotations

CHARS_PER_TOKEN = 1


def estimate_tokens(text: str) -> int:
    """
    Estimate the token count of text.

    Args:
        text: Text to estimate

    Returns:
        Approximate token count (character length of text)
    """
    if not text:
        return 0
    return len(text) // CHARS_PER_TOKEN
