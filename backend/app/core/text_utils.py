"""Text normalization utilities."""
from __future__ import annotations

import re

_WORD_RE = re.compile(r"[A-Za-z']+")


def normalize_identifier(value: str) -> str:
    """
    Normalize string to lowercase identifier format.

    Converts dashes and spaces to underscores and strips whitespace.
    Used for genre labels, tone labels, and other configuration identifiers.

    Args:
        value: The string to normalize

    Returns:
        Normalized identifier string (lowercase, underscores instead of dashes)

    Examples:
        >>> normalize_identifier("fairy-tale")
        'fairy_tale'
        >>> normalize_identifier("  Nature  ")
        'nature'
    """
    return re.sub(r"[\s\-]+", "_", str(value).strip().lower())


def words(text: str) -> list[str]:
    """Alphabetic word tokens of text, case preserved, apostrophes kept inside words."""
    return [w.strip("'") for w in _WORD_RE.findall(text or "") if w.strip("'")]


def lower_words(text: str) -> list[str]:
    """Lowercased word tokens of text."""
    return [w.lower() for w in words(text)]
