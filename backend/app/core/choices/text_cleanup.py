"""Narrative text cleanup: strip choice prompts the generation backend leaks into story prose."""
from __future__ import annotations

import logging
import re

logger = logging.getLogger(__name__)

_WHAT_NEXT_PATTERNS: tuple[re.Pattern[str], ...] = tuple(
    re.compile(p, re.IGNORECASE)
    for p in (
        r"what happens next\??",
        r"what will happen next\??",
        r"what would you do next\??",
        r"what would happen next\??",
        r"what do you think happens next\??",
        r"what will you do next\??",
        r"what should happen next\??",
        r"what will they do next\??",
        r"what should they do next\??",
        r"what would they do next\??",
        r"what do you think they should do next\??",
    )
)

_CHOICE_ANNOUNCEMENT_PATTERNS: tuple[re.Pattern[str], ...] = tuple(
    re.compile(p, re.IGNORECASE)
    for p in (
        r"(?:you can|you could|you may)(?:\s+(?:choose|decide|pick|select|opt))(?:\s+to)?(?:\s+(?:either|between))?\s*:",
        r"(?:choose|decide|pick|select)\s+(?:between|from|one of)(?:\s+these)?\s+(?:options|choices|paths|alternatives)\s*:",
        r"(?:here are|these are)\s+(?:your|the)\s+(?:options|choices|paths|alternatives)\s*:",
        r"(?:the choice is yours|make your choice|what will you choose|what would you do)\s*[.!?]",
        r"(?:option|choice)\s+(?:1|one|a|first)\s*:",
        r"(?:option|choice)\s+(?:2|two|b|second)\s*:",
        r"(?:option|choice)\s+(?:3|three|c|third)\s*:",
    )
)

CHOICES_MARKER = "CHOICES:"


def clean_story_text(text: str | None) -> str:
    """Remove "what happens next" prompts and choice announcements from story prose.

    Everything from a literal "CHOICES:" marker onward is dropped, a trailing comma,
    semicolon or colon becomes a period, and the result always ends with . ! or ?
    """
    original = text or ""
    cleaned = original
    for pattern in _WHAT_NEXT_PATTERNS:
        cleaned = pattern.sub("", cleaned)
    for pattern in _CHOICE_ANNOUNCEMENT_PATTERNS:
        cleaned = pattern.sub("", cleaned)
    if CHOICES_MARKER in cleaned:
        cleaned = cleaned.split(CHOICES_MARKER, 1)[0]
    cleaned = cleaned.strip()
    cleaned = re.sub(r"[,;:]\s*$", ".", cleaned).strip()
    if not re.search(r"[.!?]$", cleaned):
        cleaned += "."

    if cleaned != original:
        logger.info("Story text cleaned (length %d -> %d)", len(original), len(cleaned))
    return cleaned
