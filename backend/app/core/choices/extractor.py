"""Story element extraction: characters, objects and locations named in a passage.

Pure and deterministic. Any input that is not a non-empty string yields empty lists.
"""
from __future__ import annotations

import logging
import re
from typing import Any

from backend.app.constants import (
    MAX_CHARACTERS,
    MAX_ELEMENT_MODIFIERS,
    MAX_LOCATIONS,
    MAX_OBJECTS,
)
from backend.app.core.choices.vocabulary import load_vocabulary
from backend.app.models.choices import StoryElements
from backend.app.models.vocabulary import ChoiceVocabulary

logger = logging.getLogger(__name__)


def _alternation(words: list[str]) -> str:
    # Longest first so "woods" wins over "wood"-style prefixes.
    return "|".join(re.escape(w) for w in sorted(set(words), key=lambda w: (-len(w), w)))


class _Patterns:
    """Compiled extraction regexes for one vocabulary."""

    def __init__(self, vocab: ChoiceVocabulary) -> None:
        titles = _alternation(vocab.characters.titles)
        self.character = re.compile(
            rf"\b(?:(?:{titles})\.?\s+)?([A-Z][a-z]{{2,}})\b" if titles else r"\b([A-Z][a-z]{2,})\b"
        )
        self.blacklist = frozenset(vocab.characters.blacklist) | frozenset(vocab.characters.titles)

        articles = _alternation(vocab.grammar.articles)
        modifiers = rf"(?:[a-z][a-z'-]*\s+){{0,{MAX_ELEMENT_MODIFIERS}}}?"
        objects = _alternation(vocab.objects)
        self.object = re.compile(rf"\b(?:{articles})\s+{modifiers}({objects})\b", re.IGNORECASE)

        preps = _alternation(vocab.locative_prepositions)
        locations = _alternation(vocab.locations)
        self.location = re.compile(
            rf"\b(?:{preps})\s+(?:(?:{articles})\s+)?{modifiers}({locations})\b", re.IGNORECASE
        )


_PATTERN_CACHE: dict[int, tuple[ChoiceVocabulary, _Patterns]] = {}


def _patterns_for(vocab: ChoiceVocabulary) -> _Patterns:
    cached = _PATTERN_CACHE.get(id(vocab))
    if cached is not None and cached[0] is vocab:
        return cached[1]
    patterns = _Patterns(vocab)
    _PATTERN_CACHE[id(vocab)] = (vocab, patterns)
    return patterns


def _collect(matches: list[str], cap: int, *, lower: bool) -> tuple[str, ...]:
    out: list[str] = []
    seen: set[str] = set()
    for raw in matches:
        value = raw.lower() if lower else raw
        key = value.lower()
        if key in seen:
            continue
        seen.add(key)
        out.append(value)
        if len(out) >= cap:
            break
    return tuple(out)


def extract_characters(text: str, vocab: ChoiceVocabulary | None = None) -> tuple[str, ...]:
    vocab = vocab or load_vocabulary()
    patterns = _patterns_for(vocab)
    names = [m.group(1) for m in patterns.character.finditer(text)]
    return _collect([n for n in names if n not in patterns.blacklist], MAX_CHARACTERS, lower=False)


def extract_objects(text: str, vocab: ChoiceVocabulary | None = None) -> tuple[str, ...]:
    vocab = vocab or load_vocabulary()
    patterns = _patterns_for(vocab)
    return _collect([m.group(1) for m in patterns.object.finditer(text)], MAX_OBJECTS, lower=True)


def extract_locations(text: str, vocab: ChoiceVocabulary | None = None) -> tuple[str, ...]:
    vocab = vocab or load_vocabulary()
    patterns = _patterns_for(vocab)
    return _collect([m.group(1) for m in patterns.location.finditer(text)], MAX_LOCATIONS, lower=True)


def extract_story_elements(text: Any, vocab: ChoiceVocabulary | None = None) -> StoryElements:
    """Extract characters, objects and locations from story text.

    Characters are capitalized tokens (honorifics stripped, blacklist applied), objects are
    vocabulary nouns after an article, locations are place nouns after a locative preposition.
    Each list is deduplicated in first-seen order and capped at five.
    """
    if not isinstance(text, str) or not text.strip():
        return StoryElements()
    vocab = vocab or load_vocabulary()
    elements = StoryElements(
        characters=extract_characters(text, vocab),
        objects=extract_objects(text, vocab),
        locations=extract_locations(text, vocab),
    )
    logger.debug(
        "Extracted elements: characters=%s objects=%s locations=%s",
        list(elements.characters),
        list(elements.objects),
        list(elements.locations),
    )
    return elements
