"""Candidate generation: fill genre/tone templates with story elements.

Templates live in the vocabulary file keyed by genre and tone. Placeholders are filled with
the first story element not yet used; once a list runs dry a generic noun takes its place.
The generator never validates or scores.
"""
from __future__ import annotations

import logging
import random
import re

from backend.app.core.choices.vocabulary import load_vocabulary
from backend.app.core.text_utils import normalize_identifier
from backend.app.models.choices import (
    FOCUS_ACTION,
    FOCUS_CHARACTER,
    FOCUS_LOCATION,
    FOCUS_OBJECT,
    CandidateChoice,
    StoryElements,
)
from backend.app.models.vocabulary import ChoiceVocabulary

logger = logging.getLogger(__name__)

_PLACEHOLDER_RE = re.compile(r"\[(character|object|location)\]")


def _canonical_genre(label: str, vocab: ChoiceVocabulary) -> str | None:
    key = normalize_identifier(label)
    for genre, aliases in vocab.genres.aliases.items():
        if key == genre or key in {normalize_identifier(a) for a in aliases}:
            return genre
    return None


def _has_word(text_lower: str, word: str) -> bool:
    return re.search(rf"\b{re.escape(word)}", text_lower) is not None


def resolve_genre_tone(
    text: str | None,
    genre: str | None = None,
    tone: str | None = None,
    vocab: ChoiceVocabulary | None = None,
) -> tuple[str, str]:
    """Resolve the (genre, tone) template key for a passage.

    An explicit genre goes through the alias table; otherwise "magic" in the text picks
    fantasy and everything else is nature. An explicit tone is kept when the genre has
    templates for it; otherwise keyword cues in the text decide, then the genre default.
    """
    vocab = vocab or load_vocabulary()
    lowered = (text or "").lower() if isinstance(text, str) else ""

    resolved = _canonical_genre(genre, vocab) if genre else None
    if resolved is None:
        if genre:
            logger.debug("Unknown genre label %r; inferring from text", genre)
        if any(cue in lowered for cue in vocab.genres.magic_cues):
            resolved = "fantasy"
        else:
            resolved = "nature"

    tones_for_genre = vocab.templates.get(resolved, {})
    if tone:
        tone_key = normalize_identifier(tone)
        if tone_key in tones_for_genre:
            return resolved, tone_key

    for tone_name, cues in (vocab.genres.tone_cues.get(resolved) or {}).items():
        if any(_has_word(lowered, cue) for cue in cues):
            return resolved, tone_name
    return resolved, vocab.genres.default_tones.get(resolved, "default")


def _generic_pool(kind: str, vocab: ChoiceVocabulary) -> list[str]:
    if kind == FOCUS_CHARACTER:
        return vocab.generic.characters
    if kind == FOCUS_OBJECT:
        return vocab.generic.objects
    return vocab.generic.locations


def _substitute(
    kind: str,
    elements: StoryElements,
    used_elements: set[str],
    rng: random.Random,
    vocab: ChoiceVocabulary,
) -> tuple[str, str, bool]:
    """Pick a value for one placeholder: (rendered text, element recorded, grounded)."""
    for item in elements.elements_for(kind):
        if item.lower() not in used_elements:
            used_elements.add(item.lower())
            return item, item, True

    generic = _generic_pool(kind, vocab)
    fresh = [g for g in generic if g not in used_elements]
    noun = fresh[0] if fresh else rng.choice(generic)
    used_elements.add(noun)
    rendered = f"the {noun}" if kind == FOCUS_CHARACTER else noun
    return rendered, noun, False


def _pick_template(
    genre: str,
    tone: str,
    focus: str | None,
    rng: random.Random,
    vocab: ChoiceVocabulary,
) -> tuple[str, str]:
    pool = vocab.pool(genre, tone)
    if focus:
        section = pool.section(focus) or vocab.pool("default", "default").section(focus)
        if section:
            return focus, rng.choice(section)
    choices = pool.all_templates()
    return rng.choice(choices)


def fill_template(
    template: str,
    elements: StoryElements,
    used_elements: set[str],
    *,
    rng: random.Random,
    vocab: ChoiceVocabulary | None = None,
) -> tuple[str, str | None, bool]:
    """Replace every placeholder in template. Returns (text, first element used, grounded)."""
    vocab = vocab or load_vocabulary()
    first_used: str | None = None
    grounded = True
    parts: list[str] = []
    last = 0
    for m in _PLACEHOLDER_RE.finditer(template):
        rendered, recorded, from_story = _substitute(m.group(1), elements, used_elements, rng, vocab)
        parts.append(template[last:m.start()])
        parts.append(rendered)
        last = m.end()
        if first_used is None:
            first_used = recorded
        grounded = grounded and from_story
    parts.append(template[last:])
    text = " ".join("".join(parts).split())
    if text:
        text = text[0].upper() + text[1:]
    if first_used is None:
        grounded = False
    return text, first_used, grounded


def generate_candidate(
    elements: StoryElements,
    genre: str,
    tone: str,
    used_elements: set[str],
    *,
    rng: random.Random,
    focus: str | None = None,
    vocab: ChoiceVocabulary | None = None,
) -> CandidateChoice:
    """Produce one candidate from the (genre, tone) pool, optionally restricted to a focus section.

    used_elements is updated in place with every element consumed.
    """
    vocab = vocab or load_vocabulary()
    section, template = _pick_template(genre, tone, focus, rng, vocab)
    text, element_used, grounded = fill_template(template, elements, used_elements, rng=rng, vocab=vocab)
    return CandidateChoice(
        text=text,
        element_used=element_used,
        focus=section,
        template=template,
        grounded=grounded,
    )


def template_choice_set(
    elements: StoryElements,
    genre: str,
    tone: str,
    rng: random.Random,
    vocab: ChoiceVocabulary | None = None,
) -> list[str]:
    """Three positional template choices: character, object, then location (or a plain action)."""
    vocab = vocab or load_vocabulary()
    used: set[str] = set()
    last_focus = FOCUS_LOCATION if elements.locations else FOCUS_ACTION
    out: list[str] = []
    for focus in (FOCUS_CHARACTER, FOCUS_OBJECT, last_focus):
        out.append(generate_candidate(elements, genre, tone, used, rng=rng, focus=focus, vocab=vocab).text)
    return out
