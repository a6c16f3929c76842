"""Narrative-context scoring for candidate choices.

A passage is read for what is happening now (present-tense actions, the place in focus,
tension keywords), what already happened (past-tense actions and sentences) and how the
protagonist feels. Candidates that push the story forward from the current moment score
higher; candidates that replay finished events score lower.
"""
from __future__ import annotations

import re

from backend.app.constants import (
    SCORE_COMPLETED_ACTION,
    SCORE_EMOTION,
    SCORE_ENVIRONMENTAL_FOCUS,
    SCORE_PRESENT_ACTION,
    SCORE_TEMPORAL,
    SCORE_TENSION,
    SCORE_TRAIT,
    SIGNIFICANT_WORD_MIN_LENGTH,
)
from backend.app.core.choices.vocabulary import load_vocabulary
from backend.app.core.text_utils import lower_words
from backend.app.models.choices import CharacterPerspective, NarrativePosition
from backend.app.models.vocabulary import ChoiceVocabulary

_PRESENT_RE = re.compile(r"\b(?:is|are)\s+([a-z]+)\b", re.IGNORECASE)
_PAST_AUX_RE = re.compile(r"\b(?:was|were)\s+([a-z]+)\b", re.IGNORECASE)
_PAST_WORD_RE = re.compile(r"\b([a-z]+ed)\b", re.IGNORECASE)
_PAST_SENTENCE_RE = re.compile(r"\b(?:was|were)\b|\b[a-z]+ed\b", re.IGNORECASE)
_SENTENCE_SPLIT_RE = re.compile(r"[.!?]+")


def _unique(items: list[str]) -> list[str]:
    return list(dict.fromkeys(items))


def analyze_narrative_position(text: str, vocab: ChoiceVocabulary | None = None) -> NarrativePosition:
    vocab = vocab or load_vocabulary()
    text = text or ""
    lowered = lower_words(text)

    current = _unique([m.group(1).lower() for m in _PRESENT_RE.finditer(text)])
    completed = _unique(
        [m.group(1).lower() for m in _PAST_AUX_RE.finditer(text)]
        + [m.group(1).lower() for m in _PAST_WORD_RE.finditer(text)]
    )
    places = set(vocab.locations)
    focus = next((w for w in reversed(lowered) if w in places), None)
    present_words = set(lowered)
    tension = [w for w in vocab.narrative.tension_words if w in present_words]
    return NarrativePosition(
        current_actions=current,
        completed_actions=completed,
        environmental_focus=focus,
        tension_points=tension,
    )


def analyze_perspective(text: str, vocab: ChoiceVocabulary | None = None) -> CharacterPerspective:
    vocab = vocab or load_vocabulary()
    present_words = set(lower_words(text or ""))
    emotion = next((e for e in vocab.narrative.emotions if e in present_words), None)
    traits = [t for t in vocab.narrative.traits if t in present_words]
    return CharacterPerspective(emotion=emotion, traits=traits, goals=list(vocab.narrative.default_goals))


def extract_timeline(text: str) -> list[str]:
    """Past-tense sentences of the passage, in order."""
    sentences = [s.strip() for s in _SENTENCE_SPLIT_RE.split(text or "")]
    return [s for s in sentences if s and _PAST_SENTENCE_RE.search(s)]


def lexical_head(sentence: str, vocab: ChoiceVocabulary | None = None) -> str | None:
    """First significant word of a sentence, lowercased."""
    vocab = vocab or load_vocabulary()
    stop = set(vocab.grammar.significance_stopwords)
    for w in lower_words(sentence):
        if len(w) >= SIGNIFICANT_WORD_MIN_LENGTH and w not in stop:
            return w
    return None


def is_temporally_aligned(choice: str, timeline: list[str], vocab: ChoiceVocabulary | None = None) -> bool:
    """False when the choice reuses the lexical head of any timeline sentence."""
    choice_words = set(lower_words(choice))
    for event in timeline:
        head = lexical_head(event, vocab)
        if head and head in choice_words:
            return False
    return True


def score_candidate(
    choice: str,
    position: NarrativePosition,
    perspective: CharacterPerspective,
    timeline: list[str],
    vocab: ChoiceVocabulary | None = None,
) -> int:
    choice_words = set(lower_words(choice))
    score = 0
    if any(a in choice_words for a in position.current_actions):
        score += SCORE_PRESENT_ACTION
    if position.environmental_focus and position.environmental_focus in choice_words:
        score += SCORE_ENVIRONMENTAL_FOCUS
    if any(t in choice_words for t in position.tension_points):
        score += SCORE_TENSION
    if any(a in choice_words for a in position.completed_actions):
        score += SCORE_COMPLETED_ACTION
    if any(t in choice_words for t in perspective.traits):
        score += SCORE_TRAIT
    if perspective.emotion and perspective.emotion in choice_words:
        score += SCORE_EMOTION
    if is_temporally_aligned(choice, timeline, vocab):
        score += SCORE_TEMPORAL
    return score
