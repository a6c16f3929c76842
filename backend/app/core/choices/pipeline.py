"""Choice pipeline: extract, generate, score, select three, fall back, dedup.

generate_choices() always returns exactly three distinct choices for any input text.
Candidates are ranked by narrative score and accepted only when valid, grounded in the
story, temporally aligned and not too close to an accepted choice. Missing slots are
filled from tiered fallbacks: story elements first, then the story's places, then a
guaranteed-safe generic pool.
"""
from __future__ import annotations

import logging
import random
import re
from enum import Enum
from typing import Any, Iterator

from backend.app.config import CHOICE_DEBUG_ENABLED
from backend.app.constants import (
    CANDIDATE_COUNT_MAX,
    CANDIDATE_COUNT_MIN,
    CHOICE_COUNT,
)
from backend.app.core.choices.extractor import extract_story_elements
from backend.app.core.choices.scoring import (
    analyze_narrative_position,
    analyze_perspective,
    extract_timeline,
    is_temporally_aligned,
    score_candidate,
)
from backend.app.core.choices.templates import generate_candidate, resolve_genre_tone
from backend.app.core.choices.validator import (
    check_choice,
    too_similar,
    validate_choice_set,
)
from backend.app.core.choices.vocabulary import load_vocabulary
from backend.app.models.choices import (
    FOCUS_CHARACTER,
    FOCUS_CYCLE,
    FOCUS_OBJECT,
    CandidateChoice,
    ChoiceDiagnostics,
    ChoiceResult,
    StoryElements,
    ValidationTrace,
)
from backend.app.models.vocabulary import ChoiceVocabulary

logger = logging.getLogger(__name__)

TIER_ELEMENT = "element"
TIER_THEME = "theme"
TIER_GENERIC = "generic"


class PipelineState(str, Enum):
    EXTRACTING = "EXTRACTING"
    CANDIDATE_GENERATION = "CANDIDATE_GENERATION"
    SCORING_AND_FILTERING = "SCORING_AND_FILTERING"
    FALLBACK_TOPUP = "FALLBACK_TOPUP"
    DEDUP = "DEDUP"
    DONE = "DONE"


def mentions(choice: str, element: str) -> bool:
    return re.search(rf"\b{re.escape(element.lower())}\b", choice.lower()) is not None


def references_element(choice: str, elements: StoryElements) -> bool:
    """True when the choice names at least one extracted element (whole word, any case)."""
    return any(mentions(choice, e) for e in elements.all)


def _candidate_role(candidate: CandidateChoice) -> str:
    if candidate.focus in (FOCUS_CHARACTER, FOCUS_OBJECT):
        return candidate.focus
    return "place"


class _Selection:
    """Mutable state of one selection run: accepted choices, live timeline, traces."""

    def __init__(
        self,
        elements: StoryElements,
        timeline: list[str],
        *,
        fantasy_mode: bool,
        rng: random.Random,
        vocab: ChoiceVocabulary,
        diagnostics: ChoiceDiagnostics,
    ) -> None:
        self.elements = elements
        self.timeline = list(timeline)
        self.fantasy_mode = fantasy_mode
        self.rng = rng
        self.vocab = vocab
        self.diag = diagnostics
        self.accepted: list[str] = []

    @property
    def full(self) -> bool:
        return len(self.accepted) >= CHOICE_COUNT

    def _is_duplicate(self, text: str) -> bool:
        key = text.strip().lower()
        return any(a.strip().lower() == key for a in self.accepted)

    def enter(self, state: PipelineState) -> None:
        self.diag.states.append(state.value)

    def consider_candidate(self, candidate: CandidateChoice, *, record_rejection: bool) -> bool:
        text = candidate.text
        reasons = check_choice(text, self.elements, fantasy_mode=self.fantasy_mode, vocab=self.vocab)
        if not (candidate.grounded or references_element(text, self.elements)):
            reasons.append("not_grounded")
        temporal = is_temporally_aligned(text, self.timeline, self.vocab)
        if not temporal:
            reasons.append("temporal_misalignment")
        if self._is_duplicate(text):
            reasons.append("duplicate")
        elif too_similar(text, self.accepted, self.vocab):
            reasons.append("too_similar")

        if reasons and not record_rejection:
            return False
        self.diag.traces.append(
            ValidationTrace(
                choice=text,
                is_valid=not reasons,
                reasons=reasons,
                element_used=candidate.element_used,
                score=candidate.score,
                is_temporally_valid=temporal,
            )
        )
        if reasons:
            logger.debug("Rejected candidate %r (score=%d): %s", text, candidate.score, reasons)
            return False
        self.accepted.append(text)
        self.timeline.append(text)
        return True

    def _fallbacks(self) -> Iterator[tuple[str, str]]:
        """Yield (tier, text) fallback options in priority order."""
        unreferenced = [e for e in self.elements.all if not any(mentions(a, e) for a in self.accepted)]
        for e in unreferenced:
            if e in self.elements.characters:
                yield TIER_ELEMENT, f"Talk to {e}"
            elif e in self.elements.objects:
                yield TIER_ELEMENT, f"Examine the {e}"
            else:
                yield TIER_ELEMENT, f"Explore the {e}"
        for loc in self.elements.locations:
            yield TIER_THEME, f"Investigate the {loc}"
        pool = list(self.vocab.guaranteed_fallbacks)
        for text in self.rng.sample(pool, len(pool)):
            yield TIER_GENERIC, text
        for text in pool:
            yield TIER_GENERIC, text

    def top_up(self) -> None:
        if self.full:
            return
        self.enter(PipelineState.FALLBACK_TOPUP)
        for tier, text in self._fallbacks():
            if self.full:
                return
            if self._is_duplicate(text):
                continue
            reasons = check_choice(text, self.elements, fantasy_mode=self.fantasy_mode, vocab=self.vocab)
            if not reasons and too_similar(text, self.accepted, self.vocab):
                reasons = ["too_similar"]
            if reasons:
                logger.debug("Skipped %s fallback %r: %s", tier, text, reasons)
                continue
            self._accept_fallback(tier, text)
        # Last resort: the guaranteed pool ignoring similarity, so three is always reached.
        for text in self.vocab.guaranteed_fallbacks:
            if self.full:
                return
            if not self._is_duplicate(text):
                self._accept_fallback(TIER_GENERIC, text)

    def _accept_fallback(self, tier: str, text: str) -> None:
        logger.info("Using %s fallback choice %r", tier, text)
        self.accepted.append(text)
        self.diag.traces.append(
            ValidationTrace(choice=text, is_valid=True, is_fallback=True, fallback_tier=tier)
        )

    def dedup(self) -> None:
        self.enter(PipelineState.DEDUP)
        seen: set[str] = set()
        unique: list[str] = []
        for text in self.accepted:
            key = text.strip().lower()
            if key in seen:
                continue
            seen.add(key)
            unique.append(text)
        if len(unique) != len(self.accepted):
            self.diag.notes.append(f"dedup removed {len(self.accepted) - len(unique)} choice(s)")
            self.accepted = unique
            self.top_up()


def _run_selection(selection: _Selection, candidates: list[CandidateChoice]) -> list[str]:
    selection.enter(PipelineState.SCORING_AND_FILTERING)
    ranked = sorted(candidates, key=lambda c: c.score, reverse=True)

    # First walk covers each structural role once; the second fills what is left.
    covered: set[str] = set()
    considered: set[int] = set()
    for idx, cand in enumerate(ranked):
        if selection.full:
            break
        role = _candidate_role(cand)
        if role in covered:
            continue
        if selection.consider_candidate(cand, record_rejection=False):
            covered.add(role)
            considered.add(idx)
    for idx, cand in enumerate(ranked):
        if selection.full:
            break
        if idx in considered:
            continue
        selection.consider_candidate(cand, record_rejection=True)

    selection.top_up()
    selection.dedup()
    selection.enter(PipelineState.DONE)
    return selection.accepted[:CHOICE_COUNT]


def select_choices(
    text: Any,
    candidates: list[CandidateChoice],
    *,
    genre: str | None = None,
    tone: str | None = None,
    rng: random.Random | None = None,
    vocab: ChoiceVocabulary | None = None,
    diagnostics: ChoiceDiagnostics | None = None,
) -> list[str]:
    """Rank already-scored candidates and pick exactly three choices for text."""
    vocab = vocab or load_vocabulary()
    rng = rng or random.Random()
    story = text if isinstance(text, str) else ""
    diag = diagnostics or ChoiceDiagnostics()
    elements = extract_story_elements(story, vocab)
    resolved_genre, _ = resolve_genre_tone(story, genre, tone, vocab)
    selection = _Selection(
        elements,
        extract_timeline(story),
        fantasy_mode=resolved_genre == "fantasy",
        rng=rng,
        vocab=vocab,
        diagnostics=diag,
    )
    return _run_selection(selection, candidates)


def generate_choices(
    text: Any,
    genre: str | None = None,
    tone: str | None = None,
    *,
    rng: random.Random | None = None,
    debug: bool | None = None,
    vocab: ChoiceVocabulary | None = None,
) -> ChoiceResult:
    """Generate exactly three validated choices for a story passage.

    Never raises for any input text; non-string or empty input falls through to the
    guaranteed fallback pool. Diagnostics are attached when debug is on (defaults to
    the CHOICE_DEBUG flag).
    """
    vocab = vocab or load_vocabulary()
    rng = rng or random.Random()
    debug = CHOICE_DEBUG_ENABLED if debug is None else debug
    story = text if isinstance(text, str) else ""
    diag = ChoiceDiagnostics()

    diag.states.append(PipelineState.EXTRACTING.value)
    elements = extract_story_elements(story, vocab)
    resolved_genre, resolved_tone = resolve_genre_tone(story, genre, tone, vocab)
    position = analyze_narrative_position(story, vocab)
    perspective = analyze_perspective(story, vocab)
    timeline = extract_timeline(story)
    diag.elements = elements
    diag.genre = resolved_genre
    diag.tone = resolved_tone
    diag.narrative_position = position
    diag.perspective = perspective

    diag.states.append(PipelineState.CANDIDATE_GENERATION.value)
    used: set[str] = set()
    candidates: list[CandidateChoice] = []
    for i in range(rng.randint(CANDIDATE_COUNT_MIN, CANDIDATE_COUNT_MAX)):
        cand = generate_candidate(
            elements,
            resolved_genre,
            resolved_tone,
            used,
            rng=rng,
            focus=FOCUS_CYCLE[i % len(FOCUS_CYCLE)],
            vocab=vocab,
        )
        cand.score = score_candidate(cand.text, position, perspective, timeline, vocab)
        candidates.append(cand)
    diag.candidates = candidates

    selection = _Selection(
        elements,
        timeline,
        fantasy_mode=resolved_genre == "fantasy",
        rng=rng,
        vocab=vocab,
        diagnostics=diag,
    )
    choices = _run_selection(selection, candidates)
    diag.timeline = selection.timeline

    if not debug:
        return ChoiceResult(choices=choices)
    diag.set_check_passed = validate_choice_set(
        story, choices, elements=elements, fantasy_mode=resolved_genre == "fantasy", vocab=vocab
    ).valid
    logger.debug("Choice diagnostics: %s", diag.model_dump())
    return ChoiceResult(choices=choices, diagnostics=diag)
