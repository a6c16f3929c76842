"""Choice validity predicate and set-level contract.

`check_choice` returns the list of reasons a single choice is rejected (empty when valid).
`validate_choice_set` applies the set contract used to decide whether server-supplied
choices can be shown as-is: three entries, each valid, bounded similarity, and one
character-, one object- and one place/action-oriented choice.
"""
from __future__ import annotations

import itertools
import logging
import re
from typing import Any

from backend.app.constants import (
    CHOICE_COUNT,
    CHOICE_MAX_LENGTH,
    CHOICE_MIN_LENGTH,
    GENERIC_PHRASE_MAX_WORDS,
    MAX_SHARED_SIGNIFICANT_WORDS,
    SIGNIFICANT_WORD_MIN_LENGTH,
)
from backend.app.core.choices.extractor import extract_story_elements
from backend.app.core.choices.templates import resolve_genre_tone
from backend.app.core.choices.vocabulary import load_vocabulary
from backend.app.core.text_utils import lower_words, words
from backend.app.models.choices import ChoiceSetReport, StoryElements
from backend.app.models.vocabulary import ChoiceVocabulary

logger = logging.getLogger(__name__)

# Rejection reasons
REASON_NOT_TEXT = "not_text"
REASON_LENGTH = "length_out_of_bounds"
REASON_NOT_CAPITALIZED = "not_capitalized"
REASON_SINGLE_WORD = "single_word"
REASON_GENERIC_PHRASE = "generic_phrase"
REASON_UNANCHORED_GENERIC = "unanchored_generic_term"
REASON_NONSENSICAL_ADJACENCY = "nonsensical_adjacency"
REASON_ARTICLE_AUXILIARY = "article_before_auxiliary"
REASON_DANGLING_ENDING = "dangling_ending"
REASON_NONSENSICAL_VERB_OBJECT = "nonsensical_verb_object"
REASON_TROPE = "fantasy_trope"

# Structural roles (by leading verb)
ROLE_CHARACTER = "character"
ROLE_OBJECT = "object"
ROLE_PLACE = "place"
REQUIRED_ROLES: tuple[str, ...] = (ROLE_CHARACTER, ROLE_OBJECT, ROLE_PLACE)


def _phrase_re(phrases: list[str]) -> re.Pattern[str] | None:
    if not phrases:
        return None
    alternation = "|".join(re.escape(p) for p in sorted(phrases, key=len, reverse=True))
    return re.compile(rf"\b(?:{alternation})\b", re.IGNORECASE)


def _generic_term_tokens(tokens: list[str], vocab: ChoiceVocabulary) -> list[tuple[int, str]]:
    forbidden = set(vocab.generic_terms.forbidden)
    return [(i, t) for i, t in enumerate(tokens) if t.lower() in forbidden]


def _has_unanchored_generic_term(tokens: list[str], elements: StoryElements, vocab: ChoiceVocabulary) -> bool:
    hits = [
        (i, t)
        for i, t in _generic_term_tokens(tokens, vocab)
        # "the Guide" after the first word is a proper name, not a generic noun
        if not (i > 0 and t[:1].isupper())
    ]
    if not hits:
        return False
    story_words = elements.vocabulary
    return not any(t.lower() in story_words for t in tokens)


def _adjacency_problems(lowered: list[str], vocab: ChoiceVocabulary) -> list[str]:
    g = vocab.grammar
    articles = set(g.articles)
    auxiliaries = set(g.auxiliaries)
    connectives = set(g.prepositions) | set(g.conjunctions)
    function_words = articles | connectives
    reasons: list[str] = []
    for a, b in zip(lowered, lowered[1:]):
        if a in articles and b in auxiliaries:
            reasons.append(REASON_ARTICLE_AUXILIARY)
        elif a in articles and b in function_words:
            reasons.append(REASON_NONSENSICAL_ADJACENCY)
        elif a in connectives and b in connectives:
            reasons.append(REASON_NONSENSICAL_ADJACENCY)
    return list(dict.fromkeys(reasons))


def _ends_dangling(tokens: list[str], elements: StoryElements, vocab: ChoiceVocabulary) -> bool:
    last = tokens[-1]
    g = vocab.grammar
    if last.lower() not in set(g.articles) | set(g.prepositions) | set(g.conjunctions):
        return False
    return not (last[:1].isupper() and last in elements.characters)


def _is_generic_phrase(lowered: list[str], vocab: ChoiceVocabulary) -> bool:
    if len(lowered) > GENERIC_PHRASE_MAX_WORDS:
        return False
    terms = vocab.generic_terms
    return lowered[0] in set(terms.verbs) and any(w in set(terms.forbidden) for w in lowered[1:])


def _nonsensical_verb_object(text: str, vocab: ChoiceVocabulary) -> bool:
    terms = vocab.generic_terms
    if not terms.nonsense_verbs or not terms.nonsense_objects:
        return False
    verbs = "|".join(re.escape(v) for v in terms.nonsense_verbs)
    objects = "|".join(re.escape(o) for o in terms.nonsense_objects)
    articles = "|".join(re.escape(a) for a in vocab.grammar.articles)
    pattern = rf"\b(?:{verbs})\s+(?:(?:{articles})\s+)?(?:{objects})\b"
    return re.search(pattern, text, re.IGNORECASE) is not None


def check_choice(
    choice: Any,
    elements: StoryElements | None = None,
    *,
    fantasy_mode: bool = False,
    vocab: ChoiceVocabulary | None = None,
) -> list[str]:
    """Return every reason choice fails the validity predicate; an empty list means valid."""
    if not isinstance(choice, str) or not choice.strip():
        return [REASON_NOT_TEXT]
    vocab = vocab or load_vocabulary()
    elements = elements or StoryElements()
    text = choice.strip()
    reasons: list[str] = []

    if not (CHOICE_MIN_LENGTH < len(text) < CHOICE_MAX_LENGTH):
        reasons.append(REASON_LENGTH)
    if not text[:1].isupper():
        reasons.append(REASON_NOT_CAPITALIZED)

    tokens = words(text)
    if len(tokens) < 2:
        reasons.append(REASON_SINGLE_WORD)
        return reasons
    lowered = [t.lower() for t in tokens]

    if _is_generic_phrase(lowered, vocab):
        reasons.append(REASON_GENERIC_PHRASE)
    if _has_unanchored_generic_term(tokens, elements, vocab):
        reasons.append(REASON_UNANCHORED_GENERIC)
    reasons.extend(_adjacency_problems(lowered, vocab))
    if _ends_dangling(tokens, elements, vocab):
        reasons.append(REASON_DANGLING_ENDING)
    if _nonsensical_verb_object(text, vocab):
        reasons.append(REASON_NONSENSICAL_VERB_OBJECT)
    if fantasy_mode:
        tropes = _phrase_re(vocab.tropes)
        if tropes is not None and tropes.search(text):
            reasons.append(REASON_TROPE)
    return reasons


def is_valid_choice(
    choice: Any,
    elements: StoryElements | None = None,
    *,
    fantasy_mode: bool = False,
    vocab: ChoiceVocabulary | None = None,
) -> bool:
    return not check_choice(choice, elements, fantasy_mode=fantasy_mode, vocab=vocab)


def significant_words(text: str, vocab: ChoiceVocabulary | None = None) -> set[str]:
    """Lowercase words longer than three letters that are not stopwords."""
    vocab = vocab or load_vocabulary()
    stop = set(vocab.grammar.significance_stopwords)
    return {w for w in lower_words(text) if len(w) >= SIGNIFICANT_WORD_MIN_LENGTH and w not in stop}


def shared_significant_words(a: str, b: str, vocab: ChoiceVocabulary | None = None) -> int:
    return len(significant_words(a, vocab) & significant_words(b, vocab))


def too_similar(choice: str, accepted: list[str], vocab: ChoiceVocabulary | None = None) -> bool:
    """True when choice shares more than the allowed number of significant words with any accepted choice."""
    return any(shared_significant_words(choice, other, vocab) > MAX_SHARED_SIGNIFICANT_WORDS for other in accepted)


def choice_roles(choice: str, vocab: ChoiceVocabulary | None = None) -> set[str]:
    """Structural roles a choice can fill, judged by its leading verb."""
    vocab = vocab or load_vocabulary()
    lowered = lower_words(choice)
    if not lowered:
        return set()
    verb = lowered[0]
    roles: set[str] = set()
    if verb in vocab.roles.character:
        roles.add(ROLE_CHARACTER)
    if verb in vocab.roles.object:
        roles.add(ROLE_OBJECT)
    if verb in vocab.roles.place:
        roles.add(ROLE_PLACE)
    return roles


def assign_roles(choices: list[str], vocab: ChoiceVocabulary | None = None) -> list[str | None] | None:
    """Assign each choice a distinct required role; None when no such assignment exists."""
    options = [choice_roles(c, vocab) for c in choices]
    for perm in itertools.permutations(REQUIRED_ROLES, len(choices)):
        if all(role in opts for role, opts in zip(perm, options)):
            return list(perm)
    return None


def validate_choice_set(
    text: str | None,
    choices: Any,
    *,
    elements: StoryElements | None = None,
    fantasy_mode: bool | None = None,
    vocab: ChoiceVocabulary | None = None,
) -> ChoiceSetReport:
    """Check a candidate choice set against the full set-level contract."""
    vocab = vocab or load_vocabulary()
    if not isinstance(choices, list) or len(choices) != CHOICE_COUNT:
        return ChoiceSetReport(valid=False, reasons=["wrong_count"])
    if not all(isinstance(c, str) and c.strip() for c in choices):
        return ChoiceSetReport(valid=False, reasons=["non_text_entry"])

    if elements is None:
        elements = extract_story_elements(text, vocab)
    if fantasy_mode is None:
        fantasy_mode = resolve_genre_tone(text, vocab=vocab)[0] == "fantasy"

    reasons: list[str] = []
    per_choice: dict[str, list[str]] = {}
    for c in choices:
        problems = check_choice(c, elements, fantasy_mode=fantasy_mode, vocab=vocab)
        if problems:
            per_choice[c] = problems
    if per_choice:
        reasons.append("invalid_choice")

    if len({c.strip().lower() for c in choices}) != len(choices):
        reasons.append("duplicate_choice")
    for a, b in itertools.combinations(choices, 2):
        if shared_significant_words(a, b, vocab) > MAX_SHARED_SIGNIFICANT_WORDS:
            reasons.append("too_similar")
            break

    roles = assign_roles(choices, vocab)
    if roles is None:
        reasons.append("missing_structural_diversity")
        roles_out: list[str | None] = [next(iter(sorted(choice_roles(c, vocab))), None) for c in choices]
    else:
        roles_out = list(roles)

    report = ChoiceSetReport(valid=not reasons, reasons=reasons, per_choice=per_choice, roles=roles_out)
    if not report.valid:
        logger.debug("Choice set rejected: %s (per choice: %s)", reasons, per_choice)
    return report
