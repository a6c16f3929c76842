"""Validity predicate and set-level choice contract."""
from __future__ import annotations

from backend.app.core.choices.validator import (
    REASON_ARTICLE_AUXILIARY,
    REASON_DANGLING_ENDING,
    REASON_GENERIC_PHRASE,
    REASON_LENGTH,
    REASON_NONSENSICAL_ADJACENCY,
    REASON_NONSENSICAL_VERB_OBJECT,
    REASON_NOT_CAPITALIZED,
    REASON_NOT_TEXT,
    REASON_SINGLE_WORD,
    REASON_TROPE,
    REASON_UNANCHORED_GENERIC,
    assign_roles,
    check_choice,
    is_valid_choice,
    significant_words,
    too_similar,
    validate_choice_set,
)
from backend.app.models.choices import StoryElements

RICH_TEXT = "Elena found an old key near the castle. The wizard Aldric watched her from the tower."
KEY_ELEMENTS = StoryElements(characters=("Elena",), objects=("key",), locations=("castle",))


def test_non_text_is_rejected():
    assert check_choice(None) == [REASON_NOT_TEXT]
    assert check_choice("   ") == [REASON_NOT_TEXT]
    assert check_choice(12) == [REASON_NOT_TEXT]


def test_length_bounds_are_exclusive():
    assert REASON_LENGTH in check_choice("Go north")
    assert REASON_LENGTH in check_choice("Open door!")  # exactly 10
    assert REASON_LENGTH not in check_choice("Open doors!")
    long_choice = "Examine the " + "very " * 10 + "old key"
    assert len(long_choice) >= 60
    assert REASON_LENGTH in check_choice(long_choice, KEY_ELEMENTS)


def test_single_word_and_capitalization():
    assert REASON_SINGLE_WORD in check_choice("Investigate")
    assert REASON_NOT_CAPITALIZED in check_choice("look around carefully")


def test_generic_phrase():
    assert REASON_GENERIC_PHRASE in check_choice("Explore the way")
    assert REASON_GENERIC_PHRASE in check_choice("Follow the path", KEY_ELEMENTS)


def test_unanchored_generic_term():
    assert REASON_UNANCHORED_GENERIC in check_choice("Search the old path north")
    assert REASON_UNANCHORED_GENERIC in check_choice("Follow the winding way north", KEY_ELEMENTS)
    assert check_choice("Follow the way to the key", KEY_ELEMENTS) == []


def test_capitalized_generic_term_is_a_name():
    assert check_choice("Ask the Guide for directions") == []


def test_nonsensical_adjacency():
    assert REASON_NONSENSICAL_ADJACENCY in check_choice("Talk to With someone")
    assert REASON_NONSENSICAL_ADJACENCY in check_choice("Open the with door")


def test_article_before_auxiliary():
    assert REASON_ARTICLE_AUXILIARY in check_choice("Look at the is tower")


def test_dangling_ending():
    assert REASON_DANGLING_ENDING in check_choice("Open the door and")
    assert REASON_DANGLING_ENDING in check_choice("Walk slowly toward the")
    assert REASON_DANGLING_ENDING not in check_choice("Wave goodbye to Elena", KEY_ELEMENTS)


def test_nonsensical_verb_object():
    assert REASON_NONSENSICAL_VERB_OBJECT in check_choice("Nurture the path forward")


def test_tropes_only_in_fantasy_mode():
    choice = "Follow the ancient prophecy north"
    assert REASON_TROPE in check_choice(choice, fantasy_mode=True)
    assert REASON_TROPE not in check_choice(choice, fantasy_mode=False)
    assert not is_valid_choice("Accept your role as the chosen one", fantasy_mode=True)


def test_significant_words_skip_short_words_and_stopwords():
    assert significant_words("Walk with Elena into the dark tower") == {"walk", "elena", "dark", "tower"}


def test_too_similar_allows_two_shared_words():
    accepted = ["Explore the dark tower gate"]
    assert not too_similar("Climb the dark tower", accepted)
    assert too_similar("Guard the dark tower gate", accepted)


def test_valid_set():
    choices = ["Talk to Aldric about the tower", "Examine the old key closely", "Explore the castle grounds"]
    report = validate_choice_set(RICH_TEXT, choices)
    assert report.valid
    assert report.reasons == []
    assert report.roles == ["character", "object", "place"]


def test_wrong_count_and_non_text():
    assert validate_choice_set(RICH_TEXT, ["Talk to Elena"]).reasons == ["wrong_count"]
    assert validate_choice_set(RICH_TEXT, None).reasons == ["wrong_count"]
    report = validate_choice_set(RICH_TEXT, ["Talk to Elena", 3, "Explore the castle"])
    assert not report.valid
    assert report.reasons == ["non_text_entry"]


def test_invalid_entries_are_reported_per_choice():
    report = validate_choice_set(RICH_TEXT, ["Go", "With the", "X"])
    assert not report.valid
    assert "invalid_choice" in report.reasons
    assert set(report.per_choice) == {"Go", "With the", "X"}


def test_duplicate_choices():
    report = validate_choice_set(RICH_TEXT, ["Talk to Elena", "talk to elena", "Explore the castle"])
    assert "duplicate_choice" in report.reasons


def test_too_similar_pair():
    choices = [
        "Talk to Elena about the golden crystal lantern",
        "Examine the golden crystal lantern",
        "Explore the castle",
    ]
    report = validate_choice_set(RICH_TEXT, choices)
    assert "too_similar" in report.reasons


def test_missing_structural_diversity():
    choices = ["Talk to Elena", "Ask Aldric about the key", "Help Elena find the key"]
    report = validate_choice_set(RICH_TEXT, choices)
    assert not report.valid
    assert report.reasons == ["missing_structural_diversity"]


def test_assign_roles_handles_ambiguous_verbs():
    assert assign_roles(["Talk to Elena", "Search the castle", "Open the old box"]) == [
        "character",
        "place",
        "object",
    ]
    assert assign_roles(["Talk to Elena", "Ask Aldric", "Greet the owl"]) is None


def test_fantasy_mode_inferred_from_text():
    text = "The magic kingdom slept. Elena found a key in the tower."
    choices = ["Talk to Elena about destiny", "Examine the key", "Explore the tower"]
    assert "invalid_choice" in validate_choice_set(text, choices).reasons
    assert validate_choice_set(text, choices, fantasy_mode=False).valid
