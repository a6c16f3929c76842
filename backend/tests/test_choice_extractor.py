"""Element extraction: characters, objects and locations from story text."""
from __future__ import annotations

from backend.app.core.choices.extractor import (
    extract_characters,
    extract_objects,
    extract_story_elements,
)
from backend.app.models.choices import StoryElements

RICH_TEXT = "Elena found an old key near the castle. The wizard Aldric watched her from the tower."


def test_rich_text_elements():
    elements = extract_story_elements(RICH_TEXT)
    assert elements.characters == ("Elena", "Aldric")
    assert elements.objects == ("key",)
    assert elements.locations == ("castle", "tower")
    assert elements.all == ("Elena", "Aldric", "key", "castle", "tower")


def test_extraction_is_idempotent():
    assert extract_story_elements(RICH_TEXT) == extract_story_elements(RICH_TEXT)


def test_empty_and_non_string_input():
    for value in ("", "   \n\t", None, 42, ["Elena"]):
        elements = extract_story_elements(value)
        assert elements.is_empty
        assert elements.all == ()


def test_honorifics_are_stripped():
    text = "Princess Luna walked to the garden with Sir Cedric."
    assert extract_characters(text) == ("Luna", "Cedric")


def test_blacklisted_words_are_not_characters():
    text = "Suddenly the door opened. The King spoke. Meanwhile Everyone waited in the Forest."
    assert extract_characters(text) == ()
    assert extract_objects(text) == ("door",)


def test_characters_are_deduplicated_and_capped():
    text = "Anna, Boris, Clara, Dmitri, Edith and Felix met Anna again."
    assert extract_characters(text) == ("Anna", "Boris", "Clara", "Dmitri", "Edith")


def test_objects_allow_up_to_two_modifiers():
    assert extract_objects("She held a small rusty lantern.") == ("lantern",)
    assert extract_objects("She held a very small rusty lantern.") == ()


def test_objects_are_lowercased_and_deduplicated():
    assert extract_objects("The Map was torn. Tom folded the map and the Key.") == ("map", "key")


def test_locations_need_a_locative_preposition():
    elements = extract_story_elements("The cave was dark. They ran into the old cave and across the meadow.")
    assert elements.locations == ("cave", "meadow")


def test_all_removes_duplicates_across_lists():
    elements = StoryElements(characters=("Elena",), objects=("key", "bridge"), locations=("bridge", "castle"))
    assert elements.all == ("Elena", "key", "bridge", "castle")
    assert elements.vocabulary == frozenset({"elena", "key", "bridge", "castle"})
