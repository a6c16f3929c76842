"""Candidate generation: genre/tone resolution and template filling."""
from __future__ import annotations

import random

from backend.app.core.choices.templates import (
    fill_template,
    generate_candidate,
    resolve_genre_tone,
    template_choice_set,
)
from backend.app.core.choices.vocabulary import load_vocabulary
from backend.app.models.choices import StoryElements


def test_genre_aliases():
    assert resolve_genre_tone("", "fairy-tale") == ("fantasy", "epic")
    assert resolve_genre_tone("", "Animals") == ("nature", "magical")
    assert resolve_genre_tone("", "nature") == ("nature", "magical")


def test_genre_inferred_from_magic_cue():
    assert resolve_genre_tone("The magic mirror glowed.") == ("fantasy", "epic")
    assert resolve_genre_tone("The fox trotted home.") == ("nature", "magical")
    assert resolve_genre_tone(None) == ("nature", "magical")


def test_unknown_genre_label_falls_back_to_text():
    assert resolve_genre_tone("A magic door appeared.", "space opera")[0] == "fantasy"
    assert resolve_genre_tone("A door appeared.", "space opera")[0] == "nature"


def test_tone_from_text_cues():
    assert resolve_genre_tone("A dark shadow fell over the magic kingdom.") == ("fantasy", "dark")
    assert resolve_genre_tone("The magic pony told a silly joke.") == ("fantasy", "whimsical")
    assert resolve_genre_tone("A strange light hid in the reeds.") == ("nature", "mysterious")
    assert resolve_genre_tone("The pond was calm and quiet.") == ("nature", "serene")


def test_explicit_tone_kept_only_when_genre_has_it():
    assert resolve_genre_tone("", "fantasy", "whimsical") == ("fantasy", "whimsical")
    assert resolve_genre_tone("", "nature", "dark") == ("nature", "magical")


def test_fill_template_uses_first_unused_element():
    vocab = load_vocabulary()
    elements = StoryElements(characters=("Elena", "Aldric"), objects=("key",))
    used: set[str] = set()
    rng = random.Random(1)

    text, first, grounded = fill_template("Ask [character] about the [object]", elements, used, rng=rng, vocab=vocab)
    assert text == "Ask Elena about the key"
    assert first == "Elena"
    assert grounded

    text, first, grounded = fill_template("Ask [character] about the [object]", elements, used, rng=rng, vocab=vocab)
    assert text == f"Ask Aldric about the {vocab.generic.objects[0]}"
    assert first == "Aldric"
    assert not grounded
    assert {"elena", "aldric", "key", vocab.generic.objects[0]} <= used


def test_exhausted_characters_render_with_article():
    vocab = load_vocabulary()
    text, first, grounded = fill_template("Talk to [character]", StoryElements(), set(), rng=random.Random(0), vocab=vocab)
    assert first == vocab.generic.characters[0]
    assert text == f"Talk to the {first}"
    assert not grounded


def test_fill_template_without_placeholders():
    text, first, grounded = fill_template("wait and listen", StoryElements(), set(), rng=random.Random(0))
    assert text == "Wait and listen"
    assert first is None
    assert not grounded


def test_generate_candidate_respects_focus():
    vocab = load_vocabulary()
    elements = StoryElements(characters=("Elena",), objects=("key",), locations=("castle",))
    rng = random.Random(5)
    used: set[str] = set()

    cand = generate_candidate(elements, "nature", "magical", used, rng=rng, focus="character", vocab=vocab)
    assert cand.focus == "character"
    assert cand.template in vocab.pool("nature", "magical").character
    assert cand.element_used == "Elena"
    assert "Elena" in cand.text

    action = generate_candidate(elements, "nature", "magical", used, rng=rng, focus="action", vocab=vocab)
    assert action.focus == "action"
    assert action.element_used is None
    assert action.text in vocab.pool("nature", "magical").action


def test_generate_candidate_unknown_pool_uses_default():
    vocab = load_vocabulary()
    cand = generate_candidate(StoryElements(), "space", "grim", set(), rng=random.Random(2), focus="location", vocab=vocab)
    assert cand.template in vocab.pool("default", "default").location


def test_generate_candidate_is_deterministic_with_seed():
    elements = StoryElements(characters=("Elena",), objects=("key",), locations=("castle",))
    a = generate_candidate(elements, "fantasy", "dark", set(), rng=random.Random(9))
    b = generate_candidate(elements, "fantasy", "dark", set(), rng=random.Random(9))
    assert a == b


def test_template_choice_set_is_positional():
    vocab = load_vocabulary()
    elements = StoryElements(characters=("Elena",), objects=("key",), locations=("castle",))
    out = template_choice_set(elements, "default", "default", random.Random(3), vocab)
    assert len(out) == 3
    assert "Elena" in out[0]
    assert "castle" in out[2]


def test_template_choice_set_without_locations_ends_with_action():
    vocab = load_vocabulary()
    out = template_choice_set(StoryElements(), "default", "default", random.Random(3), vocab)
    assert out[2] in vocab.pool("default", "default").action
