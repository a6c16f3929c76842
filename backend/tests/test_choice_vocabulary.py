"""Vocabulary file: loads, is complete, and rejects broken files with VocabularyError."""
from __future__ import annotations

import random
import tempfile
from pathlib import Path

import pytest
from pydantic import ValidationError

from backend.app.core.choices.templates import fill_template
from backend.app.core.choices.validator import check_choice
from backend.app.core.choices.vocabulary import clear_vocabulary_cache, load_vocabulary
from backend.app.core.error_handling import VocabularyError
from backend.app.models.choices import StoryElements
from backend.app.models.vocabulary import TemplatePool


def test_vocabulary_has_every_template_pool():
    vocab = load_vocabulary()
    assert set(vocab.templates["nature"]) == {"magical", "mysterious", "serene"}
    assert set(vocab.templates["fantasy"]) == {"epic", "dark", "whimsical"}
    assert "default" in vocab.templates["default"]
    for section in ("character", "object", "location", "action"):
        assert vocab.pool("default", "default").section(section)


def test_unknown_pool_falls_back_to_default():
    vocab = load_vocabulary()
    assert vocab.pool("space", "grim") is vocab.templates["default"]["default"]
    assert vocab.pool("fantasy", "grim") is vocab.templates["default"]["default"]


def test_yes_no_style_words_stay_strings():
    clear_vocabulary_cache()
    vocab = load_vocabulary()
    assert "on" in vocab.grammar.prepositions
    assert "Yes" in vocab.characters.blacklist


def test_loader_caches_by_path():
    assert load_vocabulary() is load_vocabulary()


def test_clearing_cache_reloads_file():
    first = load_vocabulary()
    clear_vocabulary_cache()
    second = load_vocabulary()
    assert second is not first
    assert second == first


def test_guaranteed_fallbacks_pass_the_predicate_in_every_mode():
    vocab = load_vocabulary()
    assert len(vocab.guaranteed_fallbacks) >= 3
    for text in vocab.guaranteed_fallbacks:
        assert check_choice(text, vocab=vocab) == [], text
        assert check_choice(text, fantasy_mode=True, vocab=vocab) == [], text


def test_every_template_rendered_with_story_elements_is_valid():
    vocab = load_vocabulary()
    elements = StoryElements(characters=("Elena",), objects=("key",), locations=("castle",))
    for genre, by_tone in vocab.templates.items():
        for tone, pool in by_tone.items():
            for section, template in pool.all_templates():
                text, _, _ = fill_template(template, elements, set(), rng=random.Random(0), vocab=vocab)
                assert check_choice(text, elements, vocab=vocab) == [], (genre, tone, section, text)


def test_tropes_are_lowercase_phrases():
    vocab = load_vocabulary()
    assert "chosen one" in vocab.tropes
    assert "ancient prophecy" in vocab.tropes
    assert all(t == t.lower() for t in vocab.tropes)


def test_missing_file_raises():
    with tempfile.TemporaryDirectory() as td:
        with pytest.raises(VocabularyError, match="not found"):
            load_vocabulary(Path(td) / "missing.yaml")


def test_invalid_yaml_raises():
    with tempfile.TemporaryDirectory() as td:
        path = Path(td) / "broken.yaml"
        path.write_text("version: [1, 2\n", encoding="utf-8")
        with pytest.raises(VocabularyError, match="not valid YAML"):
            load_vocabulary(path)


def test_non_mapping_raises():
    with tempfile.TemporaryDirectory() as td:
        path = Path(td) / "list.yaml"
        path.write_text("- a\n- b\n", encoding="utf-8")
        with pytest.raises(VocabularyError, match="mapping"):
            load_vocabulary(path)


def test_schema_mismatch_raises():
    with tempfile.TemporaryDirectory() as td:
        path = Path(td) / "partial.yaml"
        path.write_text("version: 1\nobjects: [key]\n", encoding="utf-8")
        with pytest.raises(VocabularyError, match="failed validation"):
            load_vocabulary(path)


def test_template_pool_rejects_unknown_placeholder():
    with pytest.raises(ValidationError):
        TemplatePool(character=["Talk to [hero]"])


def test_template_pool_rejects_placeholder_in_action():
    with pytest.raises(ValidationError):
        TemplatePool(action=["Follow [character] home"])
