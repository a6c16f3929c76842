"""SQLite segment choice store."""
from __future__ import annotations

import tempfile
from pathlib import Path

import pytest

from backend.app.db.segment_store import SegmentChoiceStore


def test_update_and_get_choices():
    with tempfile.TemporaryDirectory() as td:
        store = SegmentChoiceStore(str(Path(td) / "nested" / "story.db"))
        assert store.get_choices("seg-1") is None
        store.update_choices("seg-1", ["Talk to Elena", "Examine the key", "Explore the castle"])
        assert store.get_choices("seg-1") == ["Talk to Elena", "Examine the key", "Explore the castle"]


def test_update_replaces_existing_choices():
    with tempfile.TemporaryDirectory() as td:
        store = SegmentChoiceStore(str(Path(td) / "story.db"))
        store.update_choices("seg-1", ["a", "b", "c"])
        store.update_choices("seg-1", ["Wait and observe", "Look around carefully", "Continue carefully"])
        assert store.get_choices("seg-1") == ["Wait and observe", "Look around carefully", "Continue carefully"]
        assert store.get_choices("seg-2") is None


def test_empty_segment_id_is_rejected():
    with tempfile.TemporaryDirectory() as td:
        store = SegmentChoiceStore(str(Path(td) / "story.db"))
        with pytest.raises(ValueError):
            store.update_choices("", ["a", "b", "c"])


def test_check_creates_database():
    with tempfile.TemporaryDirectory() as td:
        db_path = Path(td) / "health.db"
        SegmentChoiceStore(str(db_path)).check()
        assert db_path.exists()


def test_custom_table_name():
    with tempfile.TemporaryDirectory() as td:
        store = SegmentChoiceStore(str(Path(td) / "story.db"), table="segments_alt")
        store.update_choices("seg-9", ["x", "y", "z"])
        assert store.get_choices("seg-9") == ["x", "y", "z"]
