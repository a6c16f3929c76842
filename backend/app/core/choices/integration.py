"""Choice integrity layer between the generation backend and the reader.

Every segment coming back from the backend is normalized, its prose cleaned, and its
choices cross-checked against the same contract the local pipeline enforces. Server
choices that fail the contract are replaced by a freshly generated set, written back to
the segment store (best effort) and recorded as a patched flow.
"""
from __future__ import annotations

import logging
import random
import re
import time
from typing import Any

from backend.app.config import CHOICE_ENGINE_VERSION, CHOICE_WRITEBACK_ENABLED
from backend.app.constants import CHOICE_COUNT, REPAIR_MIN_LENGTH
from backend.app.core.choices.extractor import extract_story_elements
from backend.app.core.choices.flow_recorder import ChoiceFlowRecorder
from backend.app.core.choices.pipeline import generate_choices
from backend.app.core.choices.templates import resolve_genre_tone, template_choice_set
from backend.app.core.choices.text_cleanup import clean_story_text
from backend.app.core.choices.validator import (
    REASON_NONSENSICAL_ADJACENCY,
    check_choice,
    validate_choice_set,
)
from backend.app.core.choices.vocabulary import load_vocabulary
from backend.app.core.error_handling import StoryGenerationError
from backend.app.db.segment_store import SegmentChoiceStore
from backend.app.models.choices import (
    SOURCE_CLIENT_PATCHED,
    SOURCE_SERVER,
    ChoiceFlow,
    StorySegment,
)
from backend.app.models.vocabulary import ChoiceVocabulary

logger = logging.getLogger(__name__)

_KNOWN_KEYS = {
    "id",
    "story_id",
    "text",
    "segment_text",
    "choices",
    "is_end",
    "image_url",
    "image_generation_status",
    "choice_engine_version",
    "genre",
}


def normalize_payload(raw: Any) -> dict[str, Any]:
    """Unwrap a backend response into a flat segment dict with a non-empty `text`.

    Accepts either the bare segment or a `{success, data}` envelope; `segment_text` is
    accepted in place of `text`. Raises StoryGenerationError when no story can be read.
    """
    if not isinstance(raw, dict):
        raise StoryGenerationError("Story backend returned a non-object payload")
    data: Any = raw
    if "success" in raw:
        if not raw.get("success"):
            raise StoryGenerationError(str(raw.get("error") or "Story backend reported failure"))
        data = raw.get("data")
        if not isinstance(data, dict):
            raise StoryGenerationError("Story backend response has no segment data")
    text = data.get("text")
    if not isinstance(text, str) or not text.strip():
        text = data.get("segment_text")
    if not isinstance(text, str) or not text.strip():
        raise StoryGenerationError("Story backend response has no story text")
    out = dict(data)
    out["text"] = text
    return out


class ChoiceIntegrityService:
    """Normalize backend segments and guarantee their choices meet the choice contract."""

    def __init__(
        self,
        recorder: ChoiceFlowRecorder,
        store: SegmentChoiceStore | None = None,
        rng: random.Random | None = None,
        *,
        engine_version: str = CHOICE_ENGINE_VERSION,
        writeback: bool = CHOICE_WRITEBACK_ENABLED,
        vocab: ChoiceVocabulary | None = None,
    ) -> None:
        self.recorder = recorder
        self.store = store
        self.rng = rng or random.Random()
        self.engine_version = engine_version
        self.writeback = writeback
        self._vocab = vocab

    @property
    def vocab(self) -> ChoiceVocabulary:
        if self._vocab is None:
            self._vocab = load_vocabulary()
        return self._vocab

    def needs_repair(self, choice: Any) -> bool:
        """True for choices that are too short, nonsensical or just a bare generic verb."""
        if not isinstance(choice, str):
            return True
        if len(choice.strip()) < REPAIR_MIN_LENGTH:
            return True
        if REASON_NONSENSICAL_ADJACENCY in check_choice(choice, vocab=self.vocab):
            return True
        bare = "|".join(re.escape(v) for v in self.vocab.generic_terms.bare_verbs)
        articles = "|".join(re.escape(a) for a in self.vocab.grammar.articles)
        return re.match(rf"^\s*(?:{bare})(?:\s+(?:{articles}))?\s*$", choice, re.IGNORECASE) is not None

    def repair_choices(self, text: str, choices: list[Any], genre: str | None = None) -> list[str]:
        """Replace broken choices positionally with template choices; keep the rest."""
        elements = extract_story_elements(text, self.vocab)
        resolved_genre, resolved_tone = resolve_genre_tone(text, genre, vocab=self.vocab)
        replacements = template_choice_set(elements, resolved_genre, resolved_tone, self.rng, self.vocab)
        out: list[str] = []
        for i, choice in enumerate(choices):
            if self.needs_repair(choice):
                logger.warning("Replacing problematic choice %r with %r", choice, replacements[i])
                out.append(replacements[i])
            else:
                out.append(choice)
        return out

    def _persist(self, segment_id: str | None, story_id: str | None, choices: list[str]) -> None:
        if not segment_id or self.store is None or not self.writeback:
            return
        try:
            self.store.update_choices(segment_id, choices)
        except Exception as e:
            logger.warning(
                "Failed to write corrected choices for segment %s (story %s, non-fatal): %s", segment_id, story_id, e
            )

    def process(self, raw: Any, *, genre: str | None = None) -> StorySegment:
        """Turn a raw backend response into a StorySegment with a contract-valid choice set."""
        data = normalize_payload(raw)
        text = clean_story_text(data["text"])
        segment_id = str(data["id"]) if data.get("id") is not None else None
        story_id = str(data["story_id"]) if data.get("story_id") is not None else None
        genre = genre or (data.get("genre") if isinstance(data.get("genre"), str) else None)
        server_version = data.get("choice_engine_version")
        engine_version = str(server_version) if server_version else self.engine_version

        server_choices = data.get("choices")
        original = [str(c) for c in server_choices] if isinstance(server_choices, list) else None

        if isinstance(server_choices, list) and len(server_choices) == CHOICE_COUNT:
            final = self.repair_choices(text, server_choices, genre)
            fantasy_mode = resolve_genre_tone(text, genre, vocab=self.vocab)[0] == "fantasy"
            report = validate_choice_set(text, server_choices, fantasy_mode=fantasy_mode, vocab=self.vocab)
            passed = report.valid
            if not passed:
                logger.warning(
                    "Server choices rejected for segment %s: %s; regenerating", segment_id, report.reasons
                )
        else:
            logger.warning("Server returned %s choices for segment %s; regenerating",
                           len(server_choices) if isinstance(server_choices, list) else "no", segment_id)
            passed = False

        if passed:
            source = SOURCE_SERVER
        else:
            final = generate_choices(text, genre, rng=self.rng, vocab=self.vocab).choices
            source = SOURCE_CLIENT_PATCHED
            self._persist(segment_id, story_id, final)

        self.recorder.record(
            ChoiceFlow(
                timestamp=time.time(),
                segment_id=segment_id,
                source=source,
                engine_version=engine_version,
                original_choices=original,
                final_choices=final,
                validation_passed=passed,
            )
        )
        logger.info("Choice source=%s engine_version=%s segment=%s", source, engine_version, segment_id)

        return StorySegment(
            id=segment_id,
            story_id=story_id,
            text=text,
            choices=final,
            is_end=bool(data.get("is_end", False)),
            image_url=data.get("image_url") or None,
            image_generation_status=str(data.get("image_generation_status") or "pending"),
            choice_source=source,
            engine_version=engine_version,
            extra={k: v for k, v in data.items() if k not in _KNOWN_KEYS},
        )
