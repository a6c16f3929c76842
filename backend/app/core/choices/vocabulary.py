"""Choice vocabulary loader with module-level cache."""
from __future__ import annotations

import logging
from pathlib import Path

import yaml
from pydantic import ValidationError

from backend.app.config import VOCABULARY_PATH
from backend.app.core.error_handling import VocabularyError
from backend.app.models.vocabulary import ChoiceVocabulary

logger = logging.getLogger(__name__)

_VOCAB_CACHE: dict[str, ChoiceVocabulary] = {}


def _resolve_path(path: str | Path | None) -> Path:
    p = Path(path) if path else VOCABULARY_PATH
    if p.is_absolute():
        return p
    root = Path(__file__).resolve().parents[4]
    return root / p


def load_vocabulary(path: str | Path | None = None) -> ChoiceVocabulary:
    """Load and validate the vocabulary file, caching by resolved path.

    Raises VocabularyError when the file is missing, is not YAML, or does not match the schema.
    """
    resolved = _resolve_path(path)
    key = str(resolved)
    if key in _VOCAB_CACHE:
        return _VOCAB_CACHE[key]

    if not resolved.exists():
        raise VocabularyError(f"Choice vocabulary file not found: {resolved}")
    try:
        data = yaml.safe_load(resolved.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise VocabularyError(f"Choice vocabulary is not valid YAML ({resolved}): {e}") from e
    if not isinstance(data, dict):
        raise VocabularyError(f"Choice vocabulary must be a mapping: {resolved}")
    try:
        vocab = ChoiceVocabulary.model_validate(data)
    except ValidationError as e:
        raise VocabularyError(f"Choice vocabulary failed validation ({resolved}): {e}") from e

    logger.info(
        "Loaded choice vocabulary v%s from %s (%d objects, %d locations, %d template genres)",
        vocab.version,
        resolved,
        len(vocab.objects),
        len(vocab.locations),
        len(vocab.templates),
    )
    _VOCAB_CACHE[key] = vocab
    return vocab


def clear_vocabulary_cache() -> None:
    """Clear cached vocabularies (useful for tests)."""
    _VOCAB_CACHE.clear()
