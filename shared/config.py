"""Shared configuration constants used by the backend and the CLI."""
from __future__ import annotations

import os
from pathlib import Path


def _env_flag(name: str, default: bool = False) -> bool:
    """Read boolean env flag."""
    val = os.environ.get(name, "").strip().lower()
    if not val:
        return default
    return val in ("1", "true", "yes", "on")


def _env_int(name: str, default: int) -> int:
    """Read integer env value; falls back to default when unset or malformed."""
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


# Project root: resolve relative to this file's location
_PROJECT_ROOT = Path(__file__).resolve().parent.parent

# Data directories (shared) - use absolute paths to avoid CWD dependency
STATIC_DATA_DIR = os.environ.get("STATIC_DATA_DIR", str(_PROJECT_ROOT / "data" / "static"))

# Vocabulary tables (templates, blacklists, role verbs) for the choice engine.
# Override: CHOICE_VOCABULARY_PATH. Bump `version` inside the file when editing it.
CHOICE_VOCABULARY_PATH = os.environ.get(
    "CHOICE_VOCABULARY_PATH", str(Path(STATIC_DATA_DIR) / "choice_vocabulary.yaml")
).strip()

# Diagnostics: attach scoring traces to every pipeline result when enabled
CHOICE_DEBUG = _env_flag("CHOICE_DEBUG", default=False)
