"""App config: DB path, story generation backend, choice engine settings, env overrides.

Generation backend: STORY_BACKEND_URL, STORY_BACKEND_TIMEOUT, STORY_BACKEND_API_KEY.
Choice engine: CHOICE_ENGINE_VERSION, CHOICE_FLOW_CAPACITY, CHOICE_DEBUG, CHOICE_VOCABULARY_PATH.
"""
from __future__ import annotations

import logging
import os
from pathlib import Path

from shared.config import (
    CHOICE_DEBUG,
    CHOICE_VOCABULARY_PATH,
    _env_flag,
    _env_int,
)

logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = os.environ.get("STORYTELLER_DB_PATH", "./data/storyteller.db")
SEGMENT_CHOICES_TABLE_NAME = os.environ.get("SEGMENT_CHOICES_TABLE_NAME", "story_segments")

# Remote story generation backend (serverless function host)
STORY_BACKEND_URL = os.environ.get("STORY_BACKEND_URL", "http://localhost:54321").strip().rstrip("/")
STORY_BACKEND_API_KEY = os.environ.get("STORY_BACKEND_API_KEY", "").strip()
try:
    STORY_BACKEND_TIMEOUT = float(os.environ.get("STORY_BACKEND_TIMEOUT", "60").strip() or 60)
except ValueError:
    STORY_BACKEND_TIMEOUT = 60.0

# Choice engine
CHOICE_ENGINE_VERSION = os.environ.get("CHOICE_ENGINE_VERSION", "choices-v2").strip() or "choices-v2"
CHOICE_FLOW_CAPACITY = max(1, _env_int("CHOICE_FLOW_CAPACITY", 3))
CHOICE_DEBUG_ENABLED = CHOICE_DEBUG
VOCABULARY_PATH = Path(CHOICE_VOCABULARY_PATH)

# Write corrected choices back to the segment store when the server's set is rejected
CHOICE_WRITEBACK_ENABLED = _env_flag("CHOICE_WRITEBACK_ENABLED", default=True)


def _parse_cors_origins() -> list[str]:
    raw = os.environ.get("STORYTELLER_CORS_ALLOW_ORIGINS", "").strip()
    if not raw:
        return ["http://localhost:5173", "http://localhost:3000"]
    return [o.strip() for o in raw.split(",") if o.strip()]


CORS_ALLOW_ORIGINS = _parse_cors_origins()


def _log_resolved_config() -> None:
    """Log resolved backend/choice engine config at startup (no secrets)."""
    lines = ["Choice engine config:"]
    lines.append(f"  db_path={DEFAULT_DB_PATH}")
    lines.append(f"  story_backend={STORY_BACKEND_URL} timeout={STORY_BACKEND_TIMEOUT}s")
    lines.append(f"  story_backend_api_key={'set' if STORY_BACKEND_API_KEY else 'unset'}")
    lines.append(f"  engine_version={CHOICE_ENGINE_VERSION} flow_capacity={CHOICE_FLOW_CAPACITY}")
    lines.append(f"  debug={CHOICE_DEBUG_ENABLED} writeback={CHOICE_WRITEBACK_ENABLED}")
    lines.append(f"  vocabulary={VOCABULARY_PATH}")
    logger.info("\n".join(lines))


_log_resolved_config()
