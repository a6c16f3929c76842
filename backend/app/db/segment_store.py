"""Segment choice store.

SQLite-backed record store mapping a story segment id to the choices shown for it.
The integration layer writes corrected choices here when it rejects a server set.
"""
from __future__ import annotations

import json
import logging
import sqlite3
from pathlib import Path

from backend.app.config import DEFAULT_DB_PATH, SEGMENT_CHOICES_TABLE_NAME

logger = logging.getLogger(__name__)


class SegmentChoiceStore:
    """SQLite-backed segment id -> choices store."""

    def __init__(self, db_path: str | None = None, table: str = SEGMENT_CHOICES_TABLE_NAME):
        self.db_path = db_path or DEFAULT_DB_PATH
        self.table = table

    def _get_conn(self) -> sqlite3.Connection:
        path = Path(self.db_path)
        if str(path) != ":memory:":
            path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(str(path))
        conn.row_factory = sqlite3.Row
        return conn

    def _ensure_table(self, conn: sqlite3.Connection) -> None:
        """Create the segments table if it doesn't exist."""
        conn.execute(f"""
            CREATE TABLE IF NOT EXISTS {self.table} (
                id TEXT PRIMARY KEY,
                choices_json TEXT NOT NULL,
                updated_at TEXT DEFAULT (datetime('now'))
            )
        """)

    def update_choices(self, segment_id: str, choices: list[str]) -> None:
        """Replace the stored choices for a segment (insert when the segment is new).

        Raises sqlite3.Error on failure; callers decide whether that is fatal.
        """
        if not segment_id:
            raise ValueError("segment_id is required")
        conn = self._get_conn()
        try:
            self._ensure_table(conn)
            conn.execute(
                f"""INSERT INTO {self.table} (id, choices_json, updated_at)
                    VALUES (?, ?, datetime('now'))
                    ON CONFLICT(id) DO UPDATE SET
                        choices_json = excluded.choices_json,
                        updated_at = excluded.updated_at""",
                (segment_id, json.dumps(list(choices))),
            )
            conn.commit()
        finally:
            conn.close()
        logger.info("Stored %d choices for segment %s", len(choices), segment_id)

    def get_choices(self, segment_id: str) -> list[str] | None:
        """Return stored choices for a segment, or None when unknown."""
        conn = self._get_conn()
        try:
            self._ensure_table(conn)
            row = conn.execute(
                f"SELECT choices_json FROM {self.table} WHERE id = ?",
                (segment_id,),
            ).fetchone()
        finally:
            conn.close()
        if row is None:
            return None
        return list(json.loads(row["choices_json"]))

    def check(self) -> None:
        """Open the database and make sure the table exists (used by health checks)."""
        conn = self._get_conn()
        try:
            self._ensure_table(conn)
            conn.execute(f"SELECT COUNT(*) FROM {self.table}").fetchone()
        finally:
            conn.close()
