from __future__ import annotations

import json
import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator
from uuid import uuid4

logger = logging.getLogger("casestudy.db")

DEFAULT_CASE_STATUS = "drafting"


class CaseStoreError(RuntimeError):
    """Raised when the case store cannot be reached or a statement fails."""


def database_path(database_url: str) -> Path:
    prefix = "sqlite:///"
    if not database_url.startswith(prefix):
        raise CaseStoreError("Only sqlite:/// DATABASE_URL is supported by the case store.")
    return Path(database_url[len(prefix) :])


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class CaseRepository:
    def __init__(self, database_url: str) -> None:
        self._path = database_path(database_url)

    @property
    def path(self) -> Path:
        return self._path

    def init_db(self) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        with self.get_conn() as conn:
            conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS cases (
                    id TEXT PRIMARY KEY,
                    raw_text_url TEXT NOT NULL,
                    status TEXT NOT NULL,
                    draft_content TEXT,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                );

                CREATE INDEX IF NOT EXISTS idx_cases_created_at ON cases(created_at DESC);
                """
            )

    @contextmanager
    def get_conn(self) -> Iterator[sqlite3.Connection]:
        try:
            conn = sqlite3.connect(self._path)
        except sqlite3.Error as exc:
            raise CaseStoreError(f"Failed to open case store at '{self._path}': {exc}") from exc
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except sqlite3.Error as exc:
            conn.rollback()
            raise CaseStoreError(str(exc)) from exc
        finally:
            conn.close()

    def ping(self) -> None:
        with self.get_conn() as conn:
            conn.execute("SELECT 1").fetchone()

    def create_case(self, raw_text_url: str, status: str = DEFAULT_CASE_STATUS) -> dict[str, object]:
        now = _utc_now_iso()
        case = {
            "id": str(uuid4()),
            "raw_text_url": raw_text_url,
            "status": status,
            "draft_content": None,
            "created_at": now,
            "updated_at": now,
        }
        with self.get_conn() as conn:
            conn.execute(
                """
                INSERT INTO cases (id, raw_text_url, status, draft_content, created_at, updated_at)
                VALUES (:id, :raw_text_url, :status, NULL, :created_at, :updated_at)
                """,
                case,
            )
        logger.info("case_created", extra={"event": "case_created", "case_id": case["id"], "status": status})
        return case

    def get_case(self, case_id: str) -> dict[str, object] | None:
        with self.get_conn() as conn:
            row = conn.execute(
                """
                SELECT id, raw_text_url, status, draft_content, created_at, updated_at
                FROM cases
                WHERE id = ?
                """,
                (case_id,),
            ).fetchone()
        if row is None:
            return None
        case = dict(row)
        raw_draft = case.get("draft_content")
        case["draft_content"] = json.loads(raw_draft) if raw_draft else None
        return case

    def update_draft_content(self, case_id: str, draft_content: dict[str, object]) -> bool:
        """Overwrite the stored draft. Returns False when no row has ``case_id``."""

        with self.get_conn() as conn:
            cursor = conn.execute(
                "UPDATE cases SET draft_content = ?, updated_at = ? WHERE id = ?",
                (json.dumps(draft_content, ensure_ascii=True), _utc_now_iso(), case_id),
            )
            updated = cursor.rowcount > 0
        return updated
