"""SQLite-backed fast memory: natural-language queries bound to API calls."""

from __future__ import annotations

import logging
import sqlite3
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from .db import dump_json, like_pattern, load_json, open_db, transaction
from .errors import StorageError
from .models import FastMemoryEntry


logger = logging.getLogger(__name__)


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="microseconds")


class FastMemoryStore:
    def __init__(self, db_path: str) -> None:
        self.db_path = db_path
        self._init_db()

    def _init_db(self) -> None:
        with open_db(self.db_path) as conn:
            conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS fast_memory (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    natural_language_query TEXT NOT NULL UNIQUE,
                    api_path TEXT NOT NULL,
                    api_method TEXT NOT NULL,
                    api_params TEXT,
                    api_data TEXT,
                    description TEXT,
                    usage_count INTEGER NOT NULL DEFAULT 0,
                    created_at TEXT NOT NULL
                );
                CREATE INDEX IF NOT EXISTS idx_fast_memory_nl_query
                    ON fast_memory (natural_language_query);
                CREATE INDEX IF NOT EXISTS idx_fast_memory_path_method
                    ON fast_memory (api_path, api_method);
                """
            )

    def find_by_path_method(self, path: str, method: str) -> Optional[FastMemoryEntry]:
        with open_db(self.db_path) as conn:
            row = conn.execute(
                """
                SELECT * FROM fast_memory
                WHERE api_path = ? AND api_method = ?
                ORDER BY id LIMIT 1
                """,
                (path, method.upper()),
            ).fetchone()
        return self._to_entry(row) if row else None

    def find_by_query_substring(self, query: str) -> Optional[FastMemoryEntry]:
        with open_db(self.db_path) as conn:
            row = conn.execute(
                """
                SELECT * FROM fast_memory
                WHERE natural_language_query LIKE ? ESCAPE '\\'
                ORDER BY id LIMIT 1
                """,
                (like_pattern(query),),
            ).fetchone()
        return self._to_entry(row) if row else None

    def get(self, entry_id: int) -> Optional[FastMemoryEntry]:
        with open_db(self.db_path) as conn:
            row = conn.execute("SELECT * FROM fast_memory WHERE id = ?", (entry_id,)).fetchone()
        return self._to_entry(row) if row else None

    def list_entries(self, search_term: Optional[str] = None, limit: int = 20) -> List[FastMemoryEntry]:
        query = "SELECT * FROM fast_memory"
        params: List[Any] = []
        if search_term:
            pattern = like_pattern(search_term)
            query += (
                " WHERE natural_language_query LIKE ? ESCAPE '\\'"
                " OR description LIKE ? ESCAPE '\\'"
            )
            params.extend([pattern, pattern])
        query += " ORDER BY created_at DESC, id DESC LIMIT ?"
        params.append(limit)
        with open_db(self.db_path) as conn:
            rows = conn.execute(query, params).fetchall()
        return [self._to_entry(row) for row in rows]

    def save(
        self,
        natural_language_query: str,
        api_path: str,
        api_method: str,
        api_params: Optional[Dict[str, Any]] = None,
        api_data: Any = None,
        description: Optional[str] = None,
    ) -> FastMemoryEntry:
        """Insert an entry, or overwrite the one with the same query."""
        try:
            params_text = dump_json(api_params)
            data_text = dump_json(api_data)
        except (TypeError, ValueError) as exc:
            raise StorageError(f"Fast memory values are not serializable: {exc}") from exc

        with open_db(self.db_path) as conn:
            conn.execute(
                """
                INSERT INTO fast_memory (
                    natural_language_query, api_path, api_method, api_params, api_data,
                    description, usage_count, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, 0, ?)
                ON CONFLICT(natural_language_query) DO UPDATE SET
                    api_path = excluded.api_path,
                    api_method = excluded.api_method,
                    api_params = excluded.api_params,
                    api_data = excluded.api_data,
                    description = excluded.description,
                    created_at = excluded.created_at
                """,
                (
                    natural_language_query,
                    api_path,
                    api_method.upper(),
                    params_text,
                    data_text,
                    description,
                    _utc_now(),
                ),
            )
            row = conn.execute(
                "SELECT * FROM fast_memory WHERE natural_language_query = ?",
                (natural_language_query,),
            ).fetchone()
        if row is None:
            raise StorageError(f'Failed to save fast memory entry for query: "{natural_language_query}"')
        entry = self._to_entry(row)
        logger.info("Saved fast memory entry id=%s query=%r", entry.id, natural_language_query)
        return entry

    def increment_usage(self, entry_id: int) -> None:
        with open_db(self.db_path) as conn:
            conn.execute(
                "UPDATE fast_memory SET usage_count = usage_count + 1 WHERE id = ?",
                (entry_id,),
            )

    def delete_by_id(self, entry_id: int) -> bool:
        with open_db(self.db_path) as conn:
            cursor = conn.execute("DELETE FROM fast_memory WHERE id = ?", (entry_id,))
            changed = cursor.rowcount > 0
        return changed

    def clear_all(self) -> int:
        with open_db(self.db_path) as conn:
            with transaction(conn):
                deleted = int(conn.execute("SELECT COUNT(*) FROM fast_memory").fetchone()[0])
                conn.execute("DELETE FROM fast_memory")
            conn.execute("VACUUM")
        logger.info("Cleared %s entries from fast memory", deleted)
        return deleted

    def _to_entry(self, row: sqlite3.Row) -> FastMemoryEntry:
        label = f"fast memory {row['id']}"
        return FastMemoryEntry(
            id=int(row["id"]),
            natural_language_query=row["natural_language_query"],
            api_path=row["api_path"],
            api_method=row["api_method"],
            api_params=load_json(row["api_params"], f"{label} api_params"),
            api_data=load_json(row["api_data"], f"{label} api_data", keep_raw=False),
            description=row["description"],
            usage_count=int(row["usage_count"] or 0),
            created_at=row["created_at"],
        )
