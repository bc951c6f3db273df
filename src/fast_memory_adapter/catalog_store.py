"""SQLite-backed catalog of remote API endpoints."""

from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from typing import Iterator, List, Optional

from .db import dump_json, like_pattern, load_json, open_db, transaction
from .errors import NotFoundError, StorageError
from .models import Endpoint, EndpointSummary


logger = logging.getLogger(__name__)

_SUMMARY_COLUMNS = "id, path, method, summary, description, tags"


class EndpointCatalogStore:
    def __init__(self, db_path: str) -> None:
        self.db_path = db_path
        self._init_db()

    def _init_db(self) -> None:
        with open_db(self.db_path) as conn:
            conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS endpoints (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    path TEXT NOT NULL,
                    method TEXT NOT NULL,
                    summary TEXT,
                    description TEXT,
                    parameters TEXT,
                    requestBody TEXT,
                    responses TEXT,
                    tags TEXT,
                    UNIQUE(path, method)
                );
                CREATE INDEX IF NOT EXISTS idx_endpoints_path_method ON endpoints (path, method);
                CREATE INDEX IF NOT EXISTS idx_endpoints_summary ON endpoints (summary);
                CREATE INDEX IF NOT EXISTS idx_endpoints_tags ON endpoints (tags);
                """
            )

    def search(self, term: str, limit: int = 10) -> List[EndpointSummary]:
        pattern = like_pattern(term)
        with open_db(self.db_path) as conn:
            rows = conn.execute(
                f"""
                SELECT {_SUMMARY_COLUMNS} FROM endpoints
                WHERE path LIKE ? ESCAPE '\\' OR method LIKE ? ESCAPE '\\'
                   OR summary LIKE ? ESCAPE '\\' OR description LIKE ? ESCAPE '\\'
                   OR tags LIKE ? ESCAPE '\\'
                ORDER BY path, method
                LIMIT ?
                """,
                (pattern, pattern, pattern, pattern, pattern, limit),
            ).fetchall()
        return [self._to_summary(row) for row in rows]

    def search_by_specificity(self, term: str, limit: int = 5) -> List[EndpointSummary]:
        """Substring search that lists shorter summaries first."""
        pattern = like_pattern(term)
        with open_db(self.db_path) as conn:
            rows = conn.execute(
                f"""
                SELECT {_SUMMARY_COLUMNS} FROM endpoints
                WHERE summary LIKE ? ESCAPE '\\' OR description LIKE ? ESCAPE '\\'
                   OR path LIKE ? ESCAPE '\\' OR tags LIKE ? ESCAPE '\\'
                ORDER BY summary IS NULL, length(summary), path, method
                LIMIT ?
                """,
                (pattern, pattern, pattern, pattern, limit),
            ).fetchall()
        return [self._to_summary(row) for row in rows]

    def get_details(self, path: str, method: str) -> Endpoint:
        method = method.upper()
        with open_db(self.db_path) as conn:
            row = conn.execute(
                "SELECT * FROM endpoints WHERE path = ? AND method = ? LIMIT 1",
                (path, method),
            ).fetchone()
        if row is None:
            raise NotFoundError(
                f"Endpoint details not found in database: {method} {path}",
                method=method,
                path=path,
            )
        label = f"{method} {path}"
        return Endpoint(
            id=int(row["id"]),
            path=row["path"],
            method=row["method"],
            summary=row["summary"],
            description=row["description"],
            parameters=load_json(row["parameters"], f"{label} parameters"),
            request_body=load_json(row["requestBody"], f"{label} requestBody"),
            responses=load_json(row["responses"], f"{label} responses"),
            tags=load_json(row["tags"], f"{label} tags"),
        )

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        with open_db(self.db_path) as conn:
            with transaction(conn):
                yield conn

    def upsert(self, endpoint: Endpoint, conn: Optional[sqlite3.Connection] = None) -> None:
        if conn is not None:
            self._upsert(conn, endpoint)
            return
        with open_db(self.db_path) as own_conn:
            self._upsert(own_conn, endpoint)

    def _upsert(self, conn: sqlite3.Connection, endpoint: Endpoint) -> None:
        try:
            conn.execute(
                """
                INSERT OR REPLACE INTO endpoints (
                    path, method, summary, description, parameters, requestBody, responses, tags
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    endpoint.path,
                    endpoint.method.upper(),
                    endpoint.summary,
                    endpoint.description,
                    dump_json(endpoint.parameters),
                    dump_json(endpoint.request_body),
                    dump_json(endpoint.responses),
                    dump_json(endpoint.tags),
                ),
            )
        except (sqlite3.Error, TypeError, ValueError) as exc:
            raise StorageError(
                f"Failed to store endpoint {endpoint.method.upper()} {endpoint.path}: {exc}",
                method=endpoint.method.upper(),
                path=endpoint.path,
            ) from exc

    def count(self) -> int:
        with open_db(self.db_path) as conn:
            row = conn.execute("SELECT COUNT(*) FROM endpoints").fetchone()
        return int(row[0])

    def _to_summary(self, row: sqlite3.Row) -> EndpointSummary:
        return EndpointSummary(
            id=int(row["id"]),
            path=row["path"],
            method=row["method"],
            summary=row["summary"],
            description=row["description"],
            tags=load_json(row["tags"], f"{row['method']} {row['path']} tags"),
        )
