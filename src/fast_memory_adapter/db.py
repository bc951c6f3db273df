"""SQLite connection helpers shared by the two stores."""

from __future__ import annotations

import json
import logging
import os
import sqlite3
from contextlib import contextmanager
from typing import Any, Iterator, Optional

from .errors import StorageError


logger = logging.getLogger(__name__)


def connect_db(path: str) -> sqlite3.Connection:
    """Open a SQLite database in autocommit mode, creating its directory."""
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    conn = sqlite3.connect(path, isolation_level=None)
    conn.row_factory = sqlite3.Row
    return conn


@contextmanager
def open_db(path: str) -> Iterator[sqlite3.Connection]:
    """Yield a short-lived connection; sqlite errors surface as StorageError."""
    try:
        conn = connect_db(path)
    except (sqlite3.Error, OSError) as exc:
        raise StorageError(f"Failed to open database {path}: {exc}") from exc
    try:
        yield conn
    except sqlite3.Error as exc:
        raise StorageError(f"Database operation failed: {exc}") from exc
    finally:
        conn.close()


@contextmanager
def transaction(conn: sqlite3.Connection) -> Iterator[sqlite3.Connection]:
    conn.execute("BEGIN")
    try:
        yield conn
    except BaseException:
        conn.execute("ROLLBACK")
        raise
    conn.execute("COMMIT")


def like_pattern(term: str) -> str:
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def dump_json(value: Any) -> Optional[str]:
    if value is None:
        return None
    return json.dumps(value)


def load_json(raw: Optional[str], label: str = "field", keep_raw: bool = True) -> Any:
    """Parse stored JSON text.

    Text that is not valid JSON comes back unchanged, or as None when
    ``keep_raw`` is false.
    """
    if raw is None or raw == "":
        return None
    try:
        return json.loads(raw)
    except ValueError as exc:
        logger.warning("Failed to parse stored JSON for %s: %s", label, exc)
        return raw if keep_raw else None
