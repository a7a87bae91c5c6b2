"""SQLite storage backend.

The store document is one row of a ``documents`` table in a local SQLite
file, replaced by an upsert on every save.

Classes
-------
- SQLiteBackend  — store document kept in SQLite
"""
from __future__ import annotations

import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from chat_timeline.storage.base import StorageBackend

_DEFAULT_DB_PATH: Path = Path.home() / ".chat-timeline" / "store.db"
_CREATE_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS documents (
    key      TEXT PRIMARY KEY,
    payload  TEXT NOT NULL,
    saved_at TEXT NOT NULL DEFAULT (datetime('now'))
)
"""
_UPSERT_SQL = """
INSERT INTO documents (key, payload, saved_at)
VALUES (?, ?, datetime('now'))
ON CONFLICT(key) DO UPDATE SET
    payload  = excluded.payload,
    saved_at = excluded.saved_at
"""


class SQLiteBackend(StorageBackend):
    """Keep the store document in a local SQLite database.

    The document name is the primary key; ``saved_at`` records the time of
    the last save.

    Parameters
    ----------
    db_path:
        Path to the SQLite file.  Defaults to ``~/.chat-timeline/store.db``.
        The parent directory and table are created automatically on first
        use.
    """

    def __init__(self, db_path: str | Path | None = None) -> None:
        self._db_path: Path = (
            Path(db_path) if db_path is not None else _DEFAULT_DB_PATH
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @contextmanager
    def _connection(self) -> Iterator[sqlite3.Connection]:
        """Yield a connection inside a transaction and close it afterwards."""
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(str(self._db_path))
        conn.row_factory = sqlite3.Row
        try:
            conn.execute("PRAGMA journal_mode=WAL")
            conn.execute(_CREATE_TABLE_SQL)
            with conn:
                yield conn
        finally:
            conn.close()

    # ------------------------------------------------------------------
    # StorageBackend interface
    # ------------------------------------------------------------------

    def save(self, key: str, payload: str) -> None:
        """Insert or replace the document named ``key``."""
        with self._connection() as conn:
            conn.execute(_UPSERT_SQL, (key, payload))

    def load(self, key: str) -> str:
        """Return the document named ``key``.

        Raises
        ------
        KeyError
            If no row exists for ``key``.
        """
        with self._connection() as conn:
            row = conn.execute(
                "SELECT payload FROM documents WHERE key = ?", (key,)
            ).fetchone()
        if row is None:
            raise KeyError(f"Key {key!r} not found in SQLiteBackend.")
        return str(row["payload"])

    def exists(self, key: str) -> bool:
        """Return True once the document named ``key`` has been saved."""
        with self._connection() as conn:
            row = conn.execute(
                "SELECT 1 FROM documents WHERE key = ?", (key,)
            ).fetchone()
        return row is not None

    def __repr__(self) -> str:
        return f"SQLiteBackend(db_path={str(self._db_path)!r})"
