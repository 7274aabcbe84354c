from __future__ import annotations

import logging
import sqlite3
import threading
from collections.abc import Iterator, Sequence
from contextlib import contextmanager, suppress
from pathlib import Path
from types import TracebackType
from typing import Any, Self

from patchvault.exceptions import NotFoundError, PatchVaultError, StoreError, TimestampConflictError
from patchvault.models import Document, Patch

logger = logging.getLogger(__name__)

MEMORY_PATH = ":memory:"

_SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS documents (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    created_at INTEGER NOT NULL
);

CREATE TABLE IF NOT EXISTS patches (
    id TEXT PRIMARY KEY,
    document_id TEXT NOT NULL,
    timestamp INTEGER NOT NULL,
    delta BLOB,
    FOREIGN KEY (document_id) REFERENCES documents(id)
);

DROP INDEX IF EXISTS idx_patches_doc_time;
CREATE UNIQUE INDEX IF NOT EXISTS uq_patches_doc_time ON patches(document_id, timestamp);
"""


class PatchStore:
    """
    Append-only SQLite persistence for documents and their patches.

    - Every public method is a single critical section under one exclusive lock,
      so reads and writes are serialized across all documents.
    - Rows are never updated or deleted.
    - sqlite3 failures surface as StoreError; a failed write is rolled back.
    """

    path: Path | str
    _conn: sqlite3.Connection
    _lock: threading.Lock

    def __init__(self, path: Path | str = MEMORY_PATH) -> None:
        self.path = path
        self._lock = threading.Lock()
        if str(path) != MEMORY_PATH:
            Path(path).parent.mkdir(parents=True, exist_ok=True)

        try:
            self._conn = sqlite3.connect(str(path), check_same_thread=False)
            _ = self._conn.execute("PRAGMA foreign_keys = ON")
            if str(path) != MEMORY_PATH:
                _ = self._conn.execute("PRAGMA journal_mode=WAL")
            _ = self._conn.executescript(_SCHEMA_SQL)
            self._conn.commit()
        except sqlite3.Error as e:
            raise StoreError(f"Failed to open patch store at {path}: {e}") from e

        logger.debug("Opened patch store at %s", path)

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    # ---------- Public API ----------

    def insert_document(self, document_id: str, name: str, created_at: int) -> None:
        with self._transaction() as conn:
            _ = conn.execute(
                "INSERT INTO documents (id, name, created_at) VALUES (?, ?, ?)",
                (document_id, name, created_at),
            )

    def insert_patch(self, patch_id: str, document_id: str, timestamp: int, delta: bytes | None) -> None:
        """
        Raises TimestampConflictError if the document already has a patch at `timestamp`.
        """
        try:
            with self._transaction() as conn:
                self._insert_patch_row(conn, patch_id, document_id, timestamp, delta)
        except StoreError as e:
            raise _as_timestamp_conflict(e, document_id, timestamp) from e.__cause__

    def append_patch(
        self,
        patch_id: str,
        document_id: str,
        timestamp: int,
        delta: bytes | None,
        expected_latest: int | None,
    ) -> None:
        """
        Inserts a patch after every existing patch of the document.

        `expected_latest` is the latest patch timestamp the delta was computed against
        (None for an empty history). Tags are positional, so if another writer appended
        in the meantime the delta would resolve against the wrong base; the check and
        the insert run in one write transaction and a mismatch raises
        TimestampConflictError instead.
        """
        try:
            with self._transaction(immediate=True) as conn:
                (latest,) = conn.execute(
                    "SELECT MAX(timestamp) FROM patches WHERE document_id = ?", (document_id,)
                ).fetchone()
                if latest != expected_latest:
                    raise TimestampConflictError(
                        f"Document '{document_id}' changed concurrently: latest patch is at {latest}, "
                        + f"expected {expected_latest}."
                    )
                if latest is not None and timestamp <= latest:
                    raise TimestampConflictError(
                        f"Timestamp {timestamp} must be later than the latest patch of document "
                        + f"'{document_id}' ({latest})."
                    )
                self._insert_patch_row(conn, patch_id, document_id, timestamp, delta)
        except StoreError as e:
            raise _as_timestamp_conflict(e, document_id, timestamp) from e.__cause__

    def get_document(self, document_id: str) -> Document:
        rows = self._query("SELECT id, name, created_at FROM documents WHERE id = ?", (document_id,))
        if not rows:
            raise NotFoundError(f"Document '{document_id}' not found.")
        doc_id, name, created_at = rows[0]
        return Document(id=doc_id, name=name, created_at=created_at)

    def list_documents(self) -> list[Document]:
        """
        Returns all documents, newest first.
        """
        rows = self._query("SELECT id, name, created_at FROM documents ORDER BY created_at DESC", ())
        return [Document(id=doc_id, name=name, created_at=created_at) for doc_id, name, created_at in rows]

    def list_patch_timestamps(self, document_id: str) -> list[int]:
        rows = self._query(
            "SELECT timestamp FROM patches WHERE document_id = ? ORDER BY timestamp ASC",
            (document_id,),
        )
        return [ts for (ts,) in rows]

    def query_patches_upto(self, document_id: str, timestamp: int) -> list[Patch]:
        """
        Returns every patch of the document with timestamp <= `timestamp`, ascending.
        """
        rows = self._query(
            """
            SELECT id, timestamp, delta
            FROM patches
            WHERE document_id = ? AND timestamp <= ?
            ORDER BY timestamp ASC
            """,
            (document_id, timestamp),
        )
        return [
            Patch(id=patch_id, document_id=document_id, timestamp=ts, delta=delta) for patch_id, ts, delta in rows
        ]

    def query_recent_patch_timestamps(self, document_id: str, before_timestamp: int, limit: int) -> list[int]:
        """
        Returns up to `limit` distinct timestamps strictly before `before_timestamp`, most recent first.
        """
        rows = self._query(
            """
            SELECT DISTINCT timestamp
            FROM patches
            WHERE document_id = ? AND timestamp < ?
            ORDER BY timestamp DESC
            LIMIT ?
            """,
            (document_id, before_timestamp, limit),
        )
        return [ts for (ts,) in rows]

    def latest_patch_timestamp(self, document_id: str) -> int | None:
        rows = self._query("SELECT MAX(timestamp) FROM patches WHERE document_id = ?", (document_id,))
        return rows[0][0] if rows else None

    def aggregate_patch_stats(self, document_id: str) -> tuple[int, int]:
        """
        Returns (patch_count, sum of stored delta lengths).
        """
        rows = self._query(
            "SELECT COUNT(*), COALESCE(SUM(LENGTH(delta)), 0) FROM patches WHERE document_id = ?",
            (document_id,),
        )
        count, total = rows[0]
        return int(count), int(total)

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    # ---------- Internal ----------

    @contextmanager
    def _transaction(self, immediate: bool = False) -> Iterator[sqlite3.Connection]:
        """
        `immediate` takes SQLite's write lock up front, for read-then-write transactions.
        """
        with self._lock:
            try:
                if immediate:
                    _ = self._conn.execute("BEGIN IMMEDIATE")
                yield self._conn
                self._conn.commit()
            except sqlite3.Error as e:
                with suppress(sqlite3.Error):
                    self._conn.rollback()
                raise StoreError(f"Patch store write failed: {e}") from e
            except BaseException:
                with suppress(sqlite3.Error):
                    self._conn.rollback()
                raise

    @staticmethod
    def _insert_patch_row(
        conn: sqlite3.Connection, patch_id: str, document_id: str, timestamp: int, delta: bytes | None
    ) -> None:
        _ = conn.execute(
            "INSERT INTO patches (id, document_id, timestamp, delta) VALUES (?, ?, ?, ?)",
            (patch_id, document_id, timestamp, delta),
        )

    def _query(self, sql: str, params: Sequence[Any]) -> list[tuple[Any, ...]]:
        with self._lock:
            try:
                return self._conn.execute(sql, params).fetchall()
            except sqlite3.Error as e:
                raise StoreError(f"Patch store query failed: {e}") from e


# ---------- Helpers ----------


def _as_timestamp_conflict(error: StoreError, document_id: str, timestamp: int) -> PatchVaultError:
    """Maps a unique (document_id, timestamp) violation to TimestampConflictError; other errors pass through."""
    cause = error.__cause__
    if isinstance(cause, sqlite3.IntegrityError) and "patches.document_id, patches.timestamp" in str(cause):
        return TimestampConflictError(f"Document '{document_id}' already has a patch at timestamp {timestamp}.")
    return error
