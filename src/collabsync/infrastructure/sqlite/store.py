"""
SQLite-based local annotation index.

Maps the viewer's local annotation IDs to the remote store's server IDs,
per document and page:
- put / lookup / update page / remove / clear
- listing for the CLI

The file survives restarts so edit events that reference annotations from a
previous session can still be translated. Uses stdlib sqlite3 with no ORM.
Not thread-safe: use it from the event loop thread only.
"""

from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator

from collabsync.domain.errors import IndexPersistenceError
from collabsync.domain.models import LocalAnnotationRecord

logger = logging.getLogger(__name__)

# Schema version - increment when making breaking changes
SCHEMA_VERSION = 1

MEMORY_DB = ":memory:"


class AnnotationIndexStore:
    """
    SQLite-backed local annotation index.

    Usage:
        index = AnnotationIndexStore(Path("output/annotation_index.db"))
        index.initialize_schema()

        index.put("a1", "s1", "d1", 2)
        index.lookup_server_id("a1", "d1", 2)   # "s1"
        index.lookup_page_number("a1", "d1")     # 2
        index.remove("a1", "d1", 2)

    Every committed write increments ``write_count``; no-op writes do not.
    """

    def __init__(self, db_path: Path | str) -> None:
        """
        Initialize the index.

        Args:
            db_path: Path to SQLite database file (created if not exists),
                or ":memory:" for a throwaway index
        """
        self.db_path = str(db_path)
        self._connection: sqlite3.Connection | None = None
        self.write_count = 0
        logger.info("AnnotationIndexStore initialized: %s", self.db_path)

    def _get_connection(self) -> sqlite3.Connection:
        """Get or create database connection."""
        if self._connection is None:
            if self.db_path != MEMORY_DB:
                Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

            self._connection = sqlite3.connect(self.db_path)
            # Use Row factory for dict-like access
            self._connection.row_factory = sqlite3.Row
            logger.debug("Database connection established")
        return self._connection

    def close(self) -> None:
        """Close database connection."""
        if self._connection:
            self._connection.close()
            self._connection = None
            logger.debug("Database connection closed")

    def __enter__(self) -> AnnotationIndexStore:
        self.initialize_schema()
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    @contextmanager
    def _guard(self, operation: str) -> Iterator[sqlite3.Connection]:
        """Run a block against the connection, wrapping SQLite failures."""
        try:
            yield self._get_connection()
        except sqlite3.Error as e:
            if self._connection is not None and self._connection.in_transaction:
                self._connection.rollback()
            logger.error("Annotation index %s failed: %s", operation, e)
            raise IndexPersistenceError(f"Annotation index {operation} failed: {e}") from e

    def _commit(self, conn: sqlite3.Connection) -> None:
        conn.commit()
        self.write_count += 1

    # ========================================================================
    # Schema Management
    # ========================================================================

    def initialize_schema(self) -> None:
        """
        Create database tables if they don't exist.

        Safe to call multiple times - uses CREATE TABLE IF NOT EXISTS.
        """
        with self._guard("schema setup") as conn:
            # One row per (annotation, document); page moves update in place
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS annotation_index (
                    annotation_id TEXT NOT NULL,
                    server_id TEXT NOT NULL,
                    document_id TEXT NOT NULL,
                    page_number INTEGER NOT NULL,
                    updated_at TEXT NOT NULL,
                    PRIMARY KEY (annotation_id, document_id)
                )
            """
            )

            conn.execute(
                """
                CREATE INDEX IF NOT EXISTS idx_annotation_index_server
                ON annotation_index (server_id)
            """
            )

            # Schema metadata (for future migrations)
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS schema_meta (
                    key TEXT PRIMARY KEY,
                    value TEXT
                )
            """
            )

            conn.execute(
                """
                INSERT OR REPLACE INTO schema_meta (key, value)
                VALUES ('version', ?)
            """,
                (str(SCHEMA_VERSION),),
            )

            conn.commit()
        logger.info("Annotation index schema initialized (version %d)", SCHEMA_VERSION)

    # ========================================================================
    # Writes
    # ========================================================================

    def put(
        self, annotation_id: str, server_id: str, document_id: str, page_number: int
    ) -> None:
        """
        Record the server ID of an annotation.

        Idempotent: a record already on the same page is left untouched. A
        record for the same annotation on another page is moved in place, so
        there is never more than one record per (annotation, document).

        Args:
            annotation_id: Viewer-assigned annotation ID
            server_id: Server-assigned ID
            document_id: Document the annotation belongs to
            page_number: Page the annotation lives on
        """
        with self._guard("put") as conn:
            row = conn.execute(
                """
                SELECT server_id, page_number FROM annotation_index
                WHERE annotation_id = ? AND document_id = ?
            """,
                (annotation_id, document_id),
            ).fetchone()

            if row is not None and row["page_number"] == page_number:
                logger.debug(
                    "Annotation %s already indexed on page %d", annotation_id, page_number
                )
                return

            now = datetime.now(timezone.utc).isoformat()
            if row is None:
                conn.execute(
                    """
                    INSERT INTO annotation_index
                        (annotation_id, server_id, document_id, page_number, updated_at)
                    VALUES (?, ?, ?, ?, ?)
                """,
                    (annotation_id, server_id, document_id, page_number, now),
                )
                logger.debug(
                    "Indexed annotation %s -> %s (doc=%s, page=%d)",
                    annotation_id, server_id, document_id, page_number,
                )
            else:
                conn.execute(
                    """
                    UPDATE annotation_index
                    SET server_id = ?, page_number = ?, updated_at = ?
                    WHERE annotation_id = ? AND document_id = ?
                """,
                    (server_id, page_number, now, annotation_id, document_id),
                )
                logger.debug(
                    "Re-indexed annotation %s: page %d -> %d",
                    annotation_id, row["page_number"], page_number,
                )
            self._commit(conn)

    def update_page_number(
        self,
        annotation_id: str,
        server_id: str,
        document_id: str,
        new_page_number: int,
    ) -> None:
        """
        Move an indexed annotation to another page.

        No write happens when the record is missing or already on
        ``new_page_number``.
        """
        with self._guard("page update") as conn:
            row = conn.execute(
                """
                SELECT page_number FROM annotation_index
                WHERE annotation_id = ? AND server_id = ? AND document_id = ?
            """,
                (annotation_id, server_id, document_id),
            ).fetchone()

            if row is None:
                logger.debug("Page update for unindexed annotation %s ignored", annotation_id)
                return
            if row["page_number"] == new_page_number:
                # page number does not need to be updated
                return

            conn.execute(
                """
                UPDATE annotation_index
                SET page_number = ?, updated_at = ?
                WHERE annotation_id = ? AND server_id = ? AND document_id = ?
            """,
                (
                    new_page_number,
                    datetime.now(timezone.utc).isoformat(),
                    annotation_id,
                    server_id,
                    document_id,
                ),
            )
            self._commit(conn)
            logger.debug(
                "Annotation %s moved: page %d -> %d",
                annotation_id, row["page_number"], new_page_number,
            )

    def remove(self, annotation_id: str, document_id: str, page_number: int) -> None:
        """Delete the matching record; no-op if absent."""
        with self._guard("remove") as conn:
            cursor = conn.execute(
                """
                DELETE FROM annotation_index
                WHERE annotation_id = ? AND document_id = ? AND page_number = ?
            """,
                (annotation_id, document_id, page_number),
            )
            if cursor.rowcount == 0:
                return
            self._commit(conn)
            logger.debug("Removed annotation %s from index", annotation_id)

    def clear(self) -> None:
        """Remove every record (logout / session teardown)."""
        with self._guard("clear") as conn:
            cursor = conn.execute("DELETE FROM annotation_index")
            self._commit(conn)
            logger.info("Annotation index cleared (%d records)", cursor.rowcount)

    # ========================================================================
    # Reads
    # ========================================================================

    def lookup_server_id(
        self, annotation_id: str, document_id: str, page_number: int
    ) -> str | None:
        """Server ID for an exact (annotation, document, page) match, else None."""
        with self._guard("server ID lookup") as conn:
            row = conn.execute(
                """
                SELECT server_id FROM annotation_index
                WHERE annotation_id = ? AND document_id = ? AND page_number = ?
            """,
                (annotation_id, document_id, page_number),
            ).fetchone()

        if row is None or not row["server_id"]:
            return None
        return row["server_id"]

    def lookup_page_number(self, annotation_id: str, document_id: str) -> int | None:
        """Current page of an annotation, else None."""
        with self._guard("page lookup") as conn:
            row = conn.execute(
                """
                SELECT page_number FROM annotation_index
                WHERE annotation_id = ? AND document_id = ?
            """,
                (annotation_id, document_id),
            ).fetchone()

        if row is None:
            return None
        return row["page_number"]

    def records(self, document_id: str | None = None) -> list[LocalAnnotationRecord]:
        """
        List index records.

        Args:
            document_id: Restrict to one document (all documents if None)

        Returns:
            Records ordered by document, page and annotation ID
        """
        query = """
            SELECT annotation_id, server_id, document_id, page_number, updated_at
            FROM annotation_index
        """
        params: tuple = ()
        if document_id is not None:
            query += " WHERE document_id = ?"
            params = (document_id,)
        query += " ORDER BY document_id, page_number, annotation_id"

        with self._guard("listing") as conn:
            rows = conn.execute(query, params).fetchall()

        return [
            LocalAnnotationRecord(
                annotation_id=row["annotation_id"],
                server_id=row["server_id"],
                document_id=row["document_id"],
                page_number=row["page_number"],
                updated_at=(
                    datetime.fromisoformat(row["updated_at"]) if row["updated_at"] else None
                ),
            )
            for row in rows
        ]

    def count(self) -> int:
        with self._guard("count") as conn:
            return conn.execute("SELECT COUNT(*) FROM annotation_index").fetchone()[0]

    def get_schema_version(self) -> int | None:
        with self._guard("schema lookup") as conn:
            row = conn.execute(
                "SELECT value FROM schema_meta WHERE key = 'version'"
            ).fetchone()
        return int(row["value"]) if row else None
