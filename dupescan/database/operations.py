"""
Core CRUD operations for the image store.

Provides RecordOperations for single-record and bulk queries against the
images table.
"""

from __future__ import annotations

import logging
from typing import Optional

from ..models import ImageRecord
from .connection import ConnectionManager
from .utils import RECORD_COLUMNS, record_to_params, row_to_record


logger = logging.getLogger(__name__)

_INSERT_SQL = (
    f"INSERT OR IGNORE INTO images ({', '.join(RECORD_COLUMNS)}) "
    f"VALUES ({', '.join('?' * len(RECORD_COLUMNS))})"
)


class RecordOperations:
    """
    Handles CRUD operations for stored image records.

    Durable scope: nothing here touches the in-memory working set.
    """

    def __init__(self, connection_manager: ConnectionManager):
        """
        Initialize record operations.

        Args:
            connection_manager: ConnectionManager instance for database access
        """
        self.conn_mgr = connection_manager

    def insert(self, record: ImageRecord) -> bool:
        """
        Insert a record unless its identity is already stored.

        Args:
            record: ImageRecord to store

        Returns:
            True if a row was inserted, False if the identity already existed
        """
        with self.conn_mgr.transaction() as conn:
            cursor = conn.execute(_INSERT_SQL, record_to_params(record))
            return cursor.rowcount > 0

    def get(self, identity: str) -> Optional[ImageRecord]:
        """
        Fetch one record by identity.

        Returns:
            ImageRecord if stored, None otherwise
        """
        with self.conn_mgr.reader() as conn:
            row = conn.execute(
                "SELECT * FROM images WHERE identity = ?", (identity,)
            ).fetchone()
        return row_to_record(row) if row else None

    def all(self, provenance: Optional[str] = None) -> list[ImageRecord]:
        """
        Fetch every stored record in insertion order.

        Args:
            provenance: Only return records with this provenance tag

        Returns:
            List of ImageRecord
        """
        with self.conn_mgr.reader() as conn:
            if provenance is None:
                rows = conn.execute("SELECT * FROM images ORDER BY id").fetchall()
            else:
                rows = conn.execute(
                    "SELECT * FROM images WHERE provenance = ? ORDER BY id",
                    (provenance,)
                ).fetchall()
        return [row_to_record(row) for row in rows]

    def newest(self, limit: int) -> list[ImageRecord]:
        """
        Fetch the most recently added records, oldest of them first.

        Args:
            limit: Maximum number of records

        Returns:
            List of ImageRecord ordered by added_at ascending
        """
        with self.conn_mgr.reader() as conn:
            rows = conn.execute(
                "SELECT * FROM images ORDER BY added_at DESC, id DESC LIMIT ?",
                (limit,)
            ).fetchall()
        return [row_to_record(row) for row in reversed(rows)]

    def delete(self, identity: str) -> bool:
        """
        Delete one record.

        Returns:
            True if a row was deleted
        """
        with self.conn_mgr.transaction() as conn:
            cursor = conn.execute("DELETE FROM images WHERE identity = ?", (identity,))
            return cursor.rowcount > 0

    def delete_all(self) -> int:
        """
        Delete every record.

        Returns:
            Number of rows deleted
        """
        with self.conn_mgr.transaction() as conn:
            cursor = conn.execute("DELETE FROM images")
            return cursor.rowcount

    def count(self) -> int:
        """Number of stored records."""
        with self.conn_mgr.reader() as conn:
            return conn.execute("SELECT COUNT(*) FROM images").fetchone()[0]

    def count_by_provenance(self) -> dict[str, int]:
        """Number of stored records per provenance tag."""
        with self.conn_mgr.reader() as conn:
            rows = conn.execute(
                "SELECT provenance, COUNT(*) AS n FROM images GROUP BY provenance"
            ).fetchall()
        return {row['provenance']: row['n'] for row in rows}


__all__ = ['RecordOperations']
