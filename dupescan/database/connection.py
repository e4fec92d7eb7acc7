"""
Database connection management with thread safety.

Provides ConnectionManager, which owns the single SQLite handle of an image
store between load() and close().
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Generator, Optional

from ..errors import NotLoadedError


logger = logging.getLogger(__name__)

MEMORY_DB = ':memory:'


class ConnectionManager:
    """
    Manages the SQLite connection of a store.

    Provides context managers for database access with:
    - Thread-safe access via a lock around every operation
    - WAL mode for file databases
    - Transaction management (BEGIN/COMMIT/ROLLBACK) for writes
    """

    def __init__(self, db_path: str):
        """
        Initialize connection manager.

        Args:
            db_path: Path to SQLite database file (or ':memory:')
        """
        self.db_path = db_path
        self._lock = threading.Lock()
        self._conn: Optional[sqlite3.Connection] = None

    def _ensure_directory(self):
        """Ensure the directory for the database file exists."""
        if self.db_path == MEMORY_DB:
            return

        db_path = Path(self.db_path).resolve()
        db_dir = db_path.parent

        if db_dir and db_dir != db_path:
            db_dir.mkdir(parents=True, exist_ok=True)

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    def open(self) -> None:
        """Open the connection if it is not open yet."""
        if self._conn is not None:
            return

        self._ensure_directory()
        conn = sqlite3.connect(
            self.db_path,
            timeout=30.0,
            isolation_level=None,
            check_same_thread=False,
        )
        conn.row_factory = sqlite3.Row
        if self.db_path != MEMORY_DB:
            conn.execute("PRAGMA journal_mode=WAL")
        self._conn = conn
        logger.debug(f"Opened image store at {self.db_path}")

    def close(self) -> None:
        """Close the connection (no-op when already closed)."""
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None
                logger.debug(f"Closed image store at {self.db_path}")

    def _require(self) -> sqlite3.Connection:
        if self._conn is None:
            raise NotLoadedError()
        return self._conn

    @contextmanager
    def reader(self) -> Generator[sqlite3.Connection, None, None]:
        """
        Context manager for read-only queries.

        Raises:
            NotLoadedError: If the connection is not open
        """
        with self._lock:
            yield self._require()

    @contextmanager
    def transaction(self) -> Generator[sqlite3.Connection, None, None]:
        """
        Context manager for writes, committed on success and rolled back on error.

        Example:
            with conn_mgr.transaction() as conn:
                conn.execute("INSERT INTO ...")

        Raises:
            NotLoadedError: If the connection is not open
        """
        with self._lock:
            conn = self._require()
            conn.execute("BEGIN")
            try:
                yield conn
                conn.execute("COMMIT")
            except Exception:
                conn.execute("ROLLBACK")
                raise


__all__ = ['ConnectionManager', 'MEMORY_DB']
