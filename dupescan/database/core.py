"""
ImageStore facade class for coordinating database operations.

Combines the durable SQLite table with the bounded in-memory working set.
"""

from __future__ import annotations

import dataclasses
import logging
from pathlib import Path
from typing import Callable, Optional

from ..config import DEFAULT_MAX_WORKING_SET_SIZE, STORE_DB_FILE
from ..errors import NotLoadedError
from ..models import ImageRecord, utc_now_iso
from .connection import ConnectionManager
from .maintenance import MaintenanceOperations
from .operations import RecordOperations
from .schema import initialize_schema, SCHEMA_VERSION
from .working_set import WorkingSet


logger = logging.getLogger(__name__)


class ImageStore:
    """
    Content-addressed store of image records.

    Every record is persisted in SQLite, keyed by identity. The newest
    records are also kept in a bounded working set that serves find_similar;
    get_all always reads the full durable table.

    Usage:
        store = ImageStore(db_path, max_working_set_size=100)
        store.load()

        if store.add(record):
            ...  # newly admitted
        matches = store.find_similar(record.signature, make_matcher(10))

        store.close()
    """

    SCHEMA_VERSION = SCHEMA_VERSION

    def __init__(
        self,
        db_path: Optional[str] = None,
        max_working_set_size: int = DEFAULT_MAX_WORKING_SET_SIZE,
    ):
        """
        Initialize the image store. Nothing is opened until load().

        Args:
            db_path: Path to SQLite database file. Uses default if None.
            max_working_set_size: Bound of the in-memory working set
        """
        self.db_path = str(db_path or STORE_DB_FILE)

        self._conn_mgr = ConnectionManager(self.db_path)
        self._operations = RecordOperations(self._conn_mgr)
        self._maintenance = MaintenanceOperations(self._conn_mgr, self._operations)
        self._working_set = WorkingSet(max_working_set_size)
        self._loaded = False

    def __enter__(self) -> 'ImageStore':
        self.load()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def loaded(self) -> bool:
        return self._loaded

    @property
    def max_working_set_size(self) -> int:
        return self._working_set.max_size

    @property
    def working_set_size(self) -> int:
        """Number of records currently held in memory."""
        return len(self._working_set)

    def _ensure_loaded(self) -> None:
        if not self._loaded:
            raise NotLoadedError()

    def ensure_loaded(self) -> None:
        """
        Raises:
            NotLoadedError: If load() has not been called
        """
        self._ensure_loaded()

    def load(self) -> None:
        """
        Open the backend, create the schema if missing and fill the working set.

        Calling load() on a loaded store is a no-op.
        """
        if self._loaded:
            return

        self._conn_mgr.open()
        with self._conn_mgr.transaction() as conn:
            initialize_schema(conn)

        self._working_set.replace(self._operations.newest(self._working_set.max_size))
        self._loaded = True

        logger.info(
            f"Loaded image store {self.db_path}: {self._operations.count():,} records, "
            f"{len(self._working_set):,} in working set"
        )

    def add(self, record: ImageRecord) -> bool:
        """
        Persist a record and admit it to the working set.

        Args:
            record: Record to add. An empty added_at is stamped with the current
                time on a stored copy; the caller's object is not modified.

        Returns:
            True if added, False if the identity was already stored (no-op)

        Raises:
            NotLoadedError: If load() has not been called
        """
        self._ensure_loaded()

        if not record.added_at:
            record = dataclasses.replace(record, added_at=utc_now_iso())

        if not self._operations.insert(record):
            logger.debug(f"Identity already stored: {record.identity}")
            return False

        evicted = self._working_set.admit(record)
        if evicted:
            logger.debug(f"Evicted {len(evicted)} record(s) from working set")
        return True

    def add_many(self, records: list[ImageRecord]) -> int:
        """
        Add several records; existing identities are skipped.

        Returns:
            Number of records added
        """
        added = 0
        for record in records:
            if self.add(record):
                added += 1
        return added

    def get(self, identity: str) -> Optional[ImageRecord]:
        """Look up a record in durable storage."""
        self._ensure_loaded()
        return self._operations.get(identity)

    def contains(self, identity: str) -> bool:
        """True if the identity is stored durably."""
        return self.get(identity) is not None

    def find_similar(
        self,
        signature: str,
        match_fn: Callable[[str, str], bool],
    ) -> list[ImageRecord]:
        """
        Find working-set records whose signature matches.

        Records evicted from the working set are not considered.

        Args:
            signature: Signature to compare against
            match_fn: Called as match_fn(signature, candidate.signature)

        Returns:
            Matching records
        """
        self._ensure_loaded()
        return self._working_set.find(signature, match_fn)

    def get_all(self, provenance: Optional[str] = None) -> list[ImageRecord]:
        """
        Full durable snapshot in insertion order, ignoring the working-set bound.

        Args:
            provenance: Only return records with this provenance tag
        """
        self._ensure_loaded()
        return self._operations.all(provenance)

    def working_set(self) -> list[ImageRecord]:
        """Copy of the records currently in memory."""
        self._ensure_loaded()
        return self._working_set.records()

    def count(self) -> int:
        """Number of records in durable storage."""
        self._ensure_loaded()
        return self._operations.count()

    def remove(self, identity: str) -> bool:
        """
        Delete a record from durable storage and the working set.

        Returns:
            True if a record was deleted
        """
        self._ensure_loaded()
        removed = self._operations.delete(identity)
        self._working_set.discard(identity)
        return removed

    def clear(self) -> int:
        """
        Delete every record.

        Returns:
            Number of records deleted
        """
        self._ensure_loaded()
        removed = self._operations.delete_all()
        self._working_set.clear()
        logger.info(f"Cleared image store ({removed:,} records)")
        return removed

    def flush(self) -> None:
        """Persist pending writes. SQLite commits every write, so nothing is pending."""
        self._ensure_loaded()
        logger.debug(f"Image store flushed ({self.db_path})")

    def close(self) -> None:
        """Release the database handle; the store must be loaded again before use."""
        self._conn_mgr.close()
        self._working_set.clear()
        self._loaded = False

    # Delegate to MaintenanceOperations
    def get_stats(self) -> dict:
        """Get store statistics."""
        self._ensure_loaded()
        stats = self._maintenance.get_stats()
        stats['working_set_size'] = len(self._working_set)
        stats['max_working_set_size'] = self._working_set.max_size
        return stats

    def vacuum(self) -> None:
        """Compact the database file."""
        self._ensure_loaded()
        self._maintenance.vacuum()

    def import_legacy_json(self, json_path: str | Path) -> int:
        """
        Import a legacy JSON image database.

        Returns:
            Number of records added (existing identities are skipped)
        """
        self._ensure_loaded()
        records = self._maintenance.load_legacy_json(json_path)
        added = self.add_many(records)
        logger.info(f"Imported {added:,} of {len(records):,} legacy records from {json_path}")
        return added


__all__ = ['ImageStore']
