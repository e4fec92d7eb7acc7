"""
Maintenance operations for the image store.

Provides statistics, compaction and import of legacy JSON databases.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path

from ..models import ImageRecord, make_identity, utc_now_iso
from .connection import ConnectionManager, MEMORY_DB
from .operations import RecordOperations


logger = logging.getLogger(__name__)


def legacy_entry_to_record(entry: dict) -> ImageRecord:
    """
    Convert one entry of a legacy JSON image database to an ImageRecord.

    Legacy entries use camelCase keys: fileId, hash, messageId, chatId,
    userId, fileSize, width, height, timestamp, source, addedAt.

    Raises:
        KeyError: If messageId or hash is missing
    """
    chat_id = str(entry.get('chatId', ''))
    message_id = int(entry['messageId'])
    author = entry.get('userId')
    return ImageRecord(
        identity=make_identity(chat_id, message_id),
        signature=entry['hash'],
        source_message_id=message_id,
        source_chat_id=chat_id,
        author_id=str(author) if author else None,
        byte_size=entry.get('fileSize') or 0,
        width=entry.get('width') or 0,
        height=entry.get('height') or 0,
        captured_at=entry.get('timestamp'),
        added_at=entry.get('addedAt') or utc_now_iso(),
        provenance=entry.get('source') or 'unknown',
        external_link=entry.get('messageLink'),
    )


class MaintenanceOperations:
    """
    Handles maintenance operations for the image store.

    Provides statistics reporting, database compaction and legacy imports.
    """

    def __init__(self, connection_manager: ConnectionManager, operations: RecordOperations):
        """
        Initialize maintenance operations.

        Args:
            connection_manager: ConnectionManager instance for database access
            operations: RecordOperations sharing the same connection
        """
        self.conn_mgr = connection_manager
        self.operations = operations

    def get_stats(self) -> dict:
        """
        Get store statistics.

        Returns:
            Dict with total_entries, by_provenance, db_size_bytes, db_size_mb, db_path
        """
        db_size = 0
        if self.conn_mgr.db_path != MEMORY_DB and os.path.exists(self.conn_mgr.db_path):
            db_size = os.path.getsize(self.conn_mgr.db_path)

        return {
            'total_entries': self.operations.count(),
            'by_provenance': self.operations.count_by_provenance(),
            'db_size_bytes': db_size,
            'db_size_mb': round(db_size / (1024 * 1024), 2),
            'db_path': self.conn_mgr.db_path,
        }

    def vacuum(self) -> None:
        """Compact the database file."""
        with self.conn_mgr.reader() as conn:
            conn.execute("VACUUM")

    def load_legacy_json(self, json_path: str | Path) -> list[ImageRecord]:
        """
        Read records from a legacy JSON image database.

        Entries that cannot be converted are skipped with a warning.

        Args:
            json_path: Path to the JSON file (a list of entries)

        Returns:
            Converted records
        """
        with open(json_path, 'r', encoding='utf-8') as f:
            entries = json.load(f)

        records = []
        for entry in entries:
            try:
                records.append(legacy_entry_to_record(entry))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping legacy entry {entry!r}: {e}")
        return records


__all__ = ['MaintenanceOperations', 'legacy_entry_to_record']
