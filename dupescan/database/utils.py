"""
Shared utilities for database operations.

Converts between ImageRecord objects and table rows.
"""

from __future__ import annotations

import sqlite3

from ..models import ImageRecord


# Column order used by INSERT statements
RECORD_COLUMNS = (
    'identity', 'signature', 'source_message_id', 'source_chat_id', 'author_id',
    'byte_size', 'width', 'height', 'captured_at', 'added_at', 'provenance',
    'external_link',
)


def record_to_params(record: ImageRecord) -> tuple:
    """
    Convert an ImageRecord to INSERT parameters in RECORD_COLUMNS order.

    Args:
        record: Record to store

    Returns:
        Tuple of column values
    """
    return (
        record.identity,
        record.signature,
        int(record.source_message_id),
        str(record.source_chat_id),
        None if record.author_id is None else str(record.author_id),
        record.byte_size or 0,
        record.width or 0,
        record.height or 0,
        record.captured_at,
        record.added_at,
        record.provenance,
        record.external_link,
    )


def row_to_record(row: sqlite3.Row) -> ImageRecord:
    """
    Convert database row to ImageRecord object.

    Args:
        row: sqlite3.Row from database query

    Returns:
        ImageRecord object
    """
    return ImageRecord(
        identity=row['identity'],
        signature=row['signature'] or "",
        source_message_id=row['source_message_id'],
        source_chat_id=row['source_chat_id'],
        author_id=row['author_id'],
        byte_size=row['byte_size'] or 0,
        width=row['width'] or 0,
        height=row['height'] or 0,
        captured_at=row['captured_at'],
        added_at=row['added_at'],
        provenance=row['provenance'],
        external_link=row['external_link'],
    )


__all__ = [
    'RECORD_COLUMNS',
    'record_to_params',
    'row_to_record',
]
