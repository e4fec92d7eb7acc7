"""
Database schema initialization.

Provides schema versioning and table creation for the image store.
"""

from __future__ import annotations

import logging
import sqlite3


logger = logging.getLogger(__name__)

# Schema version - increment when changing table structure
SCHEMA_VERSION = 1


def initialize_schema(conn: sqlite3.Connection) -> None:
    """
    Create tables and indexes if they don't exist.

    Args:
        conn: Active database connection (inside a transaction)

    Tables created:
        - meta: Schema version tracking
        - images: One row per ingested image, unique on identity
    """
    conn.execute("""
        CREATE TABLE IF NOT EXISTS meta (
            key TEXT PRIMARY KEY,
            value TEXT
        )
    """)

    result = conn.execute(
        "SELECT value FROM meta WHERE key = 'schema_version'"
    ).fetchone()

    current_version = int(result['value']) if result else 0
    if current_version > SCHEMA_VERSION:
        logger.warning(
            f"Image store schema version {current_version} is newer than supported "
            f"version {SCHEMA_VERSION}"
        )

    conn.execute("""
        CREATE TABLE IF NOT EXISTS images (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            identity TEXT UNIQUE NOT NULL,
            signature TEXT NOT NULL,

            -- Origin
            source_message_id INTEGER NOT NULL,
            source_chat_id TEXT NOT NULL,
            author_id TEXT,

            -- Image metadata
            byte_size INTEGER NOT NULL DEFAULT 0,
            width INTEGER NOT NULL DEFAULT 0,
            height INTEGER NOT NULL DEFAULT 0,

            -- Timestamps (captured_at: unix seconds, added_at: ISO-8601)
            captured_at INTEGER,
            added_at TEXT NOT NULL,

            provenance TEXT NOT NULL,
            external_link TEXT
        )
    """)

    conn.execute("""
        CREATE INDEX IF NOT EXISTS idx_images_signature
        ON images(signature)
    """)
    conn.execute("""
        CREATE INDEX IF NOT EXISTS idx_images_provenance
        ON images(provenance)
    """)
    conn.execute("""
        CREATE INDEX IF NOT EXISTS idx_images_added_at
        ON images(added_at)
    """)

    if current_version < SCHEMA_VERSION:
        conn.execute("""
            INSERT OR REPLACE INTO meta (key, value)
            VALUES ('schema_version', ?)
        """, (str(SCHEMA_VERSION),))


__all__ = ['SCHEMA_VERSION', 'initialize_schema']
