"""
SQLite image record store for dupescan.

Persists one record per ingested image and keeps a bounded working set of the
newest records in memory for similarity lookups.

Public API:
- ImageStore: Main store class
- WorkingSet: Bounded in-memory record set
- get_store(): Get global store instance
- reset_store(): Reset global instance (testing)
"""

from __future__ import annotations

import threading
from typing import Optional

from .core import ImageStore
from .working_set import WorkingSet


# Global store instance (singleton pattern)
_store_instance: Optional[ImageStore] = None
_store_lock = threading.Lock()


def get_store(db_path: Optional[str] = None, max_working_set_size: Optional[int] = None) -> ImageStore:
    """
    Get or create the global store instance (thread-safe).

    Arguments only apply when the instance is first created.

    Returns:
        Singleton ImageStore instance (not loaded yet on first call)

    Example:
        store = get_store()
        store.load()
    """
    global _store_instance
    if _store_instance is None:
        with _store_lock:
            # Double-check after acquiring lock
            if _store_instance is None:
                kwargs = {}
                if max_working_set_size is not None:
                    kwargs['max_working_set_size'] = max_working_set_size
                _store_instance = ImageStore(db_path, **kwargs)
    return _store_instance


def reset_store():
    """
    Close and forget the global store instance (mainly for testing).

    Example:
        reset_store()  # Clear singleton for next test
    """
    global _store_instance
    with _store_lock:
        if _store_instance is not None:
            _store_instance.close()
        _store_instance = None


__all__ = [
    'ImageStore',
    'WorkingSet',
    'get_store',
    'reset_store',
]
