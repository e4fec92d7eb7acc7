"""
Bounded in-memory working set of image records.

Holds at most max_size records for fast similarity queries. When an admission
pushes the set over its bound, the entries with the oldest added_at are
evicted. Eviction only affects memory; the durable table keeps every row.

All access goes through one lock, so find() may run on another thread while a
scan admits records.
"""

from __future__ import annotations

import threading
from typing import Callable, Iterable

from ..models import ImageRecord


class WorkingSet:
    """Insertion-ordered, size-capped collection of ImageRecord keyed by identity."""

    def __init__(self, max_size: int):
        if max_size < 1:
            raise ValueError(f"max_size must be positive, got {max_size}")
        self.max_size = max_size
        self._records: dict[str, ImageRecord] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def __contains__(self, identity: object) -> bool:
        with self._lock:
            return identity in self._records

    def records(self) -> list[ImageRecord]:
        with self._lock:
            return list(self._records.values())

    def replace(self, records: Iterable[ImageRecord]) -> None:
        """Reset the set to the given records, then apply the bound."""
        fresh = {record.identity: record for record in records}
        with self._lock:
            self._records = fresh
            self._evict()

    def admit(self, record: ImageRecord) -> list[ImageRecord]:
        """
        Add a record and evict the oldest entries beyond the bound.

        Returns:
            Records evicted by this admission
        """
        with self._lock:
            self._records[record.identity] = record
            return self._evict()

    def discard(self, identity: str) -> None:
        with self._lock:
            self._records.pop(identity, None)

    def clear(self) -> None:
        with self._lock:
            self._records.clear()

    def find(self, signature: str, match_fn: Callable[[str, str], bool]) -> list[ImageRecord]:
        """Linear scan for records whose signature matches."""
        # Matching runs on a snapshot taken under the lock
        candidates = self.records()
        return [
            record for record in candidates
            if record.signature and match_fn(signature, record.signature)
        ]

    def _evict(self) -> list[ImageRecord]:
        # Caller holds self._lock
        overflow = len(self._records) - self.max_size
        if overflow <= 0:
            return []

        # Stable sort: records with equal added_at leave in insertion order
        by_age = sorted(self._records.values(), key=lambda r: r.added_at)
        evicted = by_age[:overflow]
        for record in evicted:
            del self._records[record.identity]
        return evicted


__all__ = ['WorkingSet']
