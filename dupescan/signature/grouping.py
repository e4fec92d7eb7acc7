"""
Duplicate grouping for the signature package.

Greedy single-pass clustering: records are visited in ingestion order and each
unassigned record seeds a group that absorbs every later unassigned record
similar to the seed. Membership is decided by pairwise tests against the seed
only, so the result depends on input order and is not transitive closure.
"""

from __future__ import annotations

from typing import Any, Iterable, Optional

from ..config import DEFAULT_THRESHOLD_PERCENT
from ..models import DuplicateGroup, ImageRecord
from .dependencies import tqdm
from .distance import are_similar


def _capture_order(record: ImageRecord) -> int:
    return record.captured_at if record.captured_at is not None else 0


def group_by_similarity(
    records: Iterable[ImageRecord],
    threshold_percent: float = DEFAULT_THRESHOLD_PERCENT,
    show_progress: bool = False,
) -> list[DuplicateGroup]:
    """
    Group records whose signatures are similar to a common seed.

    Records without a signature or without captured_at are skipped.

    Args:
        records: Records in ingestion order
        threshold_percent: Maximum normalized dissimilarity for a match
        show_progress: Whether to show a tqdm progress bar

    Returns:
        Groups of at least two records, members sorted by captured_at,
        in the order their seeds were visited
    """
    candidates = [r for r in records if r.signature and r.captured_at is not None]
    assigned = [False] * len(candidates)
    groups: list[DuplicateGroup] = []

    pbar: Optional[Any] = None
    if tqdm is not None and show_progress and len(candidates) > 1000:
        pbar = tqdm(total=len(candidates), desc="Grouping images", unit="img", ncols=80)

    for i, seed in enumerate(candidates):
        if pbar is not None:
            pbar.update(1)
        if assigned[i]:
            continue

        assigned[i] = True
        members = [seed]

        for j in range(i + 1, len(candidates)):
            if assigned[j]:
                continue
            if are_similar(seed.signature, candidates[j].signature, threshold_percent):
                assigned[j] = True
                members.append(candidates[j])

        if len(members) > 1:
            members.sort(key=_capture_order)
            groups.append(DuplicateGroup(signature=seed.signature, members=members))

    if pbar is not None:
        pbar.close()

    return groups


__all__ = ['group_by_similarity']
