"""
Signature comparison.

Signatures are compared position by position. The normalized dissimilarity
is the share of differing positions, distance / length * 100, and is the only
normalization used: the similarity check and every reported percentage derive
from it.
"""

from __future__ import annotations

from typing import Callable

from ..config import DEFAULT_THRESHOLD_PERCENT
from ..errors import LengthMismatchError


def distance(a: str, b: str) -> int:
    """
    Count positions at which two signatures differ.

    Raises:
        LengthMismatchError: If the signatures differ in length
    """
    if len(a) != len(b):
        raise LengthMismatchError(len(a), len(b))
    return sum(1 for x, y in zip(a, b) if x != y)


def dissimilarity_percent(a: str, b: str) -> float:
    """
    Distance normalized against the signature length (0 = identical, 100 = all positions differ).

    Raises:
        LengthMismatchError: If the signatures differ in length
        ValueError: If the signatures are empty
    """
    d = distance(a, b)
    if not a:
        raise ValueError("Cannot compare empty signatures")
    return d / len(a) * 100


def similarity_percent(a: str, b: str) -> float:
    """Similarity as a percentage, 100 meaning identical."""
    return 100 - dissimilarity_percent(a, b)


def are_similar(a: str, b: str, threshold_percent: float = DEFAULT_THRESHOLD_PERCENT) -> bool:
    """
    Check whether two signatures are within the similarity threshold.

    Empty signatures and signatures of different formats (lengths) are never
    similar.

    Args:
        a: First signature
        b: Second signature
        threshold_percent: Maximum normalized dissimilarity (0-100)

    Returns:
        True if dissimilarity_percent(a, b) <= threshold_percent
    """
    if not a or not b or len(a) != len(b):
        return False
    return dissimilarity_percent(a, b) <= threshold_percent


def make_matcher(threshold_percent: float = DEFAULT_THRESHOLD_PERCENT) -> Callable[[str, str], bool]:
    """Bind a threshold into a match function for ImageStore.find_similar."""
    def match(a: str, b: str) -> bool:
        return are_similar(a, b, threshold_percent)
    return match


__all__ = [
    'distance',
    'dissimilarity_percent',
    'similarity_percent',
    'are_similar',
    'make_matcher',
]
