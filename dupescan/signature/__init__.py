"""
Signature package for dupescan.

Computes and compares perceptual image signatures and groups near-duplicates.

Public API:
- compute_signature: Signature of encoded image bytes (phash, dhash, blockhash)
- compute_file_signature: Signature of an image file
- structural_signature: Signature derived from media metadata, no download
- distance: Count of differing positions between two signatures
- dissimilarity_percent / similarity_percent: Normalized comparisons
- are_similar: Threshold check shared by every caller
- make_matcher: Bind a threshold into a match function
- group_by_similarity: Greedy duplicate grouping
- has_heif_support: Check if HEIC/HEIF support is available
"""

from __future__ import annotations

from .hashing import (
    compute_signature,
    compute_file_signature,
    signature_from_image,
)
from .distance import (
    distance,
    dissimilarity_percent,
    similarity_percent,
    are_similar,
    make_matcher,
)
from .grouping import group_by_similarity
from .structural import structural_key, structural_signature

from .dependencies import HAS_HEIF_SUPPORT


def has_heif_support() -> bool:
    """Check if HEIC/HEIF support is available."""
    return HAS_HEIF_SUPPORT


__all__ = [
    # Hashing
    'compute_signature',
    'compute_file_signature',
    'signature_from_image',
    # Comparison
    'distance',
    'dissimilarity_percent',
    'similarity_percent',
    'are_similar',
    'make_matcher',
    # Grouping
    'group_by_similarity',
    # Metadata signatures
    'structural_key',
    'structural_signature',
    # Feature detection
    'has_heif_support',
]
