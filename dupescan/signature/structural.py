"""
Structural signatures derived from media metadata.

Used by the lightweight ingestion mode, which never downloads image bytes.
The metadata key of an attachment (its stable file id plus dimensions, or MIME
type and size for documents) is digested into a fixed-length hex string, so it
flows through the same comparison functions as perceptual signatures. Re-posts
of the same upstream file produce the same signature; unrelated files differ in
nearly every position.
"""

from __future__ import annotations

import hashlib
from typing import Optional

from ..config import STRUCTURAL_DIGEST_SIZE
from ..models import Media, MediaKind


def structural_key(media: Optional[Media]) -> Optional[str]:
    """Readable metadata key for an image attachment, or None if it has no usable id."""
    if media is None:
        return None

    file_ref = media.file_unique_id or media.file_id
    if not file_ref:
        return None

    if media.kind == MediaKind.PHOTO:
        if media.width and media.height:
            return f"photo:{file_ref}:{media.width}x{media.height}"
        return f"photo:{file_ref}:unknown"
    if media.kind == MediaKind.IMAGE_DOCUMENT:
        return f"doc:{file_ref}:{media.mime_type}:{media.byte_size}"
    return None


def structural_signature(media: Optional[Media]) -> Optional[str]:
    """
    Fixed-length signature of an image attachment computed without downloading it.

    Returns:
        32 character hex digest, or None for non-image media / missing ids
    """
    key = structural_key(media)
    if key is None:
        return None
    return hashlib.blake2b(key.encode('utf-8'), digest_size=STRUCTURAL_DIGEST_SIZE).hexdigest()


__all__ = ['structural_key', 'structural_signature']
