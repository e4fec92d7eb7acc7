"""
Hashing module for the signature package.

Computes perceptual signatures from raw image bytes. Three interchangeable
methods are available: pHash and dHash from imagehash, and a numpy blockhash.
All of them return a lowercase hex string whose length depends only on the
method and hash size.
"""

from __future__ import annotations

import io
import logging
from pathlib import Path
from typing import Callable

from ..config import DEFAULT_HASH_METHOD, DEFAULT_HASH_SIZE, HASH_METHODS
from ..errors import SignatureComputationError
from .dependencies import Image, imagehash, np

logger = logging.getLogger(__name__)

# Pixels per block side when downscaling for blockhash
BLOCKHASH_BLOCK_PIXELS = 4

# Blockhash thresholds each horizontal band against its own median
BLOCKHASH_BANDS = 4


def _phash(img: Image.Image, hash_size: int) -> str:
    return str(imagehash.phash(img, hash_size=hash_size))


def _dhash(img: Image.Image, hash_size: int) -> str:
    return str(imagehash.dhash(img, hash_size=hash_size))


def _blockhash(img: Image.Image, hash_size: int) -> str:
    """
    Block mean value hash.

    The image is split into hash_size x hash_size blocks; each block's mean
    luminance is compared with the median of its band.
    """
    side = hash_size * BLOCKHASH_BLOCK_PIXELS
    gray = img.convert('L').resize((side, side), Image.Resampling.LANCZOS)
    pixels = np.asarray(gray, dtype=np.float64)

    blocks = pixels.reshape(
        hash_size, BLOCKHASH_BLOCK_PIXELS, hash_size, BLOCKHASH_BLOCK_PIXELS
    ).mean(axis=(1, 3))

    flat = blocks.flatten()
    bits = np.concatenate([
        band > np.median(band)
        for band in np.array_split(flat, BLOCKHASH_BANDS)
    ])
    return str(imagehash.ImageHash(bits.reshape(hash_size, hash_size)))


_HASHERS: dict[str, Callable[[Image.Image, int], str]] = {
    'phash': _phash,
    'dhash': _dhash,
    'blockhash': _blockhash,
}


def signature_from_image(
    img: Image.Image,
    hash_size: int = DEFAULT_HASH_SIZE,
    method: str = DEFAULT_HASH_METHOD,
) -> str:
    """
    Compute the signature of an already opened image.

    Args:
        img: PIL image
        hash_size: Side of the hash grid
        method: One of 'phash', 'dhash', 'blockhash'

    Returns:
        Hex signature string

    Raises:
        ValueError: If method is unknown
    """
    hasher = _HASHERS.get(method)
    if hasher is None:
        raise ValueError(f"Unknown hash method: {method}. Use one of {', '.join(HASH_METHODS)}.")

    # Convert to RGB if necessary (handles transparency, palettes, CMYK)
    if img.mode not in ('RGB', 'L'):
        img = img.convert('RGB')

    return hasher(img, hash_size)


def compute_signature(
    image_bytes: bytes,
    hash_size: int = DEFAULT_HASH_SIZE,
    method: str = DEFAULT_HASH_METHOD,
) -> str:
    """
    Decode image bytes and compute their perceptual signature.

    Identical bytes always produce identical signatures.

    Args:
        image_bytes: Encoded image (JPEG, PNG, WebP, HEIC, ...)
        hash_size: Side of the hash grid (16 gives a 64 hex char signature)
        method: One of 'phash', 'dhash', 'blockhash'

    Returns:
        Hex signature string

    Raises:
        ValueError: If method is unknown
        SignatureComputationError: If the bytes do not decode as an image
    """
    if method not in _HASHERS:
        raise ValueError(f"Unknown hash method: {method}. Use one of {', '.join(HASH_METHODS)}.")
    if not image_bytes:
        raise SignatureComputationError("No image data")

    try:
        with Image.open(io.BytesIO(image_bytes)) as img:
            # Force load to detect truncated/corrupt images early
            img.load()
            return signature_from_image(img, hash_size=hash_size, method=method)
    except Exception as e:
        logger.debug(f"Signature computation failed ({len(image_bytes)} bytes, method={method}): {e}")
        raise SignatureComputationError(f"Cannot decode image: {e}") from e


def compute_file_signature(
    filepath: str | Path,
    hash_size: int = DEFAULT_HASH_SIZE,
    method: str = DEFAULT_HASH_METHOD,
) -> str:
    """
    Compute the signature of an image file.

    Raises:
        SignatureComputationError: If the file cannot be read or decoded
    """
    try:
        data = Path(filepath).read_bytes()
    except OSError as e:
        raise SignatureComputationError(f"Cannot read {filepath}: {e}") from e
    return compute_signature(data, hash_size=hash_size, method=method)


__all__ = [
    'compute_signature',
    'compute_file_signature',
    'signature_from_image',
]
