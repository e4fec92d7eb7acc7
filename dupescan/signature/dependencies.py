"""
Third-party imports shared by the signature package.

Pillow, imagehash and numpy are required. pillow-heif adds HEIC/HEIF decoding
when installed, and tqdm (the 'progress' extra) enables progress bars.
"""

from __future__ import annotations

import logging
import warnings

logger = logging.getLogger(__name__)

try:
    from PIL import Image
    import imagehash
    import numpy as np
except ImportError as e:
    raise ImportError(
        "Required packages not found!\n"
        "Install with: pip install Pillow imagehash numpy"
    ) from e

try:
    from tqdm import tqdm
except ImportError:
    tqdm = None

# Phone uploads sent as documents are often HEIC
HAS_HEIF_SUPPORT = False
try:
    from pillow_heif import register_heif_opener
    register_heif_opener()
    HAS_HEIF_SUPPORT = True
except ImportError:
    logger.debug("pillow-heif not installed, HEIC/HEIF attachments will not decode")

# Channel attachments are capped well below this; anything larger is rejected
Image.MAX_IMAGE_PIXELS = 200_000_000
warnings.filterwarnings("ignore", category=Image.DecompressionBombWarning)


__all__ = [
    'Image',
    'imagehash',
    'np',
    'tqdm',
    'HAS_HEIF_SUPPORT',
]
