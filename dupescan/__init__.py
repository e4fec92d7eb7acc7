"""
dupescan
========
Finds duplicate and visually similar images posted in a Telegram channel.

Features:
- Perceptual signatures (pHash, dHash, blockhash) with one similarity measure
- Lightweight metadata signatures when images cannot be downloaded
- SQLite image store with a bounded in-memory working set
- Bot API, MTProto and Telegram Desktop export sources
- JSON duplicate report with deep links to the original posts
- CLI for automation
"""

__version__ = "1.0.0"
__author__ = "Zedidence"

from .errors import (
    DupeScanError,
    LengthMismatchError,
    NotLoadedError,
    ScanBusyError,
    SignatureComputationError,
    SourceUnavailableError,
)
from .models import (
    ChannelInfo,
    DuplicateGroup,
    ImageRecord,
    Media,
    MediaKind,
    Message,
    ScanResult,
    ScanStatus,
)
from .user_config import ScanSettings, get_user_config
from .signature import (
    are_similar,
    compute_signature,
    distance,
    group_by_similarity,
    similarity_percent,
    structural_signature,
)
from .database import ImageStore, get_store, reset_store
from .report import DuplicateReportBuilder, JsonFileSink, MemorySink, ReportSink, message_link
from .scanner import ChannelScanner, Resolution

__all__ = [
    "DupeScanError",
    "LengthMismatchError",
    "NotLoadedError",
    "ScanBusyError",
    "SignatureComputationError",
    "SourceUnavailableError",
    "ChannelInfo",
    "DuplicateGroup",
    "ImageRecord",
    "Media",
    "MediaKind",
    "Message",
    "ScanResult",
    "ScanStatus",
    "ScanSettings",
    "get_user_config",
    "are_similar",
    "compute_signature",
    "distance",
    "group_by_similarity",
    "similarity_percent",
    "structural_signature",
    "ImageStore",
    "get_store",
    "reset_store",
    "DuplicateReportBuilder",
    "JsonFileSink",
    "MemorySink",
    "ReportSink",
    "message_link",
    "ChannelScanner",
    "Resolution",
]
