"""
Scanner package for dupescan.

Pages through a channel, signs every photo and feeds the image store.

Public API:
- ChannelScanner: Scan orchestrator (one scan at a time)
- Resolution, resolve_method, plan_scan: Source and ingestion mode selection
- is_photo_message: Photo classification of a message
- build_record, provenance_for: Record construction
"""

from __future__ import annotations

from .classification import build_record, is_photo_message, provenance_for
from .orchestrator import ChannelScanner
from .resolution import Resolution, ScanPlan, plan_scan, resolve_method

__all__ = [
    'ChannelScanner',
    'Resolution',
    'ScanPlan',
    'plan_scan',
    'resolve_method',
    'is_photo_message',
    'build_record',
    'provenance_for',
]
