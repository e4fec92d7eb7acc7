"""
Scan method resolution.

Decides which source and ingestion mode a scan uses. Automatic resolution has
exactly three outcomes:

- LIGHTWEIGHT_PREFERRED: the primary source is admin and returns messages,
  so scan it without downloading images.
- RICHER_MODE: the primary source cannot see the history but a history
  source is configured.
- RICHER_UNAVAILABLE_FALLBACK: no history source; scan the primary source in
  lightweight mode and record a warning.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from ..config import MODE_LIGHTWEIGHT
from ..errors import SourceUnavailableError
from ..sources.base import MessageSource

logger = logging.getLogger(__name__)

METHOD_AUTO = 'auto'
METHOD_LIGHTWEIGHT = 'lightweight'
PRIMARY_ALIASES = ('primary', 'botapi')
HISTORY_ALIASES = ('history', 'mtproto')

FALLBACK_WARNING = (
    "Primary source has no access to the channel history and no MTProto "
    "credentials are configured; scanning in lightweight mode"
)


class Resolution(str, Enum):
    """Outcome of automatic method resolution."""
    LIGHTWEIGHT_PREFERRED = "lightweight_preferred"
    RICHER_MODE = "richer_mode"
    RICHER_UNAVAILABLE_FALLBACK = "richer_unavailable_fallback"


@dataclass
class ScanPlan:
    """Source and ingestion mode selected for one scan."""
    source: MessageSource
    ingestion_mode: str
    resolution: Optional[Resolution] = None
    warnings: list = field(default_factory=list)


def resolve_method(
    primary: MessageSource,
    history: Optional[MessageSource],
    channel: str,
) -> Resolution:
    """
    Resolve the automatic method for a channel.

    Errors from the admin query or the trial fetch count as no access.
    """
    try:
        admin = primary.is_admin(channel)
    except SourceUnavailableError as e:
        logger.warning(f"Admin check for {channel} failed, assuming no access: {e}")
        admin = False

    if admin:
        try:
            trial = primary.fetch_batch(channel, 1, 0)
        except SourceUnavailableError as e:
            logger.warning(f"Trial fetch from {primary.name} failed: {e}")
            trial = []
        if trial:
            return Resolution.LIGHTWEIGHT_PREFERRED
        logger.info(f"{primary.name} is admin in {channel} but returned no messages")

    if history is not None:
        return Resolution.RICHER_MODE
    return Resolution.RICHER_UNAVAILABLE_FALLBACK


def plan_scan(
    method: str,
    primary: MessageSource,
    history: Optional[MessageSource],
    channel: str,
    default_mode: str,
) -> ScanPlan:
    """
    Turn a requested method into a scan plan.

    Args:
        method: 'auto', 'lightweight', a primary alias, a history alias, or a source name
        primary: Lower-privilege source
        history: History source, or None when not configured
        channel: Channel to scan
        default_mode: Ingestion mode for explicitly selected sources

    Raises:
        ValueError: If the method is unknown
        SourceUnavailableError: If the history source was requested but is not configured
    """
    if method == METHOD_AUTO:
        resolution = resolve_method(primary, history, channel)
        logger.info(f"Method resolution for {channel}: {resolution.value}")
        if resolution == Resolution.LIGHTWEIGHT_PREFERRED:
            return ScanPlan(primary, MODE_LIGHTWEIGHT, resolution)
        if resolution == Resolution.RICHER_MODE:
            return ScanPlan(history, default_mode, resolution)
        logger.warning(FALLBACK_WARNING)
        return ScanPlan(primary, MODE_LIGHTWEIGHT, resolution, [FALLBACK_WARNING])

    if method == METHOD_LIGHTWEIGHT:
        return ScanPlan(primary, MODE_LIGHTWEIGHT)
    if method in PRIMARY_ALIASES or method == primary.name:
        return ScanPlan(primary, default_mode)
    if method in HISTORY_ALIASES or (history is not None and method == history.name):
        if history is None:
            raise SourceUnavailableError("History method requested but MTProto credentials are not configured")
        return ScanPlan(history, default_mode)

    raise ValueError(f"Unknown scan method: {method}")


__all__ = ['Resolution', 'ScanPlan', 'resolve_method', 'plan_scan']
