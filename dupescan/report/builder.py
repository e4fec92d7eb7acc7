"""
Duplicate report builder.

Turns a durable snapshot of image records into the JSON report artifact:

{
  "scanDate": ..., "channelInfo": {"id", "title", "username"},
  "stats": {"totalMessages", "processedImages", "duplicateGroups", "totalDuplicates"},
  "duplicateGroups": [
    {"signature", "count",
     "original": {"messageId", "date", "link"},
     "duplicates": [{"messageId", "date", "link"}, ...]}
  ]
}
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional

from ..config import DEFAULT_THRESHOLD_PERCENT
from ..models import ChannelInfo, DuplicateGroup, ImageRecord, utc_now_iso
from ..signature import group_by_similarity
from .links import message_link

logger = logging.getLogger(__name__)


class DuplicateReportBuilder:
    """
    Groups records by signature similarity and serializes the groups.

    Args:
        threshold_percent: Maximum normalized dissimilarity for two images to match
        show_progress: Show a progress bar while grouping large snapshots
    """

    def __init__(self, threshold_percent: float = DEFAULT_THRESHOLD_PERCENT, show_progress: bool = False):
        self.threshold_percent = threshold_percent
        self.show_progress = show_progress

    def build_groups(self, records: Iterable[ImageRecord]) -> list[DuplicateGroup]:
        """Duplicate groups, largest first (ties keep seed order)."""
        groups = group_by_similarity(records, self.threshold_percent, show_progress=self.show_progress)
        groups.sort(key=lambda g: g.count, reverse=True)
        return groups

    def _member_entry(self, record: ImageRecord, username: Optional[str]) -> dict:
        link = record.external_link or message_link(
            record.source_chat_id, record.source_message_id, username
        )
        return {
            'messageId': record.source_message_id,
            'date': record.captured_at_iso,
            'link': link,
        }

    def group_entry(self, group: DuplicateGroup, username: Optional[str] = None) -> dict:
        return {
            'signature': group.signature,
            'count': group.count,
            'original': self._member_entry(group.original, username),
            'duplicates': [self._member_entry(r, username) for r in group.duplicates],
        }

    def build(
        self,
        records: Iterable[ImageRecord],
        channel_info: ChannelInfo,
        total_messages: int,
        processed_images: int,
        scan_date: Optional[str] = None,
    ) -> dict:
        """
        Build the report artifact.

        Args:
            records: Durable snapshot, usually filtered to one provenance
            channel_info: Scanned channel
            total_messages: Messages examined by the scan
            processed_images: Images that received a signature
            scan_date: ISO-8601 time of the scan (now if None)

        Returns:
            JSON-serializable report dict
        """
        groups = self.build_groups(records)
        total_duplicates = sum(len(g.duplicates) for g in groups)

        logger.info(f"Report: {len(groups)} duplicate groups, {total_duplicates} duplicates")

        return {
            'scanDate': scan_date or utc_now_iso(),
            'channelInfo': channel_info.to_dict(),
            'stats': {
                'totalMessages': total_messages,
                'processedImages': processed_images,
                'duplicateGroups': len(groups),
                'totalDuplicates': total_duplicates,
            },
            'duplicateGroups': [self.group_entry(g, channel_info.username) for g in groups],
        }


__all__ = ['DuplicateReportBuilder']
