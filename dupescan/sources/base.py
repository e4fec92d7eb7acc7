"""
MessageSource contract.

Each adapter translates its native message shape into the canonical
Message/Media variant at the boundary, so the scanner never branches on
where a message came from.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from ..models import ChannelInfo, Message


class MessageSource(ABC):
    """
    A way of reading channel history.

    Failures to reach, authenticate against or read from the upstream raise
    SourceUnavailableError.
    """

    #: Short name used in provenance tags and result summaries
    name: str = "source"

    @abstractmethod
    def fetch_batch(self, channel: str, limit: int, offset_cursor: int = 0) -> list[Message]:
        """
        Fetch up to limit messages, newest first.

        Args:
            channel: Channel id or username
            limit: Maximum number of messages
            offset_cursor: Only messages with a smaller id are returned (0 = newest)
        """

    @abstractmethod
    def is_admin(self, channel: str) -> bool:
        """True when this source has administrative access to the channel."""

    @abstractmethod
    def download_bytes(self, message: Message) -> Optional[bytes]:
        """Download the attachment of a message (None when it has none)."""

    def get_channel_info(self, channel: str) -> ChannelInfo:
        username = channel[1:] if channel.startswith('@') else None
        return ChannelInfo(id=channel, title=None, username=username)

    def close(self) -> None:
        pass

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"


__all__ = ['MessageSource']
