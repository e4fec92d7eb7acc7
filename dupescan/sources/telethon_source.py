"""
MTProto message source built on Telethon.

Reads full channel history with a user session. The first run asks for a
login code interactively; the session file keeps the login afterwards.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from telethon import utils
from telethon.errors import RPCError
from telethon.sync import TelegramClient

from ..errors import SourceUnavailableError
from ..models import ChannelInfo, Media, MediaKind, Message
from .base import MessageSource

logger = logging.getLogger(__name__)


def _media_from_message(msg: Any) -> Optional[Media]:
    if msg.media is None:
        return None

    file = msg.file
    if msg.photo is not None:
        sizes = [
            (getattr(s, 'w', 0), getattr(s, 'h', 0))
            for s in (msg.photo.sizes or []) if hasattr(s, 'w')
        ]
        return Media(
            kind=MediaKind.PHOTO,
            file_id=str(msg.photo.id),
            # Forwarded re-posts keep the photo id of the original upload
            file_unique_id=str(msg.photo.id),
            byte_size=(file.size if file else 0) or 0,
            width=(file.width if file else 0) or 0,
            height=(file.height if file else 0) or 0,
            sizes=sizes,
        )

    if msg.document is not None:
        return Media.for_document(
            msg.document.mime_type or '',
            file_id=str(msg.document.id),
            file_unique_id=str(msg.document.id),
            byte_size=msg.document.size or 0,
            width=(file.width if file else 0) or 0,
            height=(file.height if file else 0) or 0,
        )

    return Media(kind=MediaKind.OTHER)


def message_from_telethon(msg: Any) -> Message:
    """Translate a telethon Message into the canonical Message."""
    return Message(
        id=msg.id,
        timestamp=int(msg.date.timestamp()) if msg.date else None,
        chat_id=str(utils.get_peer_id(msg.peer_id)),
        media=_media_from_message(msg),
        author_id=str(msg.sender_id) if msg.sender_id is not None else None,
        native=msg,
    )


class TelethonSource(MessageSource):
    """
    Richer history source over MTProto.

    Args:
        api_id: Application id from my.telegram.org
        api_hash: Application hash from my.telegram.org
        session: Session name or path
        client: Pre-built client (tests); created lazily when None
    """

    name = "mtproto"

    def __init__(self, api_id: int, api_hash: str, session: str = "dupescan", client: Any = None):
        if not api_id or not api_hash:
            raise ValueError("api_id and api_hash are required")
        self.api_id = int(api_id)
        self.api_hash = api_hash
        self.session = session
        self._client = client
        self._started = client is not None

    def _get_client(self) -> Any:
        if self._client is None:
            self._client = TelegramClient(self.session, self.api_id, self.api_hash)
        if not self._started:
            try:
                self._client.start()
            except (RPCError, ConnectionError, OSError) as e:
                raise SourceUnavailableError(f"Cannot start MTProto session: {e}") from e
            self._started = True
            logger.info(f"MTProto session '{self.session}' started")
        return self._client

    def fetch_batch(self, channel: str, limit: int, offset_cursor: int = 0) -> list[Message]:
        client = self._get_client()
        try:
            raw = client.get_messages(channel, limit=limit, offset_id=offset_cursor)
        except (RPCError, ConnectionError, ValueError) as e:
            raise SourceUnavailableError(f"Cannot read history of {channel}: {e}") from e
        return [message_from_telethon(m) for m in raw]

    def is_admin(self, channel: str) -> bool:
        client = self._get_client()
        try:
            permissions = client.get_permissions(channel, 'me')
        except (RPCError, ConnectionError, ValueError) as e:
            raise SourceUnavailableError(f"Cannot read permissions in {channel}: {e}") from e
        return bool(permissions.is_admin)

    def download_bytes(self, message: Message) -> Optional[bytes]:
        if message.native is None or message.media is None:
            return None
        client = self._get_client()
        try:
            return client.download_media(message.native, file=bytes)
        except (RPCError, ConnectionError) as e:
            raise SourceUnavailableError(f"Download of message {message.id} failed: {e}") from e

    def get_channel_info(self, channel: str) -> ChannelInfo:
        client = self._get_client()
        try:
            entity = client.get_entity(channel)
        except (RPCError, ConnectionError, ValueError) as e:
            raise SourceUnavailableError(f"Cannot resolve {channel}: {e}") from e
        return ChannelInfo(
            id=str(utils.get_peer_id(entity)),
            title=getattr(entity, 'title', None),
            username=getattr(entity, 'username', None),
        )

    def close(self) -> None:
        if self._client is not None and self._started:
            self._client.disconnect()
        self._started = False


__all__ = ['TelethonSource', 'message_from_telethon']
