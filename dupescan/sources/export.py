"""
Offline source reading a Telegram Desktop export (result.json).

Export a channel from Telegram Desktop with photos included and the JSON
format selected; point this source at result.json or its directory.
"""

from __future__ import annotations

import json
import logging
import mimetypes
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from ..config import PRIVATE_CHANNEL_PREFIX
from ..errors import SourceUnavailableError
from ..models import ChannelInfo, Media, MediaKind, Message
from .base import MessageSource

logger = logging.getLogger(__name__)

EXPORT_FILENAME = 'result.json'

# Placeholder Telegram Desktop writes when a file was skipped during export
SKIPPED_FILE_MARKER = '(File not included.'


def _parse_timestamp(entry: dict) -> Optional[int]:
    unixtime = entry.get('date_unixtime')
    if unixtime:
        try:
            return int(unixtime)
        except ValueError:
            pass
    date = entry.get('date')
    if not date:
        return None
    try:
        parsed = datetime.fromisoformat(date)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return int(parsed.timestamp())


def _media_from_entry(entry: dict) -> Optional[Media]:
    photo = entry.get('photo')
    if photo:
        return Media(
            kind=MediaKind.PHOTO,
            file_id=photo,
            file_unique_id=photo,
            byte_size=entry.get('photo_file_size') or 0,
            width=entry.get('width') or 0,
            height=entry.get('height') or 0,
        )

    file = entry.get('file')
    if file:
        mime_type = entry.get('mime_type') or mimetypes.guess_type(file)[0] or ''
        if entry.get('media_type'):
            # Stickers, videos, voice notes and animations are never photos
            return Media(kind=MediaKind.OTHER, file_id=file, mime_type=mime_type)
        return Media.for_document(
            mime_type,
            file_id=file,
            file_unique_id=file,
            byte_size=entry.get('file_size') or 0,
            width=entry.get('width') or 0,
            height=entry.get('height') or 0,
        )

    return None


def canonical_chat_id(export: dict) -> str:
    """Bot API form of the exported chat id (-100 prefix for channels)."""
    chat_id = str(export.get('id', ''))
    if chat_id and 'channel' in export.get('type', '') and not chat_id.startswith('-'):
        return f"{PRIVATE_CHANNEL_PREFIX}{chat_id}"
    return chat_id


class TelegramExportSource(MessageSource):
    """
    Reads messages from a Telegram Desktop JSON export.

    The export holds a single chat, so the channel argument of fetch_batch is
    only used for logging.
    """

    name = "export"

    def __init__(self, export_path: str | Path):
        path = Path(export_path)
        if path.is_dir():
            path = path / EXPORT_FILENAME
        self.export_file = path
        self.export_dir = path.parent
        self._data: Optional[dict] = None
        self._messages: Optional[list[Message]] = None

    def _load(self) -> dict:
        if self._data is None:
            try:
                with open(self.export_file, 'r', encoding='utf-8') as f:
                    self._data = json.load(f)
            except (OSError, json.JSONDecodeError) as e:
                raise SourceUnavailableError(f"Cannot read export {self.export_file}: {e}") from e
        return self._data

    def _all_messages(self) -> list[Message]:
        if self._messages is None:
            data = self._load()
            chat_id = canonical_chat_id(data)
            messages = []
            for entry in data.get('messages', []):
                if entry.get('type') != 'message' or 'id' not in entry:
                    continue
                messages.append(Message(
                    id=int(entry['id']),
                    timestamp=_parse_timestamp(entry),
                    chat_id=chat_id,
                    media=_media_from_entry(entry),
                    author_id=entry.get('from_id'),
                    native=entry,
                ))
            messages.sort(key=lambda m: m.id, reverse=True)
            self._messages = messages
            logger.info(f"Loaded {len(messages):,} messages from {self.export_file}")
        return self._messages

    def fetch_batch(self, channel: str, limit: int, offset_cursor: int = 0) -> list[Message]:
        messages = self._all_messages()
        if offset_cursor:
            messages = [m for m in messages if m.id < offset_cursor]
        return messages[:limit]

    def is_admin(self, channel: str) -> bool:
        return False

    def download_bytes(self, message: Message) -> Optional[bytes]:
        if message.media is None or not message.media.file_id:
            return None
        if message.media.file_id.startswith(SKIPPED_FILE_MARKER):
            logger.debug(f"Message {message.id}: file was not included in the export")
            return None
        try:
            return (self.export_dir / message.media.file_id).read_bytes()
        except OSError as e:
            raise SourceUnavailableError(f"Cannot read {message.media.file_id}: {e}") from e

    def get_channel_info(self, channel: str) -> ChannelInfo:
        data = self._load()
        return ChannelInfo(id=canonical_chat_id(data) or channel, title=data.get('name'), username=None)


__all__ = ['TelegramExportSource', 'canonical_chat_id']
