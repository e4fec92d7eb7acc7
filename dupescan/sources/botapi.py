"""
Bot API message source.

The Bot API has no history call: messages come from getUpdates channel posts,
so only posts the bot has seen since it joined are visible. Deeper history
needs the MTProto source.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from ..errors import SourceUnavailableError
from ..models import ChannelInfo, Media, MediaKind, Message
from .base import MessageSource

logger = logging.getLogger(__name__)

API_BASE = "https://api.telegram.org"

# getUpdates returns at most 100 updates per call
MAX_UPDATES = 100

ADMIN_STATUSES = ('administrator', 'creator')


def make_session(max_retries: int = 3, backoff_factor: float = 0.5) -> requests.Session:
    """Create an HTTP session that retries transient server errors."""
    retry = Retry(
        total=max_retries,
        backoff_factor=backoff_factor,
        status_forcelist=(500, 502, 503, 504),
        allowed_methods=frozenset(["GET"]),
    )
    session = requests.Session()
    adapter = HTTPAdapter(max_retries=retry)
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    return session


def _media_from_post(post: dict) -> Optional[Media]:
    photos = post.get('photo')
    if photos:
        # Variants come smallest first; the last one is the original
        largest = photos[-1]
        return Media(
            kind=MediaKind.PHOTO,
            file_id=largest.get('file_id', ''),
            file_unique_id=largest.get('file_unique_id', ''),
            byte_size=largest.get('file_size') or 0,
            width=largest.get('width') or 0,
            height=largest.get('height') or 0,
            sizes=[(p.get('width') or 0, p.get('height') or 0) for p in photos],
        )

    document = post.get('document')
    if document:
        thumb = document.get('thumbnail') or document.get('thumb') or {}
        return Media.for_document(
            document.get('mime_type', ''),
            file_id=document.get('file_id', ''),
            file_unique_id=document.get('file_unique_id', ''),
            byte_size=document.get('file_size') or 0,
            width=thumb.get('width') or 0,
            height=thumb.get('height') or 0,
        )

    for key in ('video', 'animation', 'audio', 'voice', 'sticker', 'video_note'):
        if key in post:
            return Media(kind=MediaKind.OTHER, file_id=post[key].get('file_id', ''))

    return None


def message_from_post(post: dict) -> Message:
    """Translate a Bot API Message object into the canonical Message."""
    sender = post.get('from') or post.get('sender_chat') or {}
    author_id = sender.get('id')
    return Message(
        id=post['message_id'],
        timestamp=post.get('date'),
        chat_id=str(post.get('chat', {}).get('id', '')),
        media=_media_from_post(post),
        author_id=str(author_id) if author_id is not None else None,
        native=post,
    )


def _matches_channel(chat: dict, channel: str) -> bool:
    if str(chat.get('id')) == channel:
        return True
    username = chat.get('username')
    return bool(username) and channel.lstrip('@').lower() == username.lower()


class BotApiSource(MessageSource):
    """
    Lower-privilege source backed by the HTTP Bot API.

    Args:
        token: Bot token
        session: requests session to use (one with retries is created if None)
        timeout: Request timeout in seconds
    """

    name = "botapi"

    def __init__(self, token: str, session: Optional[requests.Session] = None, timeout: float = 30):
        if not token:
            raise ValueError("Bot token is required")
        self.token = token
        self.timeout = timeout
        self.session = session or make_session()
        self._bot_id: Optional[int] = None

    @property
    def base_url(self) -> str:
        return f"{API_BASE}/bot{self.token}"

    def _call(self, method: str, **params: Any) -> Any:
        try:
            response = self.session.get(f"{self.base_url}/{method}", params=params, timeout=self.timeout)
            data = response.json()
        except requests.RequestException as e:
            raise SourceUnavailableError(f"Bot API {method} failed: {e}") from e
        except ValueError as e:
            raise SourceUnavailableError(f"Bot API {method} returned invalid JSON") from e

        if not data.get('ok'):
            raise SourceUnavailableError(
                f"Bot API {method} failed: {data.get('description', 'unknown error')}"
            )
        return data.get('result')

    def fetch_batch(self, channel: str, limit: int, offset_cursor: int = 0) -> list[Message]:
        updates = self._call(
            'getUpdates',
            allowed_updates=json.dumps(['channel_post']),
            limit=MAX_UPDATES,
        ) or []

        posts = [
            update['channel_post'] for update in updates
            if 'channel_post' in update and _matches_channel(update['channel_post'].get('chat', {}), channel)
        ]
        if offset_cursor:
            posts = [p for p in posts if p['message_id'] < offset_cursor]

        posts.sort(key=lambda p: p['message_id'], reverse=True)
        messages = [message_from_post(p) for p in posts[:limit]]
        logger.debug(f"Bot API returned {len(messages)} posts for {channel} (cursor {offset_cursor})")
        return messages

    def is_admin(self, channel: str) -> bool:
        if self._bot_id is None:
            self._bot_id = self._call('getMe')['id']
        member = self._call('getChatMember', chat_id=channel, user_id=self._bot_id)
        return member.get('status') in ADMIN_STATUSES

    def download_bytes(self, message: Message) -> Optional[bytes]:
        if message.media is None or not message.media.file_id:
            return None

        file_info = self._call('getFile', file_id=message.media.file_id)
        file_path = file_info.get('file_path')
        if not file_path:
            return None

        url = f"{API_BASE}/file/bot{self.token}/{file_path}"
        try:
            response = self.session.get(url, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            raise SourceUnavailableError(f"Download of {file_path} failed: {e}") from e
        return response.content

    def get_channel_info(self, channel: str) -> ChannelInfo:
        chat = self._call('getChat', chat_id=channel)
        return ChannelInfo(
            id=str(chat.get('id', channel)),
            title=chat.get('title'),
            username=chat.get('username'),
        )

    def close(self) -> None:
        self.session.close()


__all__ = ['BotApiSource', 'message_from_post', 'make_session']
