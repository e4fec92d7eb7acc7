"""
Message classification and record building for the scanner package.
"""

from __future__ import annotations

from typing import Optional

from ..config import IMAGE_MIME_PREFIX, MODE_LIGHTWEIGHT, PROVENANCE_LIGHTWEIGHT, PROVENANCE_PREFIX
from ..models import ImageRecord, MediaKind, Message, make_identity, utc_now_iso
from ..report.links import message_link

PHOTO_KINDS = (MediaKind.PHOTO, MediaKind.IMAGE_DOCUMENT)


def is_photo_message(message: Message) -> bool:
    """True if the message carries a photo or an image sent as a document."""
    media = message.media
    if media is None or media.kind not in PHOTO_KINDS:
        return False
    if media.kind == MediaKind.IMAGE_DOCUMENT:
        return (media.mime_type or '').startswith(IMAGE_MIME_PREFIX)
    return True


def provenance_for(ingestion_mode: str, source_name: str) -> str:
    """Provenance tag written on records ingested in this mode from this source."""
    if ingestion_mode == MODE_LIGHTWEIGHT:
        return PROVENANCE_LIGHTWEIGHT
    return f"{PROVENANCE_PREFIX}_{source_name}"


def build_record(
    message: Message,
    signature: str,
    provenance: str,
    channel: str,
    username: Optional[str] = None,
    byte_size: Optional[int] = None,
) -> ImageRecord:
    """
    Build the store record for a photo message.

    Args:
        message: Classified photo message
        signature: Perceptual or structural signature
        provenance: Ingestion tag
        channel: Channel identity used when the message carries no chat id
        username: Channel username for links
        byte_size: Size of the downloaded bytes, overriding the media size
    """
    media = message.media
    chat_id = message.chat_id or channel
    if byte_size is None:
        byte_size = media.byte_size if media else 0

    return ImageRecord(
        identity=make_identity(chat_id, message.id),
        signature=signature,
        source_message_id=message.id,
        source_chat_id=chat_id,
        author_id=message.author_id,
        byte_size=byte_size or 0,
        width=media.width if media else 0,
        height=media.height if media else 0,
        captured_at=message.timestamp,
        added_at=utc_now_iso(),
        provenance=provenance,
        external_link=message_link(chat_id, message.id, username) or None,
    )


__all__ = ['is_photo_message', 'provenance_for', 'build_record']
