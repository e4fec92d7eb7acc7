"""
Data models for dupescan.

Contains dataclasses for channel messages, stored image records, duplicate
groups and the transient state and result of a scan.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from .config import IMAGE_MIME_PREFIX


def format_size(size_bytes: int) -> str:
    """Format file size in human-readable form."""
    for unit in ['B', 'KB', 'MB', 'GB']:
        if size_bytes < 1024:
            return f"{size_bytes:.1f} {unit}"
        size_bytes /= 1024
    return f"{size_bytes:.1f} TB"


def utc_now_iso() -> str:
    """Current UTC time as an ISO-8601 string."""
    return datetime.now(timezone.utc).isoformat()


def timestamp_to_iso(timestamp: Optional[int]) -> Optional[str]:
    """Convert unix seconds to an ISO-8601 UTC string (None stays None)."""
    if timestamp is None:
        return None
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).isoformat()


class MediaKind(str, Enum):
    """Kind of media attached to a message."""
    PHOTO = "photo"
    IMAGE_DOCUMENT = "image_document"
    DOCUMENT = "document"
    OTHER = "other"


@dataclass
class Media:
    """
    Canonical description of a message attachment.

    Every source adapter translates its native media object into this shape.

    Attributes:
        kind: What the attachment is
        file_id: Source-specific id used to download the file
        file_unique_id: Stable id of the underlying file (same for re-posts)
        mime_type: MIME type when known
        byte_size: Size in bytes (0 when unknown)
        width: Width of the largest variant in pixels (0 when unknown)
        height: Height of the largest variant in pixels (0 when unknown)
        sizes: Available size variants as (width, height) pairs, smallest first
    """
    kind: MediaKind
    file_id: str = ""
    file_unique_id: str = ""
    mime_type: str = ""
    byte_size: int = 0
    width: int = 0
    height: int = 0
    sizes: list = field(default_factory=list)

    @classmethod
    def for_document(cls, mime_type: str, **kwargs) -> 'Media':
        """Build a document media, classified as an image when the MIME type says so."""
        mime_type = mime_type or ""
        kind = MediaKind.IMAGE_DOCUMENT if mime_type.startswith(IMAGE_MIME_PREFIX) else MediaKind.DOCUMENT
        return cls(kind=kind, mime_type=mime_type, **kwargs)


@dataclass
class Message:
    """
    A channel message as seen by the scanner.

    Attributes:
        id: Message id, unique within the chat and increasing with time
        timestamp: Unix seconds when the message was posted (None if malformed)
        chat_id: Canonical chat identity (Bot API form, e.g. -1001234567890)
        media: Attachment, if any
        author_id: Sender id when the source exposes it
        native: The adapter's own message object, used for downloads
    """
    id: int
    timestamp: Optional[int]
    chat_id: str
    media: Optional[Media] = None
    author_id: Optional[str] = None
    native: Any = field(default=None, repr=False, compare=False)


@dataclass(frozen=True)
class ChannelInfo:
    """Identity of the scanned channel, written into the report header."""
    id: str
    title: Optional[str] = None
    username: Optional[str] = None

    def to_dict(self) -> dict:
        return {'id': self.id, 'title': self.title, 'username': self.username}


def make_identity(chat_id: str, message_id: int) -> str:
    """Store key for the image attached to a message."""
    return f"{chat_id}:{message_id}"


@dataclass
class ImageRecord:
    """
    One stored image, keyed by identity.

    Attributes:
        identity: Unique key (chat id + message id)
        signature: Perceptual or structural signature
        source_message_id: Message the image came from
        source_chat_id: Chat the message was posted in
        author_id: Sender, when known
        byte_size: File size in bytes (0 when unknown)
        width: Width in pixels (0 when unknown)
        height: Height in pixels (0 when unknown)
        captured_at: Unix seconds of the origin message
        added_at: ISO-8601 time the record was ingested
        provenance: Ingestion mode that produced the record
        external_link: Deep link to the origin message
    """
    identity: str
    signature: str
    source_message_id: int
    source_chat_id: str
    author_id: Optional[str] = None
    byte_size: int = 0
    width: int = 0
    height: int = 0
    captured_at: Optional[int] = None
    added_at: str = ""
    provenance: str = "unknown"
    external_link: Optional[str] = None

    def __hash__(self):
        return hash(self.identity)

    def __eq__(self, other):
        if not isinstance(other, ImageRecord):
            return False
        return self.identity == other.identity

    @property
    def captured_at_iso(self) -> Optional[str]:
        """Origin timestamp as ISO-8601."""
        return timestamp_to_iso(self.captured_at)

    @property
    def resolution(self) -> str:
        """Return resolution as 'WxH' string."""
        return f"{self.width}x{self.height}"

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            'identity': self.identity,
            'signature': self.signature,
            'source_message_id': self.source_message_id,
            'source_chat_id': self.source_chat_id,
            'author_id': self.author_id,
            'byte_size': self.byte_size,
            'width': self.width,
            'height': self.height,
            'captured_at': self.captured_at,
            'added_at': self.added_at,
            'provenance': self.provenance,
            'external_link': self.external_link,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'ImageRecord':
        """Create ImageRecord from dictionary."""
        return cls(
            identity=data['identity'],
            signature=data.get('signature', ''),
            source_message_id=int(data.get('source_message_id', 0)),
            source_chat_id=str(data.get('source_chat_id', '')),
            author_id=data.get('author_id'),
            byte_size=data.get('byte_size') or 0,
            width=data.get('width') or 0,
            height=data.get('height') or 0,
            captured_at=data.get('captured_at'),
            added_at=data.get('added_at', ''),
            provenance=data.get('provenance', 'unknown'),
            external_link=data.get('external_link'),
        )


@dataclass
class DuplicateGroup:
    """
    A group of images sharing a similar signature.

    Attributes:
        signature: Signature of the record that seeded the group
        members: Records in the group, earliest capture first
    """
    signature: str
    members: list = field(default_factory=list)

    @property
    def original(self) -> Optional[ImageRecord]:
        """The earliest posted image in the group."""
        return self.members[0] if self.members else None

    @property
    def duplicates(self) -> list:
        """Every member except the original."""
        return self.members[1:]

    @property
    def count(self) -> int:
        """Number of images in this group."""
        return len(self.members)


class ScanStatus(str, Enum):
    """Outcome of a scan invocation."""
    COMPLETED = "completed"
    FAILED = "failed"
    BUSY = "busy"


@dataclass
class ScanState:
    """
    Transient state of one scan, discarded when the scan ends.

    The offset cursor restarts at 0 (newest message) on every scan.
    """
    channel: str
    batch_size: int
    cooldown_seconds: float
    offset_cursor: int = 0
    total_messages: int = 0
    processed_images: int = 0
    duplicates_found: int = 0
    errors: int = 0
    already_known: int = 0
    similar_found: int = 0
    batches: int = 0
    seen_message_ids: set = field(default_factory=set)


@dataclass
class ScanResult:
    """Summary returned by ChannelScanner.scan."""
    status: ScanStatus
    total_messages: int = 0
    processed_images: int = 0
    duplicates_found: int = 0
    errors: int = 0
    already_known: int = 0
    similar_found: int = 0
    method: Optional[str] = None
    ingestion_mode: Optional[str] = None
    resolution: Optional[str] = None
    warnings: list = field(default_factory=list)
    error: Optional[str] = None
    report: Optional[dict] = field(default=None, repr=False)
    report_path: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.status == ScanStatus.COMPLETED

    @classmethod
    def from_state(cls, state: ScanState, status: ScanStatus, **kwargs) -> 'ScanResult':
        """Copy the counters of a scan state into a result."""
        return cls(
            status=status,
            total_messages=state.total_messages,
            processed_images=state.processed_images,
            duplicates_found=state.duplicates_found,
            errors=state.errors,
            already_known=state.already_known,
            similar_found=state.similar_found,
            **kwargs,
        )

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            'status': self.status.value,
            'success': self.success,
            'total_messages': self.total_messages,
            'processed_images': self.processed_images,
            'duplicates_found': self.duplicates_found,
            'errors': self.errors,
            'already_known': self.already_known,
            'similar_found': self.similar_found,
            'method': self.method,
            'ingestion_mode': self.ingestion_mode,
            'resolution': self.resolution,
            'warnings': list(self.warnings),
            'error': self.error,
            'report_path': self.report_path,
        }
