"""
Pytest configuration and shared fixtures for test suite.
"""

import io
import shutil
import tempfile
from pathlib import Path
from typing import Optional

import pytest
from PIL import Image

from dupescan.database import ImageStore
from dupescan.errors import SourceUnavailableError
from dupescan.models import ChannelInfo, ImageRecord, Media, MediaKind, Message
from dupescan.sources.base import MessageSource
from dupescan.user_config import ScanSettings

CHANNEL = "-1001234567890"


def png_bytes(pattern: str = 'vertical', size: int = 128) -> bytes:
    """Encode a generated test image as PNG."""
    if pattern == 'vertical':
        img = Image.linear_gradient('L').resize((size, size))
    elif pattern == 'horizontal':
        img = Image.linear_gradient('L').rotate(90).resize((size, size))
    elif pattern == 'checker':
        img = Image.new('L', (size, size), 0)
        cell = size // 8
        for y in range(0, size, cell):
            for x in range(0, size, cell):
                if (x // cell + y // cell) % 2 == 0:
                    img.paste(255, (x, y, x + cell, y + cell))
    else:
        raise ValueError(pattern)

    buffer = io.BytesIO()
    img.convert('RGB').save(buffer, 'PNG')
    return buffer.getvalue()


def photo_message(
    message_id: int,
    file_unique_id: str = "",
    chat_id: str = CHANNEL,
    timestamp: Optional[int] = None,
    width: int = 1280,
    height: int = 720,
) -> Message:
    """Message carrying a photo."""
    return Message(
        id=message_id,
        timestamp=timestamp if timestamp is not None else 1_700_000_000 + message_id,
        chat_id=chat_id,
        media=Media(
            kind=MediaKind.PHOTO,
            file_id=f"file-{message_id}",
            file_unique_id=file_unique_id or f"unique-{message_id}",
            byte_size=1000,
            width=width,
            height=height,
        ),
    )


def text_message(message_id: int, chat_id: str = CHANNEL) -> Message:
    """Message without media."""
    return Message(id=message_id, timestamp=1_700_000_000 + message_id, chat_id=chat_id)


def make_record(
    n: int,
    signature: str = "aaaa",
    added_at: Optional[str] = None,
    provenance: str = "test",
    captured_at: Optional[int] = None,
) -> ImageRecord:
    """Record for message n of the test channel."""
    return ImageRecord(
        identity=f"{CHANNEL}:{n}",
        signature=signature,
        source_message_id=n,
        source_chat_id=CHANNEL,
        captured_at=captured_at if captured_at is not None else 1_700_000_000 + n,
        added_at=added_at if added_at is not None else f"2024-01-01T00:00:{n:02d}+00:00",
        provenance=provenance,
    )


class FakeSource(MessageSource):
    """
    In-memory MessageSource.

    Holds messages in any order and serves them newest first, honoring the
    offset cursor like a real channel history.
    """

    name = "fake"

    def __init__(
        self,
        messages=(),
        admin: bool = False,
        payloads: Optional[dict] = None,
        fail_after: Optional[int] = None,
        admin_error: bool = False,
    ):
        self.messages = sorted(messages, key=lambda m: m.id, reverse=True)
        self.admin = admin
        self.payloads = payloads or {}
        self.fail_after = fail_after
        self.admin_error = admin_error
        self.fetch_calls = []
        self.downloads = []
        self.closed = False
        self.on_fetch = None

    def fetch_batch(self, channel, limit, offset_cursor=0):
        self.fetch_calls.append((channel, limit, offset_cursor))
        if self.on_fetch is not None:
            self.on_fetch()
        if self.fail_after is not None and len(self.fetch_calls) > self.fail_after:
            raise SourceUnavailableError("connection reset")
        pending = [m for m in self.messages if not offset_cursor or m.id < offset_cursor]
        return pending[:limit]

    def is_admin(self, channel):
        if self.admin_error:
            raise SourceUnavailableError("chat not found")
        return self.admin

    def download_bytes(self, message):
        self.downloads.append(message.id)
        return self.payloads.get(message.id)

    def get_channel_info(self, channel):
        return ChannelInfo(id=channel, title="Test channel", username=None)

    def close(self):
        self.closed = True


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    tmpdir = tempfile.mkdtemp()
    yield Path(tmpdir)
    shutil.rmtree(tmpdir, ignore_errors=True)


@pytest.fixture
def temp_db(temp_dir):
    """Path of a temporary store database."""
    return str(temp_dir / "images.db")


@pytest.fixture
def store(temp_db):
    """Loaded image store, closed after the test."""
    s = ImageStore(temp_db, max_working_set_size=100)
    s.load()
    yield s
    s.close()


@pytest.fixture
def settings(temp_dir, temp_db):
    """Scan settings pointing at temporary locations, no cooldown."""
    return ScanSettings(
        cooldown_seconds=0,
        db_path=temp_db,
        report_dir=str(temp_dir / "reports"),
        channel=CHANNEL,
    )


@pytest.fixture
def isolated_config(temp_dir, monkeypatch):
    """Point the user config at an empty directory and clear related env vars."""
    from dupescan.user_config import _ENV_VARS, get_user_config

    for env_names, _ in _ENV_VARS.values():
        for name in env_names:
            monkeypatch.delenv(name, raising=False)
    config_dir = temp_dir / "config"
    monkeypatch.setenv('DUPESCAN_CONFIG_DIR', str(config_dir))

    config = get_user_config()
    config.reload()
    yield config
    config.reload()
