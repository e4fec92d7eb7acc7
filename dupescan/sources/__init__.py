"""
Message sources for dupescan.

Public API:
- MessageSource: Abstract contract used by the scanner
- BotApiSource: Bot API over HTTP (lower privilege, recent posts only)
- TelethonSource: MTProto user session (full history)
- TelegramExportSource: Offline Telegram Desktop export
"""

from .base import MessageSource
from .botapi import BotApiSource
from .export import TelegramExportSource
from .telethon_source import TelethonSource

__all__ = [
    'MessageSource',
    'BotApiSource',
    'TelethonSource',
    'TelegramExportSource',
]
