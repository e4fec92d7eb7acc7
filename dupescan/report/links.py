"""Deep links to channel posts."""

from __future__ import annotations

from typing import Optional, Union

from ..config import PRIVATE_CHANNEL_PREFIX, TELEGRAM_LINK_BASE


def message_link(
    chat_identity: Union[str, int, None],
    message_id: int,
    username: Optional[str] = None,
) -> str:
    """
    Build a t.me link to a message.

    Private-channel ids (-100 prefix) link through /c/<id>/<message>;
    anything else links through the username, or the raw identity when no
    username is known.

    Returns:
        Link string, or "" when the chat identity is empty
    """
    chat = str(chat_identity).strip() if chat_identity is not None else ""
    if not chat:
        return ""

    if chat.startswith(PRIVATE_CHANNEL_PREFIX):
        return f"{TELEGRAM_LINK_BASE}/c/{chat[len(PRIVATE_CHANNEL_PREFIX):]}/{message_id}"

    name = (username or chat).lstrip('@')
    return f"{TELEGRAM_LINK_BASE}/{name}/{message_id}"


__all__ = ['message_link']
