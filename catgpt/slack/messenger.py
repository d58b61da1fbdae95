"""Placeholder posting and editing for one response cycle."""

import logging
from typing import Optional

from ..constants import INVALID_IMAGE_FORMAT_MESSAGE, LOADING_MESSAGE, VALID_MIME_TYPES
from .message import SlackMessage

logger = logging.getLogger("catgpt.slack.messenger")


class PlatformMessenger:
    """Posts into one channel through a post/edit sink (normally SlackClient)."""

    def __init__(self, sink, channel: str, allowed_mime_types: tuple[str, ...] = VALID_MIME_TYPES):
        self.sink = sink
        self.channel = channel
        self.allowed_mime_types = allowed_mime_types

    async def post(self, text: str, thread_ts: Optional[str] = None) -> str:
        return await self.sink.post_message(self.channel, text, thread_ts)

    async def post_placeholder(self, thread_ts: Optional[str] = None) -> str:
        """Post the loading indicator; its ts anchors every later edit."""
        ts = await self.post(LOADING_MESSAGE, thread_ts)
        logger.debug(f"Placeholder {ts} posted in {self.channel} (thread={thread_ts})")
        return ts

    async def edit(self, ts: str, text: str) -> None:
        # Never blank out a message
        if not text:
            return
        await self.sink.update_message(self.channel, ts, text)

    def first_unsupported_file(self, message: SlackMessage) -> Optional[str]:
        """Mime type of the first attachment outside the allow-list, if any."""
        for f in message.files:
            if f.mimetype not in self.allowed_mime_types:
                return f.mimetype
        return None

    async def validate_attachments(self, message: SlackMessage, ts: str) -> bool:
        """Check attachments against the allow-list.

        On the first unsupported type the placeholder is edited with the
        unsupported-format message and False is returned.
        """
        mimetype = self.first_unsupported_file(message)
        if mimetype is None:
            return True
        logger.info(f"Unsupported attachment type {mimetype} on {message.ts}")
        await self.edit(ts, INVALID_IMAGE_FORMAT_MESSAGE)
        return False
