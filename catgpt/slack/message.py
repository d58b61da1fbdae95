"""Slack message model and the predicates that decide how to answer it."""

import re
from dataclasses import dataclass, field, replace
from typing import Any, Optional

from ..constants import (
    DIRECT_MESSAGE_CHANNEL_TYPE,
    FILE_SHARE_SUBTYPE,
    MENTION_MARKER,
    MESSAGE_TYPE,
)

# Leading "<@U123> " (greedy: swallows a run of mentions)
_MENTION_RE = re.compile(r"^<.+> ")
# Leading "past10" directive asking for more history
_PAST_RE = re.compile(r"^past(\d+)")

# Largest directive value accepted; bigger captures count as unparsable
_MAX_DIRECTIVE = 2**31 - 1


@dataclass(frozen=True)
class SharedFile:
    """A file attached to a Slack message."""

    mimetype: str
    url_private: str
    filetype: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SharedFile":
        return cls(
            mimetype=data.get("mimetype", ""),
            url_private=data.get("url_private", ""),
            filetype=data.get("filetype", ""),
        )


@dataclass(frozen=True)
class SlackMessage:
    """A single Slack message, either the trigger event or fetched history."""

    text: str
    user: str
    ts: str
    type: str = MESSAGE_TYPE
    subtype: Optional[str] = None
    thread_ts: Optional[str] = None
    channel: Optional[str] = None
    channel_type: Optional[str] = None
    files: tuple[SharedFile, ...] = field(default_factory=tuple)

    @classmethod
    def from_event(cls, data: dict[str, Any]) -> "SlackMessage":
        """Build from a Slack event or conversations.* message payload.

        Raises:
            KeyError: If ``ts`` is missing.
            TypeError: If ``data`` is not a mapping.
        """
        if not isinstance(data, dict):
            raise TypeError(f"Expected a message object, got {type(data).__name__}")
        return cls(
            text=data.get("text") or "",
            user=data.get("user") or "",
            ts=data["ts"],
            type=data.get("type", MESSAGE_TYPE),
            subtype=data.get("subtype"),
            thread_ts=data.get("thread_ts"),
            channel=data.get("channel"),
            channel_type=data.get("channel_type"),
            files=tuple(SharedFile.from_dict(f) for f in data.get("files") or ()),
        )

    def without_files(self) -> "SlackMessage":
        return replace(self, files=())

    # ── Predicates ────────────────────────────────────────

    def is_mention_to(self, user_id: str) -> bool:
        return user_id in self.text

    def is_mention_to_other(self, bot_id: str) -> bool:
        """A mention that does not include the bot."""
        return MENTION_MARKER in self.text and not self.is_mention_to(bot_id)

    def is_in_thread(self) -> bool:
        return self.thread_ts is not None

    def is_direct_message(self) -> bool:
        return self.channel_type == DIRECT_MESSAGE_CHANNEL_TYPE

    def is_from(self, user_id: str) -> bool:
        return self.user == user_id

    def reply_required(self, bot_id: str) -> bool:
        """Plain (or file_share) user message not sent by the bot itself."""
        is_message_type = self.type == MESSAGE_TYPE
        is_plain_or_file_share = self.subtype is None or self.subtype == FILE_SHARE_SUBTYPE
        return is_message_type and is_plain_or_file_share and not self.is_from(bot_id)

    # ── Text handling ─────────────────────────────────────

    def _without_mention(self) -> str:
        return _MENTION_RE.sub("", self.text, count=1).strip()

    def pure_text(self) -> str:
        """Message body without the leading mention and pastN directive."""
        return _PAST_RE.sub("", self._without_mention(), count=1)

    def get_past_limit(self, default: int, max_past: int) -> int:
        """Number of messages to fetch, counting this message itself.

        A leading ``pastN`` directive (after any mention) overrides
        ``default``. Either value is clamped to ``[0, max_past]``.
        """
        past = default
        match = _PAST_RE.match(self._without_mention())
        if match:
            value = int(match.group(1))
            if value <= _MAX_DIRECTIVE:
                past = value
        return min(max(past, 0), max_past) + 1

    def new_reply_thread_ts(self) -> Optional[str]:
        """Where the answer goes: existing thread, top-level DM, or a new thread."""
        if self.is_in_thread():
            return self.thread_ts
        if self.is_direct_message():
            return None
        return self.ts

    def __str__(self) -> str:
        return (
            f"SlackMessage(ts={self.ts}, channel={self.channel}, "
            f"text={self.text[:80]!r}, files={len(self.files)})"
        )
