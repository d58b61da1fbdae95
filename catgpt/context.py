"""Conversation context resolution.

Decides which Slack messages form the conversation to send upstream for a
given trigger message:

- DM: the recent DM history (or the DM thread) up to the past limit
- Channel, top level: only the trigger, and only when it mentions the bot
- Channel thread: the thread, when the bot is mentioned or already took part
- Anything else: nothing (no answer is owed)

An empty result is a normal outcome, not an error.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass

from .errors import MissingChannel
from .slack.message import SlackMessage

logger = logging.getLogger("catgpt.context")


class MessageFetcher(ABC):
    """Source of Slack history. Results are ordered oldest → newest."""

    @abstractmethod
    async def get_history(self, channel: str, limit: int) -> list[SlackMessage]:
        """Most recent ``limit`` messages of a channel."""
        ...

    @abstractmethod
    async def get_replies(self, channel: str, thread_ts: str, limit: int) -> list[SlackMessage]:
        """Up to ``limit`` messages of a thread, parent included."""
        ...


@dataclass(frozen=True)
class ContextLimits:
    default_past: int = 6
    max_past: int = 10

    @classmethod
    def from_settings(cls, settings) -> "ContextLimits":
        return cls(default_past=settings.default_past_num, max_past=settings.max_past_num)


async def resolve_context(
    trigger: SlackMessage,
    bot_id: str,
    fetcher: MessageFetcher,
    limits: ContextLimits,
) -> list[SlackMessage]:
    """Return the messages to send upstream for ``trigger`` (possibly empty).

    Raises:
        MissingChannel: If the trigger carries no channel id.
        FetchFailure: If the fetcher fails (propagated, never retried).
    """
    limit = trigger.get_past_limit(limits.default_past, limits.max_past)
    if limit < 2:
        return [trigger]

    channel = trigger.channel
    if not channel:
        raise MissingChannel(f"Missing channel. trigger_message: {trigger}")

    if trigger.is_direct_message():
        if trigger.is_in_thread():
            return await fetcher.get_replies(channel, trigger.thread_ts, limit)
        return await fetcher.get_history(channel, limit)

    if not trigger.is_in_thread():
        if trigger.is_mention_to(bot_id):
            return [trigger]
        logger.debug(f"Top-level message {trigger.ts} not addressed to the bot")
        return []

    # Thread reply addressed to someone else
    if trigger.is_mention_to_other(bot_id):
        logger.debug(f"Thread reply {trigger.ts} mentions another user")
        return []

    replies = await fetcher.get_replies(channel, trigger.thread_ts, limit)
    if trigger.is_mention_to(bot_id) or any(m.is_from(bot_id) for m in replies):
        return replies

    logger.debug(f"Bot not mentioned and not a participant in thread {trigger.thread_ts}")
    return []


def drop_stale_files(messages: list[SlackMessage], latest_ts: str) -> list[SlackMessage]:
    """Clear attachments on every message except the one with ``latest_ts``."""
    return [m if m.ts == latest_ts or not m.files else m.without_files() for m in messages]
