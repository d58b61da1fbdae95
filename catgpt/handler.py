"""Request cycle orchestration.

One inbound Slack event → context resolution → query → streamed completion
→ live-edited reply. Every failure after the placeholder is posted ends with
the placeholder edited into a readable final state.
"""

import json
import logging
from dataclasses import dataclass
from typing import Mapping, Optional

from .config import CatGPTSettings
from .constants import NO_CONTEXT_MESSAGE
from .context import ContextLimits, drop_stale_files, resolve_context
from .errors import (
    CatGPTError,
    ErrorKind,
    FetchFailure,
    MissingChannel,
    NoContextResolved,
    classify_error,
    error_kind,
)
from .llm.completion import CompletionClient
from .llm.query import build_query
from .llm.stream import relay_stream
from .slack.api import SlackAPIError, SlackClient
from .slack.message import SlackMessage
from .slack.messenger import PlatformMessenger
from .slack.signature import verify_signature

logger = logging.getLogger("catgpt.handler")

RETRY_HEADER = "x-slack-retry-num"


@dataclass
class CycleResult:
    """Outcome of one event.

    replied: a placeholder was posted and brought to a final state.
    error: what went wrong, if anything (NO_CONTEXT_RESOLVED when no answer was owed).
    """

    replied: bool = False
    error: Optional[ErrorKind] = None
    text: str = ""


async def _finalize_error(messenger: PlatformMessenger, placeholder: str, e: Exception) -> None:
    message = classify_error(e)
    if not message:
        return
    try:
        await messenger.edit(placeholder, message)
    except SlackAPIError as edit_error:
        logger.error(f"Could not edit placeholder {placeholder} with error message: {edit_error}")


async def handle_event(
    trigger: SlackMessage,
    settings: CatGPTSettings,
    slack: SlackClient,
    completion: CompletionClient,
) -> CycleResult:
    """Run one response cycle for ``trigger``.

    Raises:
        MissingChannel: If the trigger has no channel (nothing can be posted).
        SlackAPIError: If the placeholder itself cannot be posted.
    """
    bot_id = settings.bot_member_id
    if not trigger.reply_required(bot_id):
        logger.debug(f"No reply required for {trigger}")
        return CycleResult()

    channel = trigger.channel
    if not channel:
        raise MissingChannel(f"Missing channel. trigger_message: {trigger}")

    thread_ts = trigger.new_reply_thread_ts()
    messenger = PlatformMessenger(slack, channel)
    logger.info(f"Handling {trigger}")

    try:
        contexts = await resolve_context(trigger, bot_id, slack, ContextLimits.from_settings(settings))
    except FetchFailure as e:
        logger.error(f"Context fetch failed for {trigger.ts}: {e}")
        await messenger.post(classify_error(e), thread_ts)
        return CycleResult(replied=True, error=e.kind)

    if not contexts:
        logger.info(f"No context resolved for {trigger.ts}; not asking upstream")
        if settings.notify_empty_context:
            await messenger.post(NO_CONTEXT_MESSAGE, thread_ts)
        return CycleResult(error=ErrorKind.NO_CONTEXT_RESOLVED)

    placeholder = await messenger.post_placeholder(thread_ts)

    try:
        if not await messenger.validate_attachments(trigger, placeholder):
            return CycleResult(replied=True, error=ErrorKind.INVALID_ATTACHMENT_FORMAT)

        contexts = drop_stale_files(contexts, trigger.ts)
        units = await build_query(contexts, bot_id, settings.system_prompt, slack)
        if len(units) < 2:
            raise NoContextResolved("Query holds only the system prompt")

        async def edit(text: str) -> None:
            await messenger.edit(placeholder, text)

        async with completion.stream(units) as chunks:
            text = await relay_stream(chunks, edit, interval=settings.update_interval_ms / 1000)
    except CatGPTError as e:
        logger.error(f"Cycle for {trigger.ts} failed ({e.kind.value}): {e}")
        await _finalize_error(messenger, placeholder, e)
        return CycleResult(replied=True, error=e.kind)
    except Exception as e:
        logger.error(f"Unexpected error in cycle for {trigger.ts}: {e}", exc_info=True)
        await _finalize_error(messenger, placeholder, e)
        return CycleResult(replied=True, error=error_kind(e))

    logger.info(f"Answered {trigger.ts} with {len(text)} chars")
    return CycleResult(replied=True, text=text)


async def handle_request(
    headers: Mapping[str, str],
    body: str,
    settings: CatGPTSettings,
    slack: Optional[SlackClient] = None,
    completion: Optional[CompletionClient] = None,
    verify: bool = True,
) -> str:
    """Handle one raw Slack Events API request and return the response body.

    "NG" for a bad signature or unparsable payload, the challenge for
    url_verification, "OK" otherwise (including after any cycle failure).
    """
    if verify and not verify_signature(headers, body, settings.slack_signing_secret):
        logger.warning("Rejected request with invalid signature")
        return "NG"

    if any(key.lower() == RETRY_HEADER for key in headers):
        logger.info("Ignoring Slack retry delivery")
        return "OK"

    try:
        envelope = json.loads(body)
    except json.JSONDecodeError:
        logger.warning(f"Request body is not JSON: {body[:200]}")
        return "NG"
    if not isinstance(envelope, dict):
        return "NG"

    if envelope.get("challenge") is not None:
        return str(envelope["challenge"])

    if envelope.get("type") != "event_callback":
        return "OK"

    try:
        trigger = SlackMessage.from_event(envelope.get("event"))
    except (KeyError, TypeError) as e:
        logger.warning(f"Malformed event payload: {e!r}")
        return "NG"

    slack = slack or SlackClient.from_settings(settings)
    completion = completion or CompletionClient.from_settings(settings)
    try:
        await handle_event(trigger, settings, slack, completion)
    except MissingChannel as e:
        logger.error(str(e))
    except SlackAPIError as e:
        logger.error(f"Slack API failure, cycle aborted: {e}")
    return "OK"
