"""Chat completion query construction.

Turns resolved Slack context into role-tagged messages. Content is either a
plain string or a list of typed parts (text + image_url); pydantic renders
whichever variant is set, so no custom serializer is needed.
"""

import asyncio
import base64
import logging
from decimal import Decimal
from enum import Enum
from typing import Literal, Optional, Protocol, Union

from pydantic import BaseModel

from ..slack.message import SharedFile, SlackMessage

logger = logging.getLogger("catgpt.llm.query")


class Role(str, Enum):
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


class ImageURL(BaseModel):
    url: str


class TextPart(BaseModel):
    type: Literal["text"] = "text"
    text: str


class ImagePart(BaseModel):
    type: Literal["image_url"] = "image_url"
    image_url: ImageURL


ContentPart = Union[TextPart, ImagePart]


class QueryUnit(BaseModel):
    role: Role
    content: Union[str, list[ContentPart]]


class CompletionRequest(BaseModel):
    messages: list[QueryUnit]
    model: str
    temperature: float
    stream: bool = True


class AttachmentFetcher(Protocol):
    async def download_file(self, url: str) -> bytes: ...


def _ts_key(message: SlackMessage) -> Decimal:
    return Decimal(message.ts)


def to_data_url(mimetype: str, raw: bytes) -> str:
    return f"data:{mimetype};base64,{base64.b64encode(raw).decode('ascii')}"


async def _image_parts(files: tuple[SharedFile, ...], fetcher: AttachmentFetcher) -> list[ImagePart]:
    # Downloads run concurrently; gather keeps attachment order
    tasks = [asyncio.ensure_future(fetcher.download_file(f.url_private)) for f in files]
    try:
        blobs = await asyncio.gather(*tasks)
    except BaseException:
        # One failure ends the query; stop the remaining downloads
        for task in tasks:
            task.cancel()
        raise
    return [
        ImagePart(image_url=ImageURL(url=to_data_url(f.mimetype, raw)))
        for f, raw in zip(files, blobs)
    ]


async def _to_unit(message: SlackMessage, bot_id: str, fetcher: Optional[AttachmentFetcher]) -> QueryUnit:
    role = Role.ASSISTANT if message.is_from(bot_id) else Role.USER
    text = message.pure_text()
    if not message.files:
        return QueryUnit(role=role, content=text)
    if fetcher is None:
        raise ValueError(f"Message {message.ts} has attachments but no fetcher was given")
    parts: list[ContentPart] = [TextPart(text=text)]
    parts.extend(await _image_parts(message.files, fetcher))
    return QueryUnit(role=role, content=parts)


async def build_query(
    messages: list[SlackMessage],
    bot_id: str,
    system_prompt: str,
    fetcher: Optional[AttachmentFetcher] = None,
) -> list[QueryUnit]:
    """Build the message list for a completion request.

    The system unit always comes first, then ``messages`` oldest → newest
    (numeric ts order). Messages sent by ``bot_id`` become assistant turns.
    A result of length 1 means there is nothing to ask.

    Raises:
        FetchFailure: If an attachment download fails.
    """
    units = [QueryUnit(role=Role.SYSTEM, content=system_prompt)]
    for message in sorted(messages, key=_ts_key):
        units.append(await _to_unit(message, bot_id, fetcher))
    logger.debug(f"Built query: {len(units)} units")
    return units


def build_request_body(units: list[QueryUnit], model: str, temperature: float) -> dict:
    """JSON body for /chat/completions with streaming enabled."""
    return CompletionRequest(messages=units, model=model, temperature=temperature).model_dump(mode="json")
