"""Streamed completion reassembly and live message editing.

The completion endpoint sends newline-delimited frames:

    data: {"choices":[{"delta":{"content":"Hel"}}]}
    data: {"choices":[{"delta":{"content":"lo"}}]}
    data: [DONE]

Network reads cut these anywhere, including inside a frame or inside a
multi-byte UTF-8 character. StreamReassembler keeps two carry-over buffers
(raw bytes that do not decode yet, and text of a frame that does not parse
yet) so that any chunking of the same stream yields the same text.

relay_stream drives a reassembler over a live byte stream and pushes the
accumulated text to an edit callback at most once per interval.
"""

import json
import logging
import time
from dataclasses import dataclass
from typing import AsyncIterable, Awaitable, Callable, Optional

import httpx

from ..constants import EMPTY_RESPONSE_MESSAGE, STREAM_DATA_PREFIX, STREAM_DONE_MARKER
from ..errors import TransportError

logger = logging.getLogger("catgpt.llm.stream")


def extract_fragment(frame: dict) -> str:
    """Incremental text of one parsed frame ('' when there is none)."""
    choices = frame.get("choices") if isinstance(frame, dict) else None
    if not choices:
        return ""
    for choice in choices:
        delta = choice.get("delta") if isinstance(choice, dict) else None
        if isinstance(delta, dict):
            return delta.get("content") or ""
    return ""


class StreamReassembler:
    """Incremental decoder for ``data: `` prefixed, newline-delimited frames."""

    def __init__(self):
        self.done = False
        # Bytes of an unterminated line that end mid-character
        self._partial_bytes = b""
        # Text of an unterminated line that could not be parsed yet
        self._partial_str = ""

    @property
    def pending(self) -> bool:
        return bool(self._partial_bytes or self._partial_str)

    def feed(self, chunk: bytes) -> list[str]:
        """Consume one network chunk and return the text fragments it completed."""
        fragments: list[str] = []
        if self.done:
            return fragments

        segments = chunk.split(b"\n")
        last = len(segments) - 1
        for index, segment in enumerate(segments):
            terminated = index < last
            text = self._decode(segment, terminated)
            if text is None:
                continue
            fragment = self._consume_line(text, terminated)
            if self.done:
                break
            if fragment:
                fragments.append(fragment)
        return fragments

    def _decode(self, segment: bytes, terminated: bool) -> Optional[str]:
        raw = self._partial_bytes + segment
        try:
            text = raw.decode("utf-8")
        except UnicodeDecodeError:
            if not terminated:
                # Character cut by the chunk boundary; wait for the rest
                self._partial_bytes = raw
                return None
            logger.warning(f"Undecodable stream line ({len(raw)} bytes), replacing invalid bytes")
            text = raw.decode("utf-8", errors="replace")
        self._partial_bytes = b""
        return text

    def _consume_line(self, text: str, terminated: bool) -> str:
        line = self._partial_str + text
        self._partial_str = ""

        if not line.startswith(STREAM_DATA_PREFIX):
            if not terminated:
                # May be the first bytes of a prefix cut by the chunk boundary
                self._partial_str = line
            elif line.strip():
                logger.debug(f"Ignoring non-data line: {line[:100]}")
            return ""

        payload = line[len(STREAM_DATA_PREFIX):]
        if payload.strip() == STREAM_DONE_MARKER:
            self.done = True
            return ""

        try:
            frame = json.loads(payload)
        except json.JSONDecodeError:
            if terminated:
                # A newline-terminated line can never complete
                logger.warning(f"Dropping unparsable frame: {line[:200]}")
            else:
                self._partial_str = line
            return ""
        return extract_fragment(frame)

    def finish(self) -> None:
        """Mark end of input; an incomplete trailing frame is discarded."""
        if self.pending:
            logger.warning(
                f"Stream ended with an incomplete frame: "
                f"{(self._partial_str or self._partial_bytes.decode('utf-8', errors='replace'))[:200]}"
            )
        self._partial_bytes = b""
        self._partial_str = ""
        self.done = True


@dataclass
class StreamState:
    """Accumulated text and edit bookkeeping for one streamed response."""

    started_at: float
    text: str = ""
    last_posted: str = ""
    last_post_at: Optional[float] = None

    def due(self, now: float, interval: float) -> bool:
        """True when the text changed and ``interval`` has passed since the last edit."""
        if self.text == self.last_posted:
            return False
        since = self.last_post_at if self.last_post_at is not None else self.started_at
        return now - since >= interval


EditCallback = Callable[[str], Awaitable[None]]


async def relay_stream(
    chunks: AsyncIterable[bytes],
    edit: EditCallback,
    interval: float = 1.0,
    clock: Callable[[], float] = time.monotonic,
) -> str:
    """Feed ``chunks`` through a reassembler and live-edit the placeholder.

    Edits happen when the text changed and ``interval`` seconds passed since
    the previous edit (or since the stream started). At the end the full text
    is posted if it differs from what was last posted; an empty answer posts
    EMPTY_RESPONSE_MESSAGE instead.

    Returns:
        The full accumulated text ('' if the model returned nothing).

    Raises:
        TransportError: If reading the stream fails. Already posted text is
            left as is; ``partial_text`` carries what was accumulated.
    """
    reassembler = StreamReassembler()
    state = StreamState(started_at=clock())

    try:
        async for chunk in chunks:
            for fragment in reassembler.feed(chunk):
                state.text += fragment
            if state.due(clock(), interval):
                await edit(state.text)
                state.last_posted = state.text
                state.last_post_at = clock()
            if reassembler.done:
                break
    except httpx.TransportError as e:
        logger.error(f"Stream read failed after {len(state.text)} chars: {e!r}")
        raise TransportError(f"Reading stream failed: {e!r}", partial_text=state.text) from e

    reassembler.finish()

    if not state.text:
        logger.warning("Completion stream produced no content")
        await edit(EMPTY_RESPONSE_MESSAGE)
    elif state.text != state.last_posted:
        await edit(state.text)
        state.last_posted = state.text
    return state.text
