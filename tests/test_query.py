"""Tests for completion query construction."""

import asyncio
import base64
from unittest.mock import AsyncMock

import pytest

from catgpt.errors import FetchFailure
from catgpt.llm.query import (
    ImagePart,
    QueryUnit,
    Role,
    TextPart,
    build_query,
    build_request_body,
    to_data_url,
)
from conftest import BOT_ID, image, make_message

PROMPT = "You are a cat."


def make_file_fetcher(payloads: dict) -> AsyncMock:
    fetcher = AsyncMock()
    fetcher.download_file.side_effect = lambda url: payloads[url]
    return fetcher


class TestBuildQuery:

    @pytest.mark.asyncio
    async def test_system_unit_first(self):
        units = await build_query([make_message(text="hi")], BOT_ID, PROMPT)
        assert units[0] == QueryUnit(role=Role.SYSTEM, content=PROMPT)
        assert [u.role for u in units].count(Role.SYSTEM) == 1

    @pytest.mark.asyncio
    async def test_empty_context_yields_only_system(self):
        units = await build_query([], BOT_ID, PROMPT)
        assert len(units) == 1

    @pytest.mark.asyncio
    async def test_roles_and_pure_text(self):
        msgs = [
            make_message(ts="1.0", text=f"<@{BOT_ID}> past2 what is a cat?"),
            make_message(ts="2.0", user=BOT_ID, text="A small feline, meow."),
        ]
        units = await build_query(msgs, BOT_ID, PROMPT)

        assert units[1] == QueryUnit(role=Role.USER, content="what is a cat?")
        assert units[2] == QueryUnit(role=Role.ASSISTANT, content="A small feline, meow.")

    @pytest.mark.asyncio
    async def test_sorted_numerically_not_lexically(self):
        msgs = [
            make_message(ts="1700000010.000001", text="third"),
            make_message(ts="999999999.000000", text="first"),
            make_message(ts="1700000009.999999", text="second"),
        ]
        units = await build_query(msgs, BOT_ID, PROMPT)
        assert [u.content for u in units[1:]] == ["first", "second", "third"]

    @pytest.mark.asyncio
    async def test_attachments_become_image_parts_in_order(self):
        files = (
            image("image/png", "https://f/1.png"),
            image("image/jpeg", "https://f/2.jpg"),
        )
        msg = make_message(ts="1.0", text=f"<@{BOT_ID}> what is this?", files=files)
        fetcher = make_file_fetcher({"https://f/1.png": b"png-bytes", "https://f/2.jpg": b"jpg-bytes"})

        units = await build_query([msg], BOT_ID, PROMPT, fetcher)

        content = units[1].content
        assert content[0] == TextPart(text="what is this?")
        assert isinstance(content[1], ImagePart)
        assert content[1].image_url.url == "data:image/png;base64," + base64.b64encode(b"png-bytes").decode()
        assert content[2].image_url.url.startswith("data:image/jpeg;base64,")
        assert fetcher.download_file.await_count == 2

    @pytest.mark.asyncio
    async def test_attachment_failure_propagates(self):
        msg = make_message(files=(image(),))
        fetcher = AsyncMock()
        fetcher.download_file.side_effect = FetchFailure("403")

        with pytest.raises(FetchFailure):
            await build_query([msg], BOT_ID, PROMPT, fetcher)

    @pytest.mark.asyncio
    async def test_failed_download_cancels_the_others(self):
        cancelled = []
        never = asyncio.Event()

        class Fetcher:
            async def download_file(self, url: str) -> bytes:
                if url.endswith("slow.png"):
                    try:
                        await never.wait()
                    except asyncio.CancelledError:
                        cancelled.append(url)
                        raise
                raise FetchFailure(f"404 {url}")

        msg = make_message(files=(
            image(url="https://files.slack.com/slow.png"),
            image(url="https://files.slack.com/gone.png"),
        ))

        with pytest.raises(FetchFailure):
            await build_query([msg], BOT_ID, PROMPT, Fetcher())
        for _ in range(3):
            await asyncio.sleep(0)

        assert cancelled == ["https://files.slack.com/slow.png"]


class TestRequestBody:

    @pytest.mark.asyncio
    async def test_text_content_serializes_as_string(self):
        units = await build_query([make_message(text="hi")], BOT_ID, PROMPT)
        body = build_request_body(units, "gpt-4o", 0.2)

        assert body == {
            "messages": [
                {"role": "system", "content": PROMPT},
                {"role": "user", "content": "hi"},
            ],
            "model": "gpt-4o",
            "temperature": 0.2,
            "stream": True,
        }

    def test_parts_serialize_as_typed_objects(self):
        unit = QueryUnit(
            role=Role.USER,
            content=[TextPart(text="look"), ImagePart(image_url={"url": "data:image/png;base64,AA=="})],
        )
        body = build_request_body([unit], "gpt-4o", 0.5)

        assert body["messages"][0]["content"] == [
            {"type": "text", "text": "look"},
            {"type": "image_url", "image_url": {"url": "data:image/png;base64,AA=="}},
        ]


def test_to_data_url():
    assert to_data_url("image/gif", b"\x00\x01") == "data:image/gif;base64,AAE="
