"""Pytest configuration and shared fixtures."""

import json

import pytest

from catgpt.config import CatGPTSettings
from catgpt.slack.message import SharedFile, SlackMessage

BOT_ID = "UBOT0001"
USER_ID = "UHUMAN001"
OTHER_ID = "UOTHER001"


def make_message(**overrides) -> SlackMessage:
    """SlackMessage with sensible defaults (a top-level channel message)."""
    fields = {
        "text": "hello",
        "user": USER_ID,
        "ts": "1700000000.000100",
        "channel": "C123",
        "channel_type": "channel",
    }
    fields.update(overrides)
    return SlackMessage(**fields)


def image(mimetype: str = "image/png", url: str = "https://files.slack.com/img.png") -> SharedFile:
    return SharedFile(mimetype=mimetype, url_private=url, filetype=mimetype.split("/")[-1])


def sse(*contents: str, done: bool = True) -> bytes:
    """Encode content deltas as a completion stream body."""
    lines = [
        "data: " + json.dumps({"choices": [{"index": 0, "delta": {"content": c}}]}, ensure_ascii=False)
        for c in contents
    ]
    if done:
        lines.append("data: [DONE]")
    return ("\n\n".join(lines) + "\n\n").encode("utf-8")


class FakeClock:
    """Monotonic clock advanced by hand."""

    def __init__(self, start: float = 100.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


async def achunks(*chunks: bytes):
    for chunk in chunks:
        yield chunk


@pytest.fixture
def settings():
    return CatGPTSettings(
        _env_file=None,
        slack_bot_token="xoxb-test",
        slack_signing_secret="signing-secret",
        bot_member_id=BOT_ID,
        openai_api_key="sk-test",
        update_interval_ms=1000,
    )
