"""Slack Web API client.

Posting and editing messages, reading channel history and thread replies,
and downloading private file URLs. Implements the MessageFetcher and
attachment-fetcher interfaces used by context resolution and query building.
"""

import logging
from contextlib import asynccontextmanager
from decimal import Decimal
from typing import Any, AsyncIterator, Optional

import httpx

from ..constants import SLACK_API_BASE
from ..context import MessageFetcher
from ..errors import FetchFailure
from .message import SlackMessage

logger = logging.getLogger("catgpt.slack.api")


class SlackAPIError(Exception):
    """Error communicating with the Slack Web API."""

    def __init__(self, message: str, error_code: Optional[str] = None):
        super().__init__(message)
        self.error_code = error_code


def order_by_ts(messages: list[SlackMessage]) -> list[SlackMessage]:
    """Sort messages oldest → newest by numeric ts."""
    return sorted(messages, key=lambda m: Decimal(m.ts))


class SlackClient(MessageFetcher):
    """Async client for the Slack Web API.

    Args:
        bot_token: Bot User OAuth Token (xoxb-...).
        base_url: API base, overridable for tests.
        http_client: Optional shared httpx.AsyncClient. A short-lived client
            is opened per call when omitted.
    """

    def __init__(
        self,
        bot_token: str,
        base_url: str = SLACK_API_BASE,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = 30.0,
    ):
        self.bot_token = bot_token
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._http_client = http_client

    @classmethod
    def from_settings(cls, settings, http_client: Optional[httpx.AsyncClient] = None) -> "SlackClient":
        return cls(bot_token=settings.slack_bot_token, http_client=http_client)

    def _get_headers(self) -> dict:
        return {"Authorization": f"Bearer {self.bot_token}"}

    @asynccontextmanager
    async def _client(self) -> AsyncIterator[httpx.AsyncClient]:
        if self._http_client is not None:
            yield self._http_client
            return
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            yield client

    async def _request(
        self,
        http_method: str,
        method: str,
        *,
        params: Optional[dict[str, Any]] = None,
        data: Optional[dict[str, Any]] = None,
    ) -> dict[str, Any]:
        """Call a Web API method and return its JSON body.

        Raises:
            SlackAPIError: On transport errors, HTTP errors, or ``ok: false``.
        """
        url = f"{self.base_url}/{method}"
        try:
            async with self._client() as client:
                resp = await client.request(
                    http_method, url, params=params, data=data, headers=self._get_headers(),
                )
        except httpx.TransportError as e:
            raise SlackAPIError(f"{method} -> Connection failed: {e!r}") from e

        if resp.status_code >= 400:
            raise SlackAPIError(f"{method} -> HTTP {resp.status_code}: {resp.text[:200]}")

        try:
            body = resp.json()
        except ValueError as e:
            raise SlackAPIError(f"{method} -> Invalid JSON: {resp.text[:200]}") from e

        if not body.get("ok"):
            error = body.get("error", "unknown_error")
            raise SlackAPIError(f"{method} -> Slack error: {error}", error_code=error)
        return body

    # ── Post / edit ───────────────────────────────────────

    async def post_message(self, channel: str, text: str, thread_ts: Optional[str] = None) -> str:
        """Post a message and return its ts."""
        form = {"channel": channel, "text": text}
        if thread_ts:
            form["thread_ts"] = thread_ts
        body = await self._request("POST", "chat.postMessage", data=form)
        return body["ts"]

    async def update_message(self, channel: str, ts: str, text: str) -> None:
        await self._request("POST", "chat.update", data={"channel": channel, "ts": ts, "text": text})

    # ── Fetch ─────────────────────────────────────────────

    async def _fetch_messages(self, method: str, params: dict[str, Any]) -> list[SlackMessage]:
        try:
            body = await self._request("GET", method, params=params)
            messages = [SlackMessage.from_event(m) for m in body.get("messages", [])]
        except (SlackAPIError, KeyError, TypeError) as e:
            logger.error(f"{method} failed for channel {params.get('channel')}: {e}")
            raise FetchFailure(f"{method} failed: {e}") from e
        return order_by_ts(messages)

    async def get_history(self, channel: str, limit: int) -> list[SlackMessage]:
        return await self._fetch_messages(
            "conversations.history", {"channel": channel, "limit": limit},
        )

    async def get_replies(self, channel: str, thread_ts: str, limit: int) -> list[SlackMessage]:
        return await self._fetch_messages(
            "conversations.replies", {"channel": channel, "ts": thread_ts, "limit": limit},
        )

    async def download_file(self, url: str) -> bytes:
        """Fetch a private file URL with the bot token."""
        try:
            async with self._client() as client:
                resp = await client.get(url, headers=self._get_headers(), follow_redirects=True)
                resp.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"File download failed: {url}: {e}")
            raise FetchFailure(f"File download failed: {e}") from e
        return resp.content
