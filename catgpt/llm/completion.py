"""Streaming chat completion client (OpenAI-compatible /chat/completions)."""

import logging
from contextlib import AsyncExitStack, asynccontextmanager
from typing import AsyncIterator, Optional

import httpx

from ..constants import INVALID_IMAGE_FORMAT_MARKER, OPENAI_API_BASE
from ..errors import (
    CatGPTError,
    InvalidAttachmentFormat,
    TransportError,
    UpstreamError,
    UsageLimitExceeded,
)
from .query import QueryUnit, build_request_body

logger = logging.getLogger("catgpt.llm.completion")


def classify_response(status_code: int, body: str) -> Optional[CatGPTError]:
    """Map a completion response status to an error, or None for 200."""
    if status_code == 200:
        return None
    if status_code == 429:
        return UsageLimitExceeded(f"Rate limited (429): {body[:200]}")
    if status_code == 400 and INVALID_IMAGE_FORMAT_MARKER in body:
        return InvalidAttachmentFormat(f"Upstream rejected an image: {body[:200]}")
    return UpstreamError(status_code, body)


class CompletionClient:
    """Sends one streamed completion request per call.

    Works with any OpenAI-compatible endpoint. Pass ``http_client`` to reuse
    a connection pool (or a mock transport in tests); otherwise a client is
    opened per request.
    """

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o",
        temperature: float = 0.2,
        base_url: str = OPENAI_API_BASE,
        timeout: float = 120.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_key = api_key
        self.model = model
        self.temperature = temperature
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._http_client = http_client

    @classmethod
    def from_settings(cls, settings, http_client: Optional[httpx.AsyncClient] = None) -> "CompletionClient":
        return cls(
            api_key=settings.openai_api_key,
            model=settings.gpt_model,
            temperature=settings.temperature,
            base_url=settings.openai_base_url,
            timeout=settings.request_timeout,
            http_client=http_client,
        )

    def _get_headers(self) -> dict:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    @asynccontextmanager
    async def stream(self, units: list[QueryUnit]) -> AsyncIterator[AsyncIterator[bytes]]:
        """Open a streamed completion and yield its raw byte chunks.

        Usage:
            async with client.stream(units) as chunks:
                async for chunk in chunks:
                    ...

        Raises:
            UsageLimitExceeded: On HTTP 429.
            InvalidAttachmentFormat: On HTTP 400 mentioning an invalid image.
            UpstreamError: On any other non-200 status.
            TransportError: If the endpoint cannot be reached.
        """
        body = build_request_body(units, self.model, self.temperature)
        logger.debug(f"Request: model={self.model}, messages={len(units)}")

        async with AsyncExitStack() as stack:
            client = self._http_client
            if client is None:
                client = await stack.enter_async_context(httpx.AsyncClient(timeout=self.timeout))
            try:
                resp = await stack.enter_async_context(
                    client.stream(
                        "POST",
                        f"{self.base_url}/chat/completions",
                        json=body,
                        headers=self._get_headers(),
                        timeout=httpx.Timeout(self.timeout, connect=10.0),
                    )
                )
                if resp.status_code != 200:
                    await resp.aread()
            except httpx.TransportError as e:
                raise TransportError(f"Completion request failed: {e!r}") from e

            if resp.status_code != 200:
                logger.error(f"Completion error {resp.status_code}: {resp.text[:300]}")
                raise classify_response(resp.status_code, resp.text)

            yield resp.aiter_bytes()
