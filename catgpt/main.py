"""CatGPT: logging setup and programmatic entry point."""

import logging
from typing import Mapping, Optional

from .config import CatGPTSettings, load_settings
from .handler import handle_request

_log_format = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

logger = logging.getLogger("catgpt")


def setup_logging(level: str = "INFO") -> None:
    """Configure root logging once for the process."""
    logging.basicConfig(level=logging.INFO, format=_log_format)
    logger.setLevel(level.upper())
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


async def handle(headers: Mapping[str, str], body: str, settings: Optional[CatGPTSettings] = None) -> str:
    """Entry point for a webhook host: raw headers and body in, response body out."""
    settings = settings or load_settings()
    setup_logging(settings.log_level)
    return await handle_request(headers, body, settings)
