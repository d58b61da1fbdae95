"""Slack request signature verification.

https://api.slack.com/authentication/verifying-requests-from-slack
"""

import hashlib
import hmac
import logging
from typing import Mapping

import httpx

logger = logging.getLogger("catgpt.slack.signature")

SIGNATURE_HEADER = "X-Slack-Signature"
TIMESTAMP_HEADER = "X-Slack-Request-Timestamp"
_VERSION = "v0"


def compute_signature(timestamp: str, body: str, signing_secret: str) -> str:
    """``v0=`` + hex HMAC-SHA256 of ``v0:{timestamp}:{body}``."""
    basestring = f"{_VERSION}:{timestamp}:{body}"
    digest = hmac.new(signing_secret.encode("utf-8"), basestring.encode("utf-8"), hashlib.sha256)
    return f"{_VERSION}={digest.hexdigest()}"


def verify_signature(headers: Mapping[str, str], body: str, signing_secret: str) -> bool:
    """Check the request against the signing secret. Header lookup is case-insensitive."""
    lookup = httpx.Headers(dict(headers))
    signature = lookup.get(SIGNATURE_HEADER)
    timestamp = lookup.get(TIMESTAMP_HEADER)
    if not signature or not timestamp:
        logger.warning("Request without Slack signature headers")
        return False
    if not signing_secret:
        logger.error("Signing secret not configured; rejecting request")
        return False

    expected = compute_signature(timestamp, body, signing_secret)
    return hmac.compare_digest(expected, signature)
