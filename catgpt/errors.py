"""Error taxonomy for one request cycle and its user-facing messages."""

from enum import Enum
from typing import Optional

from .constants import (
    ERROR_MESSAGE,
    FETCH_FAILURE_MESSAGE,
    INVALID_IMAGE_FORMAT_MESSAGE,
    NO_CONTEXT_MESSAGE,
    TRANSPORT_ERROR_MESSAGE,
    USAGE_LIMIT_MESSAGE,
)


class ErrorKind(Enum):
    NO_CONTEXT_RESOLVED = "no_context_resolved"
    USAGE_LIMIT_EXCEEDED = "usage_limit_exceeded"
    INVALID_ATTACHMENT_FORMAT = "invalid_attachment_format"
    UPSTREAM_ERROR = "upstream_error"
    TRANSPORT_ERROR = "transport_error"
    MISSING_CHANNEL = "missing_channel"
    FETCH_FAILURE = "fetch_failure"
    INTERNAL = "internal"


# ════════════════════════════════════════════════════════
# Exception hierarchy. The handler matches on .kind,
# never on message strings.
# ════════════════════════════════════════════════════════

class CatGPTError(Exception):
    """Base class for all errors raised inside a request cycle."""
    kind = ErrorKind.INTERNAL


class NoContextResolved(CatGPTError):
    """The trigger resolved to an empty conversation."""
    kind = ErrorKind.NO_CONTEXT_RESOLVED


class UsageLimitExceeded(CatGPTError):
    """429 from the completion endpoint."""
    kind = ErrorKind.USAGE_LIMIT_EXCEEDED


class InvalidAttachmentFormat(CatGPTError):
    """Attachment rejected, locally by the mime allow-list or upstream with a 400."""
    kind = ErrorKind.INVALID_ATTACHMENT_FORMAT


class UpstreamError(CatGPTError):
    """Any other non-200 response from the completion endpoint."""
    kind = ErrorKind.UPSTREAM_ERROR

    def __init__(self, status_code: int, body: str = ""):
        super().__init__(f"Completion endpoint returned HTTP {status_code}: {body[:200]}")
        self.status_code = status_code
        self.body = body


class TransportError(CatGPTError):
    """Network failure while talking to, or reading the stream of, the completion endpoint.

    ``partial_text`` holds whatever text was accumulated before the failure,
    so the caller can keep it visible instead of overwriting it.
    """
    kind = ErrorKind.TRANSPORT_ERROR

    def __init__(self, message: str, partial_text: str = ""):
        super().__init__(message)
        self.partial_text = partial_text


class MissingChannel(CatGPTError):
    """Trigger message without a channel id; nothing can be posted."""
    kind = ErrorKind.MISSING_CHANNEL


class FetchFailure(CatGPTError):
    """History, replies or attachment download failed."""
    kind = ErrorKind.FETCH_FAILURE


def error_kind(e: Exception) -> ErrorKind:
    """Return the ErrorKind of any exception (INTERNAL for foreign ones)."""
    if isinstance(e, CatGPTError):
        return e.kind
    return ErrorKind.INTERNAL


def classify_error(e: Exception) -> Optional[str]:
    """Map an exception to the fixed message posted into Slack.

    Returns None for MISSING_CHANNEL, which has nowhere to be posted.
    """
    kind = error_kind(e)
    if kind is ErrorKind.NO_CONTEXT_RESOLVED:
        return NO_CONTEXT_MESSAGE
    if kind is ErrorKind.USAGE_LIMIT_EXCEEDED:
        return USAGE_LIMIT_MESSAGE
    if kind is ErrorKind.INVALID_ATTACHMENT_FORMAT:
        return INVALID_IMAGE_FORMAT_MESSAGE
    if kind is ErrorKind.TRANSPORT_ERROR:
        partial = getattr(e, "partial_text", "")
        if partial:
            return f"{partial}\n\n{TRANSPORT_ERROR_MESSAGE}"
        return TRANSPORT_ERROR_MESSAGE
    if kind is ErrorKind.FETCH_FAILURE:
        return FETCH_FAILURE_MESSAGE
    if kind is ErrorKind.MISSING_CHANNEL:
        return None
    # UPSTREAM_ERROR and INTERNAL
    return ERROR_MESSAGE
