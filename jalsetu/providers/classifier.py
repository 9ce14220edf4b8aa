"""Classification of upstream provider failures."""

from enum import Enum
from typing import Optional


class ProviderErrorKind(Enum):
    """How a provider failure should be handled."""
    RATE_LIMIT = "rate_limit"
    AUTH_FAILURE = "auth_failure"
    TRANSIENT = "transient"
    UNKNOWN = "unknown"


RATE_LIMIT_MARKERS = ("quota", "rate limit", "too many requests", "429")

# Substring match; "api" also catches "invalid api key" style messages.
AUTH_MARKERS = ("auth", "key", "api")


def classify_error(
    status_code: Optional[int],
    message: Optional[str],
    transport_error: bool = False,
) -> ProviderErrorKind:
    """Classify a failed provider call.

    A recognised HTTP status wins over the message text. Timeouts and
    connection failures are transient. Otherwise the message is searched
    case-insensitively for rate-limit and then auth markers.

    Args:
        status_code: HTTP status of the upstream response, if any
        message: Error text from the response body or the client library
        transport_error: True when no response was received at all

    Returns:
        The error kind
    """
    if status_code == 429:
        return ProviderErrorKind.RATE_LIMIT
    if status_code in (401, 403):
        return ProviderErrorKind.AUTH_FAILURE
    if status_code is not None and 500 <= status_code < 600:
        return ProviderErrorKind.TRANSIENT

    # No response means no upstream wording to inspect.
    if transport_error:
        return ProviderErrorKind.TRANSIENT

    text = (message or "").lower()
    if any(marker in text for marker in RATE_LIMIT_MARKERS):
        return ProviderErrorKind.RATE_LIMIT
    if any(marker in text for marker in AUTH_MARKERS):
        return ProviderErrorKind.AUTH_FAILURE

    return ProviderErrorKind.UNKNOWN
