"""Retry policy for uploads and catalog reads.

This module provides:
- classify_failure: Decide whether a failed upload response is a transient
  block (retry) or a permanent rejection (stop)
- retry_delay: Backoff delay before a given retry
- retry_with_backoff: Simple exponential backoff retry for catalog reads
"""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Callable
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from autoupload.client.api import UploadResponse

logger = logging.getLogger(__name__)

# Upload retry configuration
MAX_UPLOAD_ATTEMPTS = 3
RETRY_DELAYS: tuple[float, ...] = (1.0, 2.0, 4.0)  # seconds, between attempts

# Catalog read retry configuration
DEFAULT_MAX_RETRIES = 2
DEFAULT_INITIAL_BACKOFF = 1.0  # seconds
DEFAULT_MAX_BACKOFF = 8.0  # seconds
DEFAULT_BACKOFF_MULTIPLIER = 2.0

# Lowercase markers of an edge-network block page
BLOCK_KEYWORDS = (
    "sorry, you have been blocked",
    "access denied",
    "cloudflare",
    "blocked",
    "captcha",
    "attention required",
)

HTML_KINDS = frozenset({"text/html", "application/xhtml+xml"})

# Keys of a structured error from the service itself
ERROR_KEYS = ("error", "message", "code", "detail", "msg")


class FailureKind(Enum):
    """Classification of a failed upload response."""

    TRANSIENT = "transient"
    PERMANENT = "permanent"
    INCONCLUSIVE = "inconclusive"


def _is_json_kind(kind: str | None) -> bool:
    return kind is not None and (kind == "application/json" or kind.endswith("+json"))


def _structured_error(body: str | None) -> bool:
    if not body:
        return False
    try:
        data = json.loads(body)
    except ValueError:
        return False
    return isinstance(data, dict) and any(key in data for key in ERROR_KEYS)


def _has_block_keyword(body: str | None) -> bool:
    if not body:
        return False
    lowered = body.lower()
    return any(keyword in lowered for keyword in BLOCK_KEYWORDS)


def classify_failure(response: UploadResponse) -> FailureKind:
    """Classify a failed upload response.

    - An HTML page where JSON was expected is an edge-network block: TRANSIENT.
    - A well-formed JSON error from the service: PERMANENT.
    - Otherwise the body is searched for block keywords: TRANSIENT if found.
    - Anything else is INCONCLUSIVE.

    Args:
        response: Failed upload response.

    Returns:
        FailureKind.
    """
    kind = response.content_kind
    if kind in HTML_KINDS:
        return FailureKind.TRANSIENT
    if _is_json_kind(kind) and _structured_error(response.error_body):
        return FailureKind.PERMANENT
    if _has_block_keyword(response.error_body):
        return FailureKind.TRANSIENT
    return FailureKind.INCONCLUSIVE


def retry_delay(attempt: int, delays: tuple[float, ...] = RETRY_DELAYS) -> float:
    """Delay to wait after failed attempt number ``attempt`` (1-based)."""
    if not delays:
        return 0.0
    index = min(max(attempt, 1), len(delays)) - 1
    return delays[index]


def retry_with_backoff(
    func: Callable[[], Any],
    max_retries: int = DEFAULT_MAX_RETRIES,
    initial_backoff: float = DEFAULT_INITIAL_BACKOFF,
    max_backoff: float = DEFAULT_MAX_BACKOFF,
    backoff_multiplier: float = DEFAULT_BACKOFF_MULTIPLIER,
    retryable_exceptions: tuple[type[Exception], ...] = (Exception,),
) -> Any:
    """Execute a function with exponential backoff retry.

    Args:
        func: Function to execute.
        max_retries: Maximum number of retry attempts.
        initial_backoff: Initial backoff time in seconds.
        max_backoff: Maximum backoff time in seconds.
        backoff_multiplier: Multiplier for each retry.
        retryable_exceptions: Tuple of exception types to retry on.

    Returns:
        Result of the function.

    Raises:
        The last exception if all retries fail.
    """
    backoff = initial_backoff

    for attempt in range(max_retries + 1):
        try:
            return func()
        except retryable_exceptions as e:
            if attempt == max_retries:
                logger.error(f"All {max_retries} retries failed: {e}")
                raise

            logger.warning(
                f"Attempt {attempt + 1}/{max_retries + 1} failed: {e}. "
                f"Retrying in {backoff:.1f}s..."
            )
            time.sleep(backoff)
            backoff = min(backoff * backoff_multiplier, max_backoff)

    raise RuntimeError("Unexpected retry loop exit")
