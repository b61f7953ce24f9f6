"""
chatfn Retry - Error classification and backoff policy for completion calls

Classification is table-driven over HTTP status codes. Exact codes are looked
up first, then status ranges; anything else is a terminal REQUEST_FAILED so an
unknown failure mode can never cause an endless retry loop.
"""

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Tuple, Type

import httpx
import openai

from ..constants import (
    DEFAULT_MAX_RETRIES,
    DEFAULT_RETRY_BASE_DELAY,
    DEFAULT_RETRY_MAX_JITTER,
)
from ..errors import (
    AuthError,
    BadRequestError,
    CompletionError,
    ModelNotFoundError,
    NetworkError,
    RateLimitError,
    RequestFailedError,
    ServerError,
)

logger = logging.getLogger(__name__)


@dataclass
class RetryPolicy:
    """
    Exponential backoff with jitter

    delay(attempt) = base_delay * 2**attempt + uniform(0, max_jitter),
    attempt counted from 0. With the defaults: ~1s, ~2s, ~4s.

    Attributes:
        max_retries: Additional attempts after the first
        base_delay: Base delay in seconds
        max_jitter: Upper bound (exclusive) of the random jitter in seconds
    """
    max_retries: int = DEFAULT_MAX_RETRIES
    base_delay: float = DEFAULT_RETRY_BASE_DELAY
    max_jitter: float = DEFAULT_RETRY_MAX_JITTER

    def delay_for(self, attempt: int, rand: Callable[[], float] = random.random) -> float:
        return self.base_delay * (2 ** attempt) + rand() * self.max_jitter


# status code -> (error class, message template)
_STATUS_TABLE: Dict[int, Tuple[Type[CompletionError], str]] = {
    400: (BadRequestError, "Bad request: {detail}"),
    401: (
        AuthError,
        "Authentication failed: Invalid API key. Please check your API key.",
    ),
    403: (
        AuthError,
        "Access forbidden: Your API key may not have the required permissions "
        "or your account may have insufficient credits.",
    ),
    404: (
        ModelNotFoundError,
        "Model not found: The specified model is not available. Please check the model name.",
    ),
    408: (NetworkError, "Request timeout: The provider did not respond in time."),
    409: (ServerError, "Request conflict: The provider asked for the request to be retried."),
    422: (BadRequestError, "Bad request: {detail}"),
    429: (
        RateLimitError,
        "Rate limit exceeded: Too many requests. Please wait before making more requests.",
    ),
}

# inclusive status ranges checked after the exact table
_STATUS_RANGES: Tuple[Tuple[int, int, Type[CompletionError], str], ...] = (
    (
        500, 599, ServerError,
        "Server error: The service is temporarily unavailable. Please try again later.",
    ),
)

_NETWORK_MESSAGE = (
    "Network error: Unable to connect to the completion API. "
    "Please check your internet connection."
)

_TRANSPORT_ERRORS: Tuple[Type[BaseException], ...] = (
    openai.APIConnectionError,  # includes APITimeoutError
    httpx.TransportError,
    asyncio.TimeoutError,
    ConnectionError,
)


def extract_status_code(error: BaseException) -> Optional[int]:
    """Try to pull an HTTP status code out of the exception."""
    for attr in ("status_code", "status", "code"):
        val = getattr(error, attr, None)
        if isinstance(val, int) and not isinstance(val, bool):
            return val
    response = getattr(error, "response", None)
    val = getattr(response, "status_code", None)
    if isinstance(val, int):
        return val
    return None


def _detail(error: BaseException) -> str:
    return getattr(error, "message", None) or str(error) or "Invalid request parameters"


def classify_status(status_code: int, detail: str = "") -> CompletionError:
    """Map an HTTP status to a classified error."""
    entry = _STATUS_TABLE.get(status_code)
    if entry is None:
        for low, high, cls, template in _STATUS_RANGES:
            if low <= status_code <= high:
                entry = (cls, template)
                break

    if entry is None:
        return RequestFailedError(
            f"Completion request failed: {detail or 'Unknown error'}",
            status_code=status_code,
        )

    cls, template = entry
    return cls(template.format(detail=detail or "Invalid request parameters"), status_code=status_code)


def classify_error(error: BaseException) -> CompletionError:
    """
    Classify any exception raised by a completion call

    Returns:
        A CompletionError subclass; ``retryable`` tells the caller whether to retry
    """
    if isinstance(error, CompletionError):
        return error

    status_code = extract_status_code(error)
    if status_code is not None:
        classified = classify_status(status_code, _detail(error))
    elif isinstance(error, _TRANSPORT_ERRORS):
        classified = NetworkError(_NETWORK_MESSAGE)
    else:
        classified = RequestFailedError(
            f"Completion request failed: {_detail(error) or 'Unknown error'}"
        )

    classified.details.setdefault("original_error", type(error).__name__)
    return classified


async def call_with_retry(
    request: Callable[[], Any],
    policy: RetryPolicy,
    sleep: Callable[[float], Any] = asyncio.sleep,
    rand: Callable[[], float] = random.random,
) -> Any:
    """
    Await ``request()`` under *policy*

    Terminal errors are raised immediately; retryable ones are retried up to
    ``policy.max_retries`` times. The raised error is always classified and
    carries the number of attempts made.
    """
    total_attempts = policy.max_retries + 1
    for attempt in range(total_attempts):
        try:
            return await request()
        except Exception as e:
            classified = classify_error(e)
            classified.attempts = attempt + 1

            if not classified.retryable:
                logger.error(f"Completion failed with terminal error ({classified.kind.value}): {classified}")
                raise classified from e

            if attempt == total_attempts - 1:
                logger.error(
                    f"Completion failed after {total_attempts} attempts "
                    f"({classified.kind.value}): {classified}"
                )
                raise classified from e

            delay = policy.delay_for(attempt, rand)
            logger.warning(
                f"Request failed (attempt {attempt + 1}/{total_attempts}, "
                f"{classified.kind.value}), retrying in {delay:.2f}s"
            )
            await sleep(delay)
