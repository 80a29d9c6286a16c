"""Exponential backoff shared by the SDK-backed providers.

Both SDKs have their own retry loops; the providers switch those off and
use this one so Gemini and Claude back off the same way and log each
retry under the same format.

Usage:
    response = await with_retries(
        "Gemini complete",
        lambda: client.aio.models.generate_content(...),
        retry_on=(genai_errors.ClientError, genai_errors.ServerError),
        is_retryable=_is_retryable,
    )
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

logger = logging.getLogger(__name__)

MAX_RETRIES = 2  # 3 total attempts
BACKOFF_BASE = 1.0  # seconds, doubled each retry

T = TypeVar("T")


async def with_retries(
    label: str,
    call: Callable[[], Awaitable[T]],
    *,
    retry_on: tuple[type[Exception], ...],
    is_retryable: Callable[[Exception], bool],
    max_retries: int = MAX_RETRIES,
) -> T:
    """Awaits ``call()``, retrying transient SDK errors with backoff.

    Args:
        label: Names the call in retry log lines, e.g. "Gemini transcribe".
        call: Zero-argument factory returning a fresh awaitable per attempt.
        retry_on: Exception types that are inspected at all.
        is_retryable: Decides whether a caught exception is transient.
        max_retries: Retries after the first attempt.

    Raises:
        The last exception, once it is not retryable or retries run out.
    """
    attempt = 0
    while True:
        try:
            return await call()
        except retry_on as exc:
            if not is_retryable(exc) or attempt >= max_retries:
                raise
            attempt += 1
            backoff = BACKOFF_BASE * (2 ** (attempt - 1))
            logger.warning(
                "%s retry %d/%d after %.1fs backoff (%s)",
                label,
                attempt,
                max_retries,
                backoff,
                type(exc).__name__,
            )
            await asyncio.sleep(backoff)
