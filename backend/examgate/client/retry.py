from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

from ..config import BACKOFF_BASE_SECONDS, BACKOFF_CAP_SECONDS, FETCH_MAX_ATTEMPTS
from ..errors import TransientError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def backoff_delay(attempt: int, base: float = BACKOFF_BASE_SECONDS, cap: float = BACKOFF_CAP_SECONDS) -> float:
    """Delay before retry number ``attempt`` (1-based): base, 2*base, 4*base, ... capped."""
    return min(base * 2 ** (attempt - 1), cap)


async def with_backoff(
    call: Callable[[], Awaitable[T]],
    attempts: int = FETCH_MAX_ATTEMPTS,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    label: str = "request",
) -> T:
    """Run ``call``, retrying TransientError up to ``attempts`` tries in total. Other errors propagate at once."""
    attempt = 1
    while True:
        try:
            return await call()
        except TransientError as exc:
            if attempt >= attempts:
                logger.warning("%s failed after %d attempts: %s", label, attempt, exc.message)
                raise
            delay = backoff_delay(attempt)
            logger.info("%s failed (%s), retrying in %.1fs (attempt %d/%d)", label, exc.message, delay, attempt + 1, attempts)
            await sleep(delay)
            attempt += 1
