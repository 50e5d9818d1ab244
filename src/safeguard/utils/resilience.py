import asyncio
import logging
from typing import Awaitable, Callable, Sequence, Tuple, Type, TypeVar

from .errors import RateLimited

logger = logging.getLogger(__name__)

T = TypeVar("T")

RATE_LIMIT_DELAYS = (1.0, 2.0, 4.0)


# Exponential backoff retry
async def retry_with_backoff(
    func: Callable[[], Awaitable[T]],
    delays: Sequence[float] = RATE_LIMIT_DELAYS,
    retry_on: Tuple[Type[BaseException], ...] = (RateLimited,),
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """
    Call ``func`` and retry it once per entry in ``delays`` while it raises
    one of ``retry_on``. Any other exception propagates immediately; the last
    retryable exception propagates once the delays are exhausted.
    """
    for attempt in range(len(delays) + 1):
        try:
            return await func()
        except retry_on as e:
            if attempt == len(delays):
                raise
            delay = delays[attempt]
            logger.warning(
                f"Rate limited, retrying in {delay:g}s (attempt {attempt + 1}/{len(delays)}): {e}"
            )
            await sleep(delay)
