"""Retry combinator used around operations that the caller wants retried."""

import asyncio
import logging
from typing import Awaitable, Callable, Optional, Tuple, Type, TypeVar

from .cancel import CancellationToken, check_cancelled

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def retry_async(operation: Callable[[int], Awaitable[T]],
                      attempts: int = 3,
                      delay: float = 2.0,
                      retry_on: Tuple[Type[BaseException], ...] = (Exception,),
                      cleanup: Optional[Callable[[], None]] = None,
                      cancel: Optional[CancellationToken] = None,
                      description: str = "operation") -> T:
    """Run ``operation(attempt)`` until it succeeds or ``attempts`` is exhausted.

    Between two attempts ``cleanup`` is called and the coroutine sleeps for
    ``delay`` seconds. When every attempt failed, ``cleanup`` runs one last
    time and the last error is re-raised. Exceptions not listed in
    ``retry_on`` propagate immediately.
    """
    if attempts < 1:
        raise ValueError("attempts must be at least 1")

    attempt = 1
    while True:
        check_cancelled(cancel)
        if attempt > 1:
            logger.info("Retry attempt %d of %d for %s", attempt, attempts, description)
            if cleanup:
                cleanup()
            await asyncio.sleep(delay)
            check_cancelled(cancel)
        try:
            return await operation(attempt)
        except retry_on as e:
            logger.warning("Attempt %d of %d for %s failed: %s", attempt, attempts, description, e)
            if attempt >= attempts:
                if cleanup:
                    cleanup()
                raise
        attempt += 1
