"""Fixed-delay retry for async backend calls."""
from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional, TypeVar

from pictomap.domain.errors import TransientNetworkFailure

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RetryPolicy:
    """
    Re-run an attempt after a TransientNetworkFailure.

    Each transient failure costs one unit of the retry budget and is followed
    by a fixed `delay` (seconds). Any other exception is raised immediately.
    When the budget is spent the last transient failure is raised.
    """

    def __init__(
        self,
        max_retries: int = 3,
        delay: float = 1.0,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None,
    ):
        self.max_retries = max(0, max_retries)
        self.delay = delay
        self._sleep = sleep or asyncio.sleep

    async def execute(self, attempt: Callable[[], Awaitable[T]]) -> T:
        retries_left = self.max_retries
        while True:
            try:
                return await attempt()
            except TransientNetworkFailure as exc:
                if retries_left <= 0:
                    raise
                logger.warning(
                    "Transient failure (%s), retrying in %.2fs (%d retries left)",
                    exc,
                    self.delay,
                    retries_left,
                )
                await self._sleep(self.delay)
                retries_left -= 1


async def execute_with_retry(
    attempt: Callable[[], Awaitable[T]],
    max_retries: int,
    delay: float,
) -> T:
    return await RetryPolicy(max_retries=max_retries, delay=delay).execute(attempt)
