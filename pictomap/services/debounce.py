"""Trailing debounce for async callbacks on the running event loop."""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional, Set

logger = logging.getLogger(__name__)


class Debouncer:
    """
    Collapse a burst of calls into one invocation of `func`.

    Every call restarts the timer; `func` runs `interval` seconds after the
    last call of the burst, with that call's arguments. Exceptions raised by
    `func` are logged. Calls made without a running event loop are logged and
    dropped.
    """

    def __init__(self, func: Callable[..., Awaitable[Any]], interval: float):
        self.func = func
        self.interval = interval
        self._handle: Optional[asyncio.TimerHandle] = None
        self._tasks: Set[asyncio.Task] = set()

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def __call__(self, *args: Any, **kwargs: Any) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("Ignoring call to %s outside a running event loop", getattr(self.func, "__name__", self.func))
            return
        self.cancel()
        self._handle = loop.call_later(self.interval, self._fire, args, kwargs)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _fire(self, args: tuple, kwargs: dict) -> None:
        self._handle = None
        task = asyncio.ensure_future(self._run(args, kwargs))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _run(self, args: tuple, kwargs: dict) -> None:
        try:
            await self.func(*args, **kwargs)
        except Exception:
            logger.exception("Debounced call to %s failed", getattr(self.func, "__name__", self.func))

    async def drain(self) -> None:
        """Wait for invocations that already fired."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
