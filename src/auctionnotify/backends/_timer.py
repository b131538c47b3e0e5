"""Cancellable repeating task used as the foreground sweep fallback."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

_logger = logging.getLogger(__name__)


class ForegroundTimer:
    """Run *callback* every *interval* seconds while the process is alive.

    Substitutes for background execution on runtimes that have none: it
    only ticks while the event loop runs, i.e. while the app is in the
    foreground.  A failing tick is logged and the timer keeps going.
    """

    def __init__(
        self,
        interval: float,
        callback: Callable[[], Awaitable[object]],
        *,
        name: str = "foreground-timer",
    ) -> None:
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")
        self._interval = interval
        self._callback = callback
        self._name = name
        self._task: asyncio.Task[None] | None = None
        self._ticks = 0

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def ticks(self) -> int:
        """Number of completed callback invocations."""
        return self._ticks

    def start(self) -> None:
        """Start ticking.  Calling ``start`` on a running timer is a no-op."""
        if self.is_running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run(), name=self._name)
        _logger.debug("Timer %s started interval=%.1fs", self._name, self._interval)

    def cancel(self) -> None:
        """Stop the timer.  Idempotent."""
        task = self._task
        self._task = None
        if task is not None and not task.done():
            task.cancel()
            _logger.debug("Timer %s cancelled", self._name)

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            try:
                await self._callback()
            except Exception:
                _logger.debug("Timer %s tick failed", self._name, exc_info=True)
            self._ticks += 1
