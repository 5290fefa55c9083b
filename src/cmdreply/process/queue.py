"""FIFO admission control for command runs."""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable
from typing import Protocol, TypeAlias

from loguru import logger

from ..types import CommandResult

OnWait: TypeAlias = Callable[[int, int], None]
Work: TypeAlias = Callable[[], Awaitable[CommandResult]]

DEFAULT_WARN_AFTER_MS = 2000


class Enqueue(Protocol):
    async def __call__(self, work: Work, *, on_wait: OnWait | None = None) -> CommandResult: ...


class CommandQueue:
    """Runs submitted work in arrival order with bounded concurrency."""

    def __init__(self, *, max_concurrent: int = 1, warn_after_ms: int = DEFAULT_WARN_AFTER_MS) -> None:
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be at least 1")
        self.max_concurrent = max_concurrent
        self.warn_after_ms = warn_after_ms
        self._slots = asyncio.Semaphore(max_concurrent)
        self._pending = 0

    @property
    def pending(self) -> int:
        """Entries waiting for a slot or currently running."""
        return self._pending

    async def enqueue(
        self,
        work: Work,
        *,
        on_wait: OnWait | None = None,
        warn_after_ms: int | None = None,
    ) -> CommandResult:
        threshold = self.warn_after_ms if warn_after_ms is None else warn_after_ms
        ahead = self._pending
        self._pending += 1
        enqueued_at = time.monotonic()
        try:
            async with self._slots:
                waited_ms = int((time.monotonic() - enqueued_at) * 1000)
                if ahead and waited_ms >= threshold:
                    logger.debug("command.queue.waited waited_ms={} ahead={}", waited_ms, ahead)
                    if on_wait is not None:
                        on_wait(waited_ms, ahead)
                return await work()
        finally:
            self._pending -= 1


_default_queue: CommandQueue | None = None


def get_default_queue() -> CommandQueue:
    global _default_queue
    if _default_queue is None:
        _default_queue = CommandQueue()
    return _default_queue


async def enqueue_command(work: Work, *, on_wait: OnWait | None = None) -> CommandResult:
    """Submit work to the process-wide command queue."""
    return await get_default_queue().enqueue(work, on_wait=on_wait)
