"""Concurrency primitives used across the application."""

from __future__ import annotations

import asyncio
from contextlib import suppress
from typing import Awaitable, Callable, Generic, Optional, TypeVar

T = TypeVar("T")


class OperationSlot(Generic[T]):
    """Run at most one background operation at a time.

    ``start`` schedules the operation as a task and returns immediately. When
    the operation finishes, ``on_done`` is awaited with its result unless the
    slot was abandoned in the meantime; in that case the result is dropped.

    While ``on_done`` runs the slot is no longer ``busy`` (so it may chain the
    next operation) but stays ``active``. Abandoning it then bumps the epoch
    without cancelling; ``on_done`` is expected to compare :attr:`epoch`
    after every await and stop once it changed.
    """

    def __init__(self) -> None:
        self._task: Optional[asyncio.Task] = None
        self._settling: Optional[asyncio.Task] = None
        self._detached: Optional[asyncio.Task] = None
        self._epoch = 0

    @property
    def active(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def busy(self) -> bool:
        return self.active and self._task is not self._settling

    @property
    def epoch(self) -> int:
        return self._epoch

    def start(
        self,
        name: str,
        operation: Callable[[], Awaitable[T]],
        on_done: Callable[[T], Awaitable[None]],
    ) -> bool:
        """Schedule ``operation``; return ``False`` if another one is running."""

        if self.busy:
            return False
        epoch = self._epoch

        async def _runner() -> None:
            result = await operation()
            if epoch != self._epoch:
                return
            current = asyncio.current_task()
            self._settling = current
            try:
                await on_done(result)
            finally:
                if self._settling is current:
                    self._settling = None
                if self._task is current:
                    self._task = None

        loop = asyncio.get_running_loop()
        self._task = loop.create_task(_runner(), name=f"workflow-{name}")
        return True

    def abandon(self) -> bool:
        """Drop the running operation, if any; its result will be discarded."""

        self._epoch += 1
        task, self._task = self._task, None
        settling, self._settling = self._settling, None
        if task is None or task.done():
            return False
        if task is settling:
            self._detached = task
        else:
            task.cancel()
        return True

    async def join(self) -> None:
        """Wait until no operation is running, including chained ones."""

        while self._task is not None or self._detached is not None:
            task = self._task or self._detached
            with suppress(asyncio.CancelledError):
                await task
            if self._task is task:
                self._task = None
            if self._detached is task:
                self._detached = None


__all__ = ["OperationSlot"]
