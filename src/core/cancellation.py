"""Cooperative cancellation shared by a batch and its oracle calls."""

from __future__ import annotations

import asyncio
from typing import Awaitable, TypeVar

from core.errors import Cancelled

T = TypeVar("T")


class CancelToken:
    """Cancellation flag plus the in-flight tasks it is allowed to abort.

    Callers poll ``raise_if_cancelled`` between steps. Suspending work is run
    through ``guard`` so that ``cancel`` also aborts the awaited I/O instead of
    waiting for it to finish.
    """

    def __init__(self) -> None:
        self._cancelled = False
        self._tasks: set[asyncio.Future] = set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        if self._cancelled:
            return
        self._cancelled = True
        for task in list(self._tasks):
            task.cancel()

    def raise_if_cancelled(self) -> None:
        if self._cancelled:
            raise Cancelled()

    async def guard(self, awaitable: Awaitable[T]) -> T:
        """Await ``awaitable`` as a task that ``cancel`` can abort."""

        self.raise_if_cancelled()
        task = asyncio.ensure_future(awaitable)
        self._tasks.add(task)
        try:
            return await task
        except asyncio.CancelledError:
            # Only translate aborts we caused; outer cancellation propagates.
            if self._cancelled and task.cancelled():
                raise Cancelled() from None
            raise
        finally:
            self._tasks.discard(task)
