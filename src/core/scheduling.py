"""One-shot delayed tasks owned by a chat (e.g. removing a warning later)."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Hashable

LOGGER = logging.getLogger(__name__)

Action = Callable[[], Awaitable[None]]


class OneShotScheduler:
    """Run an action once after a delay unless it is cancelled first."""

    def __init__(self) -> None:
        self._tasks: dict[tuple[Hashable, Hashable], asyncio.Task] = {}

    def schedule(self, owner: Hashable, key: Hashable, delay: float, action: Action) -> asyncio.Task:
        """Schedule ``action``; a task already registered under the same key is replaced."""

        self.cancel(owner, key)
        slot = (owner, key)
        task = asyncio.ensure_future(self._run(slot, delay, action))
        self._tasks[slot] = task
        return task

    async def _run(self, slot: tuple[Hashable, Hashable], delay: float, action: Action) -> None:
        try:
            await asyncio.sleep(delay)
            await action()
        except asyncio.CancelledError:
            raise
        except Exception:
            LOGGER.exception("Scheduled task %s failed", slot)
        finally:
            if self._tasks.get(slot) is asyncio.current_task():
                del self._tasks[slot]

    def cancel(self, owner: Hashable, key: Hashable) -> bool:
        task = self._tasks.pop((owner, key), None)
        if task is None:
            return False
        task.cancel()
        return True

    def cancel_all(self) -> int:
        count = len(self._tasks)
        for task in self._tasks.values():
            task.cancel()
        self._tasks.clear()
        return count
