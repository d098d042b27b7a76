"""Keyed debouncer for bursty tab notifications.

``schedule(key, action)`` arms a timer for ``key``; scheduling the same key
again before the timer fires cancels it and arms a new one, so a burst of
notifications collapses into a single ``action`` call after a quiet period.

Once a timer has fired its action is no longer cancellable by re-arming.  A
later firing for the same key waits for the earlier run to finish first, so
one key never has two actions running at once.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable

from loguru import logger

DebouncedAction = Callable[[], Awaitable[object]]


class Debouncer:
    def __init__(self, default_delay: float = 0.5) -> None:
        self.default_delay = default_delay
        self._pending: dict[str, asyncio.Task[None]] = {}
        self._running: dict[str, asyncio.Task[None]] = {}

    def schedule(self, key: str, action: DebouncedAction, delay: float | None = None) -> None:
        """Arm (or re-arm) the timer for ``key``."""
        self.cancel(key)
        wait = self.default_delay if delay is None else delay
        task = asyncio.get_running_loop().create_task(self._fire(key, action, wait), name=f"debounce:{key}")
        self._pending[key] = task

    def cancel(self, key: str) -> bool:
        """Cancel the armed timer for ``key``.  Returns whether one was armed."""
        task = self._pending.pop(key, None)
        if task is None:
            return False
        task.cancel()
        return True

    def cancel_all(self) -> None:
        """Cancel armed timers and in-flight actions."""
        for task in [*self._pending.values(), *self._running.values()]:
            task.cancel()
        self._pending.clear()
        self._running.clear()

    @property
    def pending_keys(self) -> set[str]:
        return set(self._pending) | set(self._running)

    def is_pending(self, key: str) -> bool:
        return key in self._pending or key in self._running

    async def wait_idle(self) -> None:
        """Wait until no timer is armed and no action is running."""
        while self._pending or self._running:
            tasks = [*self._pending.values(), *self._running.values()]
            await asyncio.gather(*tasks, return_exceptions=True)

    async def _fire(self, key: str, action: DebouncedAction, delay: float) -> None:
        await asyncio.sleep(delay)

        task = asyncio.current_task()
        if self._pending.get(key) is task:
            del self._pending[key]

        previous = self._running.get(key)
        self._running[key] = task
        try:
            if previous is not None and not previous.done():
                # asyncio.wait never cancels ``previous`` if we are cancelled.
                await asyncio.wait({previous})
            await action()
        except Exception:
            logger.exception("Debounced action {} failed", key)
        finally:
            if self._running.get(key) is task:
                del self._running[key]
