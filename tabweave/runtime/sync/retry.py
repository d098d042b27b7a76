"""Bounded retry loop for browser tab operations.

Tab edits fail transiently while the user is dragging a tab, and fail for
good once the tab is closed.  ``RetryPolicy`` captures that classification
together with the attempt budget and the spacing between attempts.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from loguru import logger

from tabweave.runtime.errors import TabDraggingError, TabNotFoundError

ErrorPredicate = Callable[[Exception], bool]


def _never(exc: Exception) -> bool:
    return False


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded retry loop with an explicit error classification.

    ``is_fatal`` narrows "log and keep trying": ``tab_retry_policy`` stops at
    once on ``TabNotFoundError``, since a closed tab cannot be pinned or
    moved by any later attempt.
    """

    max_attempts: int
    delay: float
    is_transient: ErrorPredicate = _never
    is_fatal: ErrorPredicate = _never

    async def run(self, attempt: Callable[[int], Awaitable[bool]], *, label: str = "operation") -> bool:
        """Call ``attempt(n)`` until it returns True or the budget runs out.

        Transient errors are retried quietly, fatal errors end the loop, and
        any other exception is logged as a warning and retried.  Returns
        whether an attempt succeeded.
        """
        for n in range(1, self.max_attempts + 1):
            try:
                if await attempt(n):
                    return True
            except Exception as exc:
                if self.is_fatal(exc):
                    logger.debug("{} stopped on attempt {}: {}", label, n, exc)
                    return False
                if self.is_transient(exc):
                    logger.debug("{} attempt {}/{} busy: {}", label, n, self.max_attempts, exc)
                else:
                    logger.warning("{} attempt {}/{} failed: {}", label, n, self.max_attempts, exc)
            if n < self.max_attempts:
                await asyncio.sleep(self.delay)

        logger.warning("{} gave up after {} attempts", label, self.max_attempts)
        return False


def tab_retry_policy(max_attempts: int, delay: float) -> RetryPolicy:
    """Policy for tab edits: drag-in-progress is transient, a closed tab is fatal."""
    return RetryPolicy(
        max_attempts=max_attempts,
        delay=delay,
        is_transient=lambda exc: isinstance(exc, TabDraggingError),
        is_fatal=lambda exc: isinstance(exc, TabNotFoundError),
    )
