"""
Debounced "latest wins" re-validation.

Date fields fire a validation on every change; only the newest trigger
should ever reach the caller. Each trigger bumps a generation counter and
cancels the previous pending task, so a slow, stale answer can never
overwrite a fresher one.

The service answers every ``/requests/validate`` call; this runner is for
callers driving that endpoint (or ``validate_request``) from a live form.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Generic, TypeVar

from leavedesk.core.config import settings

logger = logging.getLogger(__name__)

T = TypeVar("T")


class LatestOnlyRunner(Generic[T]):
    def __init__(self, delay: float | None = None) -> None:
        self.delay = settings.REVALIDATION_DEBOUNCE_SECONDS if delay is None else delay
        self.generation = 0
        self._task: asyncio.Task | None = None

    async def _debounced(self, factory: Callable[[], Awaitable[T]]) -> T:
        await asyncio.sleep(self.delay)
        return await factory()

    async def run(self, factory: Callable[[], Awaitable[T]]) -> T | None:
        """Debounce, then run *factory*; ``None`` when a newer trigger superseded this one."""
        self.generation += 1
        generation = self.generation
        if self._task is not None and not self._task.done():
            self._task.cancel()

        task = asyncio.ensure_future(self._debounced(factory))
        self._task = task
        try:
            result = await task
        except asyncio.CancelledError:
            if task.cancelled() and generation != self.generation:
                logger.debug("Validation trigger %d superseded", generation)
                return None
            raise
        if generation != self.generation:
            return None
        return result

    def cancel(self) -> None:
        self.generation += 1
        if self._task is not None and not self._task.done():
            self._task.cancel()
