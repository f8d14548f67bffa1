"""
Admission control: a fixed-size pool of execution permits.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from phpsandbox.errors import ConfigurationError

logger = logging.getLogger(__name__)


class AdmissionController:
    """
    Bounds how many executions may run containers at the same time.

    Waiters are woken in arrival order. A cancelled waiter never holds a
    permit, and every successful acquire must be matched by one release.

    Example:
        >>> admission = AdmissionController(5)
        >>> async with admission.permit():
        ...     await run_container()
    """

    def __init__(self, capacity: int) -> None:
        if capacity <= 0:
            raise ConfigurationError("capacity must be greater than 0")
        self._capacity = capacity
        self._semaphore = asyncio.BoundedSemaphore(capacity)
        self._in_use = 0

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def in_use(self) -> int:
        """Number of permits currently held."""
        return self._in_use

    @property
    def available(self) -> int:
        return self._capacity - self._in_use

    async def acquire(self) -> None:
        """
        Wait for a permit.

        Raises:
            asyncio.CancelledError: If the waiting task is cancelled. No
                permit is held in that case.
        """
        await self._semaphore.acquire()
        self._in_use += 1
        logger.debug("Permit acquired (%d/%d in use)", self._in_use, self._capacity)

    def release(self) -> None:
        """Return a permit to the pool."""
        if self._in_use == 0:
            raise RuntimeError("release() called without a matching acquire()")
        self._in_use -= 1
        self._semaphore.release()
        logger.debug("Permit released (%d/%d in use)", self._in_use, self._capacity)

    @asynccontextmanager
    async def permit(self) -> AsyncIterator[None]:
        """Hold a permit for the duration of the block, releasing it on every exit path."""
        await self.acquire()
        try:
            yield
        finally:
            self.release()
