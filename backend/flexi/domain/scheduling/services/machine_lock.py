"""
Per-machine mutual exclusion for queue mutations and shunts.

Queue operations read a machine's queue and then write several jobs; holding
the machine's lock keeps two such operations from interleaving.
"""

import asyncio
import contextlib
from collections.abc import AsyncIterator
from uuid import UUID

from ....core.config import settings
from ....core.observability import get_logger
from ...shared.exceptions import LockTimeoutError

logger = get_logger(__name__)


class MachineLockRegistry:
    """One ``asyncio.Lock`` per machine id, acquired with a bounded wait."""

    def __init__(self, timeout_seconds: float | None = None):
        self._timeout_seconds = timeout_seconds or settings.QUEUE_LOCK_TIMEOUT_SECONDS
        self._locks: dict[UUID, asyncio.Lock] = {}

    @property
    def timeout_seconds(self) -> float:
        return self._timeout_seconds

    def is_locked(self, machine_id: UUID) -> bool:
        lock = self._locks.get(machine_id)
        return lock is not None and lock.locked()

    @contextlib.asynccontextmanager
    async def hold(
        self, machine_id: UUID, timeout_seconds: float | None = None
    ) -> AsyncIterator[None]:
        """
        Hold the lock of a machine for the duration of the block.

        Raises:
            LockTimeoutError: If the lock is not acquired within the timeout
        """
        timeout = timeout_seconds or self._timeout_seconds
        lock = self._locks.setdefault(machine_id, asyncio.Lock())
        try:
            async with asyncio.timeout(timeout):
                await lock.acquire()
        except TimeoutError:
            logger.warning(
                "machine_lock_timeout",
                machine_id=str(machine_id),
                timeout_seconds=timeout,
            )
            raise LockTimeoutError(machine_id, timeout) from None

        try:
            yield
        finally:
            lock.release()
