"""
Availability Cache

In-memory LRU cache of machine unavailable hours keyed by
``(machine_id, date)``. Owned by the availability service; the persistence
layer calls ``invalidate`` after writing availability records.
"""

import asyncio
from collections import OrderedDict
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any
from uuid import UUID

from ...core.config import settings
from ...core.observability import get_logger
from ...domain.shared.base import utc_now

logger = get_logger(__name__)

CacheKey = tuple[UUID, date]


@dataclass
class CacheEntry:
    """Cache entry with metadata."""

    hours: frozenset[int]
    created_at: datetime
    access_count: int = 0


class AvailabilityCache:
    """LRU cache of unavailable hours per machine and date."""

    def __init__(self, max_entries: int | None = None):
        self.max_entries = max_entries or settings.AVAILABILITY_CACHE_MAX_ENTRIES
        self._entries: OrderedDict[CacheKey, CacheEntry] = OrderedDict()
        self.hits = 0
        self.misses = 0
        self.lock = asyncio.Lock()

    async def get(self, machine_id: UUID, day: date) -> frozenset[int] | None:
        """Cached hours, or None when the date has not been loaded."""
        key = (machine_id, day)
        async with self.lock:
            entry = self._entries.pop(key, None)
            if entry is None:
                self.misses += 1
                return None
            # Move to end (most recently used)
            entry.access_count += 1
            self._entries[key] = entry
            self.hits += 1
            return entry.hours

    async def get_many(
        self, machine_id: UUID, days: list[date]
    ) -> tuple[dict[date, frozenset[int]], list[date]]:
        """
        Look up several dates at once.

        Returns:
            Cached hours per date and the dates that missed
        """
        found: dict[date, frozenset[int]] = {}
        missing: list[date] = []
        for day in days:
            hours = await self.get(machine_id, day)
            if hours is None:
                missing.append(day)
            else:
                found[day] = hours
        return found, missing

    async def set(self, machine_id: UUID, day: date, hours: list[int] | frozenset[int]) -> None:
        async with self.lock:
            key = (machine_id, day)
            self._entries.pop(key, None)
            while len(self._entries) >= self.max_entries and self._entries:
                oldest_key, _ = self._entries.popitem(last=False)
                logger.debug(
                    "availability_cache_evicted",
                    machine_id=str(oldest_key[0]),
                    day=oldest_key[1].isoformat(),
                )
            self._entries[key] = CacheEntry(hours=frozenset(hours), created_at=utc_now())

    async def invalidate(self, machine_id: UUID, day: date | None = None) -> int:
        """
        Drop cached hours of one machine, for one date or for all dates.

        Returns:
            Number of entries removed
        """
        async with self.lock:
            if day is not None:
                removed = 1 if self._entries.pop((machine_id, day), None) else 0
            else:
                keys = [key for key in self._entries if key[0] == machine_id]
                for key in keys:
                    del self._entries[key]
                removed = len(keys)
        if removed:
            logger.debug(
                "availability_cache_invalidated",
                machine_id=str(machine_id),
                day=day.isoformat() if day else None,
                removed=removed,
            )
        return removed

    async def clear(self) -> None:
        async with self.lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def get_stats(self) -> dict[str, Any]:
        """Get cache statistics."""
        total_requests = self.hits + self.misses
        hit_rate = (self.hits / total_requests * 100) if total_requests > 0 else 0

        return {
            "size": len(self._entries),
            "max_entries": self.max_entries,
            "hits": self.hits,
            "misses": self.misses,
            "hit_rate": hit_rate,
        }
