"""
Machine Availability Service

Owns the availability cache, turns hour markers into unavailable windows for
the splitter, and validates new unavailability against scheduled jobs.
"""

from collections.abc import Iterable
from datetime import date, datetime, timedelta
from uuid import UUID

from ....core.config import settings
from ....core.observability import get_logger
from ....infrastructure.cache.availability_cache import AvailabilityCache
from ...shared.base import DomainService
from ...shared.exceptions import AvailabilityConflictError, ValidationError
from ..events.domain_events import (
    DomainEventDispatcher,
    MachineAvailabilityChanged,
    get_event_dispatcher,
)
from ..repositories.availability_repository import AvailabilityRepository
from ..repositories.job_repository import JobRepository
from ..value_objects.segment import Segment
from ..value_objects.time import date_range, ensure_utc, hour_start, hours_to_timedelta
from .overlap_checker import get_job_occupied_segments

logger = get_logger(__name__)

HOURS_PER_DAY = 24


def _validate_hours(hours: Iterable[int]) -> list[int]:
    normalized = set()
    for hour in hours:
        if isinstance(hour, bool) or not isinstance(hour, int) or not 0 <= hour < HOURS_PER_DAY:
            raise ValidationError("hours", hour, "hour markers must be integers from 0 to 23")
        normalized.add(hour)
    return sorted(normalized)


def hour_window(day: date, hour: int) -> Segment:
    start = hour_start(day, hour)
    return Segment(start, start + timedelta(hours=1), 1.0)


class AvailabilityService(DomainService):
    """
    Unavailable hours per machine and date.

    Reads go through the cache; writes persist first and then refresh the
    cached date.
    """

    def __init__(
        self,
        availability_repository: AvailabilityRepository,
        job_repository: JobRepository,
        cache: AvailabilityCache | None = None,
        event_dispatcher: DomainEventDispatcher | None = None,
        lookahead_days: int | None = None,
    ):
        self._repository = availability_repository
        self._job_repository = job_repository
        self._cache = cache or AvailabilityCache()
        self._events = event_dispatcher or get_event_dispatcher()
        self._lookahead_days = (
            settings.SCHEDULING_LOOKAHEAD_DAYS if lookahead_days is None else lookahead_days
        )

    @property
    def cache(self) -> AvailabilityCache:
        return self._cache

    @property
    def lookahead_days(self) -> int:
        return self._lookahead_days

    # Reads

    async def get_unavailable_hours(self, machine_id: UUID, day: date) -> list[int]:
        cached = await self._cache.get(machine_id, day)
        if cached is not None:
            return sorted(cached)
        hours = await self._repository.get_unavailable_hours(machine_id, day)
        await self._cache.set(machine_id, day, hours)
        return sorted(set(hours))

    async def load_range(
        self, machine_id: UUID, start_day: date, end_day: date
    ) -> dict[date, frozenset[int]]:
        """
        Unavailable hours for every date in an inclusive range.

        Dates missing from the cache are fetched with one bulk repository
        call; dates without records are cached as fully available.
        """
        days = date_range(start_day, end_day)
        found, missing = await self._cache.get_many(machine_id, days)
        if missing:
            fetched = await self._repository.get_unavailable_hours_for_range(
                machine_id, missing[0], missing[-1]
            )
            for day in missing:
                hours = frozenset(fetched.get(day, ()))
                await self._cache.set(machine_id, day, hours)
                found[day] = hours
            logger.debug(
                "availability_range_loaded",
                machine_id=str(machine_id),
                start_day=missing[0].isoformat(),
                end_day=missing[-1].isoformat(),
                fetched_days=len(missing),
            )
        return found

    async def is_hour_unavailable(self, machine_id: UUID, day: date, hour: int) -> bool:
        return hour in await self.get_unavailable_hours(machine_id, day)

    async def windows_between(
        self, machine_id: UUID, start_day: date, end_day: date
    ) -> list[Segment]:
        """Unavailable windows of a machine over a date range, sorted by start."""
        by_day = await self.load_range(machine_id, start_day, end_day)
        windows = [
            hour_window(day, hour)
            for day in sorted(by_day)
            for hour in sorted(by_day[day])
        ]
        return windows

    async def windows_for_forward(
        self, machine_id: UUID, start_time: datetime, duration_hours: float
    ) -> list[Segment]:
        """Windows from the start date to the nominal end date plus the lookahead."""
        start_time = ensure_utc(start_time)
        end_day = self._forward_end_day(start_time, duration_hours)
        return await self.windows_between(machine_id, start_time.date(), end_day)

    async def windows_for_backward(
        self, machine_id: UUID, end_time: datetime, duration_hours: float
    ) -> list[Segment]:
        """Windows from the nominal start date minus the lookahead to the end date."""
        end_time = ensure_utc(end_time)
        start_day = self._backward_start_day(end_time, duration_hours)
        return await self.windows_between(machine_id, start_day, end_time.date())

    def forward_horizon(self, start_time: datetime, duration_hours: float) -> datetime:
        """End of the last date ``windows_for_forward`` loads."""
        end_day = self._forward_end_day(ensure_utc(start_time), duration_hours)
        return hour_start(end_day + timedelta(days=1), 0)

    def backward_horizon(self, end_time: datetime, duration_hours: float) -> datetime:
        """Start of the first date ``windows_for_backward`` loads."""
        return hour_start(self._backward_start_day(ensure_utc(end_time), duration_hours), 0)

    def _forward_end_day(self, start_time: datetime, duration_hours: float) -> date:
        nominal_end = start_time + hours_to_timedelta(duration_hours)
        return nominal_end.date() + timedelta(days=self._lookahead_days)

    def _backward_start_day(self, end_time: datetime, duration_hours: float) -> date:
        nominal_start = end_time - hours_to_timedelta(duration_hours)
        return nominal_start.date() - timedelta(days=self._lookahead_days)

    # Writes

    async def set_unavailable_hours(
        self, machine_id: UUID, day: date, hours: Iterable[int]
    ) -> list[int]:
        """
        Replace the unavailable hours of a machine on one date.

        Raises:
            ValidationError: If an hour marker is outside 0-23
            AvailabilityConflictError: If an added hour overlaps a scheduled job
        """
        new_hours = _validate_hours(hours)
        current = await self.get_unavailable_hours(machine_id, day)
        await self._ensure_no_job_conflicts(machine_id, {day: set(new_hours) - set(current)})
        await self._write(machine_id, day, new_hours)
        self._events.dispatch(MachineAvailabilityChanged(machine_id=machine_id, days=(day,)))
        return new_hours

    async def toggle_hour(self, machine_id: UUID, day: date, hour: int) -> list[int]:
        """Flip one hour marker; marking an hour unavailable is validated."""
        _validate_hours([hour])
        current = set(await self.get_unavailable_hours(machine_id, day))
        if hour in current:
            current.discard(hour)
        else:
            await self._ensure_no_job_conflicts(machine_id, {day: {hour}})
            current.add(hour)
        new_hours = sorted(current)
        await self._write(machine_id, day, new_hours)
        self._events.dispatch(MachineAvailabilityChanged(machine_id=machine_id, days=(day,)))
        return new_hours

    async def set_unavailable_range(
        self,
        machine_id: UUID,
        start_day: date,
        end_day: date,
        start_hour: int,
        end_hour: int,
    ) -> dict[date, list[int]]:
        """
        Mark hours ``[start_hour, end_hour)`` unavailable on every date of a range.

        Existing markers are kept. Every date is validated before any is
        written, so a conflict leaves all dates untouched.
        """
        if not 0 <= start_hour < end_hour <= HOURS_PER_DAY:
            raise ValidationError(
                "hour_range",
                f"{start_hour}-{end_hour}",
                "expected 0 <= start_hour < end_hour <= 24",
            )
        if end_day < start_day:
            raise ValidationError("end_day", end_day.isoformat(), "must not precede start_day")

        marked = set(range(start_hour, end_hour))
        existing = await self.load_range(machine_id, start_day, end_day)
        added = {day: marked - existing[day] for day in existing}
        await self._ensure_no_job_conflicts(machine_id, added)

        written: dict[date, list[int]] = {}
        for day in sorted(existing):
            new_hours = sorted(existing[day] | marked)
            await self._write(machine_id, day, new_hours)
            written[day] = new_hours
        self._events.dispatch(
            MachineAvailabilityChanged(machine_id=machine_id, days=tuple(sorted(written)))
        )
        return written

    async def invalidate(self, machine_id: UUID, day: date | None = None) -> int:
        """Drop cached hours after an external write."""
        return await self._cache.invalidate(machine_id, day)

    async def _write(self, machine_id: UUID, day: date, hours: list[int]) -> None:
        await self._repository.set_unavailable_hours(machine_id, day, hours)
        await self._cache.set(machine_id, day, hours)
        logger.info(
            "machine_availability_updated",
            machine_id=str(machine_id),
            day=day.isoformat(),
            unavailable_hours=hours,
        )

    async def _ensure_no_job_conflicts(
        self, machine_id: UUID, added_hours: dict[date, set[int]]
    ) -> None:
        if not any(added_hours.values()):
            return
        jobs = await self._job_repository.get_scheduled_on_machine(machine_id)
        occupied = [(job, get_job_occupied_segments(job)) for job in jobs]
        for day in sorted(added_hours):
            for hour in sorted(added_hours[day]):
                window = hour_window(day, hour)
                for job, segments in occupied:
                    if any(window.overlaps(segment) for segment in segments):
                        logger.info(
                            "availability_change_rejected",
                            machine_id=str(machine_id),
                            day=day.isoformat(),
                            hour=hour,
                            job_id=str(job.id),
                        )
                        raise AvailabilityConflictError(machine_id, day, hour, job.job_number)
