"""
Queue Manager

Maintains the back-to-back job queue of each machine. Every mutation holds
the machine lock, computes the new placements of the affected run of jobs,
and commits them once all have been computed.
"""

from collections.abc import Awaitable, Callable
from datetime import datetime
from uuid import UUID

from ....core.config import settings
from ....core.observability import get_logger, track_operation
from ...shared.base import DomainService, utc_now
from ...shared.exceptions import (
    InvariantViolationError,
    JobNotInQueueError,
    NoSlotAvailableError,
    ValidationError,
)
from ..entities.job import Job
from ..events.domain_events import DomainEventDispatcher, QueueRecalculated, get_event_dispatcher
from ..value_objects.results import ConflictResult, PlacementResult, QueueOutcome
from ..value_objects.segment import Segment
from ..value_objects.time import round_up_to_slot
from .machine_lock import MachineLockRegistry
from .scheduling_engine import SchedulingEngine

logger = get_logger(__name__)

Clock = Callable[[], datetime]
QueueEntry = tuple[Job, list[Segment]]


class QueueManager(DomainService):
    """
    Back-to-back scheduling of a machine's queue.

    Operations return a ``QueueOutcome``; a step that finds no slot or hits a
    conflict fails the whole operation before anything is written. Missing
    jobs or machines, invalid positions and lock timeouts raise.
    """

    def __init__(
        self,
        engine: SchedulingEngine,
        locks: MachineLockRegistry | None = None,
        event_dispatcher: DomainEventDispatcher | None = None,
        clock: Clock = utc_now,
        slot_minutes: int | None = None,
    ):
        self._engine = engine
        self._overlap_checker = engine.overlap_checker
        self._locks = locks or MachineLockRegistry()
        self._events = event_dispatcher or get_event_dispatcher()
        self._clock = clock
        self._slot_minutes = slot_minutes or settings.SCHEDULING_SLOT_MINUTES

    async def get_queue(self, machine_id: UUID) -> list[Job]:
        """Scheduled jobs of a machine ordered by earliest segment start."""
        return [job for job, _ in await self._queue(machine_id)]

    async def schedule_at_end_of_queue(self, machine_id: UUID, job_id: UUID) -> QueueOutcome:
        """Place a job right after the last queued job, or from now on an empty queue."""
        return await self._run(
            "schedule_at_end",
            machine_id,
            lambda: self._schedule_at_end(machine_id, job_id),
        )

    async def insert_at_position(
        self, machine_id: UUID, job_id: UUID, position: int
    ) -> QueueOutcome:
        """
        Insert a job into the queue and move the jobs behind it.

        Position 0 starts the queue from now; a position at or past the end
        appends the job; otherwise the job starts after its predecessor.
        """
        if position < 0:
            raise ValidationError("position", position, "must not be negative")
        return await self._run(
            "insert",
            machine_id,
            lambda: self._insert(machine_id, job_id, position),
        )

    async def reorder(
        self, machine_id: UUID, job_id: UUID, old_index: int, new_index: int
    ) -> QueueOutcome:
        """Move a queued job from ``old_index`` to ``new_index`` and close the gaps."""
        return await self._run(
            "reorder",
            machine_id,
            lambda: self._reorder(machine_id, job_id, old_index, new_index),
        )

    async def remove(self, machine_id: UUID, job_id: UUID) -> QueueOutcome:
        """Unschedule a queued job and pull the jobs behind it forward."""
        return await self._run(
            "remove",
            machine_id,
            lambda: self._remove(machine_id, job_id),
        )

    async def recalculate_from(self, machine_id: UUID, start_position: int = 0) -> QueueOutcome:
        """Re-place every job from ``start_position`` on, back to back."""
        if start_position < 0:
            raise ValidationError("start_position", start_position, "must not be negative")
        return await self._run(
            "recalculate",
            machine_id,
            lambda: self._recalculate_from(machine_id, start_position),
        )

    async def _run(
        self,
        operation: str,
        machine_id: UUID,
        work: Callable[[], Awaitable[list[Job]]],
    ) -> QueueOutcome:
        with track_operation(f"queue_{operation}") as outcome:
            await self._engine.require_machine(machine_id)
            async with self._locks.hold(machine_id):
                try:
                    updated = await work()
                except (NoSlotAvailableError, InvariantViolationError) as e:
                    outcome["status"] = e.error_type.value
                    logger.warning(
                        "queue_operation_failed",
                        operation=operation,
                        machine_id=str(machine_id),
                        error_type=e.error_type.value,
                        error=e.message,
                    )
                    return QueueOutcome.failed(e)

            if updated:
                self._events.dispatch(
                    QueueRecalculated(
                        machine_id=machine_id,
                        operation=operation,
                        job_ids=tuple(job.id for job in updated),
                    )
                )
            logger.info(
                "queue_updated",
                operation=operation,
                machine_id=str(machine_id),
                jobs=len(updated),
            )
            return QueueOutcome.succeeded(updated)

    # Unlocked steps; callers hold the machine lock

    async def _schedule_at_end(self, machine_id: UUID, job_id: UUID) -> list[Job]:
        job = await self._engine.require_job(job_id)
        queue = await self._queue(machine_id, exclude_job_id=job.id)
        if queue:
            start = self._round_up(_last_end(queue[-1]))
        else:
            start = self._round_up(self._clock())
        return await self._commit(await self._plan_sequence(machine_id, [job], start))

    async def _insert(self, machine_id: UUID, job_id: UUID, position: int) -> list[Job]:
        job = await self._engine.require_job(job_id)
        queue = await self._queue(machine_id, exclude_job_id=job.id)
        if position >= len(queue):
            return await self._schedule_at_end(machine_id, job_id)

        if position == 0:
            start = self._round_up(self._clock())
        else:
            start = self._round_up(_last_end(queue[position - 1]))
        run = [job, *(queued for queued, _ in queue[position:])]
        return await self._commit(await self._plan_sequence(machine_id, run, start))

    async def _reorder(
        self, machine_id: UUID, job_id: UUID, old_index: int, new_index: int
    ) -> list[Job]:
        queue = await self._queue(machine_id)
        for name, index in (("old_index", old_index), ("new_index", new_index)):
            if not 0 <= index < len(queue):
                raise ValidationError(name, index, f"must be within 0..{len(queue) - 1}")
        if queue[old_index][0].id != job_id:
            raise JobNotInQueueError(job_id, machine_id)
        if old_index == new_index:
            return []

        first = min(old_index, new_index)
        anchor = self._anchor(queue, first)
        reordered = list(queue)
        reordered.insert(new_index, reordered.pop(old_index))
        run = [job for job, _ in reordered[first:]]
        return await self._commit(await self._plan_sequence(machine_id, run, anchor))

    async def _remove(self, machine_id: UUID, job_id: UUID) -> list[Job]:
        queue = await self._queue(machine_id)
        index = next((i for i, (job, _) in enumerate(queue) if job.id == job_id), None)
        if index is None:
            raise JobNotInQueueError(job_id, machine_id)

        tail = [job for job, _ in queue[index + 1:]]
        placements = await self._plan_sequence(
            machine_id, tail, self._anchor(queue, index), also_exclude=job_id
        )
        removed = await self._engine.unschedule_job(job_id)
        return [removed, *await self._commit(placements)]

    async def _recalculate_from(self, machine_id: UUID, start_position: int) -> list[Job]:
        queue = await self._queue(machine_id)
        if start_position >= len(queue):
            return []
        run = [job for job, _ in queue[start_position:]]
        anchor = self._anchor(queue, start_position)
        return await self._commit(await self._plan_sequence(machine_id, run, anchor))

    async def _plan_sequence(
        self,
        machine_id: UUID,
        jobs: list[Job],
        start: datetime,
        also_exclude: UUID | None = None,
    ) -> list[PlacementResult]:
        """
        Compute placements of ``jobs`` one after another from ``start``.

        The whole run is excluded from overlap checks because every job in
        it moves; a conflict with a job outside the run means the queue was
        changed underneath us.
        """
        if not jobs:
            return []

        batch = {job.id for job in jobs}
        if also_exclude is not None:
            batch.add(also_exclude)
        placements: list[PlacementResult] = []
        cursor = start
        for job in jobs:
            result = await self._engine.schedule_forward(
                job.id, cursor, job.effective_duration_hours, machine_id, batch, commit=False
            )
            if result is None:
                raise NoSlotAvailableError(job.id, machine_id)
            if isinstance(result, ConflictResult):
                logger.error(
                    "queue_recalculation_conflict",
                    job_id=str(job.id),
                    job_number=job.job_number,
                    machine_id=str(machine_id),
                    start=cursor.isoformat(),
                    conflicting_job_id=str(result.conflicting_job.id),
                )
                raise InvariantViolationError(
                    f"Conflict detected while rescheduling job {job.job_number}",
                    {
                        "job_id": str(job.id),
                        "conflicting_job_id": str(result.conflicting_job.id),
                        "machine_id": str(machine_id),
                    },
                )
            placements.append(result)
            cursor = self._round_up(result.end_time)
        return placements

    async def _commit(self, placements: list[PlacementResult]) -> list[Job]:
        # Persistence failures leave earlier writes committed
        return [await self._engine.commit_placement(p) for p in placements]

    async def _queue(
        self, machine_id: UUID, exclude_job_id: UUID | None = None
    ) -> list[QueueEntry]:
        excluded = [exclude_job_id] if exclude_job_id else []
        queue = await self._overlap_checker.get_queue(machine_id, excluded)
        return [(job, segments) for job, segments in queue if segments]

    def _anchor(self, queue: list[QueueEntry], position: int) -> datetime:
        """Start for a run beginning at ``position``: after its predecessor, else where it began."""
        if position > 0:
            return self._round_up(_last_end(queue[position - 1]))
        return queue[0][1][0].start

    def _round_up(self, value: datetime) -> datetime:
        return round_up_to_slot(value, self._slot_minutes)


def _last_end(entry: QueueEntry) -> datetime:
    return max(segment.end for segment in entry[1])
