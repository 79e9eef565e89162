"""
Conflict Resolver

Resolves a placement conflict by shunting: the conflicting job and its
contiguous neighbours in one direction are moved far enough to open a gap
for the dropped job. Every move goes through the scheduling engine, so
shunted jobs are split around unavailable hours like any other placement.

All placements are computed before any is written. A cascade that fails
therefore leaves the machine untouched.
"""

from datetime import datetime
from uuid import UUID

from ....core.config import settings
from ....core.observability import get_logger, track_operation
from ...shared.base import DomainService
from ...shared.exceptions import (
    InvariantViolationError,
    JobNotFoundError,
    NoSlotAvailableError,
    ShuntInfeasibleError,
)
from ..entities.job import Job
from ..events.domain_events import DomainEventDispatcher, JobsShunted, get_event_dispatcher
from ..value_objects.enums import ShuntDirection
from ..value_objects.results import (
    ConflictDetails,
    ConflictResult,
    PlacementResult,
    ShuntOutcome,
    ShuntPlan,
)
from ..value_objects.segment import Segment
from ..value_objects.time import (
    duration_minutes,
    round_down_to_slot,
    round_up_to_slot,
    start_of_day,
    whole_minutes_between,
)
from .machine_lock import MachineLockRegistry
from .scheduling_engine import PlacementOutcome, SchedulingEngine

logger = get_logger(__name__)

QueueEntry = tuple[Job, list[Segment]]


class ConflictResolver(DomainService):
    """Opens a gap for a dropped job by moving its neighbours left or right."""

    def __init__(
        self,
        engine: SchedulingEngine,
        locks: MachineLockRegistry | None = None,
        event_dispatcher: DomainEventDispatcher | None = None,
        slot_minutes: int | None = None,
    ):
        self._engine = engine
        self._overlap_checker = engine.overlap_checker
        self._locks = locks or MachineLockRegistry()
        self._events = event_dispatcher or get_event_dispatcher()
        self._slot_minutes = slot_minutes or settings.SCHEDULING_SLOT_MINUTES

    async def resolve_by_shunting(
        self, conflict: ConflictDetails, direction: ShuntDirection
    ) -> ShuntOutcome:
        """
        Shunt neighbours of the conflicting job and place the dragged job.

        Returns:
            Success with the updated jobs, or failure data when no gap exists,
            a cascade step conflicts, or a step finds no slot

        Raises:
            JobNotFoundError: If the dragged or conflicting job is missing
            MachineNotFoundError: If the machine does not exist
            LockTimeoutError: If the machine lock is not acquired in time
        """
        direction = ShuntDirection(direction)
        with track_operation(f"shunt_{direction.value}") as outcome:
            async with self._locks.hold(conflict.machine_id):
                try:
                    plan = await self._plan(conflict, direction)
                except (ShuntInfeasibleError, InvariantViolationError, NoSlotAvailableError) as e:
                    outcome["status"] = e.error_type.value
                    return ShuntOutcome.failed(e)

                # Persistence failures past this point leave earlier writes committed
                updated = [await self._engine.commit_placement(p) for p in plan.placements]

            self._events.dispatch(
                JobsShunted(
                    machine_id=conflict.machine_id,
                    dragged_job_id=conflict.dragged_job_id,
                    direction=direction,
                    moved_job_ids=plan.affected_job_ids,
                )
            )
            logger.info(
                "jobs_shunted",
                machine_id=str(conflict.machine_id),
                dragged_job_id=str(conflict.dragged_job_id),
                direction=direction.value,
                moved=len(plan.affected_job_ids),
                gap_minutes=plan.gap_minutes,
            )
            return ShuntOutcome.succeeded(updated)

    async def preview_shunt(
        self, conflict: ConflictDetails, direction: ShuntDirection
    ) -> ShuntPlan:
        """
        Compute a shunt without writing anything.

        Raises:
            ShuntInfeasibleError: If no gap large enough exists
            InvariantViolationError: If a cascade step would conflict
            NoSlotAvailableError: If a cascade step finds no slot
        """
        return await self._plan(conflict, ShuntDirection(direction))

    async def _plan(self, conflict: ConflictDetails, direction: ShuntDirection) -> ShuntPlan:
        await self._engine.require_machine(conflict.machine_id)
        dragged = await self._engine.require_job(conflict.dragged_job_id)
        queue = await self._overlap_checker.get_queue(
            conflict.machine_id, exclude_job_ids=[dragged.id]
        )
        position = next(
            (i for i, (job, _) in enumerate(queue) if job.id == conflict.conflicting_job_id),
            None,
        )
        if position is None:
            raise JobNotFoundError(conflict.conflicting_job_id)

        needed = duration_minutes(dragged.effective_duration_hours)
        if direction is ShuntDirection.RIGHT:
            affected, gap = self._walk_right(queue, position, needed)
        else:
            affected, gap = self._walk_left(queue, position, needed)

        if gap is None:
            logger.info(
                "shunt_infeasible",
                machine_id=str(conflict.machine_id),
                direction=direction.value,
                needed_minutes=needed,
            )
            raise ShuntInfeasibleError(
                "Not enough space to move the scheduled jobs",
                {
                    "machine_id": str(conflict.machine_id),
                    "direction": direction.value,
                    "needed_minutes": needed,
                },
            )

        batch = {dragged.id, *(job.id for job in affected)}
        if direction is ShuntDirection.RIGHT:
            placements = await self._cascade_right(conflict, dragged, affected, batch)
        else:
            placements = await self._cascade_left(conflict, dragged, affected, batch)

        return ShuntPlan(
            direction=direction,
            machine_id=conflict.machine_id,
            dragged_job_id=dragged.id,
            affected_job_ids=tuple(job.id for job in affected),
            gap_minutes=gap,
            placements=tuple(placements),
        )

    @staticmethod
    def _walk_right(
        queue: list[QueueEntry], position: int, needed: int
    ) -> tuple[list[Job], float | None]:
        """Collect jobs from the conflict onward until a large enough gap follows one."""
        affected: list[Job] = []
        for i in range(position, len(queue)):
            job, segments = queue[i]
            affected.append(job)
            if i == len(queue) - 1:
                return affected, float("inf")
            next_segments = queue[i + 1][1]
            if segments and next_segments:
                gap = whole_minutes_between(
                    max(s.end for s in segments), min(s.start for s in next_segments)
                )
                if gap >= needed:
                    return affected, gap
        return affected, None

    @staticmethod
    def _walk_left(
        queue: list[QueueEntry], position: int, needed: int
    ) -> tuple[list[Job], float | None]:
        """Collect jobs from the conflict backward until a large enough gap precedes one."""
        affected: list[Job] = []
        for i in range(position, -1, -1):
            job, segments = queue[i]
            affected.insert(0, job)
            if not segments:
                continue
            first_start = min(s.start for s in segments)
            if i > 0:
                previous_segments = queue[i - 1][1]
                if not previous_segments:
                    continue
                gap = whole_minutes_between(max(s.end for s in previous_segments), first_start)
            else:
                gap = whole_minutes_between(start_of_day(first_start), first_start)
            if gap >= needed:
                return affected, gap
        return affected, None

    async def _cascade_right(
        self,
        conflict: ConflictDetails,
        dragged: Job,
        affected: list[Job],
        batch: set[UUID],
    ) -> list[PlacementResult]:
        placements = [
            await self._place(
                dragged, conflict.proposed_start, conflict.machine_id, batch, forward=True
            )
        ]
        cursor = self._round_up(placements[0].end_time)
        for job in affected:
            placement = await self._place(job, cursor, conflict.machine_id, batch, forward=True)
            placements.append(placement)
            cursor = self._round_up(placement.end_time)
        return placements

    async def _cascade_left(
        self,
        conflict: ConflictDetails,
        dragged: Job,
        affected: list[Job],
        batch: set[UUID],
    ) -> list[PlacementResult]:
        placements: list[PlacementResult] = []
        boundary = self._round_down(conflict.proposed_start)
        for job in reversed(affected):
            placement = await self._place(
                job, boundary, conflict.machine_id, batch, forward=False
            )
            placements.insert(0, placement)
            boundary = self._round_down(placement.start_time)
        placements.append(
            await self._place(
                dragged, conflict.proposed_start, conflict.machine_id, batch, forward=True
            )
        )
        return placements

    async def _place(
        self,
        job: Job,
        anchor: datetime,
        machine_id: UUID,
        batch: set[UUID],
        forward: bool,
    ) -> PlacementResult:
        """Dry-run one cascade step; anything but a clean placement aborts the shunt."""
        if forward:
            result: PlacementOutcome = await self._engine.schedule_forward(
                job.id, anchor, job.effective_duration_hours, machine_id, batch, commit=False
            )
        else:
            result = await self._engine.schedule_backward(
                job.id, anchor, job.effective_duration_hours, machine_id, batch, commit=False
            )

        if result is None:
            raise NoSlotAvailableError(job.id, machine_id)
        if isinstance(result, ConflictResult):
            logger.error(
                "shunt_invariant_violation",
                job_id=str(job.id),
                job_number=job.job_number,
                machine_id=str(machine_id),
                anchor=anchor.isoformat(),
                conflicting_job_id=str(result.conflicting_job.id),
                conflicting_segment=str(result.conflicting_segment),
            )
            raise InvariantViolationError(
                f"Cannot shunt job {job.job_number}: it would conflict with "
                f"job {result.conflicting_job.job_number}",
                {
                    "job_id": str(job.id),
                    "conflicting_job_id": str(result.conflicting_job.id),
                    "machine_id": str(machine_id),
                },
            )
        return result

    def _round_up(self, value: datetime) -> datetime:
        return round_up_to_slot(value, self._slot_minutes)

    def _round_down(self, value: datetime) -> datetime:
        return round_down_to_slot(value, self._slot_minutes)
