"""
Scheduling Engine

Places one job on a machine at a requested time. Unavailable windows split
the job, overlaps with other scheduled jobs are reported as a
``ConflictResult``, and a conflict-free placement is persisted as a single
job update.
"""

import dataclasses
from collections.abc import Iterable, Sequence
from datetime import datetime
from uuid import UUID

from ....core.observability import get_logger, record_conflict, track_operation
from ...shared.base import DomainService
from ...shared.exceptions import (
    JobNotFoundError,
    MachineNotFoundError,
    NoSlotAvailableError,
    ValidationError,
    WorkCenterMismatchError,
)
from ..entities.job import Job, JobScheduleUpdate
from ..entities.machine import Machine
from ..events.domain_events import (
    DomainEventDispatcher,
    JobScheduled,
    JobUnscheduled,
    get_event_dispatcher,
)
from ..repositories.job_repository import JobRepository
from ..repositories.machine_repository import MachineRepository
from ..value_objects.results import (
    ConflictDetails,
    ConflictResult,
    PlacementResult,
    SlotCheck,
)
from ..value_objects.segment import Segment, total_hours
from ..value_objects.segment_info import SegmentInfo
from ..value_objects.time import ensure_utc, hours_to_timedelta
from .availability_service import AvailabilityService
from .interval_splitter import IntervalSplitter, intersects_any
from .overlap_checker import OverlapChecker

logger = get_logger(__name__)

# Coverage shortfall above this means the splitter truncated the placement
COVERAGE_TOLERANCE_HOURS = 1e-6

PlacementOutcome = PlacementResult | ConflictResult | None


class SchedulingEngine(DomainService):
    """
    Single-job placement on a machine timeline.

    ``schedule_forward`` and ``schedule_backward`` never raise for a busy
    slot: they return a ``ConflictResult`` and leave the job untouched, or
    ``None`` when no complete placement exists within the lookahead.
    """

    def __init__(
        self,
        job_repository: JobRepository,
        machine_repository: MachineRepository,
        availability_service: AvailabilityService,
        overlap_checker: OverlapChecker | None = None,
        splitter: IntervalSplitter | None = None,
        event_dispatcher: DomainEventDispatcher | None = None,
    ):
        self._job_repository = job_repository
        self._machine_repository = machine_repository
        self._availability = availability_service
        self._overlap_checker = overlap_checker or OverlapChecker(job_repository)
        self._splitter = splitter or IntervalSplitter()
        self._events = event_dispatcher or get_event_dispatcher()

    @property
    def overlap_checker(self) -> OverlapChecker:
        return self._overlap_checker

    async def schedule_forward(
        self,
        job_id: UUID,
        start_time: datetime,
        duration_hours: float,
        machine_id: UUID,
        exclude_job_ids: Iterable[UUID] = (),
        commit: bool = True,
    ) -> PlacementOutcome:
        """
        Place a job starting at ``start_time``.

        Args:
            job_id: Job being placed
            start_time: Requested start
            duration_hours: Hours to place
            machine_id: Target machine
            exclude_job_ids: Jobs ignored by the overlap check in addition
                to the job itself
            commit: Persist a successful placement; when False the result
                carries the update for a later ``commit_placement``

        Returns:
            PlacementResult, ConflictResult, or None when no slot exists
        """
        _check_duration(duration_hours)
        start_time = ensure_utc(start_time)
        with track_operation("schedule_forward") as outcome:
            windows = await self._availability.windows_for_forward(
                machine_id, start_time, duration_hours
            )
            nominal_end = start_time + hours_to_timedelta(duration_hours)
            if intersects_any(start_time, nominal_end, windows):
                horizon = self._availability.forward_horizon(start_time, duration_hours)
                segments = self._splitter.split_forward(
                    start_time, duration_hours, windows, horizon
                )
            else:
                segments = [Segment.from_start(start_time, duration_hours)]
            return await self._evaluate(
                job_id,
                machine_id,
                duration_hours,
                segments,
                exclude_job_ids,
                commit=commit,
                outcome=outcome,
                direction="forward",
            )

    async def schedule_backward(
        self,
        job_id: UUID,
        end_time: datetime,
        duration_hours: float,
        machine_id: UUID,
        exclude_job_ids: Iterable[UUID] = (),
        commit: bool = True,
    ) -> PlacementOutcome:
        """Place a job so that it ends at ``end_time``; same contract as ``schedule_forward``."""
        _check_duration(duration_hours)
        end_time = ensure_utc(end_time)
        with track_operation("schedule_backward") as outcome:
            windows = await self._availability.windows_for_backward(
                machine_id, end_time, duration_hours
            )
            nominal_start = end_time - hours_to_timedelta(duration_hours)
            if intersects_any(nominal_start, end_time, windows):
                horizon = self._availability.backward_horizon(end_time, duration_hours)
                segments = self._splitter.split_backward(
                    end_time, duration_hours, windows, horizon
                )
            else:
                segments = [Segment.from_end(end_time, duration_hours)]
            return await self._evaluate(
                job_id,
                machine_id,
                duration_hours,
                segments,
                exclude_job_ids,
                commit=commit,
                outcome=outcome,
                direction="backward",
            )

    async def commit_placement(self, placement: PlacementResult) -> Job:
        """Persist a computed placement and announce it."""
        job = await self._job_repository.persist_job_update(placement.job_id, placement.update)
        self._events.dispatch(
            JobScheduled(
                job_id=placement.job_id,
                machine_id=placement.machine_id,
                start_time=placement.start_time,
                end_time=placement.end_time,
                was_split=placement.was_split,
            )
        )
        logger.info(
            "job_placed",
            job_id=str(placement.job_id),
            machine_id=str(placement.machine_id),
            start_time=placement.start_time.isoformat(),
            end_time=placement.end_time.isoformat(),
            segments=len(placement.segments),
        )
        return job

    async def schedule_job(
        self, job_id: UUID, machine_id: UUID, start_time: datetime
    ) -> PlacementResult | ConflictDetails:
        """
        Drop a job on a machine at a start time.

        Returns:
            The committed placement, or the details needed to resolve the
            conflict by shunting

        Raises:
            JobNotFoundError: If the job does not exist
            MachineNotFoundError: If the machine does not exist
            WorkCenterMismatchError: If the machine belongs to another work center
            NoSlotAvailableError: If no complete placement exists
        """
        job = await self.require_job(job_id)
        machine = await self.require_machine(machine_id)
        if not machine.accepts_work_center(job.work_center):
            raise WorkCenterMismatchError(job.work_center or "", machine.work_center or "")

        result = await self.schedule_forward(
            job.id, start_time, job.effective_duration_hours, machine.id
        )
        if result is None:
            raise NoSlotAvailableError(job.id, machine.id)
        if isinstance(result, ConflictResult):
            return ConflictDetails.from_conflict(job.id, machine.id, ensure_utc(start_time), result)
        return result

    async def unschedule_job(self, job_id: UUID) -> Job:
        """Clear machine, times, segments and status of a job."""
        job = await self.require_job(job_id)
        previous_machine = job.scheduled_machine_id
        updated = await self._job_repository.persist_job_update(
            job_id, JobScheduleUpdate.cleared()
        )
        self._events.dispatch(JobUnscheduled(job_id=job_id, machine_id=previous_machine))
        logger.info(
            "job_unscheduled",
            job_id=str(job_id),
            machine_id=str(previous_machine) if previous_machine else None,
        )
        return updated

    async def validate_slot(
        self,
        machine_id: UUID,
        start_time: datetime,
        duration_hours: float,
        exclude_job_ids: Iterable[UUID] = (),
    ) -> SlotCheck:
        """Whether ``[start_time, start_time + duration)`` is free as a single block."""
        _check_duration(duration_hours)
        start_time = ensure_utc(start_time)
        end_time = start_time + hours_to_timedelta(duration_hours)
        windows = await self._availability.windows_between(
            machine_id, start_time.date(), end_time.date()
        )
        if intersects_any(start_time, end_time, windows):
            return SlotCheck(is_available=False, hits_unavailable_hours=True)

        overlap = await self._overlap_checker.check_overlap(
            [Segment.from_start(start_time, duration_hours)], machine_id, exclude_job_ids
        )
        if overlap.has_overlap:
            return SlotCheck(is_available=False, conflicting_job=overlap.conflicting_job)
        return SlotCheck(is_available=True)

    async def _evaluate(
        self,
        job_id: UUID,
        machine_id: UUID,
        duration_hours: float,
        segments: Sequence[Segment],
        exclude_job_ids: Iterable[UUID],
        commit: bool,
        outcome: dict[str, str],
        direction: str,
    ) -> PlacementOutcome:
        if not segments or total_hours(segments) < duration_hours - COVERAGE_TOLERANCE_HOURS:
            outcome["status"] = "no_slot"
            logger.warning(
                "no_slot_available",
                job_id=str(job_id),
                machine_id=str(machine_id),
                duration_hours=duration_hours,
                placed_hours=total_hours(segments),
            )
            return None

        excluded = {*exclude_job_ids, job_id}
        overlap = await self._overlap_checker.check_overlap(segments, machine_id, excluded)
        if overlap.has_overlap:
            outcome["status"] = "conflict"
            record_conflict(direction)
            logger.info(
                "placement_conflict",
                job_id=str(job_id),
                machine_id=str(machine_id),
                conflicting_job_id=str(overlap.conflicting_job.id),
                conflicting_segment=str(overlap.conflicting_segment),
            )
            return ConflictResult(
                conflicting_job=overlap.conflicting_job,
                conflicting_segment=overlap.conflicting_segment,
                proposed_segments=tuple(segments),
            )

        info = SegmentInfo.from_segments(segments, duration_hours)
        placement = PlacementResult(
            job_id=job_id,
            machine_id=machine_id,
            start_time=segments[0].start,
            end_time=segments[-1].end,
            was_split=len(segments) > 1,
            segments=tuple(segments),
            update=JobScheduleUpdate.placed(machine_id, info),
        )
        if commit:
            await self.commit_placement(placement)
            placement = dataclasses.replace(placement, committed=True)
        return placement

    async def require_job(self, job_id: UUID) -> Job:
        job = await self._job_repository.get_by_id(job_id)
        if job is None:
            raise JobNotFoundError(job_id)
        return job

    async def require_machine(self, machine_id: UUID) -> Machine:
        machine = await self._machine_repository.get_by_id(machine_id)
        if machine is None:
            raise MachineNotFoundError(machine_id)
        return machine


def _check_duration(duration_hours: float) -> None:
    if duration_hours <= 0:
        raise ValidationError("duration_hours", duration_hours, "must be positive")
