"""
Unit tests for conflict resolution by shunting.
"""

from uuid import uuid4

import pytest
from structlog.testing import capture_logs

from flexi.domain.scheduling.events.domain_events import JobsShunted
from flexi.domain.scheduling.services.conflict_resolver import ConflictResolver
from flexi.domain.scheduling.services.overlap_checker import OverlapChecker
from flexi.domain.scheduling.value_objects.enums import JobStatus, ShuntDirection
from flexi.domain.scheduling.value_objects.results import ConflictDetails
from flexi.domain.scheduling.value_objects.segment import Segment
from flexi.domain.shared.exceptions import (
    ErrorType,
    JobNotFoundError,
    LockTimeoutError,
    ShuntInfeasibleError,
)
from flexi.tests.factories import JobFactory, at, day


@pytest.fixture
def resolver(services) -> ConflictResolver:
    return services.conflict_resolver


def conflict_for(dragged, conflicting, machine, proposed_start) -> ConflictDetails:
    return ConflictDetails(
        dragged_job_id=dragged.id,
        conflicting_job_id=conflicting.id,
        proposed_start=proposed_start,
        machine_id=machine.id,
    )


async def placed_spans(checker: OverlapChecker, machine_id) -> dict[str, list[tuple]]:
    """Job number to occupied spans for every scheduled job on a machine."""
    return {
        job.job_number: [(s.start, s.end) for s in segments]
        for job, segments in await checker.get_queue(machine_id)
    }


async def assert_no_overlaps(checker: OverlapChecker, machine_id) -> None:
    queue = await checker.get_queue(machine_id)
    segments = [(job.id, s) for job, job_segments in queue for s in job_segments]
    for i, (first_id, first) in enumerate(segments):
        for second_id, second in segments[i + 1:]:
            if first_id != second_id:
                assert not first.overlaps(second), f"{first} overlaps {second}"


class TestShuntRight:
    """Test pushing jobs later to open a gap."""

    @pytest.mark.asyncio
    async def test_drop_onto_running_job(
        self, services, resolver, machine, job_repository, recorder
    ):
        """Test B (2h) dropped at 10:00 onto A [9,11) yields B [10,12) and A [12,14)."""
        job_a = job_repository.save(JobFactory.scheduled(machine.id, at(9), 2, job_number="A"))
        job_b = job_repository.save(JobFactory.create(job_number="B", duration_hours=2))
        conflict = await services.engine.schedule_job(job_b.id, machine.id, at(10))
        assert isinstance(conflict, ConflictDetails)
        assert conflict.conflicting_job_id == job_a.id

        outcome = await resolver.resolve_by_shunting(conflict, ShuntDirection.RIGHT)

        assert outcome.success
        assert {job.job_number for job in outcome.updates} == {"A", "B"}
        assert await placed_spans(services.overlap_checker, machine.id) == {
            "B": [(at(10), at(12))],
            "A": [(at(12), at(14))],
        }
        shunted = recorder.of_type(JobsShunted)[0]
        assert shunted.direction is ShuntDirection.RIGHT
        assert shunted.moved_job_ids == (job_a.id,)

    @pytest.mark.asyncio
    async def test_cascade_stops_at_large_enough_gap(
        self, services, resolver, machine, job_repository
    ):
        """Test only jobs before the first sufficient gap move."""
        job_a = job_repository.save(JobFactory.scheduled(machine.id, at(9), 2, job_number="A"))
        job_repository.save(JobFactory.scheduled(machine.id, at(11), 1, job_number="C"))
        job_repository.save(JobFactory.scheduled(machine.id, at(14), 1, job_number="D"))
        job_b = job_repository.save(JobFactory.create(job_number="B", duration_hours=1))

        outcome = await resolver.resolve_by_shunting(
            conflict_for(job_b, job_a, machine, at(10)), ShuntDirection.RIGHT
        )

        assert outcome.success
        assert await placed_spans(services.overlap_checker, machine.id) == {
            "B": [(at(10), at(11))],
            "A": [(at(11), at(13))],
            "C": [(at(13), at(14))],
            "D": [(at(14), at(15))],
        }
        await assert_no_overlaps(services.overlap_checker, machine.id)

    @pytest.mark.asyncio
    async def test_shunted_job_respects_unavailable_hours(
        self, services, resolver, machine, job_repository, availability_repository
    ):
        """Test a pushed job starting in an unavailable hour begins after it."""
        availability_repository.seed(machine.id, day(), [12])
        job_a = job_repository.save(JobFactory.scheduled(machine.id, at(9), 2, job_number="A"))
        job_b = job_repository.save(JobFactory.create(job_number="B", duration_hours=2))

        outcome = await resolver.resolve_by_shunting(
            conflict_for(job_b, job_a, machine, at(10)), "right"
        )

        assert outcome.success
        spans = await placed_spans(services.overlap_checker, machine.id)
        assert spans["B"] == [(at(10), at(12))]
        assert spans["A"] == [(at(13), at(15))]

    @pytest.mark.asyncio
    async def test_cascade_conflict_aborts_without_writes(
        self, resolver, machine, job_repository
    ):
        """Test a pushed job landing on an unmoved job fails the whole shunt."""
        job_a = job_repository.save(JobFactory.scheduled(machine.id, at(9), 2, job_number="A"))
        job_repository.save(JobFactory.scheduled(machine.id, at(12), 2, job_number="C"))
        job_b = job_repository.save(JobFactory.create(job_number="B", duration_hours=1))

        with capture_logs() as logs:
            outcome = await resolver.resolve_by_shunting(
                conflict_for(job_b, job_a, machine, at(10, 30)), ShuntDirection.RIGHT
            )

        assert not outcome.success
        assert outcome.error_type == ErrorType.INVARIANT_VIOLATION
        assert outcome.updates == ()
        assert job_repository.update_log == []
        assert any(
            entry["event"] == "shunt_invariant_violation" and entry["log_level"] == "error"
            for entry in logs
        )


class TestShuntLeft:
    """Test pulling jobs earlier to open a gap."""

    @pytest.mark.asyncio
    async def test_shunt_left_through_contiguous_jobs(
        self, services, resolver, machine, job_repository
    ):
        """Test contiguous predecessors move back until the gap before them suffices."""
        job_repository.save(JobFactory.scheduled(machine.id, at(7), 1, job_number="P"))
        job_a = job_repository.save(JobFactory.scheduled(machine.id, at(8), 2, job_number="A"))
        job_b = job_repository.save(JobFactory.create(job_number="B", duration_hours=1))

        outcome = await resolver.resolve_by_shunting(
            conflict_for(job_b, job_a, machine, at(9)), ShuntDirection.LEFT
        )

        assert outcome.success
        assert await placed_spans(services.overlap_checker, machine.id) == {
            "P": [(at(6), at(7))],
            "A": [(at(7), at(9))],
            "B": [(at(9), at(10))],
        }

    @pytest.mark.asyncio
    async def test_unaligned_drop_keeps_jobs_before_boundary(
        self, services, resolver, machine, job_repository
    ):
        """Test left-shunted jobs end on the slot boundary at or before the drop."""
        job_a = job_repository.save(JobFactory.scheduled(machine.id, at(10), 1, job_number="A"))
        job_b = job_repository.save(JobFactory.create(job_number="B", duration_hours=1))

        outcome = await resolver.resolve_by_shunting(
            conflict_for(job_b, job_a, machine, at(10, 20)), ShuntDirection.LEFT
        )

        assert outcome.success
        spans = await placed_spans(services.overlap_checker, machine.id)
        assert spans["A"] == [(at(9, 15), at(10, 15))]
        assert spans["B"] == [(at(10, 20), at(11, 20))]
        await assert_no_overlaps(services.overlap_checker, machine.id)

    @pytest.mark.asyncio
    async def test_no_room_before_start_of_day(self, resolver, machine, job_repository):
        """Test a shunt needing time before midnight is infeasible and writes nothing."""
        job_a = job_repository.save(
            JobFactory.scheduled(machine.id, at(0, 30), 1.5, job_number="A")
        )
        job_b = job_repository.save(JobFactory.create(job_number="B", duration_hours=1))

        outcome = await resolver.resolve_by_shunting(
            conflict_for(job_b, job_a, machine, at(1)), ShuntDirection.LEFT
        )

        assert not outcome.success
        assert outcome.error_type == ErrorType.SHUNT_INFEASIBLE
        assert job_repository.update_log == []
        stored = await job_repository.get_by_id(job_b.id)
        assert stored.status == JobStatus.NOT_SCHEDULED


class TestPreviewAndErrors:
    """Test previews and error surfaces."""

    @pytest.mark.asyncio
    async def test_preview_does_not_write(self, resolver, machine, job_repository):
        """Test a preview computes placements but persists nothing."""
        job_a = job_repository.save(JobFactory.scheduled(machine.id, at(9), 2, job_number="A"))
        job_b = job_repository.save(JobFactory.create(job_number="B", duration_hours=2))

        plan = await resolver.preview_shunt(
            conflict_for(job_b, job_a, machine, at(10)), ShuntDirection.RIGHT
        )

        assert plan.affected_job_ids == (job_a.id,)
        assert plan.gap_minutes == float("inf")
        assert [p.job_id for p in plan.placements] == [job_b.id, job_a.id]
        assert plan.placements[1].segments == (Segment.from_start(at(12), 2),)
        assert not any(p.committed for p in plan.placements)
        assert job_repository.update_log == []

    @pytest.mark.asyncio
    async def test_preview_raises_when_infeasible(self, resolver, machine, job_repository):
        job_a = job_repository.save(JobFactory.scheduled(machine.id, at(0), 2, job_number="A"))
        job_b = job_repository.save(JobFactory.create(job_number="B", duration_hours=1))

        with pytest.raises(ShuntInfeasibleError):
            await resolver.preview_shunt(
                conflict_for(job_b, job_a, machine, at(1)), ShuntDirection.LEFT
            )

    @pytest.mark.asyncio
    async def test_conflicting_job_not_on_machine(self, resolver, machine, job_repository):
        job_b = job_repository.save(JobFactory.create(job_number="B"))
        stranger = JobFactory.create(job_number="X")

        with pytest.raises(JobNotFoundError):
            await resolver.resolve_by_shunting(
                conflict_for(job_b, stranger, machine, at(10)), ShuntDirection.RIGHT
            )

    @pytest.mark.asyncio
    async def test_missing_dragged_job(self, resolver, machine, job_repository):
        job_a = job_repository.save(JobFactory.scheduled(machine.id, at(9), 2))
        conflict = ConflictDetails(
            dragged_job_id=uuid4(),
            conflicting_job_id=job_a.id,
            proposed_start=at(10),
            machine_id=machine.id,
        )

        with pytest.raises(JobNotFoundError):
            await resolver.resolve_by_shunting(conflict, ShuntDirection.RIGHT)

    @pytest.mark.asyncio
    async def test_waits_for_machine_lock(self, services, resolver, machine, job_repository):
        """Test a shunt gives up when another operation holds the machine."""
        job_a = job_repository.save(JobFactory.scheduled(machine.id, at(9), 2))
        job_b = job_repository.save(JobFactory.create(duration_hours=2))

        async with services.locks.hold(machine.id):
            with pytest.raises(LockTimeoutError) as exc_info:
                await resolver.resolve_by_shunting(
                    conflict_for(job_b, job_a, machine, at(10)), ShuntDirection.RIGHT
                )

        assert exc_info.value.retryable
        assert job_repository.update_log == []
        assert not services.locks.is_locked(machine.id)
