"""
Overlap Checker

Resolves scheduled jobs to the segments they occupy and detects overlaps
between candidate segments and the other jobs on a machine. Also provides
the segment metadata integrity check and the legacy migration.
"""

from collections.abc import Iterable, Sequence
from datetime import datetime, timezone
from uuid import UUID

from ....core.observability import get_logger
from ...shared.base import DomainService
from ...shared.exceptions import SegmentMetadataError
from ..entities.job import Job, JobScheduleUpdate
from ..repositories.job_repository import JobRepository
from ..value_objects.results import IntegrityReport, OverlapResult
from ..value_objects.segment import Segment, is_chronological
from ..value_objects.segment_info import SegmentInfo

logger = get_logger(__name__)

_FAR_FUTURE = datetime.max.replace(tzinfo=timezone.utc)


def legacy_segments(job: Job) -> list[Segment]:
    """Single segment derived from the stored start and the effective duration."""
    if job.scheduled_start_time is None:
        return []
    return [Segment.from_start(job.scheduled_start_time, job.effective_duration_hours)]


def get_job_occupied_segments(job: Job) -> list[Segment]:
    """
    Segments a job occupies on its machine.

    Stored segment metadata is preferred. Jobs without readable metadata fall
    back to a single legacy segment; the fallback is logged because it can
    hide corrupted records.
    """
    if job.segment_metadata:
        try:
            return SegmentInfo.from_json(job.segment_metadata).to_segments()
        except SegmentMetadataError as e:
            reason = e.message
    else:
        reason = "missing"

    segments = legacy_segments(job)
    if segments:
        logger.warning(
            "legacy_segment_fallback",
            job_id=str(job.id),
            job_number=job.job_number,
            reason=reason,
        )
    return segments


def queue_sort_key(segments: Sequence[Segment]) -> datetime:
    return segments[0].start if segments else _FAR_FUTURE


def order_queue(jobs: Iterable[Job]) -> list[tuple[Job, list[Segment]]]:
    """Pair jobs with their segments, ordered by earliest segment start."""
    resolved = [(job, get_job_occupied_segments(job)) for job in jobs]
    resolved.sort(key=lambda pair: queue_sort_key(pair[1]))
    return resolved


def find_overlap(
    candidate_segments: Sequence[Segment],
    queue: Sequence[tuple[Job, list[Segment]]],
) -> OverlapResult:
    """
    First overlap between candidates and an ordered queue.

    Candidates are walked chronologically and, for each, the queue in order
    of earliest start, so the reported conflict is the earliest in time.
    """
    for candidate in candidate_segments:
        for job, segments in queue:
            for segment in segments:
                if candidate.overlaps(segment):
                    return OverlapResult(
                        has_overlap=True,
                        conflicting_job=job,
                        conflicting_segment=segment,
                        candidate_segment=candidate,
                    )
    return OverlapResult.clear()


class OverlapChecker(DomainService):
    """Checks candidate placements against the scheduled jobs of a machine."""

    def __init__(self, job_repository: JobRepository):
        self._job_repository = job_repository

    async def get_queue(
        self, machine_id: UUID, exclude_job_ids: Iterable[UUID] = ()
    ) -> list[tuple[Job, list[Segment]]]:
        """SCHEDULED jobs on a machine with their segments, earliest first."""
        excluded = set(exclude_job_ids)
        jobs = await self._job_repository.get_scheduled_on_machine(machine_id)
        return order_queue(
            job
            for job in jobs
            if job.is_scheduled_on(machine_id) and job.id not in excluded
        )

    async def check_overlap(
        self,
        candidate_segments: Sequence[Segment],
        machine_id: UUID,
        exclude_job_ids: Iterable[UUID] = (),
    ) -> OverlapResult:
        """
        Check candidate segments against the other jobs on a machine.

        Args:
            candidate_segments: Segments of the placement being evaluated
            machine_id: Target machine
            exclude_job_ids: Jobs to ignore, typically the job itself and
                the rest of a batch being re-placed together

        Returns:
            The first conflict, or a result with ``has_overlap`` False
        """
        queue = await self.get_queue(machine_id, exclude_job_ids)
        result = find_overlap(candidate_segments, queue)
        if result.has_overlap:
            logger.debug(
                "overlap_detected",
                machine_id=str(machine_id),
                conflicting_job_id=str(result.conflicting_job.id),
                candidate_segment=str(result.candidate_segment),
            )
        return result

    async def verify_segment_integrity(self, machine_id: UUID | None = None) -> IntegrityReport:
        """
        Report scheduled jobs whose segment metadata is missing or unsound.

        A job is inconsistent when its stored segments are out of order,
        overlap each other, or disagree with its stored start and end.
        """
        if machine_id is None:
            jobs = await self._job_repository.get_scheduled()
        else:
            jobs = await self._job_repository.get_scheduled_on_machine(machine_id)

        missing: list[UUID] = []
        invalid: list[UUID] = []
        inconsistent: list[UUID] = []
        for job in jobs:
            if not job.segment_metadata:
                missing.append(job.id)
                continue
            try:
                segments = SegmentInfo.from_json(job.segment_metadata).to_segments()
            except SegmentMetadataError:
                invalid.append(job.id)
                continue
            if not _segments_match_job(job, segments):
                inconsistent.append(job.id)

        report = IntegrityReport(
            checked=len(jobs),
            missing_metadata=tuple(missing),
            invalid_metadata=tuple(invalid),
            inconsistent=tuple(inconsistent),
        )
        if not report.is_healthy:
            logger.warning(
                "segment_integrity_issues",
                machine_id=str(machine_id) if machine_id else None,
                checked=report.checked,
                missing=len(missing),
                invalid=len(invalid),
                inconsistent=len(inconsistent),
            )
        return report

    async def migrate_legacy_segments(self) -> list[Job]:
        """
        Write single-segment metadata for scheduled jobs that lack it.

        Returns:
            The jobs that were rewritten
        """
        migrated: list[Job] = []
        for job in await self._job_repository.get_scheduled():
            if job.segment_metadata and _has_valid_metadata(job):
                continue
            segments = legacy_segments(job)
            if not segments or job.scheduled_machine_id is None:
                continue
            info = SegmentInfo.from_segments(segments, job.effective_duration_hours)
            update = JobScheduleUpdate.placed(job.scheduled_machine_id, info)
            migrated.append(await self._job_repository.persist_job_update(job.id, update))

        logger.info("legacy_segments_migrated", count=len(migrated))
        return migrated


def _has_valid_metadata(job: Job) -> bool:
    try:
        SegmentInfo.from_json(job.segment_metadata or "")
    except SegmentMetadataError:
        return False
    return True


def _segments_match_job(job: Job, segments: list[Segment]) -> bool:
    if not segments or not is_chronological(segments):
        return False
    if job.scheduled_start_time is not None and segments[0].start != job.scheduled_start_time:
        return False
    if job.scheduled_end_time is not None and segments[-1].end != job.scheduled_end_time:
        return False
    return True
