"""Job entity: a schedulable production order."""

from datetime import datetime
from uuid import UUID

from pydantic import Field, field_validator

from ...shared.base import Entity, ValueObject
from ..value_objects.enums import JobStatus
from ..value_objects.segment_info import SegmentInfo
from ..value_objects.time import ensure_utc

DEFAULT_DURATION_HOURS = 1.0


class Job(Entity):
    """
    A unit of work that occupies one machine for a number of hours.

    Scheduling state is written only through ``JobScheduleUpdate`` so the
    machine, times, status and segment metadata change together.
    """

    job_number: str = Field(min_length=1, max_length=50)
    duration_hours: float | None = Field(default=None, ge=0)
    time_remaining_hours: float | None = Field(default=None, ge=0)
    work_center: str | None = Field(default=None, max_length=100)

    status: JobStatus = JobStatus.NOT_SCHEDULED
    scheduled_machine_id: UUID | None = None
    scheduled_start_time: datetime | None = None
    scheduled_end_time: datetime | None = None
    segment_metadata: str | None = None

    @field_validator("scheduled_start_time", "scheduled_end_time")
    @classmethod
    def _normalize_timestamps(cls, v: datetime | None) -> datetime | None:
        return ensure_utc(v) if v is not None else v

    @property
    def effective_duration_hours(self) -> float:
        """Remaining hours if known, else the full duration, else one hour."""
        if self.time_remaining_hours:
            return self.time_remaining_hours
        if self.duration_hours:
            return self.duration_hours
        return DEFAULT_DURATION_HOURS

    @property
    def is_scheduled(self) -> bool:
        return self.status.is_scheduled

    def is_scheduled_on(self, machine_id: UUID) -> bool:
        return self.is_scheduled and self.scheduled_machine_id == machine_id

    def is_valid(self) -> bool:
        if self.is_scheduled:
            return (
                self.scheduled_machine_id is not None
                and self.scheduled_start_time is not None
            )
        return (
            self.scheduled_machine_id is None
            and self.scheduled_start_time is None
            and self.scheduled_end_time is None
            and not self.segment_metadata
        )


class JobScheduleUpdate(ValueObject):
    """Fields the scheduling core writes to a job as one logical update."""

    scheduled_machine_id: UUID | None
    scheduled_start_time: datetime | None
    scheduled_end_time: datetime | None
    status: JobStatus
    segment_metadata: str | None

    @classmethod
    def placed(
        cls, machine_id: UUID, segment_info: SegmentInfo
    ) -> "JobScheduleUpdate":
        segments = segment_info.to_segments()
        return cls(
            scheduled_machine_id=machine_id,
            scheduled_start_time=segments[0].start,
            scheduled_end_time=segments[-1].end,
            status=JobStatus.SCHEDULED,
            segment_metadata=segment_info.to_json(),
        )

    @classmethod
    def cleared(cls) -> "JobScheduleUpdate":
        return cls(
            scheduled_machine_id=None,
            scheduled_start_time=None,
            scheduled_end_time=None,
            status=JobStatus.NOT_SCHEDULED,
            segment_metadata=None,
        )

    def apply_to(self, job: Job) -> Job:
        """Return a copy of ``job`` with this update applied."""
        updated = job.model_copy(update=self.model_dump())
        updated.mark_updated()
        return updated
