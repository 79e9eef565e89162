"""
Test factories for scheduling entities.

All times are built on a fixed Monday so scenarios read as wall-clock hours.
"""

from datetime import date, datetime, time, timedelta, timezone
from uuid import UUID

from flexi.domain.scheduling.entities.job import Job, JobScheduleUpdate
from flexi.domain.scheduling.entities.machine import Machine
from flexi.domain.scheduling.events.domain_events import DomainEvent, DomainEventHandler
from flexi.domain.scheduling.value_objects.enums import JobStatus
from flexi.domain.scheduling.value_objects.segment import Segment
from flexi.domain.scheduling.value_objects.segment_info import SegmentInfo

BASE_DAY = date(2025, 3, 10)


class RecordingHandler(DomainEventHandler):
    """Keeps every dispatched event."""

    def __init__(self):
        self.events: list[DomainEvent] = []

    def can_handle(self, event: DomainEvent) -> bool:
        return True

    def handle(self, event: DomainEvent) -> None:
        self.events.append(event)

    def of_type(self, event_type: type) -> list[DomainEvent]:
        return [e for e in self.events if isinstance(e, event_type)]


def day(offset: int = 0) -> date:
    return BASE_DAY + timedelta(days=offset)


def at(hour: int, minute: int = 0, day_offset: int = 0) -> datetime:
    """UTC timestamp on the base day (or an offset day)."""
    return datetime.combine(day(day_offset), time(hour, minute), tzinfo=timezone.utc)


def hour_block(hour: int, day_offset: int = 0) -> Segment:
    return Segment.from_start(at(hour, day_offset=day_offset), 1.0)


class MachineFactory:
    @staticmethod
    def create(machine_name: str = "Press 1", work_center: str | None = "PRESS") -> Machine:
        return Machine(machine_name=machine_name, work_center=work_center)


class JobFactory:
    _counter = 0

    @classmethod
    def create(
        cls,
        job_number: str | None = None,
        duration_hours: float | None = 1.0,
        time_remaining_hours: float | None = None,
        work_center: str | None = "PRESS",
    ) -> Job:
        cls._counter += 1
        return Job(
            job_number=job_number or f"JOB-{cls._counter:04d}",
            duration_hours=duration_hours,
            time_remaining_hours=time_remaining_hours,
            work_center=work_center,
        )

    @classmethod
    def scheduled(
        cls,
        machine_id: UUID,
        start: datetime,
        duration_hours: float,
        job_number: str | None = None,
        segments: list[Segment] | None = None,
    ) -> Job:
        """A job already placed on a machine with matching segment metadata."""
        job = cls.create(job_number=job_number, duration_hours=duration_hours)
        placed = segments or [Segment.from_start(start, duration_hours)]
        info = SegmentInfo.from_segments(placed, duration_hours)
        return JobScheduleUpdate.placed(machine_id, info).apply_to(job)

    @classmethod
    def legacy_scheduled(
        cls,
        machine_id: UUID,
        start: datetime,
        duration_hours: float,
        job_number: str | None = None,
        segment_metadata: str | None = None,
    ) -> Job:
        """A scheduled job written before segment metadata existed."""
        job = cls.create(job_number=job_number, duration_hours=duration_hours)
        return job.model_copy(
            update={
                "status": JobStatus.SCHEDULED,
                "scheduled_machine_id": machine_id,
                "scheduled_start_time": start,
                "scheduled_end_time": start + timedelta(hours=duration_hours),
                "segment_metadata": segment_metadata,
            }
        )
