"""
In-memory repository implementations.

Back the test suite and applications that embed the scheduler without a
database. Stored entities are copied on the way in and out so callers never
share mutable state with the store.
"""

from collections import defaultdict
from datetime import date
from uuid import UUID

from ...domain.scheduling.entities.job import Job, JobScheduleUpdate
from ...domain.scheduling.entities.machine import Machine
from ...domain.scheduling.repositories.availability_repository import AvailabilityRepository
from ...domain.scheduling.repositories.job_repository import JobRepository
from ...domain.scheduling.repositories.machine_repository import MachineRepository
from ...domain.shared.exceptions import JobNotFoundError


class InMemoryJobRepository(JobRepository):
    """Dictionary-backed job store."""

    def __init__(self, jobs: list[Job] | None = None):
        self._jobs: dict[UUID, Job] = {}
        self.update_log: list[tuple[UUID, JobScheduleUpdate]] = []
        for job in jobs or []:
            self.save(job)

    def save(self, job: Job) -> Job:
        self._jobs[job.id] = job.model_copy(deep=True)
        return job

    async def get_by_id(self, job_id: UUID) -> Job | None:
        job = self._jobs.get(job_id)
        return job.model_copy(deep=True) if job else None

    async def get_scheduled_on_machine(self, machine_id: UUID) -> list[Job]:
        return [
            job.model_copy(deep=True)
            for job in self._jobs.values()
            if job.is_scheduled_on(machine_id)
        ]

    async def get_scheduled(self) -> list[Job]:
        return [job.model_copy(deep=True) for job in self._jobs.values() if job.is_scheduled]

    async def persist_job_update(self, job_id: UUID, update: JobScheduleUpdate) -> Job:
        job = self._jobs.get(job_id)
        if job is None:
            raise JobNotFoundError(job_id)
        updated = update.apply_to(job)
        self._jobs[job_id] = updated
        self.update_log.append((job_id, update))
        return updated.model_copy(deep=True)


class InMemoryMachineRepository(MachineRepository):
    def __init__(self, machines: list[Machine] | None = None):
        self._machines: dict[UUID, Machine] = {m.id: m for m in machines or []}

    def save(self, machine: Machine) -> Machine:
        self._machines[machine.id] = machine
        return machine

    async def get_by_id(self, machine_id: UUID) -> Machine | None:
        return self._machines.get(machine_id)


class InMemoryAvailabilityRepository(AvailabilityRepository):
    """Unavailable hours per machine and date."""

    def __init__(self):
        self._hours: dict[UUID, dict[date, list[int]]] = defaultdict(dict)
        self.read_count = 0

    def seed(self, machine_id: UUID, day: date, hours: list[int]) -> None:
        self._hours[machine_id][day] = sorted(set(hours))

    async def get_unavailable_hours(self, machine_id: UUID, day: date) -> list[int]:
        self.read_count += 1
        return list(self._hours[machine_id].get(day, []))

    async def get_unavailable_hours_for_range(
        self, machine_id: UUID, start_day: date, end_day: date
    ) -> dict[date, list[int]]:
        self.read_count += 1
        return {
            day: list(hours)
            for day, hours in self._hours[machine_id].items()
            if start_day <= day <= end_day and hours
        }

    async def set_unavailable_hours(
        self, machine_id: UUID, day: date, hours: list[int]
    ) -> None:
        if hours:
            self._hours[machine_id][day] = sorted(set(hours))
        else:
            self._hours[machine_id].pop(day, None)
