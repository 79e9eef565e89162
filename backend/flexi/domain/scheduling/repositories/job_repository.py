"""
Job Repository Interface

Defines the contract the scheduling core uses to read and update jobs.
"""

from abc import ABC, abstractmethod
from uuid import UUID

from ..entities.job import Job, JobScheduleUpdate


class JobRepository(ABC):
    """
    Abstract repository interface for Job entities.

    The scheduling core only reads snapshots and writes scheduling fields;
    creating and deleting jobs belongs to the surrounding application.
    """

    @abstractmethod
    async def get_by_id(self, job_id: UUID) -> Job | None:
        """
        Retrieve a job by its ID.

        Args:
            job_id: Unique job identifier

        Returns:
            Job entity or None if not found
        """
        pass

    @abstractmethod
    async def get_scheduled_on_machine(self, machine_id: UUID) -> list[Job]:
        """
        Retrieve every SCHEDULED job assigned to a machine.

        Args:
            machine_id: Machine identifier

        Returns:
            Snapshot of scheduled jobs, in no particular order
        """
        pass

    @abstractmethod
    async def get_scheduled(self) -> list[Job]:
        """
        Retrieve every SCHEDULED job on any machine.

        Returns:
            Snapshot of scheduled jobs
        """
        pass

    @abstractmethod
    async def persist_job_update(self, job_id: UUID, update: JobScheduleUpdate) -> Job:
        """
        Write machine, start, end, status and segment metadata as one update.

        Args:
            job_id: Job to update
            update: Scheduling fields to write

        Returns:
            The updated job

        Raises:
            JobNotFoundError: If the job does not exist
        """
        pass
