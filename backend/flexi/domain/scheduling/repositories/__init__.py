"""Repository interfaces consumed by the scheduling core."""

from .availability_repository import AvailabilityRepository
from .job_repository import JobRepository
from .machine_repository import MachineRepository

__all__ = ["AvailabilityRepository", "JobRepository", "MachineRepository"]
