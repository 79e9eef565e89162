"""Scheduling domain entities."""

from .job import Job, JobScheduleUpdate
from .machine import Machine

__all__ = ["Job", "JobScheduleUpdate", "Machine"]
