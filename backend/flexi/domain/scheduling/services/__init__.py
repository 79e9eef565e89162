"""Scheduling domain services."""

from .availability_service import AvailabilityService
from .conflict_resolver import ConflictResolver
from .interval_splitter import IntervalSplitter
from .machine_lock import MachineLockRegistry
from .overlap_checker import OverlapChecker, get_job_occupied_segments
from .queue_manager import QueueManager
from .scheduling_engine import SchedulingEngine

__all__ = [
    "AvailabilityService",
    "ConflictResolver",
    "IntervalSplitter",
    "MachineLockRegistry",
    "OverlapChecker",
    "QueueManager",
    "SchedulingEngine",
    "get_job_occupied_segments",
]
