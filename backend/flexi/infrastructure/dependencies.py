"""
Service wiring.

Builds the scheduling services over a set of repositories so that the
engine, conflict resolver and queue manager share one availability cache,
one lock registry and one event dispatcher.
"""

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from ..domain.scheduling.events.domain_events import (
    DomainEventDispatcher,
    get_event_dispatcher,
)
from ..domain.scheduling.repositories import (
    AvailabilityRepository,
    JobRepository,
    MachineRepository,
)
from ..domain.scheduling.services import (
    AvailabilityService,
    ConflictResolver,
    IntervalSplitter,
    MachineLockRegistry,
    OverlapChecker,
    QueueManager,
    SchedulingEngine,
)
from ..domain.shared.base import utc_now
from .cache.availability_cache import AvailabilityCache


@dataclass(frozen=True)
class SchedulerServices:
    availability: AvailabilityService
    overlap_checker: OverlapChecker
    engine: SchedulingEngine
    conflict_resolver: ConflictResolver
    queue_manager: QueueManager
    locks: MachineLockRegistry
    events: DomainEventDispatcher


def build_scheduler(
    job_repository: JobRepository,
    machine_repository: MachineRepository,
    availability_repository: AvailabilityRepository,
    event_dispatcher: DomainEventDispatcher | None = None,
    clock: Callable[[], datetime] = utc_now,
    lock_timeout_seconds: float | None = None,
) -> SchedulerServices:
    """
    Wire the scheduling services.

    Args:
        job_repository: Job persistence
        machine_repository: Machine lookups
        availability_repository: Unavailable hours persistence
        event_dispatcher: Dispatcher for domain events; the global one by default
        clock: Source of "now" for queue operations
        lock_timeout_seconds: Override of the configured machine lock timeout

    Returns:
        SchedulerServices: The wired services
    """
    events = event_dispatcher or get_event_dispatcher()
    locks = MachineLockRegistry(timeout_seconds=lock_timeout_seconds)
    availability = AvailabilityService(
        availability_repository,
        job_repository,
        cache=AvailabilityCache(),
        event_dispatcher=events,
    )
    overlap_checker = OverlapChecker(job_repository)
    engine = SchedulingEngine(
        job_repository,
        machine_repository,
        availability,
        overlap_checker=overlap_checker,
        splitter=IntervalSplitter(),
        event_dispatcher=events,
    )
    return SchedulerServices(
        availability=availability,
        overlap_checker=overlap_checker,
        engine=engine,
        conflict_resolver=ConflictResolver(engine, locks=locks, event_dispatcher=events),
        queue_manager=QueueManager(engine, locks=locks, event_dispatcher=events, clock=clock),
        locks=locks,
        events=events,
    )
