"""
Shared fixtures for the scheduler test suite.

Services are wired over in-memory repositories with a private event
dispatcher and a frozen clock (Monday 2025-03-10 08:07 UTC).
"""

from datetime import datetime

import pytest

from flexi.domain.scheduling.entities.machine import Machine
from flexi.domain.scheduling.events.domain_events import DomainEventDispatcher
from flexi.infrastructure.dependencies import SchedulerServices, build_scheduler
from flexi.infrastructure.repositories.in_memory import (
    InMemoryAvailabilityRepository,
    InMemoryJobRepository,
    InMemoryMachineRepository,
)
from flexi.tests.factories import MachineFactory, RecordingHandler, at


@pytest.fixture
def now() -> datetime:
    """Frozen wall clock for queue operations."""
    return at(8, 7)


@pytest.fixture
def machine() -> Machine:
    """Machine in the PRESS work center."""
    return MachineFactory.create()


@pytest.fixture
def job_repository() -> InMemoryJobRepository:
    """Empty job store."""
    return InMemoryJobRepository()


@pytest.fixture
def machine_repository(machine) -> InMemoryMachineRepository:
    """Machine store holding the default machine."""
    return InMemoryMachineRepository([machine])


@pytest.fixture
def availability_repository() -> InMemoryAvailabilityRepository:
    """Availability store without unavailable hours."""
    return InMemoryAvailabilityRepository()


@pytest.fixture
def recorder() -> RecordingHandler:
    return RecordingHandler()


@pytest.fixture
def dispatcher(recorder) -> DomainEventDispatcher:
    """Private dispatcher so tests never touch the global one."""
    dispatcher = DomainEventDispatcher()
    dispatcher.register_handler(recorder)
    return dispatcher


@pytest.fixture
def services(
    job_repository, machine_repository, availability_repository, dispatcher, now
) -> SchedulerServices:
    """Fully wired scheduler."""
    return build_scheduler(
        job_repository,
        machine_repository,
        availability_repository,
        event_dispatcher=dispatcher,
        clock=lambda: now,
        lock_timeout_seconds=0.2,
    )
