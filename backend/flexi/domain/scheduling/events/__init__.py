"""
Domain Events Module

Exports scheduling events and event handling infrastructure.
"""

from .domain_events import (
    DomainEvent,
    DomainEventDispatcher,
    DomainEventHandler,
    JobScheduled,
    JobsShunted,
    JobUnscheduled,
    MachineAvailabilityChanged,
    QueueRecalculated,
    get_event_dispatcher,
)

__all__ = [
    # Base classes
    "DomainEvent",
    "DomainEventHandler",
    "DomainEventDispatcher",
    # Job events
    "JobScheduled",
    "JobUnscheduled",
    "JobsShunted",
    "QueueRecalculated",
    # Machine events
    "MachineAvailabilityChanged",
    # Utility functions
    "get_event_dispatcher",
]
