"""
Domain Events

Events raised by the scheduling core after state has been persisted, and the
dispatcher that fans them out to subscribers such as UI notifiers.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from uuid import UUID, uuid4

from ....core.observability import get_logger
from ...shared.base import utc_now
from ..value_objects.enums import ShuntDirection

logger = get_logger(__name__)


@dataclass(frozen=True)
class DomainEvent:
    """Base class for all domain events."""

    event_id: UUID = field(default_factory=uuid4, kw_only=True)
    occurred_at: datetime = field(default_factory=utc_now, kw_only=True)


@dataclass(frozen=True)
class JobScheduled(DomainEvent):
    """Raised when a job is placed on a machine."""

    job_id: UUID
    machine_id: UUID
    start_time: datetime
    end_time: datetime
    was_split: bool


@dataclass(frozen=True)
class JobUnscheduled(DomainEvent):
    """Raised when a job is taken off its machine."""

    job_id: UUID
    machine_id: UUID | None


@dataclass(frozen=True)
class JobsShunted(DomainEvent):
    """Raised when a conflict was resolved by moving neighbouring jobs."""

    machine_id: UUID
    dragged_job_id: UUID
    direction: ShuntDirection
    moved_job_ids: tuple[UUID, ...]


@dataclass(frozen=True)
class QueueRecalculated(DomainEvent):
    """Raised after a queue operation re-placed jobs back to back."""

    machine_id: UUID
    operation: str
    job_ids: tuple[UUID, ...]


@dataclass(frozen=True)
class MachineAvailabilityChanged(DomainEvent):
    """Raised when unavailable hours of a machine were written."""

    machine_id: UUID
    days: tuple[date, ...]


class DomainEventHandler:
    """Base interface for domain event handlers."""

    def can_handle(self, event: DomainEvent) -> bool:
        """Check if this handler can handle the given event."""
        raise NotImplementedError

    def handle(self, event: DomainEvent) -> None:
        """Handle the domain event."""
        raise NotImplementedError


class DomainEventDispatcher:
    """Dispatches domain events to registered handlers."""

    def __init__(self):
        self._handlers: list[DomainEventHandler] = []

    def register_handler(self, handler: DomainEventHandler) -> None:
        if handler not in self._handlers:
            self._handlers.append(handler)

    def unregister_handler(self, handler: DomainEventHandler) -> None:
        if handler in self._handlers:
            self._handlers.remove(handler)

    def dispatch(self, event: DomainEvent) -> None:
        """Dispatch an event to all capable handlers."""
        for handler in self._handlers:
            if handler.can_handle(event):
                try:
                    handler.handle(event)
                except Exception:
                    # A failing subscriber must not undo committed scheduling work
                    logger.exception(
                        "event_handler_failed",
                        event_type=type(event).__name__,
                        event_id=str(event.event_id),
                        handler=type(handler).__name__,
                    )

    def dispatch_all(self, events: list[DomainEvent]) -> None:
        for event in events:
            self.dispatch(event)


_global_dispatcher = DomainEventDispatcher()


def get_event_dispatcher() -> DomainEventDispatcher:
    """Get the global event dispatcher."""
    return _global_dispatcher
