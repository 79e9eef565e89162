"""
Structured results of scheduling operations.

Placement conflicts are reported as data so callers can offer shunting;
only exceptional states raise.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID

from ...shared.exceptions import DomainError, ErrorType
from .enums import ShuntDirection
from .segment import Segment

if TYPE_CHECKING:
    from ..entities.job import Job, JobScheduleUpdate


@dataclass(frozen=True)
class PlacementResult:
    """A conflict-free placement of one job."""

    job_id: UUID
    machine_id: UUID
    start_time: datetime
    end_time: datetime
    was_split: bool
    segments: tuple[Segment, ...]
    update: JobScheduleUpdate
    committed: bool = False

    @property
    def total_hours(self) -> float:
        return sum(s.duration_hours for s in self.segments)


@dataclass(frozen=True)
class ConflictResult:
    """Candidate segments overlap a job that is already scheduled."""

    conflicting_job: Job
    conflicting_segment: Segment
    proposed_segments: tuple[Segment, ...]


@dataclass(frozen=True)
class OverlapResult:
    has_overlap: bool
    conflicting_job: Job | None = None
    conflicting_segment: Segment | None = None
    candidate_segment: Segment | None = None

    @classmethod
    def clear(cls) -> OverlapResult:
        return cls(has_overlap=False)


@dataclass(frozen=True)
class ConflictDetails:
    """Everything the conflict resolver needs to open a gap for a dropped job."""

    dragged_job_id: UUID
    conflicting_job_id: UUID
    proposed_start: datetime
    machine_id: UUID

    @classmethod
    def from_conflict(
        cls,
        job_id: UUID,
        machine_id: UUID,
        proposed_start: datetime,
        conflict: ConflictResult,
    ) -> ConflictDetails:
        return cls(
            dragged_job_id=job_id,
            conflicting_job_id=conflict.conflicting_job.id,
            proposed_start=proposed_start,
            machine_id=machine_id,
        )


@dataclass(frozen=True)
class SlotCheck:
    """Read-only verdict on a requested time slot."""

    is_available: bool
    hits_unavailable_hours: bool = False
    conflicting_job: Job | None = None


@dataclass(frozen=True)
class ShuntPlan:
    """Computed but uncommitted result of a shunt."""

    direction: ShuntDirection
    machine_id: UUID
    dragged_job_id: UUID
    affected_job_ids: tuple[UUID, ...]
    gap_minutes: float
    placements: tuple[PlacementResult, ...] = ()


@dataclass(frozen=True)
class ShuntOutcome:
    success: bool
    updates: tuple[Job, ...] = ()
    error: str | None = None
    error_type: ErrorType | None = None

    @classmethod
    def succeeded(cls, updates: list[Job]) -> ShuntOutcome:
        return cls(success=True, updates=tuple(updates))

    @classmethod
    def failed(cls, error: DomainError) -> ShuntOutcome:
        return cls(success=False, error=error.message, error_type=error.error_type)


@dataclass(frozen=True)
class QueueOutcome:
    success: bool
    updates: tuple[Job, ...] = ()
    error: str | None = None
    error_type: ErrorType | None = None

    @classmethod
    def succeeded(cls, updates: list[Job] | None = None) -> QueueOutcome:
        return cls(success=True, updates=tuple(updates or ()))

    @classmethod
    def failed(cls, error: DomainError) -> QueueOutcome:
        return cls(success=False, error=error.message, error_type=error.error_type)


@dataclass(frozen=True)
class IntegrityReport:
    """Scheduled jobs whose persisted segment metadata needs attention."""

    checked: int = 0
    missing_metadata: tuple[UUID, ...] = field(default_factory=tuple)
    invalid_metadata: tuple[UUID, ...] = field(default_factory=tuple)
    inconsistent: tuple[UUID, ...] = field(default_factory=tuple)

    @property
    def is_healthy(self) -> bool:
        return not (self.missing_metadata or self.invalid_metadata or self.inconsistent)
