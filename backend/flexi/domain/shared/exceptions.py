"""
Domain Exceptions

Defines exceptions for scheduling errors with a type discriminator so callers
can tell user-facing failures from consistency breaches and transient errors.
Overlap conflicts are not exceptions; they are returned as data by the
scheduling engine.
"""

from datetime import date
from enum import Enum
from uuid import UUID


class ErrorType(str, Enum):
    """Error type enumeration for discriminated unions."""

    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    BUSINESS_RULE = "business_rule"
    NO_SLOT_AVAILABLE = "no_slot_available"
    SHUNT_INFEASIBLE = "shunt_infeasible"
    INVARIANT_VIOLATION = "invariant_violation"
    AVAILABILITY_CONFLICT = "availability_conflict"
    CONCURRENCY = "concurrency"
    DATA_INTEGRITY = "data_integrity"


class DomainError(Exception):
    """Base class for all domain errors with type discrimination."""

    retryable: bool = False

    def __init__(
        self,
        message: str,
        error_type: ErrorType,
        details: dict[str, str | int | float | bool | None] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.error_type = error_type
        self.details = details or {}

    def to_dict(self) -> dict[str, object]:
        """Convert error to dictionary for API responses."""
        return {
            "type": self.error_type.value,
            "message": self.message,
            "retryable": self.retryable,
            "details": self.details,
        }


class ValidationError(DomainError):
    """Raised when domain validation rules are violated."""

    def __init__(
        self,
        field_name: str,
        value: str | int | float | bool | None,
        message: str,
    ) -> None:
        self.field_name = field_name
        self.value = value
        super().__init__(
            f"Validation failed for field '{field_name}': {message}",
            ErrorType.VALIDATION,
            {"field": field_name, "value": str(value) if value is not None else None},
        )


# Lookup errors
class JobNotFoundError(DomainError):
    """Raised when a job is not found."""

    def __init__(self, job_id: UUID) -> None:
        super().__init__(
            f"Job not found: {job_id}",
            ErrorType.NOT_FOUND,
            {"job_id": str(job_id), "entity_type": "job"},
        )
        self.job_id = job_id


class MachineNotFoundError(DomainError):
    """Raised when a machine is not found."""

    def __init__(self, machine_id: UUID) -> None:
        super().__init__(
            f"Machine not found: {machine_id}",
            ErrorType.NOT_FOUND,
            {"machine_id": str(machine_id), "entity_type": "machine"},
        )
        self.machine_id = machine_id


class JobNotInQueueError(DomainError):
    """Raised when a queue operation names a job that is not queued on the machine."""

    def __init__(self, job_id: UUID, machine_id: UUID) -> None:
        super().__init__(
            f"Job {job_id} is not in the queue of machine {machine_id}",
            ErrorType.NOT_FOUND,
            {"job_id": str(job_id), "machine_id": str(machine_id)},
        )
        self.job_id = job_id
        self.machine_id = machine_id


# Scheduling errors
class WorkCenterMismatchError(DomainError):
    """Raised when a job is dropped on a machine of another work center."""

    def __init__(self, job_work_center: str, machine_work_center: str) -> None:
        super().__init__(
            f"Work center mismatch: job requires '{job_work_center}' "
            f"but machine is '{machine_work_center}'",
            ErrorType.BUSINESS_RULE,
            {
                "job_work_center": job_work_center,
                "machine_work_center": machine_work_center,
            },
        )


class NoSlotAvailableError(DomainError):
    """Raised when splitting exhausted its lookahead without placing the job."""

    def __init__(self, job_id: UUID, machine_id: UUID) -> None:
        super().__init__(
            f"No available time slots found for job {job_id} on machine {machine_id}",
            ErrorType.NO_SLOT_AVAILABLE,
            {"job_id": str(job_id), "machine_id": str(machine_id)},
        )
        self.job_id = job_id
        self.machine_id = machine_id


class ShuntInfeasibleError(DomainError):
    """Raised when no gap large enough for the dragged job exists in the queue."""

    def __init__(
        self, message: str, details: dict[str, str | int | float | bool | None] | None = None
    ) -> None:
        super().__init__(message, ErrorType.SHUNT_INFEASIBLE, details)


class InvariantViolationError(DomainError):
    """
    Raised when a step expected to be conflict-free reports a conflict.

    Signals a stale read or a concurrent external mutation, not a user error.
    """

    def __init__(
        self, message: str, details: dict[str, str | int | float | bool | None] | None = None
    ) -> None:
        super().__init__(message, ErrorType.INVARIANT_VIOLATION, details)


class LockTimeoutError(DomainError):
    """Raised when a machine lock could not be acquired in time."""

    retryable = True

    def __init__(self, machine_id: UUID, timeout_seconds: float) -> None:
        super().__init__(
            f"Timed out after {timeout_seconds}s waiting for machine {machine_id}",
            ErrorType.CONCURRENCY,
            {"machine_id": str(machine_id), "timeout_seconds": timeout_seconds},
        )
        self.machine_id = machine_id
        self.timeout_seconds = timeout_seconds


# Availability errors
class AvailabilityConflictError(DomainError):
    """Raised when new unavailability would overlap a scheduled job."""

    def __init__(
        self, machine_id: UUID, day: date, hour: int, job_number: str
    ) -> None:
        super().__init__(
            f"Cannot set machine unavailable during scheduled job: {job_number}",
            ErrorType.AVAILABILITY_CONFLICT,
            {
                "machine_id": str(machine_id),
                "date": day.isoformat(),
                "hour": hour,
                "job_number": job_number,
            },
        )
        self.machine_id = machine_id
        self.day = day
        self.hour = hour
        self.job_number = job_number


# Data errors
class SegmentMetadataError(DomainError):
    """Raised when persisted segment metadata cannot be decoded."""

    def __init__(self, message: str) -> None:
        super().__init__(message, ErrorType.DATA_INTEGRITY)
