"""Base classes for domain entities and value objects."""

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ValueObject(BaseModel):
    """Base class for value objects (immutable, defined by their values)."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)


class Entity(BaseModel, ABC):
    """Base class for entities (have identity, can change over time)."""

    model_config = ConfigDict(arbitrary_types_allowed=True, validate_assignment=True)

    id: UUID = Field(default_factory=uuid4)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime | None = None

    def __eq__(self, other: Any) -> bool:
        """Entities are equal if they have the same ID and type."""
        if not isinstance(other, self.__class__):
            return False
        return self.id == other.id

    def __hash__(self) -> int:
        """Hash based on entity ID."""
        return hash(self.id)

    def mark_updated(self) -> None:
        """Mark the entity as updated."""
        self.updated_at = utc_now()

    @abstractmethod
    def is_valid(self) -> bool:
        """Validate business rules for this entity."""

    def validate(self) -> None:
        """Validate the entity and raise exception if invalid."""
        if not self.is_valid():
            raise ValueError(
                f"Entity {self.__class__.__name__} with ID {self.id} is invalid"
            )


class DomainService(ABC):
    """Base class for domain services (business logic that doesn't belong to a single entity)."""
