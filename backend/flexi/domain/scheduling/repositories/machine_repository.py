"""
Machine Repository Interface

Defines the contract for machine lookups.
"""

from abc import ABC, abstractmethod
from uuid import UUID

from ..entities.machine import Machine


class MachineRepository(ABC):
    """Abstract repository interface for Machine entities."""

    @abstractmethod
    async def get_by_id(self, machine_id: UUID) -> Machine | None:
        """
        Retrieve a machine by its ID.

        Args:
            machine_id: Unique machine identifier

        Returns:
            Machine entity or None if not found
        """
        pass
