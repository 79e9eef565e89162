"""
Availability Repository Interface

Unavailable hours are stored per machine and calendar date as hour markers
0-23. Hour ``h`` on date ``d`` covers ``[d h:00, d h+1:00)`` UTC.
"""

from abc import ABC, abstractmethod
from datetime import date
from uuid import UUID


class AvailabilityRepository(ABC):
    """Abstract repository for machine unavailability records."""

    @abstractmethod
    async def get_unavailable_hours(self, machine_id: UUID, day: date) -> list[int]:
        """
        Retrieve the unavailable hour markers of one machine on one date.

        Args:
            machine_id: Machine identifier
            day: Calendar date

        Returns:
            Hour markers; empty when the machine is fully available
        """
        pass

    @abstractmethod
    async def get_unavailable_hours_for_range(
        self, machine_id: UUID, start_day: date, end_day: date
    ) -> dict[date, list[int]]:
        """
        Retrieve unavailable hours for an inclusive date range in one call.

        Args:
            machine_id: Machine identifier
            start_day: First date
            end_day: Last date, inclusive

        Returns:
            Mapping of date to hour markers; dates without records may be absent
        """
        pass

    @abstractmethod
    async def set_unavailable_hours(
        self, machine_id: UUID, day: date, hours: list[int]
    ) -> None:
        """
        Replace the unavailable hours of one machine on one date.

        Args:
            machine_id: Machine identifier
            day: Calendar date
            hours: New hour markers; empty clears the record
        """
        pass
