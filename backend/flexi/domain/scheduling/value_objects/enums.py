"""Domain enums for scheduling."""

from enum import Enum


class JobStatus(str, Enum):
    """Scheduling status of a job as stored by the order backend."""

    SCHEDULED = "SCHEDULED"
    NOT_SCHEDULED = "NOT SCHEDULED"

    @property
    def is_scheduled(self) -> bool:
        return self is JobStatus.SCHEDULED


class ShuntDirection(str, Enum):
    """Direction in which neighbouring jobs are pushed to open a gap."""

    LEFT = "left"
    RIGHT = "right"

    @classmethod
    def from_cursor_position(cls, fraction: float) -> "ShuntDirection":
        """
        Pick a direction from where a job was dropped on the conflicting card.

        Args:
            fraction: Horizontal drop position inside the card, 0.0 to 1.0

        Returns:
            LEFT for the left half of the card, RIGHT otherwise
        """
        if not 0.0 <= fraction <= 1.0:
            raise ValueError(f"Cursor position must be within [0, 1], got {fraction}")
        return cls.LEFT if fraction < 0.5 else cls.RIGHT
