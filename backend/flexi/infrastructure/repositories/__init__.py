from .in_memory import (
    InMemoryAvailabilityRepository,
    InMemoryJobRepository,
    InMemoryMachineRepository,
)

__all__ = [
    "InMemoryAvailabilityRepository",
    "InMemoryJobRepository",
    "InMemoryMachineRepository",
]
