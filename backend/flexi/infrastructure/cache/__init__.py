from .availability_cache import AvailabilityCache

__all__ = ["AvailabilityCache"]
