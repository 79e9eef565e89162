"""Value objects for the scheduling domain."""

from .enums import JobStatus, ShuntDirection
from .results import (
    ConflictDetails,
    ConflictResult,
    IntegrityReport,
    OverlapResult,
    PlacementResult,
    QueueOutcome,
    ShuntOutcome,
    ShuntPlan,
    SlotCheck,
)
from .segment import Segment, earliest_start, is_chronological, latest_end, total_hours
from .segment_info import SegmentInfo, SegmentRecord
from .time import ensure_utc, round_down_to_slot, round_up_to_slot

__all__ = [
    # Enums
    "JobStatus",
    "ShuntDirection",
    # Segments
    "Segment",
    "SegmentInfo",
    "SegmentRecord",
    "earliest_start",
    "is_chronological",
    "latest_end",
    "total_hours",
    # Results
    "ConflictDetails",
    "ConflictResult",
    "IntegrityReport",
    "OverlapResult",
    "PlacementResult",
    "QueueOutcome",
    "ShuntOutcome",
    "ShuntPlan",
    "SlotCheck",
    # Time
    "ensure_utc",
    "round_down_to_slot",
    "round_up_to_slot",
]
