"""
SegmentInfo Value Object

Typed form of the segment metadata persisted on a job record. The persisted
text keeps the established wire shape::

    {
        "totalSegments": 2,
        "segments": [{"start": "...Z", "end": "...Z", "duration": 1.0}, ...],
        "originalDuration": 3.0,
        "wasSplit": true
    }
"""

from collections.abc import Sequence
from datetime import datetime

import pydantic
from pydantic import ConfigDict, Field, model_validator
from typing_extensions import Self

from ...shared.base import ValueObject
from ...shared.exceptions import SegmentMetadataError
from .segment import Segment
from .time import ensure_utc


class SegmentRecord(ValueObject):
    """One serialized segment."""

    start: datetime
    end: datetime
    duration: float = Field(ge=0)

    @classmethod
    def from_segment(cls, segment: Segment) -> "SegmentRecord":
        return cls(start=segment.start, end=segment.end, duration=segment.duration_hours)

    def to_segment(self) -> Segment:
        return Segment(ensure_utc(self.start), ensure_utc(self.end), self.duration)


class SegmentInfo(ValueObject):
    """Segment metadata of a scheduled job."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    total_segments: int = Field(alias="totalSegments", ge=0)
    segments: tuple[SegmentRecord, ...]
    original_duration: float = Field(alias="originalDuration", ge=0)
    was_split: bool = Field(alias="wasSplit")

    @model_validator(mode="after")
    def _check_segment_count(self) -> Self:
        if self.total_segments != len(self.segments):
            raise ValueError(
                f"totalSegments is {self.total_segments} "
                f"but {len(self.segments)} segments are listed"
            )
        return self

    @classmethod
    def from_segments(
        cls, segments: Sequence[Segment], original_duration: float
    ) -> "SegmentInfo":
        return cls(
            total_segments=len(segments),
            segments=tuple(SegmentRecord.from_segment(s) for s in segments),
            original_duration=original_duration,
            was_split=len(segments) > 1,
        )

    @classmethod
    def from_json(cls, payload: str) -> "SegmentInfo":
        """
        Decode persisted metadata.

        Raises:
            SegmentMetadataError: If the text is not valid segment metadata
        """
        try:
            return cls.model_validate_json(payload)
        except pydantic.ValidationError as e:
            raise SegmentMetadataError(f"Invalid segment metadata: {e}") from e

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)

    def to_segments(self) -> list[Segment]:
        return [record.to_segment() for record in self.segments]
