"""Segment value object.

A segment is a contiguous, half-open interval ``[start, end)`` that a job
occupies on a machine, together with the hours it accounts for. Unavailable
windows use the same type.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime

from .time import ensure_utc, hours_between, hours_to_timedelta


@dataclass(frozen=True)
class Segment:
    start: datetime
    end: datetime
    duration_hours: float

    def __post_init__(self):
        object.__setattr__(self, "start", ensure_utc(self.start))
        object.__setattr__(self, "end", ensure_utc(self.end))
        if self.end < self.start:
            raise ValueError("Segment end must not precede its start")
        if self.duration_hours < 0:
            raise ValueError("Segment duration cannot be negative")

    @classmethod
    def from_start(cls, start: datetime, duration_hours: float) -> Segment:
        return cls(start, start + hours_to_timedelta(duration_hours), duration_hours)

    @classmethod
    def from_end(cls, end: datetime, duration_hours: float) -> Segment:
        return cls(end - hours_to_timedelta(duration_hours), end, duration_hours)

    @classmethod
    def from_bounds(cls, start: datetime, end: datetime) -> Segment:
        return cls(start, end, hours_between(ensure_utc(start), ensure_utc(end)))

    def overlaps(self, other: Segment) -> bool:
        return self.overlaps_interval(other.start, other.end)

    def overlaps_interval(self, start: datetime, end: datetime) -> bool:
        return self.start < end and self.end > start

    def contains(self, moment: datetime) -> bool:
        """True when ``moment`` lies in ``[start, end)``."""
        return self.start <= moment < self.end

    def __str__(self) -> str:
        return f"[{self.start.isoformat()}, {self.end.isoformat()})"


def total_hours(segments: Iterable[Segment]) -> float:
    return sum(segment.duration_hours for segment in segments)


def earliest_start(segments: Sequence[Segment]) -> datetime | None:
    return min((segment.start for segment in segments), default=None)


def latest_end(segments: Sequence[Segment]) -> datetime | None:
    return max((segment.end for segment in segments), default=None)


def is_chronological(segments: Sequence[Segment]) -> bool:
    """True when segments are ordered and do not overlap one another."""
    return all(
        previous.end <= current.start
        for previous, current in zip(segments, segments[1:])
    )
