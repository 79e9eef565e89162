"""
Interval Splitter

Splits a job's duration into contiguous segments around a machine's
unavailable windows, either forward from a fixed start or backward from a
fixed end. Pure computation over its inputs.
"""

from collections.abc import Sequence
from datetime import datetime

from ....core.config import settings
from ....core.observability import get_logger
from ...shared.base import DomainService
from ..value_objects.segment import Segment
from ..value_objects.time import ensure_utc, hours_between

logger = get_logger(__name__)

# Remaining durations below this are float noise, not work left to place
EPSILON_HOURS = 1e-9


def skip_forward(moment: datetime, windows: Sequence[Segment]) -> datetime:
    """Move ``moment`` past every window containing it, following adjacent windows."""
    moved = True
    while moved:
        moved = False
        for window in windows:
            if window.start <= moment < window.end:
                moment = window.end
                moved = True
                break
    return moment


def pull_back(moment: datetime, windows: Sequence[Segment]) -> datetime:
    """Move an end boundary back to the start of every window it falls in."""
    moved = True
    while moved:
        moved = False
        for window in windows:
            if window.start < moment <= window.end:
                moment = window.start
                moved = True
                break
    return moment


def intersects_any(start: datetime, end: datetime, windows: Sequence[Segment]) -> bool:
    return any(window.overlaps_interval(start, end) for window in windows)


class IntervalSplitter(DomainService):
    """
    Produces the occupied segments of a job around unavailable windows.

    Availability is only known up to ``horizon``; work that does not fit
    before it is left unplaced, so the split comes up short and the caller
    treats it as no slot. Without a horizon, time past the last window is
    free.
    """

    def __init__(self, max_segments: int | None = None) -> None:
        self._max_segments = max_segments or settings.SCHEDULING_MAX_SEGMENTS

    @property
    def max_segments(self) -> int:
        return self._max_segments

    def split_forward(
        self,
        start_time: datetime,
        duration_hours: float,
        windows: Sequence[Segment],
        horizon: datetime | None = None,
    ) -> list[Segment]:
        """
        Split a job that starts at ``start_time``.

        A start inside a window is moved to the window's end first. Work is
        then laid down up to the next window, which is jumped over, until the
        whole duration is placed or ``horizon`` is reached.

        Args:
            start_time: Requested start
            duration_hours: Hours to place
            windows: Unavailable windows of the machine
            horizon: End of the time range the windows cover

        Returns:
            Chronological, non-overlapping segments
        """
        ordered = sorted(windows, key=lambda w: w.start)
        current = skip_forward(ensure_utc(start_time), ordered)
        horizon = ensure_utc(horizon) if horizon is not None else None
        remaining = duration_hours
        segments: list[Segment] = []

        while remaining > EPSILON_HOURS:
            if len(segments) >= self._max_segments:
                self._log_truncation("forward", start_time, duration_hours, remaining)
                break

            blocker = next((w for w in ordered if w.start >= current), None)
            if blocker is None or (horizon is not None and blocker.start >= horizon):
                if horizon is None:
                    segments.append(Segment.from_start(current, remaining))
                    break
                available = hours_between(current, horizon)
                if available >= remaining:
                    segments.append(Segment.from_start(current, remaining))
                    break
                if available > 0:
                    segments.append(Segment(current, horizon, available))
                    remaining -= available
                self._log_horizon("forward", start_time, horizon, duration_hours, remaining)
                break

            available = hours_between(current, blocker.start)
            if available >= remaining:
                segments.append(Segment.from_start(current, remaining))
                break
            if available > 0:
                segments.append(Segment(current, blocker.start, available))
                remaining -= available

            current = skip_forward(blocker.end, ordered)

        return segments

    def split_backward(
        self,
        end_time: datetime,
        duration_hours: float,
        windows: Sequence[Segment],
        horizon: datetime | None = None,
    ) -> list[Segment]:
        """
        Split a job that must end at ``end_time``.

        Mirror of ``split_forward``: an end inside a window is pulled back to
        the window's start, then work is laid down backwards between the
        nearest preceding window and the current end. ``horizon`` is the
        earliest moment the windows cover.

        Returns:
            Chronological, non-overlapping segments
        """
        ordered = sorted(windows, key=lambda w: w.start)
        current_end = pull_back(ensure_utc(end_time), ordered)
        horizon = ensure_utc(horizon) if horizon is not None else None
        remaining = duration_hours
        reversed_segments: list[Segment] = []

        while remaining > EPSILON_HOURS:
            if len(reversed_segments) >= self._max_segments:
                self._log_truncation("backward", end_time, duration_hours, remaining)
                break

            blocker = max(
                (w for w in ordered if w.end <= current_end),
                key=lambda w: w.end,
                default=None,
            )
            if blocker is None or (horizon is not None and blocker.end <= horizon):
                if horizon is None:
                    reversed_segments.append(Segment.from_end(current_end, remaining))
                    break
                available = hours_between(horizon, current_end)
                if available >= remaining:
                    reversed_segments.append(Segment.from_end(current_end, remaining))
                    break
                if available > 0:
                    reversed_segments.append(Segment(horizon, current_end, available))
                    remaining -= available
                self._log_horizon("backward", end_time, horizon, duration_hours, remaining)
                break

            window_start = skip_forward(blocker.end, ordered)
            available = hours_between(window_start, current_end)
            if available <= 0:
                current_end = blocker.start
                continue

            if available >= remaining:
                reversed_segments.append(Segment.from_end(current_end, remaining))
                break
            reversed_segments.append(Segment(window_start, current_end, available))
            remaining -= available
            current_end = window_start

        return list(reversed(reversed_segments))

    def _log_horizon(
        self,
        direction: str,
        anchor: datetime,
        horizon: datetime,
        duration_hours: float,
        remaining: float,
    ) -> None:
        logger.info(
            "split_horizon_reached",
            direction=direction,
            anchor=ensure_utc(anchor).isoformat(),
            horizon=horizon.isoformat(),
            duration_hours=duration_hours,
            unplaced_hours=remaining,
        )

    def _log_truncation(
        self,
        direction: str,
        anchor: datetime,
        duration_hours: float,
        remaining: float,
    ) -> None:
        logger.warning(
            "split_segment_cap_exceeded",
            direction=direction,
            anchor=ensure_utc(anchor).isoformat(),
            duration_hours=duration_hours,
            unplaced_hours=remaining,
            max_segments=self._max_segments,
        )
