"""
Time helpers for the scheduling domain.

All scheduling timestamps are timezone-aware UTC. Unavailable hours are stored
as hour markers per calendar date and are interpreted in UTC as well.
"""

from datetime import date, datetime, time, timedelta, timezone

SECONDS_PER_HOUR = 3600


def ensure_utc(value: datetime) -> datetime:
    """Return ``value`` as an aware UTC datetime; naive values are taken as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def hours_to_timedelta(hours: float) -> timedelta:
    return timedelta(hours=hours)


def hours_between(start: datetime, end: datetime) -> float:
    return (end - start).total_seconds() / SECONDS_PER_HOUR


def whole_minutes_between(start: datetime, end: datetime) -> int:
    """Minutes from ``start`` to ``end``, floored."""
    return int((end - start).total_seconds() // 60)


def duration_minutes(hours: float) -> int:
    """Round a duration in hours to whole minutes."""
    return round(hours * 60)


def start_of_day(value: datetime) -> datetime:
    value = ensure_utc(value)
    return datetime.combine(value.date(), time(0), tzinfo=timezone.utc)


def hour_start(day: date, hour: int) -> datetime:
    """UTC start of hour marker ``hour`` on ``day``."""
    return datetime.combine(day, time(hour), tzinfo=timezone.utc)


def date_range(start_day: date, end_day: date) -> list[date]:
    """Calendar dates from ``start_day`` to ``end_day`` inclusive."""
    days = []
    current = start_day
    while current <= end_day:
        days.append(current)
        current += timedelta(days=1)
    return days


def round_up_to_slot(value: datetime, slot_minutes: int = 15) -> datetime:
    """
    Round a timestamp up to the next slot boundary.

    Seconds and sub-seconds are dropped first, so an end time carrying float
    noise past a boundary stays on that boundary. A value already on a
    boundary is returned unchanged.

    Args:
        value: Timestamp to align
        slot_minutes: Slot size, a divisor of 60

    Returns:
        Aligned UTC timestamp
    """
    value = ensure_utc(value).replace(second=0, microsecond=0)
    remainder = value.minute % slot_minutes
    if remainder == 0:
        return value
    return value + timedelta(minutes=slot_minutes - remainder)


def round_down_to_slot(value: datetime, slot_minutes: int = 15) -> datetime:
    """Round a timestamp down to the slot boundary at or before it."""
    value = ensure_utc(value).replace(second=0, microsecond=0)
    return value - timedelta(minutes=value.minute % slot_minutes)
