"""Calendar day/week helpers and grid pixel <-> minute conversion.

Weekday indices follow the calendar grid: 0=Sunday ... 6=Saturday. Every
function takes the calendar zone explicitly (``tz``); ``None`` means the values
are already wall-clock times in the calendar's zone.
"""
from __future__ import annotations

import math
from datetime import date, datetime, time, timedelta, timezone, tzinfo

MINUTES_PER_DAY = 24 * 60
DEFAULT_SNAP_STEP = 15


def to_local(value: datetime, tz: tzinfo | None) -> datetime:
    """Express ``value`` in the calendar zone. Naive values are naive UTC."""
    if tz is None:
        return value
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(tz)


def to_naive_utc(value: datetime) -> datetime:
    """Storage format: naive UTC."""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def js_weekday(value: date) -> int:
    return (value.weekday() + 1) % 7


def week_start(value: date | datetime) -> datetime:
    """Sunday 00:00 of the week containing ``value`` (keeps ``value``'s tzinfo)."""
    if isinstance(value, datetime):
        day, tz = value.date(), value.tzinfo
    else:
        day, tz = value, None
    sunday = day - timedelta(days=js_weekday(day))
    return datetime.combine(sunday, time.min, tzinfo=tz)


def day_key(value: date | datetime) -> str:
    if isinstance(value, datetime):
        value = value.date()
    return value.isoformat()


def parse_day_key(key: str) -> date:
    return date.fromisoformat(key)


def combine_day_and_time(day: date, template: datetime) -> datetime:
    """``day`` at ``template``'s wall-clock time, in ``template``'s zone."""
    return datetime.combine(day, template.time(), tzinfo=template.tzinfo)


def end_of_day(day: date, tz: tzinfo | None = None) -> datetime:
    return datetime.combine(day, time.max, tzinfo=tz)


def minutes_of_day(value: datetime) -> int:
    return value.hour * 60 + value.minute


def at_minutes(day: date, minutes: int, tz: tzinfo | None = None) -> datetime:
    return datetime.combine(day, time.min, tzinfo=tz) + timedelta(minutes=minutes)


def snap_minutes(minutes: float, step: int = DEFAULT_SNAP_STEP) -> int:
    # Half-up; round() would go to even on exact halves
    return int(math.floor(minutes / step + 0.5)) * step


def _clamp_start(minutes: int, step: int) -> int:
    return max(0, min(minutes, MINUTES_PER_DAY - step))


def pixels_to_minutes_of_day(
    y: float, px_per_hour: float, step: int = DEFAULT_SNAP_STEP
) -> int:
    """Nearest snapped time-of-day for a grid offset, within [00:00, 24:00 - step]."""
    raw = (y / px_per_hour) * 60
    return _clamp_start(snap_minutes(raw, step), step)


def slot_minutes_at(
    y: float, px_per_hour: float, step: int = DEFAULT_SNAP_STEP
) -> int:
    """Start of the grid slot containing ``y`` (used for click-to-create)."""
    raw = (y / px_per_hour) * 60
    # The epsilon keeps a click exactly on a line in the slot above it
    snapped = int(math.floor((raw - 0.0001) / step)) * step
    return _clamp_start(snapped, step)


def minutes_to_pixels(minutes: float, px_per_hour: float) -> float:
    return (minutes / 60) * px_per_hour
