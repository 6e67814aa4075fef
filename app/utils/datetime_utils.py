"""
Datetime helpers for biometric reconciliation.
Device scans are local wall-clock time and are handled as naive datetimes.
Minute/hour differences truncate toward zero, so 59s late is 0 minutes late.
"""
import calendar
from datetime import date, datetime, time, timezone
from typing import Optional, Union

UTC = timezone.utc

DAY_NAMES = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")


def now_utc() -> datetime:
    """Current time in UTC (timezone-aware). Use for created_at, verified_at, etc."""
    return datetime.now(UTC)


def combine(day: date, at: Union[time, str]) -> datetime:
    """Build a naive datetime from a date and a time-of-day (time or 'HH:MM[:SS]')."""
    if isinstance(at, str):
        at = parse_time(at)
    return datetime.combine(day, at.replace(tzinfo=None))


def parse_time(value: str) -> time:
    """Parse 'HH:MM' or 'HH:MM:SS' into a time."""
    parts = [int(p) for p in value.strip().split(":")]
    while len(parts) < 3:
        parts.append(0)
    return time(parts[0], parts[1], parts[2])


def minutes_between(start: datetime, end: datetime) -> int:
    """Signed whole minutes from start to end (positive when end is later)."""
    return int((end - start).total_seconds() / 60)


def hours_between(start: datetime, end: datetime) -> int:
    """Signed whole hours from start to end."""
    return int((end - start).total_seconds() / 3600)


def floor_minute(dt: datetime) -> datetime:
    """Drop seconds and microseconds."""
    return dt.replace(second=0, microsecond=0)


def day_name(day: date) -> str:
    """Lowercase English weekday name ('monday' ... 'sunday')."""
    return DAY_NAMES[day.weekday()]


def add_months(day: date, months: int) -> date:
    """Add calendar months, clamping to the last day of the target month."""
    month_index = day.month - 1 + months
    year = day.year + month_index // 12
    month = month_index % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day.day, last_day))


def add_years(day: date, years: int) -> date:
    """Add calendar years (Feb 29 becomes Feb 28 in non-leap years)."""
    return add_months(day, years * 12)


def fmt_hm(dt: Optional[Union[datetime, time]], missing: str = "N/A") -> str:
    """Format as HH:MM, or the placeholder when missing."""
    if dt is None:
        return missing
    return dt.strftime("%H:%M")

