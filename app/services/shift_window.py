"""
Shift window resolution: which logical shift date a scan belongs to.

A schedule is two time-of-day values. Their topology decides where the
clock events land on the calendar:

    SAME_DAY   08:00-17:00   in and out on the shift date
    NEXT_DAY   22:00-07:00   in on the shift date, out the following day
    GRAVEYARD  00:30-09:30   in and out both on the day after the shift date
"""
import enum
import logging
from collections import OrderedDict
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Iterable, List, Optional

from app.core.config import settings
from app.utils.datetime_utils import combine, day_name, minutes_between

logger = logging.getLogger(__name__)

GRAVEYARD_START_HOUR_LIMIT = 5
GRAVEYARD_EARLY_ARRIVAL_HOUR = 20
LATE_NIGHT_START_HOUR = 22
EVENING_BAND = (18, 23)


class ShiftTopology(str, enum.Enum):
    SAME_DAY = "same_day"
    NEXT_DAY = "next_day"
    GRAVEYARD = "graveyard"


def classify_topology(time_in: time, time_out: time) -> ShiftTopology:
    """Classify a schedule from its time-of-day pair."""
    if time_in.hour < GRAVEYARD_START_HOUR_LIMIT and time_out.hour > time_in.hour:
        return ShiftTopology.GRAVEYARD
    if time_out <= time_in:
        return ShiftTopology.NEXT_DAY
    return ShiftTopology.SAME_DAY


@dataclass(frozen=True)
class ShiftWindow:
    """Concrete scheduled datetimes for one shift date."""

    shift_date: date
    topology: ShiftTopology
    scheduled_in: datetime
    scheduled_out: datetime

    @property
    def time_in_date(self) -> date:
        return self.scheduled_in.date()

    @property
    def time_out_date(self) -> date:
        return self.scheduled_out.date()

    @property
    def start_hour(self) -> int:
        return self.scheduled_in.hour

    @property
    def midpoint(self) -> datetime:
        return self.scheduled_in + (self.scheduled_out - self.scheduled_in) / 2


def shift_window(schedule, shift_date: date) -> ShiftWindow:
    """Build the scheduled in/out datetimes of a schedule for a shift date."""
    topology = classify_topology(schedule.scheduled_time_in, schedule.scheduled_time_out)
    next_day = shift_date + timedelta(days=1)
    if topology == ShiftTopology.GRAVEYARD:
        scheduled_in = combine(next_day, schedule.scheduled_time_in)
        scheduled_out = combine(next_day, schedule.scheduled_time_out)
    elif topology == ShiftTopology.NEXT_DAY:
        scheduled_in = combine(shift_date, schedule.scheduled_time_in)
        scheduled_out = combine(next_day, schedule.scheduled_time_out)
    else:
        scheduled_in = combine(shift_date, schedule.scheduled_time_in)
        scheduled_out = combine(shift_date, schedule.scheduled_time_out)
    return ShiftWindow(shift_date, topology, scheduled_in, scheduled_out)


def assign_shift_date(scanned_at: datetime, schedule) -> date:
    """
    Decide the shift date of a single scan.

    Args:
        scanned_at: Device timestamp (naive local time)
        schedule: Active schedule, or None to fall back to the calendar date

    Returns:
        The logical shift date the scan belongs to
    """
    own_date = scanned_at.date()
    if schedule is None:
        return own_date

    topology = classify_topology(schedule.scheduled_time_in, schedule.scheduled_time_out)
    hour = scanned_at.hour

    if topology == ShiftTopology.GRAVEYARD:
        # Late evening scans are early arrivals for tonight's shift
        if hour >= GRAVEYARD_EARLY_ARRIVAL_HOUR:
            return own_date
        previous = own_date - timedelta(days=1)
        if schedule.works_on_day(day_name(previous)):
            return previous
        return own_date

    if topology == ShiftTopology.SAME_DAY:
        return own_date

    start_hour = schedule.scheduled_time_in.hour
    minutes_to_start = minutes_between(scanned_at, combine(own_date, schedule.scheduled_time_in))
    if 0 <= minutes_to_start <= settings.NEAR_SHIFT_START_TOLERANCE_MINUTES:
        return own_date
    if start_hour >= LATE_NIGHT_START_HOUR and EVENING_BAND[0] <= hour <= EVENING_BAND[1]:
        return own_date
    if hour < start_hour:
        # Time out of yesterday's overnight shift
        return own_date - timedelta(days=1)
    return own_date


def assign_shift_dates(scans: Iterable, schedule) -> "OrderedDict[date, List]":
    """
    Group an employee's scans into per-shift-date clusters.

    Scans are anything with a ``scanned_at`` datetime. Clusters are ordered
    by shift date and each cluster is sorted by scan time.
    """
    clusters: "OrderedDict[date, List]" = OrderedDict()
    for scan in sorted(scans, key=lambda s: s.scanned_at):
        clusters.setdefault(assign_shift_date(scan.scanned_at, schedule), []).append(scan)
    return OrderedDict(sorted(clusters.items()))


def scans_between_hours(scans: Iterable, on_date: date, start_hour: int, end_hour: int) -> List:
    """Scans on a calendar date whose hour is in [start_hour, end_hour], sorted by time."""
    return sorted(
        (s for s in scans if s.scanned_at.date() == on_date and start_hour <= s.scanned_at.hour <= end_hour),
        key=lambda s: s.scanned_at,
    )


def first_scan(scans: Iterable) -> Optional[object]:
    ordered = sorted(scans, key=lambda s: s.scanned_at)
    return ordered[0] if ordered else None
