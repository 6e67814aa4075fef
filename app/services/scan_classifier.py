"""
Scan classification: pick the time-in and time-out scans of one shift cluster.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, time, timedelta
from typing import List, Optional

from app.core.config import settings
from app.models.schedule import ShiftType
from app.services.shift_window import (
    EVENING_BAND,
    GRAVEYARD_EARLY_ARRIVAL_HOUR,
    GRAVEYARD_START_HOUR_LIMIT,
    ShiftTopology,
    ShiftWindow,
    first_scan,
    scans_between_hours,
)
from app.utils.datetime_utils import combine, minutes_between

logger = logging.getLogger(__name__)

EARLY_TIME_IN_MINUTES = 120
TIME_OUT_SEARCH_MINUTES = 480
SHARED_SCAN_LATE_IN_MINUTES = 120
MORNING_TIME_OUT_FLOOR = time(1, 0)


@dataclass
class ScanClassification:
    time_in: Optional[datetime] = None
    time_out: Optional[datetime] = None
    warnings: List[str] = field(default_factory=list)


def _find_time_in(scans: List, window: ShiftWindow) -> Optional[datetime]:
    if window.topology == ShiftTopology.SAME_DAY:
        earliest_allowed = window.scheduled_in - timedelta(minutes=EARLY_TIME_IN_MINUTES)
        candidates = [
            s for s in scans
            if s.scanned_at.date() == window.time_in_date and s.scanned_at >= earliest_allowed
        ]
        found = first_scan(candidates)
        return found.scanned_at if found else None

    if window.topology == ShiftTopology.GRAVEYARD:
        # Early arrival before midnight on the shift date itself
        found = first_scan(scans_between_hours(scans, window.shift_date, GRAVEYARD_EARLY_ARRIVAL_HOUR, 23))
        if found is None:
            max_hour = max(window.midpoint.hour, window.start_hour + 3)
            found = first_scan(scans_between_hours(scans, window.time_in_date, 0, max_hour))
        return found.scanned_at if found else None

    start_hour = window.start_hour
    if start_hour < GRAVEYARD_START_HOUR_LIMIT:
        band = EVENING_BAND
    elif start_hour < 12:
        band = (5, 11)
    elif start_hour < 18:
        band = (12, 17)
    else:
        band = EVENING_BAND
    found = first_scan(scans_between_hours(scans, window.time_in_date, band[0], band[1]))
    return found.scanned_at if found else None


def _find_time_out(scans: List, window: ShiftWindow, time_in: Optional[datetime]) -> Optional[datetime]:
    out_date = window.time_out_date

    if window.topology == ShiftTopology.NEXT_DAY and window.start_hour < GRAVEYARD_START_HOUR_LIMIT:
        found = first_scan(scans_between_hours(scans, out_date, 0, window.scheduled_out.hour))
        return found.scanned_at if found else None

    candidates = [s.scanned_at for s in scans if s.scanned_at.date() == out_date]
    if window.scheduled_out.hour < 12 and out_date == window.time_in_date:
        # Just-after-midnight scans on a morning shift are arrivals, not departures
        floor = combine(out_date, MORNING_TIME_OUT_FLOOR)
        candidates = [c for c in candidates if c >= floor]
    if time_in is not None:
        candidates = [c for c in candidates if c >= time_in]

    in_window = [
        c for c in candidates
        if abs(minutes_between(window.scheduled_out, c)) <= TIME_OUT_SEARCH_MINUTES
    ]
    if not in_window:
        return None
    # Closest to scheduled out; ties go to the earlier scan
    return min(in_window, key=lambda c: (abs((c - window.scheduled_out).total_seconds()), c))


def _is_double_punch(first: datetime, second: datetime) -> bool:
    return abs(minutes_between(first, second)) < settings.DOUBLE_PUNCH_MINUTES


def _flag_double_punch(result: ScanClassification, window: ShiftWindow, first: datetime, second: datetime) -> None:
    gap = abs(minutes_between(first, second))
    logger.warning(
        "Double punch detected: shift_date=%s time_in=%s time_out=%s minutes=%d",
        window.shift_date, first, second, gap,
    )
    result.warnings.append(
        "DOUBLE PUNCH DETECTED: %s → %s (%d minutes apart). "
        "Time out has been cleared pending verification."
        % (first.strftime("%H:%M:%S"), second.strftime("%H:%M:%S"), gap)
    )


def classify_scans(scans: List, window: ShiftWindow, shift_type: Optional[str] = None) -> ScanClassification:
    """
    Resolve time-in and time-out for a shift cluster.

    Args:
        scans: Scans of one shift date (objects with ``scanned_at``)
        window: Scheduled window for the shift date
        shift_type: Schedule shift type; utility_24h uses first/last scans

    Returns:
        ScanClassification with optional time_in/time_out and warnings
    """
    result = ScanClassification()
    time_in = _find_time_in(scans, window)
    time_out = _find_time_out(scans, window, time_in)

    shared = time_in is not None and time_out is not None and time_in == time_out
    if shared:
        if minutes_between(window.scheduled_out, time_in) > SHARED_SCAN_LATE_IN_MINUTES:
            # Very late arrival rather than an early departure
            time_out = None
        elif time_in < window.midpoint:
            time_out = None
        else:
            time_in = None

    if time_in is not None and time_out is not None:
        if _is_double_punch(time_in, time_out):
            _flag_double_punch(result, window, time_in, time_out)
            time_out = None
    elif time_in is not None and len(scans) == 2:
        # Two arrival scans: the second never reaches the time-out window
        ordered = sorted(s.scanned_at for s in scans)
        if ordered[0] == time_in and _is_double_punch(ordered[0], ordered[1]):
            _flag_double_punch(result, window, ordered[0], ordered[1])

    if time_in is not None and time_out is not None:
        gap = abs(minutes_between(time_in, time_out))
        if gap > settings.MAX_SHIFT_DURATION_MINUTES:
            hours = round(gap / 60, 1)
            logger.warning(
                "Excessive shift duration: shift_date=%s time_in=%s time_out=%s hours=%.1f",
                window.shift_date, time_in, time_out, hours,
            )
            result.warnings.append(
                "EXCESSIVE DURATION: %s → %s (%.1f hours). "
                "Time out has been cleared - likely a mismatched scan or forgot to clock out."
                % (time_in.strftime("%Y-%m-%d %H:%M"), time_out.strftime("%Y-%m-%d %H:%M"), hours)
            )
            time_out = None

    if shift_type == ShiftType.UTILITY_24H.value and len(scans) > 2:
        ordered = sorted(s.scanned_at for s in scans)
        if ordered[0] != ordered[-1]:
            logger.info(
                "24H utility: using first/last of %d scans (%s, %s)",
                len(ordered), ordered[0], ordered[-1],
            )
            time_in, time_out = ordered[0], ordered[-1]

    result.time_in = time_in
    result.time_out = time_out
    return result
