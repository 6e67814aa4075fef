"""
Status derivation: scheduled vs actual times -> attendance status and minutes.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Tuple

from app.core.config import settings
from app.models.attendance import AttendanceStatus
from app.utils.datetime_utils import floor_minute, hours_between, minutes_between


@dataclass
class StatusResult:
    status: AttendanceStatus
    secondary_status: Optional[AttendanceStatus] = None
    tardy_minutes: Optional[int] = None
    undertime_minutes: Optional[int] = None
    overtime_minutes: Optional[int] = None
    warnings: List[str] = field(default_factory=list)


def time_in_status(tardy_minutes: int, grace_period_minutes: int) -> AttendanceStatus:
    """Status from lateness: beyond grace is a half-day absence, 1..grace is tardy."""
    if tardy_minutes > grace_period_minutes:
        return AttendanceStatus.HALF_DAY_ABSENCE
    if tardy_minutes >= 1:
        return AttendanceStatus.TARDY
    return AttendanceStatus.ON_TIME


def undertime_status(minutes_early: int) -> Optional[AttendanceStatus]:
    """
    Status for an early departure, or None while within the undertime threshold.

    Leaving up to an hour past the threshold is undertime; anything earlier is
    undertime_more_than_hour.
    """
    excess = minutes_early - settings.UNDERTIME_THRESHOLD_MINUTES
    if excess <= 0:
        return None
    if excess > settings.UNDERTIME_HOUR_THRESHOLD_MINUTES:
        return AttendanceStatus.UNDERTIME_MORE_THAN_HOUR
    return AttendanceStatus.UNDERTIME


def time_out_adjustment(
    scheduled_out: datetime, time_out: datetime
) -> Tuple[Optional[AttendanceStatus], Optional[int], Optional[int]]:
    """
    Compare the time out against the scheduled end.

    Returns:
        (undertime status, undertime minutes, overtime minutes)
    """
    # Seconds are ignored so 15:59:59 counts as 15:59
    diff = minutes_between(floor_minute(scheduled_out), floor_minute(time_out))
    early_status = undertime_status(-diff) if diff < 0 else None
    undertime_minutes = -diff if early_status is not None else None
    overtime_minutes = diff if diff > settings.OVERTIME_THRESHOLD_MINUTES else None
    return early_status, undertime_minutes, overtime_minutes


def derive_status(
    scheduled_in: datetime,
    scheduled_out: datetime,
    time_in: Optional[datetime],
    time_out: Optional[datetime],
    grace_period_minutes: int,
) -> StatusResult:
    """
    Derive primary/secondary status and tardy/undertime/overtime minutes.

    Args:
        scheduled_in: Scheduled time in (full datetime)
        scheduled_out: Scheduled time out (full datetime)
        time_in: Resolved time-in scan, if any
        time_out: Resolved time-out scan, if any
        grace_period_minutes: Lateness tolerated before a half-day absence

    Returns:
        StatusResult
    """
    result = StatusResult(status=AttendanceStatus.NCNS)

    if time_in is not None:
        tardy = minutes_between(scheduled_in, time_in)
        result.status = time_in_status(tardy, grace_period_minutes)
        result.tardy_minutes = tardy if tardy > 0 else None

    if time_out is not None:
        early_status, result.undertime_minutes, result.overtime_minutes = time_out_adjustment(scheduled_out, time_out)
        if early_status is not None:
            if result.status == AttendanceStatus.ON_TIME:
                result.status = early_status
            elif result.status in (AttendanceStatus.TARDY, AttendanceStatus.HALF_DAY_ABSENCE):
                result.secondary_status = early_status

    if time_in is None and time_out is None:
        result.status = AttendanceStatus.NCNS
        result.secondary_status = None
    elif time_in is None:
        result.status = AttendanceStatus.FAILED_BIO_IN
        result.secondary_status = None
    elif time_out is None:
        if result.status == AttendanceStatus.ON_TIME:
            result.status = AttendanceStatus.FAILED_BIO_OUT
            result.secondary_status = None
        else:
            result.secondary_status = AttendanceStatus.FAILED_BIO_OUT

    return result


def apply_utility_override(result: StatusResult, time_in: Optional[datetime], time_out: Optional[datetime]) -> StatusResult:
    """24H utility staff are judged on hours worked only."""
    result.tardy_minutes = None
    result.undertime_minutes = None
    if time_in is None or time_out is None:
        return result

    hours_worked = hours_between(time_in, time_out)
    result.secondary_status = None
    if hours_worked >= settings.UTILITY_MIN_HOURS:
        result.status = AttendanceStatus.ON_TIME
    else:
        result.status = AttendanceStatus.UNDERTIME
        result.warnings.append(
            "24H UTILITY: Only %.1f hours worked (minimum %d hours expected)."
            % (hours_worked, settings.UTILITY_MIN_HOURS)
        )
    return result


def compute_total_minutes_worked(
    actual_in: Optional[datetime],
    actual_out: Optional[datetime],
    scheduled_in: Optional[datetime] = None,
    scheduled_out: Optional[datetime] = None,
    overtime_minutes: Optional[int] = None,
    overtime_approved: bool = False,
    lunch_used: bool = False,
) -> Optional[int]:
    """
    Minutes worked between the effective in/out, less lunch on long shifts.

    Early arrivals count from the scheduled time in. Unapproved overtime is
    capped at the scheduled time out.
    """
    if actual_in is None or actual_out is None:
        return None

    effective_in = actual_in
    if scheduled_in is not None and scheduled_in > actual_in:
        effective_in = scheduled_in

    effective_out = actual_out
    if (
        scheduled_out is not None
        and overtime_minutes
        and not overtime_approved
        and actual_out > scheduled_out
    ):
        effective_out = scheduled_out

    raw_minutes = abs(minutes_between(effective_in, effective_out))
    if not lunch_used and raw_minutes > settings.LUNCH_DEDUCTION_AFTER_HOURS * 60:
        return raw_minutes - settings.LUNCH_DEDUCTION_MINUTES
    return raw_minutes
