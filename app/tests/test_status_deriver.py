"""
Tests for attendance status derivation
"""
from datetime import datetime

import pytest

from app.models.attendance import AttendanceStatus
from app.services.status_deriver import (
    apply_utility_override,
    compute_total_minutes_worked,
    derive_status,
)

SCHED_IN = datetime(2025, 11, 5, 8, 0)
SCHED_OUT = datetime(2025, 11, 5, 17, 0)


def at(hour, minute, second=0):
    return datetime(2025, 11, 5, hour, minute, second)


def derive(time_in, time_out, grace=15):
    return derive_status(SCHED_IN, SCHED_OUT, time_in, time_out, grace)


def test_on_time():
    result = derive(at(7, 58), at(17, 0))
    assert result.status == AttendanceStatus.ON_TIME
    assert result.secondary_status is None
    assert result.tardy_minutes is None
    assert result.undertime_minutes is None


@pytest.mark.parametrize("minute,expected", [
    (5, AttendanceStatus.TARDY),
    (15, AttendanceStatus.TARDY),
    (16, AttendanceStatus.HALF_DAY_ABSENCE),
    (20, AttendanceStatus.HALF_DAY_ABSENCE),
])
def test_lateness_against_grace_period(minute, expected):
    result = derive(at(8, minute), at(17, 0))
    assert result.status == expected
    assert result.tardy_minutes == minute


def test_seconds_late_is_not_tardy():
    result = derive(at(8, 0, 59), at(17, 0))
    assert result.status == AttendanceStatus.ON_TIME


@pytest.mark.parametrize("time_out", [at(16, 59), at(16, 30), at(16, 0), at(16, 0, 30)])
def test_leaving_within_an_hour_is_not_undertime(time_out):
    result = derive(at(8, 0), time_out)
    assert result.status == AttendanceStatus.ON_TIME
    assert result.secondary_status is None
    assert result.undertime_minutes is None


@pytest.mark.parametrize("time_out,minutes,expected", [
    (at(15, 59), 61, AttendanceStatus.UNDERTIME),
    (at(15, 59, 59), 61, AttendanceStatus.UNDERTIME),
    (at(15, 0), 120, AttendanceStatus.UNDERTIME),
    (at(14, 59), 121, AttendanceStatus.UNDERTIME_MORE_THAN_HOUR),
])
def test_undertime(time_out, minutes, expected):
    result = derive(at(8, 0), time_out)
    assert result.status == expected
    assert result.undertime_minutes == minutes


def test_tardy_and_undertime_keeps_both():
    result = derive(at(8, 5), at(14, 30))
    assert result.status == AttendanceStatus.TARDY
    assert result.secondary_status == AttendanceStatus.UNDERTIME_MORE_THAN_HOUR
    assert result.undertime_minutes == 150


def test_tardy_with_short_early_departure_has_no_secondary():
    result = derive(at(8, 5), at(16, 30))
    assert result.status == AttendanceStatus.TARDY
    assert result.secondary_status is None


def test_overtime_only_past_threshold():
    assert derive(at(8, 0), at(17, 30)).overtime_minutes is None
    result = derive(at(8, 0), at(17, 31))
    assert result.overtime_minutes == 31
    assert result.status == AttendanceStatus.ON_TIME


def test_missing_time_out():
    assert derive(at(8, 0), None).status == AttendanceStatus.FAILED_BIO_OUT

    late = derive(at(8, 5), None)
    assert late.status == AttendanceStatus.TARDY
    assert late.secondary_status == AttendanceStatus.FAILED_BIO_OUT


def test_missing_time_in():
    result = derive(None, at(16, 0))
    assert result.status == AttendanceStatus.FAILED_BIO_IN
    assert result.secondary_status is None


def test_no_scans_is_ncns():
    assert derive(None, None).status == AttendanceStatus.NCNS


def test_utility_short_shift_is_undertime():
    result = derive(at(7, 0), at(13, 0))
    result = apply_utility_override(result, at(7, 0), at(13, 0))
    assert result.status == AttendanceStatus.UNDERTIME
    assert result.undertime_minutes is None
    assert result.warnings == ["24H UTILITY: Only 6.0 hours worked (minimum 8 hours expected)."]


def test_utility_long_shift_is_on_time():
    result = derive(at(9, 0), at(21, 0))
    result = apply_utility_override(result, at(9, 0), at(21, 0))
    assert result.status == AttendanceStatus.ON_TIME
    assert result.tardy_minutes is None
    assert result.secondary_status is None


def test_total_minutes_counts_from_scheduled_start_and_deducts_lunch():
    assert compute_total_minutes_worked(at(7, 30), at(17, 0), SCHED_IN, SCHED_OUT) == 480
    assert compute_total_minutes_worked(at(7, 30), at(17, 0), SCHED_IN, SCHED_OUT, lunch_used=True) == 540


def test_total_minutes_caps_unapproved_overtime():
    assert compute_total_minutes_worked(at(8, 0), at(18, 0), SCHED_IN, SCHED_OUT, overtime_minutes=60) == 480
    assert compute_total_minutes_worked(
        at(8, 0), at(18, 0), SCHED_IN, SCHED_OUT, overtime_minutes=60, overtime_approved=True
    ) == 540


def test_total_minutes_short_shift_and_missing_scan():
    assert compute_total_minutes_worked(at(8, 0), at(12, 0)) == 240
    assert compute_total_minutes_worked(at(8, 0), None) is None
