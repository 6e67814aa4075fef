"""
Tests for shift-date assignment across midnight
"""
from datetime import date, datetime, time

import pytest

from app.models.schedule import EmployeeSchedule
from app.services.shift_window import (
    ShiftTopology,
    assign_shift_date,
    assign_shift_dates,
    classify_topology,
    shift_window,
)
from app.services.attendance_file_parser import RawScan

ALL_DAYS = ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]
D = date(2025, 11, 5)


def schedule(time_in, time_out, work_days=ALL_DAYS):
    return EmployeeSchedule(
        scheduled_time_in=time_in,
        scheduled_time_out=time_out,
        work_days=list(work_days),
        is_active=True,
    )


def scan(stamp):
    return RawScan(name="Rosel", scanned_at=stamp, normalized_name="rosel")


@pytest.mark.parametrize("time_in,time_out,expected", [
    (time(8, 0), time(17, 0), ShiftTopology.SAME_DAY),
    (time(22, 0), time(7, 0), ShiftTopology.NEXT_DAY),
    (time(15, 0), time(0, 0), ShiftTopology.NEXT_DAY),
    (time(0, 30), time(9, 30), ShiftTopology.GRAVEYARD),
    (time(4, 0), time(13, 0), ShiftTopology.GRAVEYARD),
    (time(5, 0), time(14, 0), ShiftTopology.SAME_DAY),
])
def test_classify_topology(time_in, time_out, expected):
    assert classify_topology(time_in, time_out) == expected


def test_shift_window_graveyard_is_on_next_day():
    window = shift_window(schedule(time(0, 30), time(9, 30)), D)
    assert window.scheduled_in == datetime(2025, 11, 6, 0, 30)
    assert window.scheduled_out == datetime(2025, 11, 6, 9, 30)


def test_shift_window_next_day_out():
    window = shift_window(schedule(time(22, 0), time(7, 0)), D)
    assert window.scheduled_in == datetime(2025, 11, 5, 22, 0)
    assert window.scheduled_out == datetime(2025, 11, 6, 7, 0)
    assert window.midpoint == datetime(2025, 11, 6, 2, 30)


def test_no_schedule_uses_calendar_date():
    assert assign_shift_date(datetime(2025, 11, 6, 2, 0), None) == date(2025, 11, 6)


def test_graveyard_early_arrival_and_time_out_share_a_shift_date():
    sched = schedule(time(0, 30), time(9, 30))
    assert assign_shift_date(datetime(2025, 11, 5, 23, 15), sched) == D
    assert assign_shift_date(datetime(2025, 11, 6, 9, 2), sched) == D


def test_graveyard_previous_day_off_keeps_calendar_date():
    # 2025-11-08 is a Saturday; Friday the 7th is not a work day
    sched = schedule(time(0, 30), time(9, 30), work_days=["saturday"])
    assert assign_shift_date(datetime(2025, 11, 8, 0, 40), sched) == date(2025, 11, 8)


def test_next_day_time_out_belongs_to_previous_shift_date():
    sched = schedule(time(22, 0), time(7, 0))
    assert assign_shift_date(datetime(2025, 11, 5, 21, 50), sched) == D
    assert assign_shift_date(datetime(2025, 11, 6, 7, 5), sched) == D


def test_late_night_shift_evening_scan_is_same_day():
    sched = schedule(time(23, 0), time(8, 0))
    assert assign_shift_date(datetime(2025, 11, 5, 18, 30), sched) == D


def test_assign_shift_dates_groups_and_sorts():
    sched = schedule(time(22, 0), time(7, 0))
    clusters = assign_shift_dates([
        scan(datetime(2025, 11, 6, 7, 2)),
        scan(datetime(2025, 11, 6, 21, 58)),
        scan(datetime(2025, 11, 5, 22, 1)),
    ], sched)

    assert list(clusters.keys()) == [D, date(2025, 11, 6)]
    assert [s.scanned_at for s in clusters[D]] == [datetime(2025, 11, 5, 22, 1), datetime(2025, 11, 6, 7, 2)]
