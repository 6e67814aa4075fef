"""
Tests for biometric anomaly detection
"""
from datetime import date, datetime, time

from app.models.attendance import AttendanceStatus
from app.models.schedule import EmployeeSchedule
from app.services.anomaly_detector import AnomalyReport, detect_anomalies, should_escalate
from app.services.attendance_file_parser import RawScan
from app.services.shift_window import shift_window

D = date(2025, 11, 5)
WINDOW = shift_window(
    EmployeeSchedule(scheduled_time_in=time(8, 0), scheduled_time_out=time(17, 0), work_days=["wednesday"]),
    D,
)


def scans(*stamps):
    return [RawScan(name="Rosel", scanned_at=s, normalized_name="rosel") for s in stamps]


def test_clean_shift_has_no_findings():
    time_in, time_out = datetime(2025, 11, 5, 8, 0), datetime(2025, 11, 5, 17, 0)
    report = detect_anomalies(scans(time_in, time_out), WINDOW, time_in, time_out)
    assert report.needs_review is False
    assert report.warnings == []


def test_scans_far_from_schedule_are_flagged():
    stamp = datetime(2025, 11, 5, 12, 30)
    report = detect_anomalies(scans(stamp), WINDOW, None, None)
    assert report.needs_review is True
    assert any("only 1 biometric scan(s)" in w for w in report.warnings)
    assert any(w.startswith("No valid time IN/OUT detected from 1 scan(s) at: 12:30") for w in report.warnings)


def test_very_early_time_in_is_flagged():
    time_in = datetime(2025, 11, 5, 4, 30)
    time_out = datetime(2025, 11, 5, 17, 0)
    report = detect_anomalies(scans(time_in, time_out), WINDOW, time_in, time_out)
    assert report.warnings == ["Time IN is 3.5 hours before scheduled time (2025-11-05 04:30 vs 2025-11-05 08:00)"]


def test_late_and_early_time_out_are_flagged():
    time_in = datetime(2025, 11, 5, 8, 0)
    late = datetime(2025, 11, 5, 21, 30)
    report = detect_anomalies(scans(time_in, late), WINDOW, time_in, late)
    assert report.warnings[0].startswith("Time OUT is 4.5 hours after scheduled time")

    early = datetime(2025, 11, 5, 13, 0)
    report = detect_anomalies(scans(time_in, early), WINDOW, time_in, early)
    assert report.warnings[0].startswith("Time OUT is 4.0 hours before scheduled time")


def test_two_scans_with_long_gap():
    first, last = datetime(2025, 11, 4, 20, 0), datetime(2025, 11, 5, 12, 30)
    report = detect_anomalies(scans(first, last), WINDOW, None, None)
    assert any(w.startswith("Only 2 scans found with 16 hours gap (20:00 and 12:30)") for w in report.warnings)


def test_should_escalate_only_ambiguous_statuses():
    report = AnomalyReport()
    report.flag("something odd")

    assert should_escalate(AttendanceStatus.NCNS, report) is True
    assert should_escalate(AttendanceStatus.FAILED_BIO_IN, report) is True
    assert should_escalate(AttendanceStatus.TARDY, report) is False
    assert should_escalate(AttendanceStatus.FAILED_BIO_IN, AnomalyReport()) is False
