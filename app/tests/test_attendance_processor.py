"""
Tests for upload processing and shift reconciliation
"""
from datetime import date, datetime, time

import pytest
from fastapi import HTTPException
from sqlalchemy.orm import Session

from app.models.attendance import Attendance, AttendanceStatus, RecordState
from app.models.attendance_point import AttendancePoint
from app.models.attendance_upload import UploadStatus
from app.models.biometric_record import BiometricRecord
from app.models.notification import Notification
from app.services.attendance_file_parser import parse_content
from app.services.attendance_processor import (
    AttendanceProcessor,
    create_upload,
    reprocess_upload,
    validate_file_dates,
)
from app.services.attendance_review_service import verify_attendance
from app.services.notification_service import LEAVE_ATTENDANCE_CONFLICT


def process(db: Session, content, shift_date=date(2025, 11, 5), **upload_kwargs):
    upload = create_upload(db, shift_date, original_filename="export.txt", **upload_kwargs)
    stats = AttendanceProcessor(db).process_upload(upload, content)
    return upload, stats


def only_record(db: Session, employee_id):
    records = db.query(Attendance).filter(Attendance.employee_id == employee_id).all()
    assert len(records) == 1
    return records[0]


def test_on_time_shift(db, day_employee, export_content):
    upload, stats = process(db, export_content(
        ("Nodado A", "2025-11-05 07:58:00"),
        ("Nodado A", "2025-11-05 17:02:00"),
    ))

    assert upload.status == UploadStatus.COMPLETED
    assert upload.total_records == 2
    assert upload.matched_employees == 1
    assert upload.dates_found == ["2025-11-05"]
    assert stats["unmatched_names"] == []

    record = only_record(db, day_employee.id)
    assert record.shift_date == date(2025, 11, 5)
    assert record.status == AttendanceStatus.ON_TIME
    assert record.state == RecordState.AUTO_RECONCILED
    assert record.scheduled_time_in == datetime(2025, 11, 5, 8, 0)
    assert record.actual_time_out == datetime(2025, 11, 5, 17, 2)
    assert record.total_minutes_worked == 482
    assert db.query(BiometricRecord).filter(BiometricRecord.attendance_upload_id == upload.id).count() == 2


def test_reprocessing_same_file_is_idempotent(db, day_employee, export_content):
    content = export_content(
        ("Nodado A", "2025-11-05 08:05:00"),
        ("Nodado A", "2025-11-05 14:30:00"),
    )
    process(db, content)
    first = only_record(db, day_employee.id)
    snapshot = (first.status, first.secondary_status, first.tardy_minutes, first.undertime_minutes, list(first.warnings))

    process(db, content)
    second = only_record(db, day_employee.id)
    assert second.id == first.id
    assert (second.status, second.secondary_status, second.tardy_minutes, second.undertime_minutes, list(second.warnings)) == snapshot
    assert snapshot[:2] == (AttendanceStatus.TARDY, AttendanceStatus.UNDERTIME_MORE_THAN_HOUR)


def test_leaving_half_an_hour_early_earns_no_point(db, day_employee, export_content):
    process(db, export_content(
        ("Nodado A", "2025-11-05 08:00:00"),
        ("Nodado A", "2025-11-05 16:30:00"),
    ))
    record = only_record(db, day_employee.id)
    assert record.status == AttendanceStatus.ON_TIME
    assert record.undertime_minutes is None

    verify_attendance(db, record.id)
    assert db.query(AttendancePoint).count() == 0


def test_unmatched_names_are_reported(db, day_employee, export_content):
    upload, stats = process(db, export_content(
        ("Nodado A", "2025-11-05 08:00:00"),
        ("Nodado A", "2025-11-05 17:00:00"),
        ("Ghost X", "2025-11-05 08:00:00"),
    ))
    assert stats["unmatched_names"] == ["Ghost X"]
    assert upload.unmatched_names_list == ["Ghost X"]
    assert db.query(BiometricRecord).count() == 2


def test_name_index_is_rebuilt_for_each_upload(db, make_employee, make_schedule, export_content):
    content = export_content(
        ("Rosel", "2025-11-05 08:00:00"),
        ("Rosel", "2025-11-05 17:00:00"),
    )
    processor = AttendanceProcessor(db)

    first = create_upload(db, date(2025, 11, 5), original_filename="first.txt")
    assert processor.process_upload(first, content)["unmatched_names"] == ["Rosel"]

    employee = make_employee("Rosel", "Maria")
    make_schedule(employee, time(8, 0), time(17, 0))

    second = create_upload(db, date(2025, 11, 5), original_filename="second.txt")
    assert processor.process_upload(second, content)["unmatched_names"] == []
    assert second.matched_employees == 1
    assert only_record(db, employee.id).status == AttendanceStatus.ON_TIME


def test_device_name_variants_are_merged_per_employee(db, make_employee, make_schedule, export_content):
    employee = make_employee("Rosel", "Maria")
    make_schedule(employee, time(8, 0), time(17, 0))

    upload, stats = process(db, export_content(
        ("Rosel", "2025-11-05 07:58:00"),
        ("Rosel M", "2025-11-05 17:01:00"),
    ))

    assert stats["matched_employees"] == 1
    assert upload.matched_employees == 1
    assert stats["processed"] == 1
    record = only_record(db, employee.id)
    assert record.actual_time_in == datetime(2025, 11, 5, 7, 58)
    assert record.actual_time_out == datetime(2025, 11, 5, 17, 1)
    assert record.status == AttendanceStatus.ON_TIME


def test_graveyard_shift_spans_two_calendar_days(db, make_employee, make_schedule, export_content):
    employee = make_employee("Rosel", "Maria")
    make_schedule(employee, time(0, 30), time(9, 30))

    upload, _ = process(db, export_content(
        ("Rosel", "2025-11-05 23:15:00"),
        ("Rosel", "2025-11-06 09:32:00"),
    ))

    record = only_record(db, employee.id)
    assert record.shift_date == date(2025, 11, 5)
    assert record.status == AttendanceStatus.ON_TIME
    assert record.actual_time_in == datetime(2025, 11, 5, 23, 15)
    assert record.actual_time_out == datetime(2025, 11, 6, 9, 32)
    assert upload.date_warnings == []


def test_double_punch_is_reported(db, day_employee, export_content):
    process(db, export_content(
        ("Nodado A", "2025-11-05 09:00:00"),
        ("Nodado A", "2025-11-05 09:05:00"),
    ))
    record = only_record(db, day_employee.id)
    assert record.actual_time_out is None
    assert record.status == AttendanceStatus.HALF_DAY_ABSENCE
    assert record.secondary_status == AttendanceStatus.FAILED_BIO_OUT
    assert any(w.startswith("DOUBLE PUNCH DETECTED") for w in record.warnings)


def test_double_punch_at_arrival_is_reported(db, day_employee, export_content):
    process(db, export_content(
        ("Nodado A", "2025-11-05 08:00:00"),
        ("Nodado A", "2025-11-05 08:05:00"),
    ))
    record = only_record(db, day_employee.id)
    assert record.actual_time_in == datetime(2025, 11, 5, 8, 0)
    assert record.actual_time_out is None
    assert any(w.startswith("DOUBLE PUNCH DETECTED: 08:00:00 → 08:05:00") for w in record.warnings)


def test_unusable_scan_is_escalated_for_review(db, day_employee, export_content):
    process(db, export_content(("Nodado A", "2025-11-05 12:30:00")))
    record = only_record(db, day_employee.id)
    assert record.status == AttendanceStatus.NEEDS_MANUAL_REVIEW
    assert record.state == RecordState.PENDING_REVIEW
    assert record.warnings


def test_absent_scheduled_employee_becomes_ncns(db, day_employee, make_employee, make_schedule, export_content):
    absent = make_employee("Rosel", "Maria")
    make_schedule(absent, time(8, 0), time(17, 0))

    _, stats = process(db, export_content(
        ("Nodado A", "2025-11-05 08:00:00"),
        ("Nodado A", "2025-11-05 17:00:00"),
    ))

    assert stats["ncns_created"] == 1
    record = only_record(db, absent.id)
    assert record.status == AttendanceStatus.NCNS
    assert record.state == RecordState.AUTO_RECONCILED
    assert record.actual_time_in is None


def test_absent_employee_on_leave_is_verified_on_leave(db, day_employee, make_employee, make_schedule, make_leave, export_content):
    absent = make_employee("Rosel", "Maria")
    make_schedule(absent, time(8, 0), time(17, 0))
    leave = make_leave(absent, date(2025, 11, 4), date(2025, 11, 6))

    _, stats = process(db, export_content(
        ("Nodado A", "2025-11-05 08:00:00"),
        ("Nodado A", "2025-11-05 17:00:00"),
    ))

    assert stats["on_leave_created"] == 1
    assert stats["ncns_created"] == 0
    record = only_record(db, absent.id)
    assert record.status == AttendanceStatus.ON_LEAVE
    assert record.state == RecordState.VERIFIED
    assert record.leave_request_id == leave.id


def test_scans_during_approved_leave_flag_a_conflict(db, day_employee, make_leave, export_content):
    leave = make_leave(day_employee, date(2025, 11, 5), date(2025, 11, 5))
    content = export_content(
        ("Nodado A", "2025-11-05 08:00:00"),
        ("Nodado A", "2025-11-05 17:00:00"),
    )
    process(db, content)

    record = only_record(db, day_employee.id)
    assert record.leave_request_id == leave.id
    assert record.state == RecordState.PENDING_REVIEW
    assert "Leave conflict" in record.notes
    assert db.query(Notification).filter(Notification.kind == LEAVE_ATTENDANCE_CONFLICT).count() == 1

    # Already linked to the leave: no second notification
    process(db, content)
    assert db.query(Notification).filter(Notification.kind == LEAVE_ATTENDANCE_CONFLICT).count() == 1


def test_verified_record_is_not_overwritten(db, day_employee, export_content):
    process(db, export_content(
        ("Nodado A", "2025-11-05 08:05:00"),
        ("Nodado A", "2025-11-05 17:00:00"),
    ))
    record = only_record(db, day_employee.id)
    verify_attendance(db, record.id, status=AttendanceStatus.ON_TIME, notes="late scan excused")

    process(db, export_content(
        ("Nodado A", "2025-11-05 09:30:00"),
        ("Nodado A", "2025-11-05 17:00:00"),
    ))
    db.refresh(record)
    assert record.status == AttendanceStatus.ON_TIME
    assert record.actual_time_in == datetime(2025, 11, 5, 8, 5)
    assert record.state == RecordState.VERIFIED


def test_verified_record_receives_missing_time_out(db, day_employee, export_content):
    process(db, export_content(("Nodado A", "2025-11-05 07:58:00")))
    record = only_record(db, day_employee.id)
    assert record.status == AttendanceStatus.FAILED_BIO_OUT
    verify_attendance(db, record.id)

    process(db, export_content(
        ("Nodado A", "2025-11-05 07:58:00"),
        ("Nodado A", "2025-11-05 17:05:00"),
    ))
    db.refresh(record)
    assert record.actual_time_out == datetime(2025, 11, 5, 17, 5)
    assert record.status == AttendanceStatus.FAILED_BIO_OUT
    assert record.total_minutes_worked == 485
    assert record.warnings[-1].startswith("TIME OUT BACKFILLED: 2025-11-05 17:05:00")


def test_employee_without_schedule_needs_review(db, make_employee, export_content):
    employee = make_employee("Rosel", "Maria")
    _, stats = process(db, export_content(
        ("Rosel", "2025-11-05 08:00:00"),
        ("Rosel", "2025-11-05 17:00:00"),
    ))
    record = only_record(db, employee.id)
    assert record.status == AttendanceStatus.NEEDS_MANUAL_REVIEW
    assert record.state == RecordState.PENDING_REVIEW
    assert record.notes.startswith("No schedule found for this employee")
    assert stats["errors"] == []
    assert stats["no_schedule"] == [{"employee": "Rosel", "dates": ["2025-11-05"]}]


def test_scans_on_non_work_day(db, make_employee, make_schedule, export_content):
    employee = make_employee("Rosel", "Maria")
    make_schedule(employee, time(8, 0), time(17, 0), work_days=["monday", "tuesday", "wednesday", "thursday", "friday"])

    _, stats = process(db, export_content(
        ("Rosel", "2025-11-08 09:00:00"),
        ("Rosel", "2025-11-08 12:00:00"),
    ), shift_date=date(2025, 11, 8))

    record = only_record(db, employee.id)
    assert record.status == AttendanceStatus.NON_WORK_DAY
    assert record.state == RecordState.PENDING_REVIEW
    assert record.total_minutes_worked == 180
    assert stats["non_work_day_scans"] == [
        {"employee": "Rosel", "dates": [{"date": "2025-11-08", "day_name": "Saturday", "scan_count": 2}]}
    ]


def test_cross_site_scan_is_marked(db, make_employee, make_schedule, export_content):
    employee = make_employee("Rosel", "Maria")
    make_schedule(employee, time(8, 0), time(17, 0), site_id=1)
    process(db, export_content(
        ("Rosel", "2025-11-05 08:00:00"),
        ("Rosel", "2025-11-05 17:00:00"),
    ), biometric_site_id=2)
    assert only_record(db, employee.id).is_cross_site_bio is True


def test_date_range_filter_skips_outside_scans(db, day_employee, export_content):
    _, stats = process(db, export_content(
        ("Nodado A", "2025-11-05 08:00:00"),
        ("Nodado A", "2025-11-05 17:00:00"),
        ("Nodado A", "2025-11-09 08:00:00"),
    ), date_from=date(2025, 11, 5), date_to=date(2025, 11, 5))
    assert stats["skipped_records"] == 1
    assert stats["filtered_records"] == 2
    assert db.query(Attendance).count() == 1


def test_validate_file_dates_warns_on_unexpected_dates(export_content):
    scans = parse_content(export_content(
        ("Rosel", "2025-11-05 08:00:00"),
        ("Rosel", "2025-11-10 08:00:00"),
    ))
    result = validate_file_dates(scans, date(2025, 11, 5))
    assert result["dates_found"] == ["2025-11-05", "2025-11-10"]
    assert result["warnings"] == [
        "File contains records from unexpected dates: Nov 10, 2025. "
        "Expected dates: Nov 05, 2025, Nov 06, 2025 for shift date Nov 05, 2025."
    ]


def test_failed_upload_is_marked_and_reraised(db, day_employee, export_content, monkeypatch):
    def boom(self, *args, **kwargs):
        raise RuntimeError("schedule lookup failed")

    monkeypatch.setattr(AttendanceProcessor, "process_employee_scans", boom)
    upload = create_upload(db, date(2025, 11, 5))
    with pytest.raises(RuntimeError):
        AttendanceProcessor(db).process_upload(upload, export_content(("Nodado A", "2025-11-05 08:00:00")))

    db.refresh(upload)
    assert upload.status == UploadStatus.FAILED
    assert upload.error_message == "schedule lookup failed"
    assert db.query(Attendance).count() == 0
    assert db.query(BiometricRecord).count() == 0


def test_completed_upload_cannot_be_processed_again(db, day_employee, export_content):
    content = export_content(("Nodado A", "2025-11-05 08:00:00"))
    upload, _ = process(db, content)
    with pytest.raises(HTTPException) as exc:
        AttendanceProcessor(db).process_upload(upload, content)
    assert exc.value.status_code == 409


def test_reprocess_upload_uses_stored_scans(db, day_employee, export_content):
    upload, _ = process(db, export_content(
        ("Nodado A", "2025-11-05 07:58:00"),
        ("Nodado A", "2025-11-05 17:00:00"),
    ))
    schedule = day_employee.schedules[0]
    schedule.scheduled_time_in = time(7, 50)
    db.commit()

    stats = reprocess_upload(db, upload.id)
    assert stats == {"employees": 1, "processed": 1, "no_schedule": []}
    record = only_record(db, day_employee.id)
    assert record.status == AttendanceStatus.TARDY
    assert record.tardy_minutes == 8


def test_reprocess_requires_completed_upload(db):
    upload = create_upload(db, date(2025, 11, 5))
    with pytest.raises(HTTPException) as exc:
        reprocess_upload(db, upload.id)
    assert exc.value.status_code == 409


def test_create_upload_rejects_inverted_range(db):
    with pytest.raises(HTTPException) as exc:
        create_upload(db, date(2025, 11, 5), date_from=date(2025, 11, 6), date_to=date(2025, 11, 5))
    assert exc.value.status_code == 400
