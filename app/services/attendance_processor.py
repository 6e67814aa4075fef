"""
Attendance processor: one biometric upload -> reconciled attendance records.

Pipeline per upload:
    parse -> optional date filter -> name matching -> raw scan audit rows
    -> per employee: shift-date grouping -> per shift: classify, derive, flag
    -> absent employee detection (NCNS / on_leave)

The whole upload runs in the caller's session and is committed once. Any
exception rolls everything back, marks the upload failed and re-raises.
"""
import logging
from datetime import date, datetime, timedelta
from typing import Dict, List, Optional

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from app.core.config import settings
from app.models.attendance import Attendance, AttendanceStatus, RecordState
from app.models.attendance_upload import AttendanceUpload, UploadStatus
from app.models.biometric_record import BiometricRecord
from app.models.employee import Employee
from app.models.leave import LeaveRequest
from app.models.schedule import EmployeeSchedule
from app.services import attendance_file_parser as parser
from app.services.anomaly_detector import detect_anomalies, should_escalate
from app.services.attendance_file_parser import RawScan
from app.services.attendance_lifecycle import (
    accepts_time_out_backfill,
    is_frozen,
    transition,
)
from app.services.leave_service import get_approved_leave
from app.services.name_matcher import NameIndex, load_name_index, match_employee
from app.services.notification_service import notify_leave_conflict
from app.services.scan_classifier import classify_scans
from app.services.schedule_service import (
    get_active_schedule,
    get_schedule_for_date,
    list_scheduled_employee_ids,
)
from app.services.shift_window import assign_shift_dates, shift_window
from app.services.status_deriver import (
    apply_utility_override,
    compute_total_minutes_worked,
    derive_status,
    time_out_adjustment,
)
from app.utils.datetime_utils import day_name, fmt_hm, minutes_between
from app.utils.json_serializer import sanitize_for_json

logger = logging.getLogger(__name__)

PROCESSABLE_UPLOAD_STATUSES = (UploadStatus.PENDING, UploadStatus.FAILED)
MIN_LEAVE_CONFLICT_SCANS = 2


def validate_file_dates(scans: List[RawScan], shift_date: date) -> Dict:
    """
    Compare the calendar dates in a file with the dates expected for a shift date.

    A shift date D expects scans on D and D+1 (overnight time-outs).
    """
    dates_found: List[str] = []
    for scan in scans:
        key = scan.scan_date.isoformat()
        if key not in dates_found:
            dates_found.append(key)

    expected = [shift_date, shift_date + timedelta(days=1)]
    expected_keys = [d.isoformat() for d in expected]
    unexpected = [d for d in dates_found if d not in expected_keys]

    warnings = []
    if unexpected:
        fmt = lambda value: date.fromisoformat(value).strftime("%b %d, %Y")  # noqa: E731
        warnings.append(
            "File contains records from unexpected dates: %s. Expected dates: %s for shift date %s."
            % (
                ", ".join(fmt(d) for d in unexpected),
                ", ".join(fmt(d) for d in expected_keys),
                shift_date.strftime("%b %d, %Y"),
            )
        )
    logger.info(
        "Date validation: shift_date=%s dates_found=%s warnings=%d",
        shift_date, dates_found, len(warnings),
    )
    return {"warnings": warnings, "dates_found": dates_found, "expected_dates": expected_keys}


def recalculate_total_minutes_worked(record: Attendance) -> Optional[int]:
    """Recompute minutes worked from the record's own times and overrides."""
    record.total_minutes_worked = compute_total_minutes_worked(
        record.actual_time_in,
        record.actual_time_out,
        scheduled_in=record.scheduled_time_in,
        scheduled_out=record.scheduled_time_out,
        overtime_minutes=record.overtime_minutes,
        overtime_approved=bool(record.overtime_approved),
        lunch_used=bool(record.lunch_used),
    )
    return record.total_minutes_worked


def scans_from_biometric_records(records: List[BiometricRecord]) -> List[RawScan]:
    return [
        RawScan(
            name=r.employee_name,
            scanned_at=r.scanned_at,
            normalized_name=parser.normalize_name(r.employee_name),
        )
        for r in records
    ]


class AttendanceProcessor:
    """Reconciles biometric scans into attendance records for one session."""

    def __init__(self, db: Session):
        self.db = db
        self._name_index: Optional[NameIndex] = None

    # -- name index -------------------------------------------------------

    @property
    def name_index(self) -> NameIndex:
        if self._name_index is None:
            self._name_index = load_name_index(self.db)
        return self._name_index

    def clear_name_index(self) -> None:
        """Drop the cached index; the next lookup rebuilds it."""
        self._name_index = None

    # -- upload -----------------------------------------------------------

    def process_upload(self, upload: AttendanceUpload, content: str, filter_by_date: bool = True) -> Dict:
        """
        Process a biometric export for an upload.

        Args:
            upload: Pending (or previously failed) upload
            content: Decoded file content
            filter_by_date: Drop scans outside upload.date_from..date_to (+1 day)

        Returns:
            Processing stats

        Raises:
            HTTPException: 409 if the upload is not pending or failed
        """
        if upload.status not in PROCESSABLE_UPLOAD_STATUSES:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"Upload {upload.id} is {upload.status.value} and cannot be processed",
            )

        self.clear_name_index()
        try:
            upload.status = UploadStatus.PROCESSING
            upload.error_message = None

            all_scans = parser.parse_content(content)
            scans = all_scans
            skipped: List[RawScan] = []
            filter_summary = None
            if filter_by_date and upload.date_from and upload.date_to:
                filtered = parser.filter_by_date_range(all_scans, upload.date_from, upload.date_to)
                scans = filtered["within_range"]
                skipped = filtered["outside_range"]
                filter_summary = filtered["summary"]

            grouped = parser.group_by_employee(scans)
            logger.info(
                "Attendance processing started: upload_id=%s total=%d filtered=%d names=%d",
                upload.id, len(all_scans), len(scans), len(grouped),
            )

            matches: Dict[str, Employee] = {}
            for normalized_name, name_scans in grouped.items():
                employee = match_employee(self.name_index, normalized_name, name_scans)
                if employee is not None:
                    matches[normalized_name] = employee

            self.save_biometric_records(scans, upload, matches)
            date_check = validate_file_dates(scans, upload.shift_date)

            stats = {
                "total_records": len(all_scans),
                "filtered_records": len(scans),
                "skipped_records": len(skipped),
                "filter_applied": filter_by_date,
                "filter_summary": filter_summary,
                "processed": 0,
                "matched_employees": 0,
                "unmatched_names": [],
                "errors": [],
                "no_schedule": [],
                "date_warnings": date_check["warnings"],
                "dates_found": date_check["dates_found"],
                "non_work_day_scans": [],
            }

            # Several device names can resolve to one employee
            employees: Dict[int, Employee] = {}
            display_names: Dict[int, str] = {}
            employee_scans: Dict[int, List[RawScan]] = {}
            for normalized_name, name_scans in grouped.items():
                display_name = name_scans[0].name
                employee = matches.get(normalized_name)
                if employee is None:
                    stats["unmatched_names"].append(display_name)
                    logger.warning("Employee not matched: %r (%s)", display_name, normalized_name)
                    continue
                if employee.id in employee_scans:
                    logger.info("Merging scans of %r into employee_id=%s", display_name, employee.id)
                employees[employee.id] = employee
                display_names.setdefault(employee.id, display_name)
                employee_scans.setdefault(employee.id, []).extend(name_scans)

            for employee_id, merged in employee_scans.items():
                merged.sort(key=lambda s: s.scanned_at)
                display_name = display_names[employee_id]
                result = self.process_employee_scans(employees[employee_id], merged, upload.biometric_site_id)
                stats["matched_employees"] += 1
                stats["processed"] += result["processed"]
                if result["no_schedule"]:
                    stats["no_schedule"].append({"employee": display_name, "dates": result["no_schedule"]})
                if result["non_work_days"]:
                    stats["non_work_day_scans"].append({"employee": display_name, "dates": result["non_work_days"]})

            if stats["non_work_day_scans"]:
                logger.warning(
                    "Biometric scans on non-scheduled work days: upload_id=%s employees=%d",
                    upload.id, len(stats["non_work_day_scans"]),
                )

            absent = self.detect_absent_employees(upload, scans, {e.id for e in matches.values()})
            stats["ncns_created"] = absent["ncns_created"]
            stats["on_leave_created"] = absent["on_leave_created"]

            upload.total_records = stats["total_records"]
            upload.processed_records = stats["processed"]
            upload.matched_employees = stats["matched_employees"]
            upload.unmatched_names_list = stats["unmatched_names"]
            upload.date_warnings = stats["date_warnings"]
            upload.dates_found = stats["dates_found"]
            upload.stats = sanitize_for_json(stats)
            upload.status = UploadStatus.COMPLETED
            self.db.commit()

            logger.info(
                "Attendance upload completed: upload_id=%s total=%d matched=%d unmatched=%d",
                upload.id, stats["total_records"], stats["matched_employees"], len(stats["unmatched_names"]),
            )
            return stats
        except Exception as e:
            self.db.rollback()
            upload.status = UploadStatus.FAILED
            upload.error_message = str(e)
            self.db.commit()
            logger.error("Attendance upload failed: upload_id=%s error=%s", upload.id, e, exc_info=True)
            raise

    def save_biometric_records(self, scans: List[RawScan], upload: AttendanceUpload, matches: Dict[str, Employee]) -> int:
        """Append raw scans of matched names to the audit log."""
        rows = []
        for scan in scans:
            employee = matches.get(scan.normalized_name)
            if employee is None:
                logger.debug("Skipping biometric record for unmatched name %r at %s", scan.name, scan.scanned_at)
                continue
            rows.append(BiometricRecord(
                employee_id=employee.id,
                attendance_upload_id=upload.id,
                site_id=upload.biometric_site_id,
                employee_name=scan.name,
                scanned_at=scan.scanned_at,
                record_date=scan.scanned_at.date(),
                record_time=scan.scanned_at.time(),
            ))
        if rows:
            self.db.add_all(rows)
            self.db.flush()
            logger.info("Saved %d biometric records for upload_id=%s", len(rows), upload.id)
        return len(rows)

    # -- per employee -----------------------------------------------------

    def process_employee_scans(self, employee: Employee, scans: List[RawScan], site_id: Optional[int] = None) -> Dict:
        """
        Group one employee's scans by shift date and reconcile every shift.

        Returns:
            {"processed": int, "non_work_days": [...], "no_schedule": [iso dates]}
        """
        earliest = min(s.scanned_at for s in scans).date()
        schedule = get_schedule_for_date(self.db, employee.id, earliest) or get_active_schedule(self.db, employee.id)
        clusters = assign_shift_dates(scans, schedule)

        processed = 0
        non_work_days = []
        no_schedule = []
        for shift_date, cluster in clusters.items():
            outcome = self.process_shift(employee, cluster, shift_date, site_id)
            if outcome.get("processed"):
                processed += 1
            if outcome.get("non_work_day"):
                non_work_days.append({
                    "date": shift_date.isoformat(),
                    "day_name": day_name(shift_date).capitalize(),
                    "scan_count": len(cluster),
                })
            if outcome.get("no_schedule"):
                no_schedule.append(shift_date.isoformat())

        if non_work_days:
            logger.info("Scans on non-work days for %s: %s", employee.name, [d["date"] for d in non_work_days])
        return {"processed": processed, "non_work_days": non_work_days, "no_schedule": no_schedule}

    def reprocess_employee_scans(self, employee: Employee, scans: List[RawScan], site_id: Optional[int] = None) -> Dict:
        """Re-run reconciliation for one already-identified employee."""
        if not scans:
            return {"processed": 0, "non_work_days": [], "no_schedule": []}
        return self.process_employee_scans(employee, scans, site_id)

    def process_shift(self, employee: Employee, scans: List[RawScan], shift_date: date, site_id: Optional[int] = None) -> Dict:
        """Reconcile one employee's scan cluster for one shift date."""
        schedule = get_schedule_for_date(self.db, employee.id, shift_date)
        if schedule is None:
            self._record_without_schedule(employee, scans, shift_date, site_id)
            return {"processed": True, "no_schedule": True}

        if not schedule.works_on_day(day_name(shift_date)):
            self._record_non_work_day(employee, schedule, scans, shift_date, site_id)
            return {"processed": False, "non_work_day": True}

        leave = get_approved_leave(self.db, employee.id, shift_date)
        if leave is not None:
            if len(scans) >= MIN_LEAVE_CONFLICT_SCANS:
                self._record_leave_conflict(employee, schedule, leave, scans, shift_date, site_id)
                return {"processed": True, "leave_conflict": True}
            self._record_on_leave(employee, schedule, shift_date, leave)
            return {"processed": True, "on_leave": True}

        self.reconcile_shift(employee, schedule, scans, shift_date, site_id)
        return {"processed": True}

    # -- record builders --------------------------------------------------

    def _get_or_create_record(self, employee_id: int, shift_date: date) -> Attendance:
        record = self.db.query(Attendance).filter(
            Attendance.employee_id == employee_id,
            Attendance.shift_date == shift_date,
        ).first()
        if record is None:
            record = Attendance(
                employee_id=employee_id,
                shift_date=shift_date,
                status=AttendanceStatus.NCNS,
                state=RecordState.DRAFT,
                warnings=[],
            )
            self.db.add(record)
            self.db.flush()
        return record

    def reconcile_shift(
        self,
        employee: Employee,
        schedule: EmployeeSchedule,
        scans: List[RawScan],
        shift_date: date,
        site_id: Optional[int] = None,
    ) -> Attendance:
        """
        Full reconciliation of a scheduled work day.

        Verified records are left untouched except for a missing time out.
        """
        record = self._get_or_create_record(employee.id, shift_date)
        window = shift_window(schedule, shift_date)
        classification = classify_scans(scans, window, schedule.shift_type)

        if is_frozen(record):
            self._backfill_time_out(record, classification.time_out, site_id)
            return record

        time_in, time_out = classification.time_in, classification.time_out
        result = derive_status(
            window.scheduled_in,
            window.scheduled_out,
            time_in,
            time_out,
            schedule.grace_period(settings.DEFAULT_GRACE_PERIOD_MINUTES),
        )
        if schedule.is_utility_24h:
            result = apply_utility_override(result, time_in, time_out)

        report = detect_anomalies(scans, window, time_in, time_out)
        final_status = result.status
        if should_escalate(final_status, report):
            logger.warning(
                "Attendance flagged for manual review: employee_id=%s shift_date=%s original_status=%s",
                employee.id, shift_date, final_status.value,
            )
            final_status = AttendanceStatus.NEEDS_MANUAL_REVIEW

        cross_site = bool(site_id and schedule.site_id and site_id != schedule.site_id)

        record.employee_schedule_id = schedule.id
        record.scheduled_time_in = window.scheduled_in
        record.scheduled_time_out = window.scheduled_out
        record.actual_time_in = time_in
        record.actual_time_out = time_out
        record.bio_in_site_id = site_id if time_in else None
        record.bio_out_site_id = site_id if time_out else None
        record.is_cross_site_bio = cross_site
        record.status = final_status
        record.secondary_status = result.secondary_status
        record.tardy_minutes = result.tardy_minutes
        record.undertime_minutes = result.undertime_minutes
        record.overtime_minutes = result.overtime_minutes
        record.leave_request_id = None
        record.notes = None
        record.warnings = classification.warnings + result.warnings + report.warnings
        recalculate_total_minutes_worked(record)

        if final_status == AttendanceStatus.NEEDS_MANUAL_REVIEW:
            transition(record, RecordState.PENDING_REVIEW)
        else:
            transition(record, RecordState.AUTO_RECONCILED)
        return record

    def _backfill_time_out(self, record: Attendance, time_out: Optional[datetime], site_id: Optional[int]) -> None:
        if not accepts_time_out_backfill(record) or time_out is None or time_out <= record.actual_time_in:
            logger.debug("Skipping verified attendance %s", record.id)
            return

        record.actual_time_out = time_out
        record.bio_out_site_id = site_id
        if record.scheduled_time_out is not None:
            _, record.undertime_minutes, record.overtime_minutes = time_out_adjustment(
                record.scheduled_time_out, time_out
            )
        recalculate_total_minutes_worked(record)
        record.add_warning(
            f"TIME OUT BACKFILLED: {time_out.strftime('%Y-%m-%d %H:%M:%S')} added after verification. "
            "Status unchanged."
        )
        logger.info("Backfilled time out on verified attendance %s: %s", record.id, time_out)

    def _record_without_schedule(self, employee: Employee, scans: List[RawScan], shift_date: date, site_id: Optional[int]) -> None:
        record = self._get_or_create_record(employee.id, shift_date)
        if is_frozen(record):
            return
        ordered = sorted(s.scanned_at for s in scans)
        record.employee_schedule_id = None
        record.scheduled_time_in = None
        record.scheduled_time_out = None
        record.actual_time_in = ordered[0]
        record.actual_time_out = ordered[-1] if len(ordered) > 1 else None
        record.bio_in_site_id = site_id
        record.bio_out_site_id = site_id if len(ordered) > 1 else None
        record.status = AttendanceStatus.NEEDS_MANUAL_REVIEW
        record.secondary_status = None
        record.tardy_minutes = record.undertime_minutes = record.overtime_minutes = None
        record.warnings = []
        record.notes = (
            "No schedule found for this employee. Created from biometric data. "
            f"Employee has {len(scans)} scan(s) on this date. Requires verification."
        )
        recalculate_total_minutes_worked(record)
        transition(record, RecordState.PENDING_REVIEW)
        logger.info("Created attendance without schedule: employee_id=%s shift_date=%s", employee.id, shift_date)

    def _record_non_work_day(
        self,
        employee: Employee,
        schedule: EmployeeSchedule,
        scans: List[RawScan],
        shift_date: date,
        site_id: Optional[int],
    ) -> None:
        record = self._get_or_create_record(employee.id, shift_date)
        if is_frozen(record):
            return
        window = shift_window(schedule, shift_date)
        ordered = sorted(s.scanned_at for s in scans)
        record.employee_schedule_id = schedule.id
        record.scheduled_time_in = window.scheduled_in
        record.scheduled_time_out = window.scheduled_out
        record.actual_time_in = ordered[0]
        record.actual_time_out = ordered[-1] if len(ordered) > 1 else None
        record.bio_in_site_id = site_id
        record.bio_out_site_id = site_id if len(ordered) > 1 else None
        record.status = AttendanceStatus.NON_WORK_DAY
        record.secondary_status = None
        record.tardy_minutes = record.undertime_minutes = record.overtime_minutes = None
        record.warnings = []
        record.notes = (
            f"Biometric scans detected on non-scheduled work day ({day_name(shift_date).capitalize()}). "
            f"Employee has {len(scans)} scan(s) on this date. "
            "This may represent overtime, special work, or data issue. Requires verification."
        )
        record.total_minutes_worked = compute_total_minutes_worked(record.actual_time_in, record.actual_time_out)
        transition(record, RecordState.PENDING_REVIEW)
        logger.info("Created non-work day attendance: employee_id=%s shift_date=%s", employee.id, shift_date)

    def _record_on_leave(self, employee: Employee, schedule: EmployeeSchedule, shift_date: date, leave: LeaveRequest) -> bool:
        record = self._get_or_create_record(employee.id, shift_date)
        if is_frozen(record):
            return False
        window = shift_window(schedule, shift_date)
        record.employee_schedule_id = schedule.id
        record.scheduled_time_in = window.scheduled_in
        record.scheduled_time_out = window.scheduled_out
        record.actual_time_in = record.actual_time_out = None
        record.status = AttendanceStatus.ON_LEAVE
        record.secondary_status = None
        record.tardy_minutes = record.undertime_minutes = record.overtime_minutes = None
        record.total_minutes_worked = None
        record.leave_request_id = leave.id
        record.warnings = []
        record.notes = f"On approved {leave.leave_type}" + (f" - {leave.reason}" if leave.reason else "")
        transition(record, RecordState.VERIFIED)
        logger.info(
            "Created on_leave attendance: employee_id=%s shift_date=%s leave_request_id=%s",
            employee.id, shift_date, leave.id,
        )
        return True

    def _record_leave_conflict(
        self,
        employee: Employee,
        schedule: EmployeeSchedule,
        leave: LeaveRequest,
        scans: List[RawScan],
        shift_date: date,
        site_id: Optional[int],
    ) -> None:
        previously_linked = self.db.query(Attendance.id).filter(
            Attendance.employee_id == employee.id,
            Attendance.shift_date == shift_date,
            Attendance.leave_request_id == leave.id,
        ).first() is not None

        record = self.reconcile_shift(employee, schedule, scans, shift_date, site_id)
        if is_frozen(record):
            return

        ordered = sorted(s.scanned_at for s in scans)
        duration = round(minutes_between(ordered[0], ordered[-1]) / 60, 2)
        record.leave_request_id = leave.id
        record.append_note(
            "Leave conflict: Employee on approved leave but has biometric activity. "
            f"Duration: {duration} hrs. Pending HR review."
        )
        transition(record, RecordState.PENDING_REVIEW)
        logger.info(
            "Leave attendance conflict: employee_id=%s leave_request_id=%s shift_date=%s scans=%d",
            employee.id, leave.id, shift_date, len(scans),
        )
        if not previously_linked:
            notify_leave_conflict(self.db, employee, leave, shift_date, len(scans))

    # -- absentees --------------------------------------------------------

    def detect_absent_employees(self, upload: AttendanceUpload, scans: List[RawScan], present_ids) -> Dict:
        """
        Create on_leave or NCNS records for scheduled employees missing from the file.

        Only work days among the dates present in the file are considered; when
        the upload has a date range, dates after date_to are ignored.
        """
        dates = sorted({s.scan_date for s in scans})
        if upload.date_to is not None:
            dates = [d for d in dates if d <= upload.date_to]
        counts = {"ncns_created": 0, "on_leave_created": 0}
        if not dates:
            return counts

        for employee_id in list_scheduled_employee_ids(self.db):
            if employee_id in present_ids:
                continue
            employee = self.db.get(Employee, employee_id)
            if employee is None or not employee.active:
                continue
            for shift_date in dates:
                schedule = get_schedule_for_date(self.db, employee_id, shift_date)
                if schedule is None or not schedule.works_on_day(day_name(shift_date)):
                    continue
                leave = get_approved_leave(self.db, employee_id, shift_date)
                if leave is not None:
                    if self._record_on_leave(employee, schedule, shift_date, leave):
                        counts["on_leave_created"] += 1
                    continue
                existing = self.db.query(Attendance.id).filter(
                    Attendance.employee_id == employee_id,
                    Attendance.shift_date == shift_date,
                ).first()
                if existing is not None:
                    continue
                self._create_ncns(employee, schedule, shift_date)
                counts["ncns_created"] += 1

        if counts["ncns_created"]:
            logger.warning("Absent employees detected: upload_id=%s ncns_created=%d", upload.id, counts["ncns_created"])
        return counts

    def _create_ncns(self, employee: Employee, schedule: EmployeeSchedule, shift_date: date) -> Attendance:
        window = shift_window(schedule, shift_date)
        record = Attendance(
            employee_id=employee.id,
            employee_schedule_id=schedule.id,
            shift_date=shift_date,
            scheduled_time_in=window.scheduled_in,
            scheduled_time_out=window.scheduled_out,
            status=AttendanceStatus.NCNS,
            is_advised=False,
            state=RecordState.AUTO_RECONCILED,
            warnings=[],
            notes="No biometric scans found for scheduled work day. Automatically marked as NCNS (No Call No Show).",
        )
        self.db.add(record)
        self.db.flush()
        logger.info(
            "Created NCNS record: employee_id=%s shift_date=%s scheduled=%s-%s",
            employee.id, shift_date, fmt_hm(window.scheduled_in), fmt_hm(window.scheduled_out),
        )
        return record


# -- module level operations ---------------------------------------------

def create_upload(
    db: Session,
    shift_date: date,
    original_filename: Optional[str] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    biometric_site_id: Optional[int] = None,
) -> AttendanceUpload:
    """Create a pending upload."""
    if date_from and date_to and date_from > date_to:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="date_from must be on or before date_to",
        )
    upload = AttendanceUpload(
        original_filename=original_filename,
        shift_date=shift_date,
        date_from=date_from,
        date_to=date_to,
        biometric_site_id=biometric_site_id,
        status=UploadStatus.PENDING,
        unmatched_names_list=[],
        date_warnings=[],
        dates_found=[],
    )
    db.add(upload)
    db.commit()
    db.refresh(upload)
    return upload


def get_upload(db: Session, upload_id: int) -> AttendanceUpload:
    upload = db.query(AttendanceUpload).filter(AttendanceUpload.id == upload_id).first()
    if not upload:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Upload {upload_id} not found",
        )
    return upload


def reprocess_upload(db: Session, upload_id: int) -> Dict:
    """
    Re-run reconciliation from the stored raw scans of a completed upload.

    Raises:
        HTTPException: 404 if missing, 409 if the upload never completed
    """
    upload = get_upload(db, upload_id)
    if upload.status != UploadStatus.COMPLETED:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Upload {upload_id} is {upload.status.value}; only completed uploads can be reprocessed",
        )

    records = db.query(BiometricRecord).filter(
        BiometricRecord.attendance_upload_id == upload_id
    ).order_by(BiometricRecord.employee_id, BiometricRecord.scanned_at).all()

    by_employee: Dict[int, List[BiometricRecord]] = {}
    for record in records:
        by_employee.setdefault(record.employee_id, []).append(record)

    processor = AttendanceProcessor(db)
    stats = {"employees": 0, "processed": 0, "no_schedule": []}
    try:
        for employee_id, employee_records in by_employee.items():
            employee = db.get(Employee, employee_id)
            if employee is None:
                continue
            result = processor.reprocess_employee_scans(
                employee, scans_from_biometric_records(employee_records), upload.biometric_site_id
            )
            stats["employees"] += 1
            stats["processed"] += result["processed"]
            if result["no_schedule"]:
                stats["no_schedule"].append({"employee": employee.name, "dates": result["no_schedule"]})
        db.commit()
    except Exception:
        db.rollback()
        logger.error("Reprocessing failed: upload_id=%s", upload_id, exc_info=True)
        raise

    logger.info("Reprocessed upload_id=%s employees=%d shifts=%d", upload_id, stats["employees"], stats["processed"])
    return stats
