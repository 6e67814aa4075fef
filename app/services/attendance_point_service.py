"""
Attendance point service - disciplinary points from verified attendance.

One point at most per attendance record. When both the primary and the
secondary status carry points, the higher value is recorded and the other
is mentioned in the violation details.
"""
import logging
from datetime import date, timedelta
from decimal import Decimal
from typing import Dict, List, Optional, Tuple
from sqlalchemy.orm import Session
from fastapi import HTTPException, status
from app.core.config import settings
from app.models.attendance import Attendance, AttendanceStatus, RecordState, UNDERTIME_STATUSES
from app.models.attendance_point import AttendancePoint, ExpirationType, PointType, POINT_VALUES
from app.utils.datetime_utils import add_months, add_years, fmt_hm, now_utc

logger = logging.getLogger(__name__)

STATUS_TO_POINT_TYPE = {
    AttendanceStatus.NCNS: PointType.WHOLE_DAY_ABSENCE,
    AttendanceStatus.ADVISED_ABSENCE: PointType.WHOLE_DAY_ABSENCE,
    AttendanceStatus.HALF_DAY_ABSENCE: PointType.HALF_DAY_ABSENCE,
    AttendanceStatus.TARDY: PointType.TARDY,
    AttendanceStatus.UNDERTIME: PointType.UNDERTIME,
    AttendanceStatus.UNDERTIME_MORE_THAN_HOUR: PointType.UNDERTIME_MORE_THAN_HOUR,
}

STATUS_LABELS = {
    AttendanceStatus.NCNS: "NCNS",
    AttendanceStatus.ADVISED_ABSENCE: "Advised Absence",
    AttendanceStatus.HALF_DAY_ABSENCE: "Half-Day Absence",
    AttendanceStatus.TARDY: "Tardy",
    AttendanceStatus.UNDERTIME: "Undertime",
    AttendanceStatus.UNDERTIME_MORE_THAN_HOUR: "Undertime (>1 Hour)",
}

STANDARD_EXPIRY_MONTHS = 6
NCNS_EXPIRY_YEARS = 1
GBRO_CLEAN_DAYS = 60
GBRO_POINTS_PER_CYCLE = 2


def undertime_hour_limit() -> int:
    return settings.UNDERTIME_THRESHOLD_MINUTES + settings.UNDERTIME_HOUR_THRESHOLD_MINUTES


def point_value(status: Optional[AttendanceStatus]) -> Decimal:
    point_type = STATUS_TO_POINT_TYPE.get(status)
    return POINT_VALUES[point_type] if point_type else Decimal("0")


def effective_statuses(record: Attendance) -> Tuple[Optional[AttendanceStatus], Optional[AttendanceStatus]]:
    """Primary/secondary statuses after the set-home rule (sent home early is not undertime)."""
    primary, secondary = record.status, record.secondary_status
    if not record.is_set_home:
        return primary, secondary
    if primary in UNDERTIME_STATUSES:
        if secondary is not None and secondary not in UNDERTIME_STATUSES:
            return secondary, None
        return None, None
    if secondary in UNDERTIME_STATUSES:
        secondary = None
    return primary, secondary


def select_violation(record: Attendance) -> Optional[Tuple[AttendanceStatus, Optional[AttendanceStatus]]]:
    """
    Pick the status to penalise for a record.

    Returns:
        (used_status, suppressed_status) or None when nothing is pointable
    """
    primary, secondary = effective_statuses(record)
    primary_value, secondary_value = point_value(primary), point_value(secondary)
    if primary_value <= 0 and secondary_value <= 0:
        return None
    if secondary_value > primary_value:
        return secondary, primary if primary_value > 0 else None
    return primary, secondary if secondary_value > 0 else None


def violation_details(record: Attendance, used: AttendanceStatus, suppressed: Optional[AttendanceStatus] = None) -> str:
    scheduled_in = fmt_hm(record.scheduled_time_in)
    scheduled_out = fmt_hm(record.scheduled_time_out)
    actual_in = fmt_hm(record.actual_time_in, missing="No scan")
    actual_out = fmt_hm(record.actual_time_out, missing="No scan")

    if used == AttendanceStatus.NCNS:
        if record.is_advised:
            details = (
                "Failed to Notify (FTN): Employee did not report for work despite being advised. "
                f"Scheduled: {scheduled_in} - {scheduled_out}. No biometric scans recorded."
            )
        else:
            details = (
                "No Call, No Show (NCNS): Employee did not report for work and did not provide prior notice. "
                f"Scheduled: {scheduled_in} - {scheduled_out}. No biometric scans recorded."
            )
    elif used == AttendanceStatus.ADVISED_ABSENCE:
        details = f"Advised Absence: Employee notified in advance. Scheduled: {scheduled_in} - {scheduled_out}."
    elif used == AttendanceStatus.HALF_DAY_ABSENCE:
        grace = record.schedule.grace_period(settings.DEFAULT_GRACE_PERIOD_MINUTES) if record.schedule else settings.DEFAULT_GRACE_PERIOD_MINUTES
        details = "Half-Day Absence: Arrived %d minutes late (more than %d minutes grace period). Scheduled: %s, Actual: %s." % (
            record.tardy_minutes or 0, grace, scheduled_in, actual_in,
        )
    elif used == AttendanceStatus.TARDY:
        details = "Tardy: Arrived %d minutes late. Scheduled time in: %s, Actual time in: %s." % (
            record.tardy_minutes or 0, scheduled_in, actual_in,
        )
    elif used == AttendanceStatus.UNDERTIME:
        details = "Undertime: Left %d minutes early (more than %d, up to %d minutes before scheduled end). Scheduled: %s, Actual: %s." % (
            record.undertime_minutes or 0, settings.UNDERTIME_THRESHOLD_MINUTES, undertime_hour_limit(),
            scheduled_out, actual_out,
        )
    elif used == AttendanceStatus.UNDERTIME_MORE_THAN_HOUR:
        details = "Undertime (>1 Hour): Left %d minutes early (more than %d minutes before scheduled end). Scheduled: %s, Actual: %s." % (
            record.undertime_minutes or 0, undertime_hour_limit(), scheduled_out, actual_out,
        )
    else:
        details = f"Attendance violation on {record.shift_date.isoformat()}"

    if suppressed is not None:
        details += " [Note: Also had %s violation (%.2f pts) - only higher point value applied per shift]" % (
            STATUS_LABELS.get(suppressed, suppressed.value), point_value(suppressed),
        )
    return details


def build_point(record: Attendance) -> Optional[AttendancePoint]:
    """Build (but do not add) the point for a verified record, or None."""
    selection = select_violation(record)
    if selection is None:
        return None
    used, suppressed = selection
    point_type = STATUS_TO_POINT_TYPE[used]

    is_ncns = used == AttendanceStatus.NCNS and not record.is_advised
    if is_ncns:
        expires_at = add_years(record.shift_date, NCNS_EXPIRY_YEARS)
    else:
        expires_at = add_months(record.shift_date, STANDARD_EXPIRY_MONTHS)

    return AttendancePoint(
        employee_id=record.employee_id,
        attendance_id=record.id,
        shift_date=record.shift_date,
        point_type=point_type,
        points=POINT_VALUES[point_type],
        status=used.value,
        is_advised=bool(record.is_advised),
        is_excused=False,
        expires_at=expires_at,
        expiration_type=ExpirationType.NONE if is_ncns else ExpirationType.SRO,
        is_expired=False,
        eligible_for_gbro=not is_ncns,
        violation_details=violation_details(record, used, suppressed),
        tardy_minutes=record.tardy_minutes,
        undertime_minutes=record.undertime_minutes,
    )


def _existing_point(db: Session, record: Attendance) -> Optional[AttendancePoint]:
    return db.query(AttendancePoint).filter(
        AttendancePoint.employee_id == record.employee_id,
        AttendancePoint.shift_date == record.shift_date,
        AttendancePoint.attendance_id == record.id,
    ).first()


def generate_points_for_date(db: Session, shift_date: date) -> List[AttendancePoint]:
    """
    Create points for verified records of a shift date.

    Records that already have a point are skipped, so re-running is safe.

    Args:
        db: Database session
        shift_date: Shift date to process

    Returns:
        Newly created points
    """
    records = db.query(Attendance).filter(
        Attendance.shift_date == shift_date,
        Attendance.admin_verified,
    ).order_by(Attendance.employee_id).all()

    created = []
    for record in records:
        if _existing_point(db, record) is not None:
            continue
        point = build_point(record)
        if point is None:
            continue
        db.add(point)
        db.flush()
        created.append(point)
        logger.info(
            "Attendance point created: employee_id=%s shift_date=%s type=%s points=%s",
            point.employee_id, shift_date, point.point_type.value, point.points,
        )

    db.commit()
    if not created:
        logger.info("No attendance points needed for %s", shift_date)
    return created


def regenerate_points_for_attendance(db: Session, record: Attendance) -> Optional[AttendancePoint]:
    """
    Replace the point of one record after an admin edit.

    Only verified records get a point. The caller commits.
    """
    db.query(AttendancePoint).filter(
        AttendancePoint.attendance_id == record.id
    ).delete(synchronize_session="fetch")
    db.flush()

    if record.state != RecordState.VERIFIED:
        return None
    point = build_point(record)
    if point is None:
        logger.info("No point for attendance %s (status=%s)", record.id, record.status.value)
        return None
    db.add(point)
    db.flush()
    logger.info(
        "Attendance point regenerated: attendance_id=%s type=%s points=%s",
        record.id, point.point_type.value, point.points,
    )
    return point


def process_point_expirations(db: Session, as_of: Optional[date] = None, dry_run: bool = False) -> Dict:
    """
    Expire points whose expiry date has passed.

    Excused and already-expired points are left alone. With dry_run nothing
    is written.
    """
    as_of = as_of or date.today()
    due = db.query(AttendancePoint).filter(
        AttendancePoint.is_expired == False,
        AttendancePoint.is_excused == False,
        AttendancePoint.expires_at <= as_of,
    ).order_by(AttendancePoint.expires_at, AttendancePoint.id).all()

    if not dry_run:
        for point in due:
            point.is_expired = True
            point.expired_at = as_of
        db.commit()

    logger.info("Point expirations as of %s: %d due (dry_run=%s)", as_of, len(due), dry_run)
    return {
        "as_of": as_of,
        "dry_run": dry_run,
        "expired_count": len(due),
        "point_ids": [p.id for p in due],
    }


def get_point(db: Session, point_id: int) -> AttendancePoint:
    point = db.query(AttendancePoint).filter(AttendancePoint.id == point_id).first()
    if not point:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Attendance point {point_id} not found"
        )
    return point


def _gbro_candidates(db: Session, employee_id: int) -> List[AttendancePoint]:
    """Active GBRO-eligible points of an employee, newest first."""
    return db.query(AttendancePoint).filter(
        AttendancePoint.employee_id == employee_id,
        AttendancePoint.is_expired == False,
        AttendancePoint.is_excused == False,
        AttendancePoint.eligible_for_gbro == True,
        AttendancePoint.gbro_applied_at.is_(None),
    ).order_by(AttendancePoint.shift_date.desc(), AttendancePoint.id.desc()).all()


def _last_gbro_date(db: Session, employee_id: int) -> Optional[date]:
    last = db.query(AttendancePoint).filter(
        AttendancePoint.employee_id == employee_id,
        AttendancePoint.expiration_type == ExpirationType.GBRO,
        AttendancePoint.gbro_expires_at.isnot(None),
    ).order_by(AttendancePoint.gbro_expires_at.desc()).first()
    return last.gbro_expires_at if last else None


def gbro_date(candidates: List[AttendancePoint], last_gbro: Optional[date] = None) -> Optional[date]:
    """
    Date the two newest candidates roll off for good behavior.

    The clock starts at the newest violation, or at the previous GBRO
    when that is later.
    """
    if not candidates:
        return None
    reference = candidates[0].shift_date
    if last_gbro is not None and last_gbro > reference:
        reference = last_gbro
    return reference + timedelta(days=GBRO_CLEAN_DAYS)


def _schedule_gbro(candidates: List[AttendancePoint], scheduled: Optional[date]) -> None:
    for index, point in enumerate(candidates):
        point.gbro_expires_at = scheduled if index < GBRO_POINTS_PER_CYCLE else None


def refresh_gbro_schedule(db: Session, employee_id: int) -> Optional[date]:
    """Recompute the pending GBRO date of an employee. The caller commits."""
    candidates = _gbro_candidates(db, employee_id)
    scheduled = gbro_date(candidates, _last_gbro_date(db, employee_id))
    _schedule_gbro(candidates, scheduled)
    db.flush()
    return scheduled


def process_gbro(db: Session, as_of: Optional[date] = None, dry_run: bool = False) -> Dict:
    """
    Apply good behavior roll-off (GBRO).

    After GBRO_CLEAN_DAYS without a new violation, the two newest eligible
    points of an employee expire with expiration_type=gbro and the clock
    restarts from that GBRO date for the remaining points. One cycle per
    employee per run; employees already rolled off on as_of are skipped.
    With dry_run nothing is written.
    """
    as_of = as_of or date.today()
    employee_ids = [row[0] for row in db.query(AttendancePoint.employee_id).filter(
        AttendancePoint.is_expired == False,
        AttendancePoint.is_excused == False,
        AttendancePoint.eligible_for_gbro == True,
    ).distinct().order_by(AttendancePoint.employee_id).all()]

    expired: List[AttendancePoint] = []
    for employee_id in employee_ids:
        already_applied = db.query(AttendancePoint.id).filter(
            AttendancePoint.employee_id == employee_id,
            AttendancePoint.expiration_type == ExpirationType.GBRO,
            AttendancePoint.gbro_applied_at == as_of,
        ).first()
        if already_applied is not None:
            logger.info("GBRO already applied for employee_id=%s on %s", employee_id, as_of)
            continue

        candidates = _gbro_candidates(db, employee_id)
        scheduled = gbro_date(candidates, _last_gbro_date(db, employee_id))
        if scheduled is None:
            continue
        if scheduled > as_of:
            if not dry_run:
                _schedule_gbro(candidates, scheduled)
            continue

        batch = candidates[:GBRO_POINTS_PER_CYCLE]
        expired.extend(batch)
        logger.info(
            "GBRO for employee_id=%s: %d points roll off (scheduled %s)",
            employee_id, len(batch), scheduled,
        )
        if dry_run:
            continue
        for point in batch:
            point.is_expired = True
            point.expired_at = as_of
            point.expiration_type = ExpirationType.GBRO
            point.gbro_expires_at = scheduled
            point.gbro_applied_at = as_of
        remaining = candidates[GBRO_POINTS_PER_CYCLE:]
        _schedule_gbro(remaining, gbro_date(remaining, scheduled))

    if not dry_run:
        db.commit()

    logger.info("GBRO as of %s: %d points (dry_run=%s)", as_of, len(expired), dry_run)
    return {
        "as_of": as_of,
        "dry_run": dry_run,
        "expired_count": len(expired),
        "point_ids": [p.id for p in expired],
    }


def excuse_point(db: Session, point_id: int, reason: str, notes: Optional[str] = None) -> AttendancePoint:
    """
    Excuse a point. Excused points never expire and do not count toward GBRO.

    Raises:
        HTTPException: 404 if missing, 409 if already excused or expired
    """
    point = get_point(db, point_id)
    if point.is_excused:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Attendance point {point_id} is already excused"
        )
    if point.is_expired:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Attendance point {point_id} has already expired"
        )

    point.is_excused = True
    point.excused_at = now_utc()
    point.excuse_reason = reason
    if notes is not None:
        point.notes = notes
    db.flush()
    refresh_gbro_schedule(db, point.employee_id)
    db.commit()
    db.refresh(point)
    logger.info("Attendance point %s excused: %s", point_id, reason)
    return point


def unexcuse_point(db: Session, point_id: int) -> AttendancePoint:
    """
    Reinstate an excused point.

    Raises:
        HTTPException: 404 if missing, 409 if not excused
    """
    point = get_point(db, point_id)
    if not point.is_excused:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Attendance point {point_id} is not excused"
        )

    point.is_excused = False
    point.excused_at = None
    point.excuse_reason = None
    db.flush()
    refresh_gbro_schedule(db, point.employee_id)
    db.commit()
    db.refresh(point)
    logger.info("Attendance point %s reinstated", point_id)
    return point
