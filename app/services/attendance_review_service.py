"""
Attendance review service - admin verification of reconciled records
"""
import logging
from datetime import date
from typing import List, Optional
from sqlalchemy.orm import Session
from fastapi import HTTPException, status
from app.models.attendance import Attendance, AttendanceStatus, RecordState
from app.services.attendance_lifecycle import transition
from app.services.attendance_point_service import regenerate_points_for_attendance
from app.services.attendance_processor import recalculate_total_minutes_worked

logger = logging.getLogger(__name__)

REVIEW_STATES = (RecordState.PENDING_REVIEW,)

# Primary statuses that can carry a secondary status
SECONDARY_CAPABLE_STATUSES = (AttendanceStatus.TARDY, AttendanceStatus.HALF_DAY_ABSENCE)


def get_attendance(db: Session, attendance_id: int) -> Attendance:
    record = db.query(Attendance).filter(Attendance.id == attendance_id).first()
    if not record:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Attendance {attendance_id} not found"
        )
    return record


def list_attendance(
    db: Session,
    shift_date: Optional[date] = None,
    employee_id: Optional[int] = None,
    status: Optional[AttendanceStatus] = None,
    needs_review: Optional[bool] = None,
) -> List[Attendance]:
    """
    List attendance records with optional filters.

    Args:
        db: Database session
        shift_date: Only this shift date
        employee_id: Only this employee
        status: Only this primary status
        needs_review: True for pending_review records, False for everything else

    Returns:
        Records ordered by shift date then employee
    """
    query = db.query(Attendance)
    if shift_date is not None:
        query = query.filter(Attendance.shift_date == shift_date)
    if employee_id is not None:
        query = query.filter(Attendance.employee_id == employee_id)
    if status is not None:
        query = query.filter(Attendance.status == status)
    if needs_review is True:
        query = query.filter(Attendance.state.in_(REVIEW_STATES))
    elif needs_review is False:
        query = query.filter(~Attendance.state.in_(REVIEW_STATES))
    return query.order_by(Attendance.shift_date, Attendance.employee_id).all()


def verify_attendance(
    db: Session,
    attendance_id: int,
    *,
    status: Optional[AttendanceStatus] = None,
    secondary_status: Optional[AttendanceStatus] = None,
    clear_secondary_status: bool = False,
    notes: Optional[str] = None,
    overtime_approved: Optional[bool] = None,
    lunch_used: Optional[bool] = None,
    is_set_home: Optional[bool] = None,
    is_advised: Optional[bool] = None,
) -> Attendance:
    """
    Verify a record, optionally correcting it first, and regenerate its point.

    A corrected primary status that cannot carry a secondary status drops the
    existing one unless a new secondary_status is given. clear_secondary_status
    drops it regardless.

    Raises:
        HTTPException: 404 if missing, 409 if already verified
    """
    record = get_attendance(db, attendance_id)

    if status is not None:
        record.status = status
        if secondary_status is None and status not in SECONDARY_CAPABLE_STATUSES:
            record.secondary_status = None
    if clear_secondary_status:
        record.secondary_status = None
    elif secondary_status is not None:
        record.secondary_status = secondary_status
    if overtime_approved is not None:
        record.overtime_approved = overtime_approved
    if lunch_used is not None:
        record.lunch_used = lunch_used
    if is_set_home is not None:
        record.is_set_home = is_set_home
    if is_advised is not None:
        record.is_advised = is_advised

    transition(record, RecordState.VERIFIED, notes=notes)
    recalculate_total_minutes_worked(record)
    regenerate_points_for_attendance(db, record)
    db.commit()
    db.refresh(record)

    logger.info("Attendance %s verified (status=%s)", record.id, record.status.value)
    return record


def mark_for_review(db: Session, attendance_id: int, reason: Optional[str] = None) -> Attendance:
    """
    Send a record back to pending_review.

    Un-verifying removes the record's point until it is verified again.
    """
    record = get_attendance(db, attendance_id)
    was_verified = record.state == RecordState.VERIFIED

    transition(record, RecordState.PENDING_REVIEW)
    if reason:
        record.append_note(f"Review requested: {reason}")
    if was_verified:
        regenerate_points_for_attendance(db, record)
    db.commit()
    db.refresh(record)

    logger.info("Attendance %s marked for review", record.id)
    return record
