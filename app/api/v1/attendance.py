"""
Attendance review endpoints
"""
from datetime import date
from typing import List, Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from app.core.deps import get_db
from app.models.attendance import AttendanceStatus
from app.schemas.attendance import AttendanceOut, AttendanceVerifyRequest, AttendanceReviewRequest
from app.services.attendance_review_service import (
    get_attendance,
    list_attendance,
    verify_attendance,
    mark_for_review,
)

router = APIRouter()


@router.get("", response_model=List[AttendanceOut])
async def list_attendance_endpoint(
    shift_date: Optional[date] = Query(None, description="Filter by shift date"),
    employee_id: Optional[int] = Query(None, description="Filter by employee"),
    status: Optional[AttendanceStatus] = Query(None, description="Filter by primary status"),
    needs_review: Optional[bool] = Query(None, description="Only records awaiting review"),
    db: Session = Depends(get_db),
):
    """List reconciled attendance records"""
    return list_attendance(
        db,
        shift_date=shift_date,
        employee_id=employee_id,
        status=status,
        needs_review=needs_review,
    )


@router.get("/{attendance_id}", response_model=AttendanceOut)
async def get_attendance_endpoint(attendance_id: int, db: Session = Depends(get_db)):
    return get_attendance(db, attendance_id)


@router.post("/{attendance_id}/verify", response_model=AttendanceOut)
async def verify_attendance_endpoint(
    attendance_id: int,
    verify_data: AttendanceVerifyRequest,
    db: Session = Depends(get_db),
):
    """Verify a record (with optional corrections) and regenerate its point"""
    return verify_attendance(
        db,
        attendance_id,
        status=verify_data.status,
        secondary_status=verify_data.secondary_status,
        clear_secondary_status=verify_data.clear_secondary_status,
        notes=verify_data.notes,
        overtime_approved=verify_data.overtime_approved,
        lunch_used=verify_data.lunch_used,
        is_set_home=verify_data.is_set_home,
        is_advised=verify_data.is_advised,
    )


@router.post("/{attendance_id}/review", response_model=AttendanceOut)
async def review_attendance_endpoint(
    attendance_id: int,
    review_data: AttendanceReviewRequest,
    db: Session = Depends(get_db),
):
    """Send a record back to pending review"""
    return mark_for_review(db, attendance_id, reason=review_data.reason)
