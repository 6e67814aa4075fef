"""
Attendance record schemas
"""
from datetime import date, datetime
from typing import Optional, List
from pydantic import BaseModel, ConfigDict, Field

from app.models.attendance import AttendanceStatus, RecordState


class AttendanceOut(BaseModel):
    """Reconciled attendance record"""
    id: int
    employee_id: int
    employee_schedule_id: Optional[int]
    leave_request_id: Optional[int]
    shift_date: date
    scheduled_time_in: Optional[datetime]
    scheduled_time_out: Optional[datetime]
    actual_time_in: Optional[datetime]
    actual_time_out: Optional[datetime]
    is_cross_site_bio: bool
    status: AttendanceStatus
    secondary_status: Optional[AttendanceStatus]
    tardy_minutes: Optional[int]
    undertime_minutes: Optional[int]
    overtime_minutes: Optional[int]
    total_minutes_worked: Optional[int]
    is_advised: bool
    overtime_approved: bool
    lunch_used: bool
    is_set_home: bool
    state: RecordState
    admin_verified: bool
    verified_at: Optional[datetime]
    verification_notes: Optional[str]
    warnings: List[str]
    notes: Optional[str]

    model_config = ConfigDict(from_attributes=True)


class AttendanceVerifyRequest(BaseModel):
    """Admin verification with optional corrections"""
    status: Optional[AttendanceStatus] = None
    secondary_status: Optional[AttendanceStatus] = None
    clear_secondary_status: bool = False
    notes: Optional[str] = Field(None, max_length=2000)
    overtime_approved: Optional[bool] = None
    lunch_used: Optional[bool] = None
    is_set_home: Optional[bool] = None
    is_advised: Optional[bool] = None


class AttendanceReviewRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=2000)
