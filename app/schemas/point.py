"""
Attendance point schemas
"""
from datetime import date, datetime
from decimal import Decimal
from typing import Optional, List
from pydantic import BaseModel, ConfigDict, Field

from app.models.attendance_point import PointType, ExpirationType


class AttendancePointOut(BaseModel):
    id: int
    employee_id: int
    attendance_id: int
    shift_date: date
    point_type: PointType
    points: Decimal
    status: str
    is_advised: bool
    is_excused: bool
    excused_at: Optional[datetime]
    excuse_reason: Optional[str]
    notes: Optional[str]
    expires_at: date
    expiration_type: ExpirationType
    is_expired: bool
    expired_at: Optional[date]
    eligible_for_gbro: bool
    gbro_expires_at: Optional[date]
    gbro_applied_at: Optional[date]
    violation_details: Optional[str]
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class GeneratePointsRequest(BaseModel):
    shift_date: date


class GeneratePointsOut(BaseModel):
    shift_date: date
    created: int
    points: List[AttendancePointOut]


class ExpirePointsRequest(BaseModel):
    as_of: Optional[date] = None
    dry_run: bool = False


class ExpirePointsOut(BaseModel):
    as_of: date
    dry_run: bool
    expired_count: int
    point_ids: List[int]


class ExcusePointRequest(BaseModel):
    reason: str = Field(..., min_length=1, max_length=500)
    notes: Optional[str] = Field(None, max_length=1000)
