"""
Database models
"""
from app.models.employee import Employee
from app.models.schedule import EmployeeSchedule, ShiftType
from app.models.leave import LeaveRequest, LeaveStatus
from app.models.attendance_upload import AttendanceUpload, UploadStatus
from app.models.biometric_record import BiometricRecord
from app.models.attendance import (
    Attendance,
    AttendanceStatus,
    RecordState,
    AMBIGUOUS_STATUSES,
    UNDERTIME_STATUSES,
)
from app.models.attendance_point import AttendancePoint, PointType, ExpirationType, POINT_VALUES
from app.models.notification import Notification

__all__ = [
    "Employee",
    "EmployeeSchedule",
    "ShiftType",
    "LeaveRequest",
    "LeaveStatus",
    "AttendanceUpload",
    "UploadStatus",
    "BiometricRecord",
    "Attendance",
    "AttendanceStatus",
    "RecordState",
    "AMBIGUOUS_STATUSES",
    "UNDERTIME_STATUSES",
    "AttendancePoint",
    "PointType",
    "ExpirationType",
    "POINT_VALUES",
    "Notification",
]
