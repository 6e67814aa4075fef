"""
Notification sink for HR.
Delivery is fire-and-forget: failures are logged and never raised to callers.
"""
import logging
from typing import Optional
from sqlalchemy.orm import Session
from app.models.notification import Notification
from app.utils.json_serializer import sanitize_for_json

logger = logging.getLogger(__name__)

LEAVE_ATTENDANCE_CONFLICT = "leave_attendance_conflict"


def notify_hr(
    db: Session,
    kind: str,
    title: str,
    message: str,
    payload: Optional[dict] = None,
) -> Optional[Notification]:
    """
    Write an HR notification inside a savepoint of the current transaction.

    A failed insert rolls back only the savepoint, so the caller's pending
    work still commits.

    Returns:
        The Notification, or None if it could not be written
    """
    try:
        with db.begin_nested():
            notification = Notification(
                kind=kind,
                title=title,
                message=message,
                payload=sanitize_for_json(payload) if payload else None,
            )
            db.add(notification)
            db.flush()
        return notification
    except Exception as e:
        logger.error("Failed to create HR notification kind=%s: %s", kind, e, exc_info=True)
        return None


def notify_leave_conflict(db: Session, employee, leave_request, shift_date, scan_count: int) -> None:
    notify_hr(
        db,
        LEAVE_ATTENDANCE_CONFLICT,
        "Leave / attendance conflict",
        f"{employee.name} has approved {leave_request.leave_type} leave on {shift_date.isoformat()} "
        f"but {scan_count} biometric scans were recorded.",
        {
            "employee_id": employee.id,
            "leave_request_id": leave_request.id,
            "shift_date": shift_date,
            "scan_count": scan_count,
        },
    )
