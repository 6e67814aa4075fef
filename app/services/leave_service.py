"""
Leave lookup - approved leave suppresses NCNS for the dates it covers
"""
from datetime import date
from typing import Optional
from sqlalchemy.orm import Session
from app.models.leave import LeaveRequest, LeaveStatus


def get_approved_leave(db: Session, employee_id: int, on_date: date) -> Optional[LeaveRequest]:
    """Approved leave request covering the date, if any."""
    return db.query(LeaveRequest).filter(
        LeaveRequest.employee_id == employee_id,
        LeaveRequest.status == LeaveStatus.APPROVED,
        LeaveRequest.start_date <= on_date,
        LeaveRequest.end_date >= on_date
    ).order_by(LeaveRequest.id).first()
