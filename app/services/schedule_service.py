"""
Schedule lookup for the reconciliation engine
"""
from datetime import date
from typing import List, Optional
from sqlalchemy.orm import Session
from sqlalchemy import or_
from app.models.schedule import EmployeeSchedule


def get_active_schedule(db: Session, employee_id: int) -> Optional[EmployeeSchedule]:
    """Current authoritative schedule (first active one)."""
    return db.query(EmployeeSchedule).filter(
        EmployeeSchedule.employee_id == employee_id,
        EmployeeSchedule.is_active == True
    ).order_by(EmployeeSchedule.id).first()


def get_schedule_for_date(db: Session, employee_id: int, on_date: date) -> Optional[EmployeeSchedule]:
    """
    Active schedule whose effective window covers the date.

    Args:
        db: Database session
        employee_id: Employee ID
        on_date: Shift date

    Returns:
        Latest-effective matching schedule, or None
    """
    return db.query(EmployeeSchedule).filter(
        EmployeeSchedule.employee_id == employee_id,
        EmployeeSchedule.is_active == True,
        or_(EmployeeSchedule.effective_date == None, EmployeeSchedule.effective_date <= on_date),
        or_(EmployeeSchedule.end_date == None, EmployeeSchedule.end_date >= on_date),
    ).order_by(EmployeeSchedule.effective_date.desc(), EmployeeSchedule.id).first()


def list_scheduled_employee_ids(db: Session) -> List[int]:
    """Employees with at least one active schedule."""
    rows = db.query(EmployeeSchedule.employee_id).filter(
        EmployeeSchedule.is_active == True
    ).distinct().all()
    return sorted(employee_id for (employee_id,) in rows)
