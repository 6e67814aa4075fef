"""
Employee schedule model
"""
from datetime import date

from sqlalchemy import Column, Integer, String, Boolean, Date, DateTime, Time, ForeignKey, JSON
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import enum
from app.db.base import Base


class ShiftType(str, enum.Enum):
    REGULAR = "regular"
    NIGHT_SHIFT = "night_shift"
    UTILITY_24H = "utility_24h"


class EmployeeSchedule(Base):
    __tablename__ = "employee_schedules"

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id"), nullable=False, index=True)
    site_id = Column(Integer, nullable=True)
    shift_type = Column(String, nullable=True)  # see ShiftType
    scheduled_time_in = Column(Time, nullable=False)  # time of day; pair may span midnight
    scheduled_time_out = Column(Time, nullable=False)
    work_days = Column(JSON, nullable=False, default=list)  # ["monday", "tuesday", ...]
    grace_period_minutes = Column(Integer, nullable=True, default=15)
    is_active = Column(Boolean, nullable=False, default=True)
    effective_date = Column(Date, nullable=True)
    end_date = Column(Date, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), onupdate=func.current_timestamp(), nullable=False)

    employee = relationship("Employee", back_populates="schedules")

    def works_on_day(self, day_name: str) -> bool:
        """True when the lowercase day name is in work_days."""
        return day_name.lower() in [d.lower() for d in (self.work_days or [])]

    def covers(self, day: date) -> bool:
        """True when the schedule's effective window includes the date."""
        if self.effective_date is not None and self.effective_date > day:
            return False
        if self.end_date is not None and self.end_date < day:
            return False
        return True

    @property
    def is_utility_24h(self) -> bool:
        return self.shift_type == ShiftType.UTILITY_24H.value

    def grace_period(self, default: int = 15) -> int:
        return self.grace_period_minutes if self.grace_period_minutes is not None else default
