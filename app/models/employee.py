"""
Employee model (read-only directory for the reconciliation engine)
"""
from sqlalchemy import Column, Integer, String, Boolean, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.db.base import Base


class Employee(Base):
    __tablename__ = "employees"

    id = Column(Integer, primary_key=True, index=True)
    emp_code = Column(String, unique=True, nullable=True, index=True)
    last_name = Column(String, nullable=False, index=True)
    first_name = Column(String, nullable=False)
    middle_name = Column(String, nullable=True)
    active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), onupdate=func.current_timestamp(), nullable=False)

    # Relationships
    schedules = relationship("EmployeeSchedule", back_populates="employee", order_by="EmployeeSchedule.id")
    leave_requests = relationship("LeaveRequest", back_populates="employee")

    @property
    def name(self) -> str:
        """Display name as 'First Last'."""
        return f"{self.first_name} {self.last_name}".strip()

    def __repr__(self) -> str:
        return f"<Employee id={self.id} {self.last_name}, {self.first_name}>"
