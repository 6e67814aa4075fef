"""
Raw biometric scan audit log (append-only)
"""
from sqlalchemy import Column, Integer, Date, DateTime, Time, String, ForeignKey, Index
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.db.base import Base


class BiometricRecord(Base):
    __tablename__ = "biometric_records"

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id"), nullable=False, index=True)
    attendance_upload_id = Column(Integer, ForeignKey("attendance_uploads.id"), nullable=False, index=True)
    site_id = Column(Integer, nullable=True)
    employee_name = Column(String, nullable=False)  # name exactly as exported by the device
    scanned_at = Column(DateTime, nullable=False)
    record_date = Column(Date, nullable=False)
    record_time = Column(Time, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), nullable=False)

    __table_args__ = (
        Index("ix_biometric_records_employee_scanned", "employee_id", "scanned_at"),
    )

    upload = relationship("AttendanceUpload", back_populates="biometric_records")
    employee = relationship("Employee")
