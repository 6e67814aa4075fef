"""
Attendance upload (one biometric file = one reconciliation job)
"""
from sqlalchemy import Column, Integer, Date, DateTime, String, Text, JSON, Enum as SQLEnum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import enum
from app.db.base import Base


class UploadStatus(str, enum.Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class AttendanceUpload(Base):
    __tablename__ = "attendance_uploads"

    id = Column(Integer, primary_key=True, index=True)
    original_filename = Column(String, nullable=True)
    shift_date = Column(Date, nullable=False)
    date_from = Column(Date, nullable=True)
    date_to = Column(Date, nullable=True)
    biometric_site_id = Column(Integer, nullable=True)
    status = Column(SQLEnum(UploadStatus, native_enum=False), nullable=False, default=UploadStatus.PENDING)
    error_message = Column(Text, nullable=True)

    total_records = Column(Integer, nullable=False, default=0)
    processed_records = Column(Integer, nullable=False, default=0)
    matched_employees = Column(Integer, nullable=False, default=0)
    unmatched_names_list = Column(JSON, nullable=False, default=list)
    date_warnings = Column(JSON, nullable=False, default=list)
    dates_found = Column(JSON, nullable=False, default=list)
    stats = Column(JSON, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), onupdate=func.current_timestamp(), nullable=False)

    biometric_records = relationship("BiometricRecord", back_populates="upload")

    @property
    def unmatched_names(self) -> int:
        return len(self.unmatched_names_list or [])
