"""
Attendance upload schemas
"""
from datetime import date, datetime
from typing import Optional, List, Any, Dict
from pydantic import BaseModel, ConfigDict, Field, model_validator

from app.models.attendance_upload import UploadStatus


class UploadCreate(BaseModel):
    """Biometric export submitted as text"""
    content: str = Field(..., min_length=1, description="Raw device export content")
    shift_date: date = Field(..., description="Shift date the file was exported for")
    original_filename: Optional[str] = Field(None, max_length=255)
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    biometric_site_id: Optional[int] = None
    filter_by_date: bool = Field(default=True, description="Drop scans outside date_from..date_to (+1 day)")

    @model_validator(mode="after")
    def validate_range(self):
        if (self.date_from is None) != (self.date_to is None):
            raise ValueError("date_from and date_to must be given together")
        if self.date_from and self.date_to and self.date_from > self.date_to:
            raise ValueError("date_from must be on or before date_to")
        return self


class UploadOut(BaseModel):
    """Upload status and processing summary"""
    id: int
    original_filename: Optional[str]
    shift_date: date
    date_from: Optional[date]
    date_to: Optional[date]
    biometric_site_id: Optional[int]
    status: UploadStatus
    error_message: Optional[str]
    total_records: int
    processed_records: int
    matched_employees: int
    unmatched_names_list: List[str]
    date_warnings: List[str]
    dates_found: List[str]
    stats: Optional[Dict[str, Any]]
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ReprocessOut(BaseModel):
    employees: int
    processed: int
    no_schedule: List[Dict[str, Any]]
