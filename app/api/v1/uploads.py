"""
Biometric upload endpoints
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from app.core.deps import get_db
from app.schemas.upload import UploadCreate, UploadOut, ReprocessOut
from app.services.attendance_processor import (
    AttendanceProcessor,
    create_upload,
    get_upload,
    reprocess_upload,
)

router = APIRouter()


@router.post("", response_model=UploadOut, status_code=201)
async def create_upload_endpoint(
    upload_data: UploadCreate,
    db: Session = Depends(get_db),
):
    """Register a biometric export and reconcile it into attendance records"""
    upload = create_upload(
        db=db,
        shift_date=upload_data.shift_date,
        original_filename=upload_data.original_filename,
        date_from=upload_data.date_from,
        date_to=upload_data.date_to,
        biometric_site_id=upload_data.biometric_site_id,
    )
    AttendanceProcessor(db).process_upload(upload, upload_data.content, filter_by_date=upload_data.filter_by_date)
    db.refresh(upload)
    return upload


@router.get("/{upload_id}", response_model=UploadOut)
async def get_upload_endpoint(upload_id: int, db: Session = Depends(get_db)):
    """Get an upload with its processing summary"""
    return get_upload(db, upload_id)


@router.post("/{upload_id}/reprocess", response_model=ReprocessOut)
async def reprocess_upload_endpoint(upload_id: int, db: Session = Depends(get_db)):
    """Re-run reconciliation from the stored scans of a completed upload"""
    return reprocess_upload(db, upload_id)
