"""
Attendance point endpoints
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from app.core.deps import get_db
from app.schemas.point import (
    AttendancePointOut,
    ExcusePointRequest,
    ExpirePointsOut,
    ExpirePointsRequest,
    GeneratePointsOut,
    GeneratePointsRequest,
)
from app.services.attendance_point_service import (
    excuse_point,
    generate_points_for_date,
    process_gbro,
    process_point_expirations,
    unexcuse_point,
)

router = APIRouter()


@router.post("/generate", response_model=GeneratePointsOut)
async def generate_points_endpoint(request: GeneratePointsRequest, db: Session = Depends(get_db)):
    """Create points for verified records of a shift date"""
    created = generate_points_for_date(db, request.shift_date)
    return {"shift_date": request.shift_date, "created": len(created), "points": created}


@router.post("/expire", response_model=ExpirePointsOut)
async def expire_points_endpoint(request: ExpirePointsRequest, db: Session = Depends(get_db)):
    """Expire points past their expiry date"""
    return process_point_expirations(db, as_of=request.as_of, dry_run=request.dry_run)


@router.post("/gbro", response_model=ExpirePointsOut)
async def gbro_endpoint(request: ExpirePointsRequest, db: Session = Depends(get_db)):
    """Roll off points for good behavior"""
    return process_gbro(db, as_of=request.as_of, dry_run=request.dry_run)


@router.post("/{point_id}/excuse", response_model=AttendancePointOut)
async def excuse_point_endpoint(point_id: int, request: ExcusePointRequest, db: Session = Depends(get_db)):
    return excuse_point(db, point_id, request.reason, notes=request.notes)


@router.post("/{point_id}/unexcuse", response_model=AttendancePointOut)
async def unexcuse_point_endpoint(point_id: int, db: Session = Depends(get_db)):
    return unexcuse_point(db, point_id)
