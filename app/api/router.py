"""
Main API router
"""
from fastapi import APIRouter

from app.api.v1 import (
    health,
    uploads,
    attendance,
    points,
)

api_router = APIRouter()

api_router.include_router(health.router, tags=["health"])
api_router.include_router(uploads.router, prefix="/uploads", tags=["uploads"])
api_router.include_router(attendance.router, prefix="/attendance", tags=["attendance"])
api_router.include_router(points.router, prefix="/points", tags=["points"])
