# ================================
# DASHBOARD API ROUTES (api/v1/dashboard.py)
# ================================

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from estate_admin.dependencies import get_db, require_staff
from estate_admin.models.user import User
from estate_admin.services.dashboard_service import DashboardService
from estate_admin.schemas.dashboard import DashboardStatistics

router = APIRouter()

@router.get("/statistics", response_model=DashboardStatistics)
async def get_statistics(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff)
):
    """Headline numbers for the staff dashboard"""
    return DashboardService.get_statistics(db)
