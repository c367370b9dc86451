# ================================
# DASHBOARD SCHEMAS (schemas/dashboard.py)
# ================================

from typing import List, Dict

from estate_admin.schemas.base import BaseSchema
from estate_admin.schemas.business import PropertyOverview

class DashboardStatistics(BaseSchema):
    """Headline numbers for staff"""
    total_properties: int
    for_sale: int
    for_rent: int
    active_properties: int
    inactive_properties: int
    total_users: int
    reservations_by_status: Dict[str, int]
    properties_by_type: Dict[str, int]
    properties_by_status: Dict[str, int]
    recent_properties: List[PropertyOverview]
