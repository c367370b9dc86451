# ================================
# DASHBOARD SERVICE (services/dashboard_service.py)
# ================================

from sqlalchemy.orm import Session
from sqlalchemy import func
from typing import Dict, Any

from estate_admin.config import settings
from estate_admin.models.business import Property, PropertyStatus, Reservation, ReservationStatus
from estate_admin.models.user import User
from estate_admin.schemas.business import PropertyOverview

class DashboardService:
    """Headline statistics for the staff dashboard"""
    
    @staticmethod
    def get_statistics(db: Session) -> Dict[str, Any]:
        total_properties = db.query(func.count(Property.id)).scalar() or 0
        active_properties = db.query(func.count(Property.id)).filter(Property.is_active == True).scalar() or 0
        
        by_status = {status.value: 0 for status in PropertyStatus}
        for status, count in db.query(Property.status, func.count(Property.id)).group_by(Property.status).all():
            by_status[status.value] = count
        
        by_type = {
            property_type: count
            for property_type, count in db.query(Property.type, func.count(Property.id)).group_by(Property.type).all()
        }
        
        reservations_by_status = {status.value: 0 for status in ReservationStatus}
        for status, count in db.query(Reservation.status, func.count(Reservation.id)).group_by(Reservation.status).all():
            reservations_by_status[status.value] = count
        
        recent = db.query(Property).order_by(
            Property.created_at.desc()
        ).limit(settings.RECENT_PROPERTIES_LIMIT).all()
        
        return {
            "total_properties": total_properties,
            "for_sale": by_status[PropertyStatus.FOR_SALE.value],
            "for_rent": by_status[PropertyStatus.FOR_RENT.value],
            "active_properties": active_properties,
            "inactive_properties": total_properties - active_properties,
            "total_users": db.query(func.count(User.id)).scalar() or 0,
            "reservations_by_status": reservations_by_status,
            "properties_by_type": by_type,
            "properties_by_status": by_status,
            "recent_properties": [PropertyOverview.model_validate(p) for p in recent]
        }
