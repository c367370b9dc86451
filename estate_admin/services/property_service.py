# ================================
# PROPERTY SERVICE (services/property_service.py)
# ================================

from sqlalchemy.orm import Session
from sqlalchemy import or_
from typing import Optional, Dict, Any
from uuid import UUID

from estate_admin.models.business import Property
from estate_admin.models.base import utcnow
from estate_admin.models.user import User
from estate_admin.schemas.business import PropertyCreate, PropertyUpdate, PropertyOverview
from estate_admin.core.exceptions import NotFoundError
from estate_admin.utils.audit import audit_logger

class PropertyService:
    """Service for property listings"""
    
    @staticmethod
    def find_by_id(db: Session, property_id: UUID, for_update: bool = False) -> Optional[Property]:
        """Lookup used by the scheduler; ``for_update`` takes a row lock"""
        query = db.query(Property).filter(Property.id == property_id)
        if for_update:
            query = query.with_for_update().populate_existing()
        return query.first()
    
    @staticmethod
    def get_property(db: Session, property_id: UUID, include_inactive: bool = True) -> Property:
        property = PropertyService.find_by_id(db, property_id)
        if not property or (not include_inactive and not property.is_active):
            raise NotFoundError("Property not found")
        return property
    
    @staticmethod
    def record_view(db: Session, property: Property) -> Property:
        """Increments the view counter of a property detail page"""
        property.view_count = (property.view_count or 0) + 1
        db.commit()
        db.refresh(property)
        return property
    
    @staticmethod
    def list_properties(
        db: Session,
        search: Optional[str] = None,
        property_type: Optional[str] = None,
        is_active: Optional[bool] = None,
        status: Optional[str] = None,
        page: int = 1,
        page_size: int = 20
    ) -> Dict[str, Any]:
        """List properties with filtering and pagination, newest first"""
        query = db.query(Property)
        
        if search:
            term = f"%{search.strip()}%"
            query = query.filter(
                or_(
                    Property.title.ilike(term),
                    Property.address.ilike(term),
                    Property.city.ilike(term),
                    Property.description.ilike(term)
                )
            )
        
        if property_type:
            query = query.filter(Property.type == property_type)
        
        if is_active is not None:
            query = query.filter(Property.is_active == is_active)
        
        if status:
            query = query.filter(Property.status == status)
        
        total = query.count()
        
        offset = (page - 1) * page_size
        properties = query.order_by(
            Property.created_at.desc(), Property.id.desc()
        ).offset(offset).limit(page_size).all()
        
        return {
            "items": [PropertyOverview.model_validate(p) for p in properties],
            "total": total,
            "page": page,
            "size": page_size,
            "pages": (total + page_size - 1) // page_size
        }
    
    @staticmethod
    def create_property(db: Session, property_data: PropertyCreate, current_user: User) -> Property:
        """Create a new property"""
        property = Property(**property_data.model_dump())
        db.add(property)
        db.flush()
        
        audit_logger.log_business_event(
            db=db,
            action="PROPERTY_CREATED",
            user_id=current_user.id,
            resource_type="property",
            resource_id=property.id,
            new_values={"title": property.title, "type": property.type, "city": property.city}
        )
        
        db.commit()
        db.refresh(property)
        return property
    
    @staticmethod
    def update_property(
        db: Session,
        property_id: UUID,
        property_data: PropertyUpdate,
        current_user: User
    ) -> Property:
        """Update a property"""
        property = PropertyService.get_property(db, property_id)
        
        update_data = property_data.model_dump(exclude_unset=True, exclude_none=True)
        old_values = {field: getattr(property, field) for field in update_data}
        for field, value in update_data.items():
            setattr(property, field, value)
        
        property.modified_at = utcnow()
        
        audit_logger.log_business_event(
            db=db,
            action="PROPERTY_UPDATED",
            user_id=current_user.id,
            resource_type="property",
            resource_id=property.id,
            old_values=old_values,
            new_values=update_data
        )
        
        db.commit()
        db.refresh(property)
        return property
