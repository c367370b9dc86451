# ================================
# USER SERVICE (services/user_service.py)
# ================================

from sqlalchemy.orm import Session, selectinload
from sqlalchemy import or_, func
from sqlalchemy.exc import IntegrityError
from typing import Optional, Dict, Any
from uuid import UUID
import logging

from estate_admin.models.user import User
from estate_admin.models.rbac import Role, UserRole, RoleName
from estate_admin.models.business import Reservation
from estate_admin.models.base import utcnow
from estate_admin.schemas.user import UserProfileUpdate, UserAdminUpdate, UserListItem
from estate_admin.core.exceptions import AppException, NotFoundError
from estate_admin.services.rbac_service import RBACService
from estate_admin.utils.audit import audit_logger

logger = logging.getLogger(__name__)

class UserService:
    """Profile and user administration"""
    
    @staticmethod
    def get_user(db: Session, user_id: UUID) -> User:
        user = db.query(User).options(
            selectinload(User.user_roles).selectinload(UserRole.role)
        ).filter(User.id == user_id).first()
        
        if not user:
            raise NotFoundError("User not found")
        return user
    
    @staticmethod
    def list_users(
        db: Session,
        search: Optional[str] = None,
        role: Optional[RoleName] = None,
        is_active: Optional[bool] = None,
        page: int = 1,
        page_size: int = 20
    ) -> Dict[str, Any]:
        """List users with role names and reservation counts"""
        query = db.query(User).options(
            selectinload(User.user_roles).selectinload(UserRole.role)
        )
        
        if search:
            term = f"%{search.strip()}%"
            query = query.filter(
                or_(
                    User.full_name.ilike(term),
                    User.email.ilike(term),
                    User.phone.ilike(term),
                    User.city.ilike(term)
                )
            )
        
        if role:
            query = query.filter(
                User.id.in_(
                    db.query(UserRole.user_id).join(
                        Role, Role.id == UserRole.role_id
                    ).filter(Role.name == RoleName(role).value)
                )
            )
        
        if is_active is not None:
            query = query.filter(User.is_active == is_active)
        
        total = query.count()
        users = query.order_by(User.created_at.desc()).offset((page - 1) * page_size).limit(page_size).all()
        
        reservation_counts = dict(
            db.query(Reservation.user_id, func.count(Reservation.id)).filter(
                Reservation.user_id.in_([u.id for u in users])
            ).group_by(Reservation.user_id).all()
        ) if users else {}
        
        items = []
        for user in users:
            item = UserListItem.model_validate(user)
            item.reservation_count = reservation_counts.get(user.id, 0)
            items.append(item)
        
        return {
            "items": items,
            "total": total,
            "page": page,
            "size": page_size,
            "pages": (total + page_size - 1) // page_size
        }
    
    @staticmethod
    def update_profile(
        db: Session,
        user: User,
        profile_data: UserProfileUpdate,
        acting_user_id: Optional[UUID] = None
    ) -> User:
        """Update profile fields; admins may also change the role"""
        update_data = profile_data.model_dump(exclude_unset=True, exclude_none=True)
        new_role = update_data.pop("role", None)
        
        old_values = {field: getattr(user, field) for field in update_data}
        for field, value in update_data.items():
            setattr(user, field, value)
        user.modified_at = utcnow()
        
        if update_data:
            audit_logger.log_business_event(
                db=db,
                action="USER_PROFILE_UPDATED",
                user_id=acting_user_id or user.id,
                resource_type="user",
                resource_id=user.id,
                old_values=old_values,
                new_values=update_data
            )
        
        if new_role:
            RBACService.set_user_role(db, user, new_role, acting_user_id)
        
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            raise AppException("Email address already in use", 409, "EMAIL_EXISTS")
        
        db.refresh(user)
        return user
    
    @staticmethod
    def admin_update_user(
        db: Session,
        user_id: UUID,
        update: UserAdminUpdate,
        current_user: User
    ) -> User:
        user = UserService.get_user(db, user_id)
        return UserService.update_profile(db, user, update, acting_user_id=current_user.id)
    
    @staticmethod
    def change_role(db: Session, user_id: UUID, role: RoleName, current_user: User) -> User:
        user = UserService.get_user(db, user_id)
        RBACService.set_user_role(db, user, role, current_user.id)
        db.commit()
        db.refresh(user)
        return user
    
    @staticmethod
    def toggle_active(db: Session, user_id: UUID, current_user: User) -> User:
        """Activate or deactivate an account"""
        user = UserService.get_user(db, user_id)
        if user.id == current_user.id:
            raise AppException("You cannot deactivate your own account", 400, "SELF_DEACTIVATION")
        
        user.is_active = not user.is_active
        user.modified_at = utcnow()
        
        audit_logger.log_business_event(
            db=db,
            action="USER_ACTIVATED" if user.is_active else "USER_DEACTIVATED",
            user_id=current_user.id,
            resource_type="user",
            resource_id=user.id,
            new_values={"is_active": user.is_active}
        )
        
        db.commit()
        db.refresh(user)
        return user
    
    @staticmethod
    def delete_user(db: Session, user_id: UUID, current_user: User) -> None:
        """Delete a user without reservations"""
        user = UserService.get_user(db, user_id)
        if user.id == current_user.id:
            raise AppException("You cannot delete your own account", 400, "SELF_DELETION")
        
        has_reservations = db.query(Reservation.id).filter(Reservation.user_id == user.id).first()
        if has_reservations:
            raise AppException(
                "User has reservations and cannot be deleted; deactivate the account instead",
                409,
                "USER_HAS_RESERVATIONS"
            )
        
        audit_logger.log_business_event(
            db=db,
            action="USER_DELETED",
            user_id=current_user.id,
            resource_type="user",
            resource_id=user.id,
            old_values={"email": user.email, "full_name": user.full_name}
        )
        
        db.delete(user)
        db.commit()
        logger.info(f"User {user_id} deleted by {current_user.id}")
