# ================================
# RBAC SERVICE (services/rbac_service.py)
# ================================

from sqlalchemy.orm import Session
from estate_admin.models.rbac import Role, UserRole, RoleName, STAFF_ROLES
from estate_admin.models.user import User
from estate_admin.core.exceptions import NotFoundError
from estate_admin.utils.audit import audit_logger
from typing import Iterable, Optional, Set
import uuid
import logging

logger = logging.getLogger(__name__)

ROLE_DESCRIPTIONS = {
    RoleName.ADMIN: "Full access including user administration",
    RoleName.AGENT: "Manages properties and visit requests",
    RoleName.USER: "Browses properties and requests visits",
}

class RBACService:
    """Role directory: who holds which role"""
    
    @staticmethod
    def ensure_default_roles(db: Session) -> int:
        """Creates missing Admin/Agent/User roles; returns the number created"""
        existing = {name for (name,) in db.query(Role.name).all()}
        created = 0
        for role_name in RoleName:
            if role_name.value in existing:
                continue
            db.add(Role(name=role_name.value, description=ROLE_DESCRIPTIONS[role_name]))
            created += 1
        
        if created:
            db.commit()
            logger.info(f"Created {created} default roles")
        return created
    
    @staticmethod
    def get_role(db: Session, role_name: RoleName) -> Role:
        role = db.query(Role).filter(Role.name == RoleName(role_name).value).first()
        if not role:
            raise NotFoundError(f"Role '{RoleName(role_name).value}' not found")
        return role
    
    @staticmethod
    def get_users_in_role(db: Session, role_name: RoleName) -> Set[User]:
        """All users holding ``role_name``"""
        query = db.query(User).join(
            UserRole, UserRole.user_id == User.id
        ).join(
            Role, Role.id == UserRole.role_id
        ).filter(Role.name == RoleName(role_name).value)
        
        return set(query.all())
    
    @staticmethod
    def get_role_names(db: Session, user_id: uuid.UUID) -> Set[str]:
        rows = db.query(Role.name).join(
            UserRole, UserRole.role_id == Role.id
        ).filter(UserRole.user_id == user_id).all()
        return {name for (name,) in rows}
    
    @staticmethod
    def has_any_role(db: Session, user_id: uuid.UUID, roles: Iterable[RoleName]) -> bool:
        wanted = {RoleName(role).value for role in roles}
        return bool(RBACService.get_role_names(db, user_id) & wanted)
    
    @staticmethod
    def get_staff_user_ids(db: Session) -> Set[uuid.UUID]:
        """Union of Admin and Agent users, each id once"""
        audience: Set[uuid.UUID] = set()
        for role_name in STAFF_ROLES:
            audience.update(user.id for user in RBACService.get_users_in_role(db, role_name))
        return audience
    
    @staticmethod
    def set_user_role(
        db: Session,
        user: User,
        role_name: RoleName,
        current_user_id: Optional[uuid.UUID] = None
    ) -> User:
        """Replaces all roles of ``user`` with ``role_name`` (caller commits)"""
        role = RBACService.get_role(db, role_name)
        old_roles = sorted(RBACService.get_role_names(db, user.id))
        
        db.query(UserRole).filter(UserRole.user_id == user.id).delete(synchronize_session=False)
        db.add(UserRole(user_id=user.id, role_id=role.id))
        db.flush()
        db.expire(user, ["user_roles"])
        
        audit_logger.log_business_event(
            db=db,
            action="USER_ROLE_CHANGED",
            user_id=current_user_id,
            resource_type="user",
            resource_id=user.id,
            old_values={"roles": old_roles},
            new_values={"roles": [role.name]}
        )
        return user
