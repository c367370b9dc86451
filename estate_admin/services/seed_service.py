# ================================
# SEED SERVICE (services/seed_service.py)
# ================================

from sqlalchemy.orm import Session
from typing import Dict, Optional
import logging

from estate_admin.config import settings
from estate_admin.models.user import User
from estate_admin.models.rbac import RoleName
from estate_admin.services.rbac_service import RBACService

logger = logging.getLogger(__name__)

class SeedService:
    """Default roles and the optional admin/agent/user accounts"""
    
    DEFAULT_NAMES = {
        RoleName.ADMIN: "Administrator",
        RoleName.AGENT: "Agent",
        RoleName.USER: "Demo User",
    }
    
    @staticmethod
    def configured_accounts() -> Dict[RoleName, Optional[str]]:
        return {
            RoleName.ADMIN: settings.SEED_ADMIN_EMAIL,
            RoleName.AGENT: settings.SEED_AGENT_EMAIL,
            RoleName.USER: settings.SEED_USER_EMAIL,
        }
    
    @staticmethod
    def ensure_account(db: Session, email: str, role: RoleName, full_name: Optional[str] = None) -> User:
        """Returns the user with ``email``, creating it with ``role`` if missing"""
        email = email.lower()
        user = db.query(User).filter(User.email == email).first()
        if user:
            return user
        
        user = User(
            email=email,
            full_name=full_name or SeedService.DEFAULT_NAMES[role],
            is_active=True
        )
        db.add(user)
        db.flush()
        RBACService.set_user_role(db, user, role)
        db.commit()
        
        logger.info(f"Seed account created: {email} ({role.value})")
        return user
    
    @staticmethod
    def seed(db: Session) -> Dict[RoleName, User]:
        """Idempotent: roles first, then every configured account"""
        RBACService.ensure_default_roles(db)
        
        accounts = {}
        for role, email in SeedService.configured_accounts().items():
            if not email:
                continue
            accounts[role] = SeedService.ensure_account(db, email, role)
        
        if not accounts:
            logger.info("No seed accounts configured, skipping creation")
        return accounts
