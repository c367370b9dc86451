# ================================
# DEPENDENCIES (dependencies.py)
# ================================

from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from estate_admin.models.user import User
from estate_admin.models.rbac import RoleName, STAFF_ROLES
from estate_admin.core.security import verify_token
from estate_admin.core.exceptions import AuthenticationError, AuthorizationError
from estate_admin.services.rbac_service import RBACService
import uuid

security = HTTPBearer(auto_error=False)

# ================================
# BASIC DEPENDENCIES
# ================================

def get_db(request: Request) -> Session:
    """Dependency für Database Session aus Middleware"""
    return request.state.db

# ================================
# USER AUTHENTICATION DEPENDENCIES
# ================================

def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db)
) -> User:
    """Dependency für aktuellen User"""
    if credentials is None:
        raise AuthenticationError("Not authenticated")
    
    payload = verify_token(credentials.credentials)
    if not payload:
        raise AuthenticationError("Invalid authentication credentials")
    
    user_id = payload.get("sub")
    if not user_id:
        raise AuthenticationError("Invalid token payload")
    
    try:
        user_uuid = uuid.UUID(str(user_id))
    except ValueError:
        raise AuthenticationError("Invalid token payload")
    
    user = db.query(User).filter(User.id == user_uuid).first()
    if not user:
        raise AuthenticationError("User not found")
    
    return user

def get_current_active_user(
    current_user: User = Depends(get_current_user)
) -> User:
    """Dependency für aktiven User"""
    if not current_user.is_active:
        raise AuthenticationError("User account is deactivated")
    
    return current_user

# ================================
# ROLE-BASED DEPENDENCIES
# ================================

def require_role(*roles: RoleName):
    """Factory für Role-basierte Dependencies (eine der Rollen genügt)"""
    
    def role_dependency(
        current_user: User = Depends(get_current_active_user),
        db: Session = Depends(get_db)
    ) -> User:
        if not RBACService.has_any_role(db, current_user.id, roles):
            required = " or ".join(RoleName(role).value for role in roles)
            raise AuthorizationError(f"Role required: {required}")
        
        return current_user
    
    return role_dependency

require_staff = require_role(*STAFF_ROLES)
require_admin = require_role(RoleName.ADMIN)

# ================================
# PAGINATION DEPENDENCIES
# ================================

def get_pagination_params(
    page: int = 1,
    page_size: int = 20
) -> tuple[int, int]:
    """Dependency für Pagination Parameter"""
    if page < 1:
        page = 1
    if page_size < 1 or page_size > 100:
        page_size = 20
    
    return page, page_size
