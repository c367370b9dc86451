# ================================
# RBAC MODELS (models/rbac.py)
# ================================

from sqlalchemy import Column, String, Text, ForeignKey, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship
from estate_admin.models.base import Base
import enum

class RoleName(str, enum.Enum):
    """Closed set of application roles"""
    ADMIN = "Admin"
    AGENT = "Agent"
    USER = "User"

STAFF_ROLES = (RoleName.ADMIN, RoleName.AGENT)

class Role(Base):
    """Role Model"""
    __tablename__ = "roles"
    
    name = Column(String(50), unique=True, nullable=False)
    description = Column(Text, nullable=True)
    
    # Relationships
    user_roles = relationship("UserRole", back_populates="role", cascade="all, delete-orphan")
    
    def __repr__(self):
        return f"<Role(name='{self.name}')>"

class UserRole(Base):
    """User-Role Association"""
    __tablename__ = "user_roles"
    
    # Foreign Keys
    user_id = Column(Uuid(as_uuid=True), ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    role_id = Column(Uuid(as_uuid=True), ForeignKey('roles.id', ondelete='CASCADE'), nullable=False)
    
    # Relationships
    user = relationship("User", back_populates="user_roles")
    role = relationship("Role", back_populates="user_roles")
    
    # Constraints
    __table_args__ = (
        UniqueConstraint('user_id', 'role_id', name='uq_user_role'),
    )
    
    def __repr__(self):
        return f"<UserRole(user='{self.user_id}', role='{self.role_id}')>"
