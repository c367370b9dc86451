# ================================
# USER MODELS (models/user.py)
# ================================

from sqlalchemy import Column, String, Boolean
from sqlalchemy.orm import relationship
from estate_admin.models.base import Base, ModifiedMixin

class User(Base, ModifiedMixin):
    """User Model
    
    Identity is owned by an external provider; this table holds the profile
    and account status the application needs.
    """
    __tablename__ = "users"
    
    # Basic Information
    email = Column(String(255), unique=True, nullable=False, index=True)
    full_name = Column(String(200), nullable=False)
    
    # Contact
    phone = Column(String(50), nullable=True)
    address = Column(String(500), nullable=True)
    city = Column(String(100), nullable=True)
    
    # Account Status
    is_active = Column(Boolean, default=True, nullable=False)
    
    # Relationships
    user_roles = relationship("UserRole", back_populates="user", cascade="all, delete-orphan")
    reservations = relationship("Reservation", back_populates="user")
    notifications = relationship("Notification", back_populates="user", cascade="all, delete-orphan")
    
    @property
    def role_names(self) -> list[str]:
        return sorted(ur.role.name for ur in self.user_roles)
    
    def __repr__(self):
        return f"<User(email='{self.email}')>"
