# ================================
# AUDIT MODELS (models/audit.py)
# ================================

from sqlalchemy import Column, String, Text, JSON, ForeignKey, Uuid
from sqlalchemy.orm import relationship
from estate_admin.models.base import Base

class AuditLog(Base):
    """Audit Log für alle wichtigen Aktionen"""
    __tablename__ = "audit_logs"
    
    # Foreign Keys
    user_id = Column(Uuid(as_uuid=True), ForeignKey('users.id', ondelete='SET NULL'), nullable=True)
    
    # Action Information
    action = Column(String(100), nullable=False)  # 'RESERVATION_ACCEPTED', 'PROPERTY_UPDATED', ...
    resource_type = Column(String(100), nullable=True)  # 'reservation', 'property', 'user'
    resource_id = Column(Uuid(as_uuid=True), nullable=True)
    
    # Change Details
    old_values = Column(JSON, nullable=True)
    new_values = Column(JSON, nullable=True)
    
    # Context
    ip_address = Column(String(45), nullable=True)
    user_agent = Column(Text, nullable=True)
    
    # Relationships
    user = relationship("User", foreign_keys=[user_id])
    
    def __repr__(self):
        return f"<AuditLog(action='{self.action}', user='{self.user_id}')>"
