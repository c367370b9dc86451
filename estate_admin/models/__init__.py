# ================================
# DATABASE INITIALIZATION (models/__init__.py)
# ================================

"""
Database Models Package

Importiert alle Models für Alembic und Mapper-Konfiguration
"""

from estate_admin.models.base import Base
from estate_admin.models.user import User
from estate_admin.models.rbac import Role, UserRole, RoleName, STAFF_ROLES
from estate_admin.models.business import (
    Property, PropertyStatus,
    Reservation, ReservationStatus,
    Notification
)
from estate_admin.models.audit import AuditLog

__all__ = [
    "Base",
    "User",
    "Role",
    "UserRole",
    "RoleName",
    "STAFF_ROLES",
    "Property",
    "PropertyStatus",
    "Reservation",
    "ReservationStatus",
    "Notification",
    "AuditLog",
]
