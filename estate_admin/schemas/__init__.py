# ================================
# SCHEMAS PACKAGE INITIALIZATION (schemas/__init__.py)
# ================================

"""
Pydantic Schemas Package

Zentrale Imports für alle Schemas im System
"""

from estate_admin.schemas.base import (
    BaseSchema,
    BaseResponseSchema,
    ErrorResponse,
    SuccessResponse
)
from estate_admin.schemas.business import (
    PropertyCreate,
    PropertyUpdate,
    PropertyResponse,
    PropertyOverview,
    PropertyListResponse
)
from estate_admin.schemas.reservation import (
    ReservationCreate,
    ReservationDecision,
    ReservationResponse,
    ReservationListResponse,
    MyReservationsResponse,
    AvailableSlotsResponse,
    AdvisoryConflictResponse
)
from estate_admin.schemas.notification import (
    NotificationResponse,
    NotificationListResponse,
    UnreadCountResponse,
    MarkAllReadResponse
)
from estate_admin.schemas.user import (
    UserProfileUpdate,
    UserAdminUpdate,
    UserRoleUpdate,
    UserResponse,
    UserListItem,
    UserListResponse
)
from estate_admin.schemas.dashboard import DashboardStatistics
