# ================================
# NOTIFICATION SCHEMAS (schemas/notification.py)
# ================================

from typing import Optional, List
from datetime import datetime
import uuid

from estate_admin.schemas.base import BaseSchema, BaseResponseSchema

class NotificationResponse(BaseResponseSchema):
    """Schema for notification response"""
    reservation_id: Optional[uuid.UUID] = None
    title: str
    message: str
    is_read: bool
    created_at: datetime

class NotificationListResponse(BaseSchema):
    items: List[NotificationResponse]
    total: int
    unread_count: int

class UnreadCountResponse(BaseSchema):
    unread_count: int

class MarkAllReadResponse(BaseSchema):
    updated: int
