# ================================
# NOTIFICATION API ROUTES (api/v1/notifications.py)
# ================================

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
import uuid

from estate_admin.dependencies import get_db, get_current_active_user
from estate_admin.models.user import User
from estate_admin.services.notification_service import NotificationService
from estate_admin.schemas.notification import (
    NotificationResponse,
    NotificationListResponse,
    UnreadCountResponse,
    MarkAllReadResponse
)
from estate_admin.schemas.base import SuccessResponse

router = APIRouter()

@router.get("", response_model=NotificationListResponse)
async def list_notifications(
    unread_only: bool = Query(False),
    limit: int = Query(100, ge=1, le=500),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    """Own notifications, newest first"""
    items, total, unread = NotificationService.list_for_user(
        db, current_user.id, unread_only=unread_only, limit=limit
    )
    return NotificationListResponse(
        items=[NotificationResponse.model_validate(n) for n in items],
        total=total,
        unread_count=unread
    )

@router.get("/unread-count", response_model=UnreadCountResponse)
async def get_unread_count(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    """Badge counter"""
    return UnreadCountResponse(unread_count=NotificationService.unread_count(db, current_user.id))

@router.post("/read-all", response_model=MarkAllReadResponse)
async def mark_all_read(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    return MarkAllReadResponse(updated=NotificationService.mark_all_read(db, current_user.id))

@router.post("/{notification_id}/read", response_model=NotificationResponse)
async def mark_read(
    notification_id: uuid.UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    notification = NotificationService.mark_read(db, notification_id, current_user.id)
    return NotificationResponse.model_validate(notification)

@router.delete("/{notification_id}", response_model=SuccessResponse)
async def delete_notification(
    notification_id: uuid.UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    NotificationService.delete(db, notification_id, current_user.id)
    return SuccessResponse(message="Notification deleted")
