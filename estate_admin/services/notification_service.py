# ================================
# NOTIFICATION SERVICE (services/notification_service.py)
# ================================

from typing import Iterable, List, Optional, Tuple
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError
import uuid
import logging

from estate_admin.models.business import Notification
from estate_admin.core.exceptions import NotFoundError

logger = logging.getLogger(__name__)

class NotificationService:
    """In-app notifications: delivery and recipient-side management"""
    
    @staticmethod
    def distribute(
        db: Session,
        recipient_ids: Iterable[uuid.UUID],
        title: str,
        message: str,
        reservation_id: Optional[uuid.UUID] = None
    ) -> List[Notification]:
        """Creates one notification per distinct recipient and commits.
        
        Delivery is best effort: it runs after the business change has been
        committed, and a failure here is logged and rolled back without
        affecting that change. Returns the notifications written (empty on
        failure).
        """
        recipients = list(dict.fromkeys(recipient_ids))
        if not recipients:
            return []
        
        notifications = [
            Notification(
                user_id=recipient_id,
                reservation_id=reservation_id,
                title=title,
                message=message,
                is_read=False
            )
            for recipient_id in recipients
        ]
        
        try:
            db.add_all(notifications)
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            logger.exception(
                f"Failed to deliver notification '{title}' to {len(recipients)} recipient(s)"
                f" for reservation {reservation_id}"
            )
            return []
        
        logger.info(f"Notification '{title}' delivered to {len(recipients)} recipient(s)")
        return notifications
    
    @staticmethod
    def list_for_user(
        db: Session,
        user_id: uuid.UUID,
        unread_only: bool = False,
        limit: int = 100
    ) -> Tuple[List[Notification], int, int]:
        """Newest first; returns (items, total, unread_count)"""
        query = db.query(Notification).filter(Notification.user_id == user_id)
        if unread_only:
            query = query.filter(Notification.is_read == False)
        
        total = query.count()
        items = query.order_by(Notification.created_at.desc()).limit(limit).all()
        return items, total, NotificationService.unread_count(db, user_id)
    
    @staticmethod
    def unread_count(db: Session, user_id: uuid.UUID) -> int:
        return db.query(Notification).filter(
            Notification.user_id == user_id,
            Notification.is_read == False
        ).count()
    
    @staticmethod
    def _get_owned(db: Session, notification_id: uuid.UUID, user_id: uuid.UUID) -> Notification:
        notification = db.query(Notification).filter(
            Notification.id == notification_id,
            Notification.user_id == user_id
        ).first()
        
        if not notification:
            raise NotFoundError("Notification not found")
        return notification
    
    @staticmethod
    def mark_read(db: Session, notification_id: uuid.UUID, user_id: uuid.UUID) -> Notification:
        notification = NotificationService._get_owned(db, notification_id, user_id)
        if not notification.is_read:
            notification.is_read = True
            db.commit()
            db.refresh(notification)
        return notification
    
    @staticmethod
    def mark_all_read(db: Session, user_id: uuid.UUID) -> int:
        updated = db.query(Notification).filter(
            Notification.user_id == user_id,
            Notification.is_read == False
        ).update({Notification.is_read: True}, synchronize_session=False)
        db.commit()
        return updated
    
    @staticmethod
    def delete(db: Session, notification_id: uuid.UUID, user_id: uuid.UUID) -> None:
        notification = NotificationService._get_owned(db, notification_id, user_id)
        db.delete(notification)
        db.commit()
