# ================================
# AUDIT LOGGING UTILITY (utils/audit.py)
# ================================

from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError
from estate_admin.models.audit import AuditLog
from typing import Optional, Dict, Any
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
import uuid
import json
import logging

logger = logging.getLogger(__name__)

class AuditLogger:
    """
    Audit trail for business events.
    
    Entries are added to the caller's session and therefore commit or roll
    back together with the change they describe. Every entry is mirrored to
    the application logger.
    """
    
    SENSITIVE_KEYS = {
        'password', 'password_hash', 'token', 'access_token', 'refresh_token',
        'api_key', 'secret', 'private_key'
    }
    
    def log_business_event(
        self,
        db: Session,
        action: str,
        user_id: Optional[uuid.UUID],
        resource_type: str,
        resource_id: Optional[uuid.UUID],
        old_values: Optional[Dict[str, Any]] = None,
        new_values: Optional[Dict[str, Any]] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None
    ) -> Optional[AuditLog]:
        """
        Log business logic events (CRUD operations on business entities).
        
        Args:
            db: Database session
            action: Business action (e.g., 'RESERVATION_ACCEPTED', 'PROPERTY_UPDATED')
            user_id: User performing the action
            resource_type: Type of business resource ('reservation', 'property', ...)
            resource_id: ID of the affected resource
            old_values: Previous values (for updates/deletes)
            new_values: New values (for creates/updates)
        
        Returns:
            Created AuditLog instance, or None when the entry could not be built
        """
        sanitized_new = self._sanitize_sensitive_data(new_values or {})
        sanitized_old = self._sanitize_sensitive_data(old_values or {})
        
        try:
            audit_entry = AuditLog(
                user_id=user_id,
                action=action,
                resource_type=resource_type,
                resource_id=resource_id,
                old_values=sanitized_old or None,
                new_values=sanitized_new or None,
                ip_address=ip_address[:45] if ip_address else None,
                user_agent=user_agent[:500] if user_agent else None  # Truncate long user agents
            )
            db.add(audit_entry)
        except SQLAlchemyError as e:
            logger.error(f"Failed to create audit log: {e}", exc_info=True)
            return None
        
        self._log_to_application_logger(action, user_id, resource_type, resource_id, sanitized_new)
        return audit_entry
    
    def _sanitize_sensitive_data(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Mask sensitive values and make the rest JSON serializable.
        
        Args:
            data: Dictionary that may contain sensitive data
        
        Returns:
            Sanitized dictionary
        """
        sanitized = {}
        for key, value in data.items():
            key_lower = str(key).lower()
            
            if any(sensitive_key in key_lower for sensitive_key in self.SENSITIVE_KEYS):
                sanitized[key] = "***REDACTED***"
            elif isinstance(value, dict):
                sanitized[key] = self._sanitize_sensitive_data(value)
            else:
                sanitized[key] = self._to_json_value(value)
        
        return sanitized
    
    @staticmethod
    def _to_json_value(value: Any) -> Any:
        if isinstance(value, Enum):
            return value.value
        if isinstance(value, Decimal):
            return float(value)
        if isinstance(value, (uuid.UUID, date, datetime)):
            return str(value)
        if isinstance(value, str) and len(value) > 1000:
            return value[:1000] + "...[TRUNCATED]"
        return value
    
    def _log_to_application_logger(
        self,
        action: str,
        user_id: Optional[uuid.UUID],
        resource_type: str,
        resource_id: Optional[uuid.UUID],
        details: Dict[str, Any]
    ):
        """Also log to application logger for immediate visibility."""
        log_message = f"AUDIT: {action} | {resource_type}: {resource_id}"
        if user_id:
            log_message += f" | User: {user_id}"
        if details:
            log_message += f" | Details: {json.dumps(details, default=str)}"
        
        logger.info(log_message)

audit_logger = AuditLogger()
