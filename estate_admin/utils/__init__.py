# ================================
# UTILS PACKAGE INITIALIZATION (utils/__init__.py)
# ================================

"""
Utils Package

Audit logging for business events
"""

from estate_admin.utils.audit import AuditLogger, audit_logger

def get_audit_logger() -> AuditLogger:
    """Get the default audit logger instance"""
    return audit_logger
