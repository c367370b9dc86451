# ================================
# BASE MODEL (models/base.py)
# ================================

from sqlalchemy import Column, DateTime, Uuid
from sqlalchemy.orm import as_declarative, declared_attr
from datetime import datetime, timezone
import uuid

def utcnow() -> datetime:
    return datetime.now(timezone.utc)

@as_declarative()
class Base:
    """Base Model mit gemeinsamen Feldern"""
    
    # Automatische Tabellennamen basierend auf Klassennamen
    @declared_attr
    def __tablename__(cls) -> str:
        return cls.__name__.lower() + "s"
    
    # Gemeinsame Spalten
    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

class ModifiedMixin:
    """Mixin für das Änderungsdatum (leer bis zur ersten Änderung)"""
    
    @declared_attr
    def modified_at(cls):
        return Column(DateTime(timezone=True), nullable=True)
