# ================================
# BUSINESS MODELS (models/business.py)
# ================================

from sqlalchemy import (
    Column, String, Text, Integer, Boolean, Date, Numeric, Float,
    ForeignKey, Index, Enum, Uuid, text
)
from sqlalchemy.orm import relationship
from estate_admin.models.base import Base, ModifiedMixin
import enum

def _enum_values(enum_cls):
    return [member.value for member in enum_cls]

class PropertyStatus(str, enum.Enum):
    FOR_SALE = "for_sale"
    FOR_RENT = "for_rent"
    SOLD = "sold"
    RENTED = "rented"

class ReservationStatus(str, enum.Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REFUSED = "refused"
    CANCELLED = "cancelled"

class Property(Base, ModifiedMixin):
    """Property listing"""
    __tablename__ = "properties"
    
    # Basic Information
    title = Column(String(200), nullable=False)
    type = Column(String(50), nullable=False)  # apartment, house, villa, land, ...
    price = Column(Numeric(15, 2), nullable=False)
    description = Column(Text, nullable=True)
    
    # Location
    address = Column(String(500), nullable=False)
    city = Column(String(100), nullable=False, index=True)
    zip_code = Column(String(20), nullable=True)
    
    # Characteristics
    area = Column(Float, nullable=True)  # m²
    bedrooms = Column(Integer, nullable=True)
    bathrooms = Column(Integer, nullable=True)
    floor = Column(Integer, nullable=True)
    has_parking = Column(Boolean, default=False, nullable=False)
    has_garden = Column(Boolean, default=False, nullable=False)
    has_balcony = Column(Boolean, default=False, nullable=False)
    has_elevator = Column(Boolean, default=False, nullable=False)
    image_url = Column(String(500), nullable=True)
    
    # Availability & Status
    status = Column(
        Enum(PropertyStatus, name="property_status", native_enum=False, values_callable=_enum_values, length=20),
        default=PropertyStatus.FOR_SALE,
        nullable=False
    )
    is_active = Column(Boolean, default=True, nullable=False)
    is_featured = Column(Boolean, default=False, nullable=False)
    view_count = Column(Integer, default=0, nullable=False)
    
    # Relationships
    reservations = relationship("Reservation", back_populates="property")
    
    __table_args__ = (
        Index('ix_properties_type_status', 'type', 'status'),
    )
    
    def __repr__(self):
        return f"<Property(title='{self.title}', city='{self.city}')>"

# Partial unique index: at most one accepted reservation per property/date/slot
ACCEPTED_SLOT_INDEX = 'uq_reservations_accepted_slot'

class Reservation(Base, ModifiedMixin):
    """Visit reservation for one property on one date and time slot"""
    __tablename__ = "reservations"
    
    # Foreign Keys
    property_id = Column(Uuid(as_uuid=True), ForeignKey('properties.id', ondelete='CASCADE'), nullable=False)
    user_id = Column(Uuid(as_uuid=True), ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    
    # Appointment
    reservation_date = Column(Date, nullable=False)
    time_slot = Column(String(5), nullable=False)  # "HH:MM"
    
    # Workflow
    status = Column(
        Enum(ReservationStatus, name="reservation_status", native_enum=False, values_callable=_enum_values, length=20),
        default=ReservationStatus.PENDING,
        nullable=False
    )
    admin_remark = Column(Text, nullable=True)
    
    # Optimistic locking counter
    version_id = Column(Integer, nullable=False)
    
    # Relationships
    property = relationship("Property", back_populates="reservations")
    user = relationship("User", back_populates="reservations")
    notifications = relationship("Notification", back_populates="reservation", cascade="all, delete-orphan")
    
    __mapper_args__ = {"version_id_col": version_id}
    
    __table_args__ = (
        Index('ix_reservations_slot', 'property_id', 'reservation_date', 'time_slot'),
        Index('ix_reservations_user_status', 'user_id', 'status'),
        Index(
            ACCEPTED_SLOT_INDEX,
            'property_id', 'reservation_date', 'time_slot',
            unique=True,
            postgresql_where=text("status = 'accepted'"),
            sqlite_where=text("status = 'accepted'")
        ),
    )
    
    def __repr__(self):
        return f"<Reservation(property='{self.property_id}', date='{self.reservation_date}', slot='{self.time_slot}', status='{self.status}')>"

class Notification(Base):
    """In-app notification owned by its recipient"""
    __tablename__ = "notifications"
    
    # Foreign Keys
    user_id = Column(Uuid(as_uuid=True), ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    reservation_id = Column(Uuid(as_uuid=True), ForeignKey('reservations.id', ondelete='CASCADE'), nullable=True)
    
    # Content
    title = Column(String(200), nullable=False)
    message = Column(Text, nullable=False)
    is_read = Column(Boolean, default=False, nullable=False)
    
    # Relationships
    user = relationship("User", back_populates="notifications")
    reservation = relationship("Reservation", back_populates="notifications")
    
    def __repr__(self):
        return f"<Notification(user='{self.user_id}', title='{self.title}', read={self.is_read})>"
