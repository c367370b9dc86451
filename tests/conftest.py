# ================================
# TEST FIXTURES (tests/conftest.py)
# ================================

import os

# Point the application at an in-memory database before it is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["DEBUG"] = "true"
os.environ["SECRET_KEY"] = "test-secret-key"

import pytest
from datetime import date, timedelta
from decimal import Decimal
from fastapi.testclient import TestClient

from estate_admin.core.database import engine, SessionLocal
from estate_admin.core.security import create_access_token
from estate_admin.models import Base, User, UserRole, Property, PropertyStatus, Reservation, ReservationStatus, RoleName
from estate_admin.services.rbac_service import RBACService


def make_user(db, email, *roles, is_active=True):
    """Creates a user holding ``roles``."""
    user = User(email=email, full_name=email.split("@")[0].replace(".", " ").title(), is_active=is_active)
    db.add(user)
    db.flush()
    for role in roles:
        db.add(UserRole(user_id=user.id, role_id=RBACService.get_role(db, role).id))
    db.commit()
    return user


def make_property(db, title="Sunny Apartment", **overrides):
    values = dict(
        title=title,
        type="apartment",
        price=Decimal("250000.00"),
        address="12 Harbour Street",
        city="Lisbon",
        zip_code="1100-001",
        status=PropertyStatus.FOR_SALE,
        is_active=True
    )
    values.update(overrides)
    property = Property(**values)
    db.add(property)
    db.commit()
    return property


def make_reservation(db, property, user, reservation_date, time_slot="10:00", status=ReservationStatus.PENDING):
    """Inserts a reservation directly, bypassing the scheduler checks."""
    reservation = Reservation(
        property_id=property.id,
        user_id=user.id,
        reservation_date=reservation_date,
        time_slot=time_slot,
        status=status
    )
    db.add(reservation)
    db.commit()
    return reservation


def auth_headers(user):
    token = create_access_token({"sub": str(user.id)})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    RBACService.ensure_default_roles(session)
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db):
    from estate_admin.main import app
    return TestClient(app)


@pytest.fixture
def admin(db):
    return make_user(db, "admin@example.com", RoleName.ADMIN)


@pytest.fixture
def agent(db):
    return make_user(db, "agent@example.com", RoleName.AGENT)


@pytest.fixture
def admin_agent(db):
    """Holds both staff roles; must be notified once."""
    return make_user(db, "boss@example.com", RoleName.ADMIN, RoleName.AGENT)


@pytest.fixture
def staff(admin, agent, admin_agent):
    return [admin, agent, admin_agent]


@pytest.fixture
def visitor(db):
    return make_user(db, "alice@example.com", RoleName.USER)


@pytest.fixture
def other_visitor(db):
    return make_user(db, "bob@example.com", RoleName.USER)


@pytest.fixture
def listing(db):
    return make_property(db)


@pytest.fixture
def tomorrow():
    return date.today() + timedelta(days=1)


def interfere_once(monkeypatch, action):
    """Runs ``action`` in a separate session right before the next audit entry is written."""
    from estate_admin.services import reservation_service

    original = reservation_service.audit_logger.log_business_event
    state = {"done": False}

    def log_and_interfere(*args, **kwargs):
        if not state["done"]:
            state["done"] = True
            other = SessionLocal()
            try:
                action(other)
                other.commit()
            finally:
                other.close()
        return original(*args, **kwargs)

    monkeypatch.setattr(reservation_service.audit_logger, "log_business_event", log_and_interfere)
