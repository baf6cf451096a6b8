"""
Test configuration and fixtures.

Provides:
- In-memory SQLite database with a savepoint session (rollback after each test)
- Business and contact fixtures
- HTTPX AsyncClient wired to the session
- Appointment factory
"""
import os
import uuid
from datetime import datetime
from typing import AsyncGenerator, Callable, Generator

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.orm import Session

# Configure settings before the application is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["CALENDAR_SYNC_URL"] = ""
os.environ["ENV"] = "test"

from appointment_core.main import app
from appointment_core.db.base import Base
from appointment_core.db.session import engine, SessionLocal
from appointment_core.core.deps import get_db
from appointment_core.db.enums import AppointmentStatus
from appointment_core.db.models import Appointment, Business, Contact


# =============================================================================
# Database Fixtures (Savepoint pattern)
# =============================================================================

@pytest.fixture(scope="session", autouse=True)
def create_schema() -> Generator[None, None, None]:
    """Create all tables once for the in-memory database."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """
    Creates a database session with savepoint for test isolation.

    Service code can call commit() and rollback(); each only ends a
    savepoint, and the outer transaction is rolled back at the end.
    """
    connection = engine.connect()
    # Begin outer transaction that we'll rollback at end
    transaction = connection.begin()

    session = SessionLocal(bind=connection, join_transaction_mode="create_savepoint")

    yield session

    session.close()
    # Rollback outer transaction - undoes all test changes
    transaction.rollback()
    connection.close()


@pytest.fixture(scope="function")
def business(db: Session) -> Business:
    """Create a test business."""
    biz = Business(id=uuid.uuid4(), name="Test Salon")
    db.add(biz)
    db.commit()
    return biz


@pytest.fixture(scope="function")
def other_business(db: Session) -> Business:
    """A second business for scoping tests."""
    biz = Business(id=uuid.uuid4(), name="Other Salon")
    db.add(biz)
    db.commit()
    return biz


@pytest.fixture(scope="function")
def contact(db: Session, business: Business) -> Contact:
    """Create a test contact in the test business."""
    person = Contact(
        id=uuid.uuid4(),
        business_id=business.id,
        name="Jordan Lee",
        phone_number="+15555550100",
    )
    db.add(person)
    db.commit()
    return person


@pytest.fixture(scope="function")
def make_appointment(db: Session, business: Business, contact: Contact) -> Callable[..., Appointment]:
    """Factory inserting an appointment directly (bypassing conflict checks)."""

    def _make(
        scheduled_at: datetime,
        duration_minutes: int = 60,
        status: AppointmentStatus | str = AppointmentStatus.PENDING,
        **fields,
    ) -> Appointment:
        appt = Appointment(
            business_id=fields.pop("business_id", business.id),
            contact_id=fields.pop("contact_id", contact.id),
            scheduled_at=scheduled_at,
            duration_minutes=duration_minutes,
            status=status,
            **fields,
        )
        db.add(appt)
        db.commit()
        return appt

    return _make


# =============================================================================
# Client Fixtures
# =============================================================================

@pytest.fixture(scope="function")
async def client(db: Session) -> AsyncGenerator[AsyncClient, None]:
    """
    Create AsyncClient whose requests share the test session.
    """
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as c:
        yield c

    app.dependency_overrides.clear()
