"""FastAPI dependencies for database access and business scoping."""

from typing import Generator
from uuid import UUID

from fastapi import Depends, HTTPException
from sqlalchemy.orm import Session

from appointment_core.db.models import Business
from appointment_core.db.session import SessionLocal


def get_db() -> Generator[Session, None, None]:
    """
    Database session dependency.

    Yields a database session and ensures it's closed after the request.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_business(
    business_id: UUID,
    db: Session = Depends(get_db),
) -> Business:
    """Resolve the business from the path; 404 when it does not exist."""
    business = db.get(Business, business_id)
    if not business:
        raise HTTPException(status_code=404, detail="Business not found")
    return business
