from datetime import datetime

from sqlalchemy import DateTime
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    # Business-local wall-clock times, no tz offset stored
    type_annotation_map = {
        datetime: DateTime(timezone=False),
    }
