"""
Declarative base for the ORM models (SQLAlchemy 2.0 style)
"""
from datetime import datetime, timezone

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# Metadata object used by table creation and migrations
metadata = Base.metadata
