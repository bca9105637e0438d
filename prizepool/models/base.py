from datetime import datetime, timezone

from sqlalchemy.orm import DeclarativeBase

from prizepool.db.metadata import metadata_obj


def utcnow() -> datetime:
    """Column default for timezone-aware timestamps."""
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Declarative base for every ledger table."""

    metadata = metadata_obj
