"""Base model and mixins for all SQLAlchemy models.

Provides:
- Base: Declarative base class for all models
- UTCDateTime: Timezone-aware column type that always round-trips UTC
- DocumentMixin: Adds an opaque string primary key and audit timestamps

Every collection in the document store is a table whose rows inherit from
Base and DocumentMixin. Ids are opaque strings so that tokens (share links)
and identity-provider ids (user profiles) can be used as keys directly.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator


def utcnow() -> datetime:
    """Current instant as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def new_id() -> str:
    return uuid.uuid4().hex


class UTCDateTime(TypeDecorator):
    """DateTime column that stores UTC and always loads aware datetimes.

    Some backends (SQLite) drop tzinfo on the way back; naive values read
    from the database are treated as UTC.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


class Base(DeclarativeBase):
    """Declarative base for all Taskboard models."""
    pass


class DocumentMixin:
    """Mixin providing an opaque id and standard audit columns.

    Adds:
    - id: String primary key (random hex unless supplied)
    - created_at: Timestamp set on insert
    - updated_at: Timestamp updated on every change
    """

    id: Mapped[str] = mapped_column(
        String(64),
        primary_key=True,
        default=new_id,
    )
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        default=utcnow,
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        default=utcnow,
        onupdate=utcnow,
        nullable=False,
    )

    def _iso(self, value: datetime | None) -> str | None:
        return value.isoformat() if value else None
