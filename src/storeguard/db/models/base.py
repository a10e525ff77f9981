"""Base models for SQLAlchemy."""

from datetime import datetime

from sqlalchemy import JSON, DateTime
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator

from storeguard.utils.clock import utc_now


class PortableJSON(TypeDecorator):
    """JSON type that uses JSONB on PostgreSQL and JSON elsewhere."""

    impl = JSON
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "postgresql":
            return dialect.type_descriptor(JSONB())
        return dialect.type_descriptor(JSON())


class Base(DeclarativeBase):
    """Base class for all database models."""

    pass


class CreatedAtMixin:
    """Mixin for the ``created_at`` column every retention rule is measured from.

    Set from Python rather than by the server so that all rows share the
    same UTC clock regardless of dialect.
    """

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False, index=True
    )
