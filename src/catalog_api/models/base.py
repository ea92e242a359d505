"""Declarative base and shared column mixins."""

from datetime import datetime

from sqlalchemy import JSON, DateTime, String, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# JSON documents, stored as JSONB on PostgreSQL
Document = JSON(none_as_null=True).with_variant(JSONB(none_as_null=True), "postgresql")


class Base(DeclarativeBase):
    """Base class for all ORM models."""


class TimestampMixin:
    """Creation and last-modification timestamps."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )


class EnvelopeMixin(TimestampMixin):
    """The ``{id, current, next, etag}`` publication envelope.

    ``current`` is the last published document (NULL until first publish) and
    ``next`` the working draft. ``etag`` is recomputed on every write.
    """

    id: Mapped[str] = mapped_column(String(100), primary_key=True)
    current: Mapped[dict | None] = mapped_column(Document, nullable=True)
    next: Mapped[dict] = mapped_column(Document, nullable=False)
    etag: Mapped[str] = mapped_column(String(40), nullable=False)
