"""
Base database utilities and common imports.
"""

import uuid

from sqlalchemy import Column, DateTime, String
from sqlalchemy.sql import func

from haven.db.session import Base


def generate_uuid() -> str:
    """Return a new random UUID as text."""
    return str(uuid.uuid4())


class TimestampMixin:
    """Mixin for timestamp fields."""

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )


class UUIDMixin:
    """Mixin for UUID primary key stored as text."""

    id = Column(
        String(36),
        primary_key=True,
        default=generate_uuid,
        unique=True,
        nullable=False,
    )


__all__ = ["Base", "TimestampMixin", "UUIDMixin", "generate_uuid"]
