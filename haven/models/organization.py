"""
Organisation and user models.
"""

import enum

from sqlalchemy import Column, ForeignKey, Index, String

from haven.db.base import Base, TimestampMixin, UUIDMixin


class UserRole(str, enum.Enum):
    """User role types."""
    ADMIN = "admin"
    STAFF = "staff"
    VIEWER = "viewer"


class UserStatus(str, enum.Enum):
    """User status types."""
    ACTIVE = "active"
    INACTIVE = "inactive"
    INVITED = "invited"


class Organization(Base, UUIDMixin, TimestampMixin):
    """Tenant boundary; every brief is scoped to one organisation."""

    __tablename__ = "organizations"

    name = Column(String(255), nullable=False)
    timezone = Column(String(64), nullable=True)

    def __repr__(self):
        return f"<Organization(id={self.id}, name='{self.name}')>"


class User(Base, UUIDMixin, TimestampMixin):
    """Application user; active admins receive the daily brief."""

    __tablename__ = "users"

    organization_id = Column(String(36), ForeignKey("organizations.id"), nullable=False, index=True)
    email = Column(String(255), nullable=True)
    full_name = Column(String(255), nullable=True)
    role = Column(String(20), nullable=False, default=UserRole.STAFF.value)
    status = Column(String(20), nullable=False, default=UserStatus.ACTIVE.value)

    __table_args__ = (
        Index("idx_users_org_role_status", "organization_id", "role", "status"),
    )

    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}', role={self.role})>"
