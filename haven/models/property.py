"""
House and resident models.
"""

import enum

from sqlalchemy import Column, ForeignKey, Index, Integer, String

from haven.db.base import Base, TimestampMixin, UUIDMixin


class HouseStatus(str, enum.Enum):
    """House lifecycle status."""
    ACTIVE = "Active"
    DRAFT = "Draft"
    DEACTIVATED = "Deactivated"


class ResidentStatus(str, enum.Enum):
    """Resident lifecycle status."""
    ACTIVE = "Active"
    DRAFT = "Draft"
    DEACTIVATED = "Deactivated"


class House(Base, UUIDMixin, TimestampMixin):
    """A property operated by an organisation."""

    __tablename__ = "houses"

    organization_id = Column(String(36), ForeignKey("organizations.id"), nullable=False, index=True)
    descriptor = Column(String(255), nullable=True)
    address1 = Column(String(255), nullable=True)
    suburb = Column(String(120), nullable=True)
    bedroom_count = Column(Integer, nullable=True)
    status = Column(String(20), nullable=False, default=HouseStatus.DRAFT.value)

    def __repr__(self):
        return f"<House(id={self.id}, descriptor='{self.descriptor}', status={self.status})>"


class Resident(Base, UUIDMixin, TimestampMixin):
    """A person living in (or waiting for) a house."""

    __tablename__ = "residents"

    organization_id = Column(String(36), ForeignKey("organizations.id"), nullable=False, index=True)
    house_id = Column(String(36), ForeignKey("houses.id"), nullable=True, index=True)
    first_name = Column(String(120), nullable=True)
    last_name = Column(String(120), nullable=True)
    status = Column(String(20), nullable=False, default=ResidentStatus.DRAFT.value)

    __table_args__ = (
        Index("idx_residents_org_status", "organization_id", "status"),
    )

    def __repr__(self):
        return f"<Resident(id={self.id}, house_id={self.house_id}, status={self.status})>"
