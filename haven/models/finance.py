"""
Financial models: billing transactions, house expenses, funding contracts and claims.
"""

import enum
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Numeric,
    String,
    Text,
)

from haven.db.base import Base, TimestampMixin, UUIDMixin


class TransactionStatus(str, enum.Enum):
    """Billing transaction status."""
    DRAFT = "draft"
    PENDING = "pending"
    POSTED = "posted"
    PAID = "paid"
    REJECTED = "rejected"
    CANCELLED = "cancelled"
    VOIDED = "voided"


class ExpenseStatus(str, enum.Enum):
    """House expense status."""
    DRAFT = "draft"
    APPROVED = "approved"
    PAID = "paid"
    OVERDUE = "overdue"
    CANCELLED = "cancelled"


class ExpenseScope(str, enum.Enum):
    """Whether a cost belongs to one property or the whole organisation."""
    PROPERTY = "property"
    ORGANISATION = "organisation"


class RecordSource(str, enum.Enum):
    """Origin of a transaction or expense."""
    MANUAL = "manual"
    AUTOMATION = "automation"


class ContractStatus(str, enum.Enum):
    """Funding contract status."""
    DRAFT = "Draft"
    ACTIVE = "Active"
    EXPIRED = "Expired"
    CANCELLED = "Cancelled"
    RENEWED = "Renewed"


class ClaimStatus(str, enum.Enum):
    """Claim status."""
    DRAFT = "draft"
    SUBMITTED = "submitted"
    IN_PROGRESS = "in_progress"
    PROCESSED = "processed"
    AUTO_PROCESSED = "auto_processed"
    PAID = "paid"
    PARTIALLY_PAID = "partially_paid"
    REJECTED = "rejected"


class Transaction(Base, UUIDMixin, TimestampMixin):
    """Income billed against a resident."""

    __tablename__ = "transactions"

    organization_id = Column(String(36), ForeignKey("organizations.id"), nullable=True, index=True)
    resident_id = Column(String(36), ForeignKey("residents.id"), nullable=False, index=True)
    amount = Column(Numeric(12, 2), nullable=False, default=Decimal("0.00"))
    occurred_at = Column(DateTime(timezone=True), nullable=False, index=True)
    status = Column(String(20), nullable=False, default=TransactionStatus.DRAFT.value)
    description = Column(Text, nullable=True)
    source = Column(String(20), nullable=False, default=RecordSource.MANUAL.value)

    __table_args__ = (
        Index("idx_transactions_resident_occurred", "resident_id", "occurred_at"),
    )

    def __repr__(self):
        return f"<Transaction(id={self.id}, amount={self.amount}, status={self.status})>"


class HouseExpense(Base, UUIDMixin, TimestampMixin):
    """A cost attributed to a property or to the organisation."""

    __tablename__ = "house_expenses"

    organization_id = Column(String(36), ForeignKey("organizations.id"), nullable=False, index=True)
    house_id = Column(String(36), ForeignKey("houses.id"), nullable=True, index=True)
    amount = Column(Numeric(12, 2), nullable=False, default=Decimal("0.00"))
    occurred_at = Column(Date, nullable=False, index=True)
    scope = Column(String(20), nullable=False, default=ExpenseScope.PROPERTY.value)
    category = Column(String(50), nullable=True)
    description = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default=ExpenseStatus.DRAFT.value)
    source = Column(String(20), nullable=False, default=RecordSource.MANUAL.value)

    def __repr__(self):
        return f"<HouseExpense(id={self.id}, amount={self.amount}, scope={self.scope})>"


class FundingContract(Base, UUIDMixin, TimestampMixin):
    """A resident's funding contract that billing runs draw down."""

    __tablename__ = "funding_contracts"

    organization_id = Column(String(36), ForeignKey("organizations.id"), nullable=False, index=True)
    resident_id = Column(String(36), ForeignKey("residents.id"), nullable=True, index=True)
    type = Column(String(30), nullable=True)
    original_amount = Column(Numeric(12, 2), nullable=False, default=Decimal("0.00"))
    current_balance = Column(Numeric(12, 2), nullable=False, default=Decimal("0.00"))
    contract_status = Column(String(20), nullable=False, default=ContractStatus.DRAFT.value)
    start_date = Column(Date, nullable=True)
    end_date = Column(Date, nullable=True)
    auto_billing_enabled = Column(Boolean, nullable=False, default=False)
    daily_support_item_cost = Column(Numeric(12, 2), nullable=True)

    __table_args__ = (
        Index("idx_funding_contracts_org_status", "organization_id", "contract_status"),
    )

    def __repr__(self):
        return f"<FundingContract(id={self.id}, balance={self.current_balance}, status={self.contract_status})>"


class Claim(Base, UUIDMixin, TimestampMixin):
    """A batch of transactions claimed against funding."""

    __tablename__ = "claims"

    organization_id = Column(String(36), ForeignKey("organizations.id"), nullable=False, index=True)
    status = Column(String(20), nullable=False, default=ClaimStatus.DRAFT.value)
    total_amount = Column(Numeric(12, 2), nullable=False, default=Decimal("0.00"))

    def __repr__(self):
        return f"<Claim(id={self.id}, total={self.total_amount}, status={self.status})>"
