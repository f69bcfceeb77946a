"""
Automation and automation run models.
"""

import enum

from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, Index, String, Text

from haven.db.base import Base, TimestampMixin, UUIDMixin


class AutomationType(str, enum.Enum):
    """Automation runner types."""
    RECURRING_TRANSACTION = "recurring_transaction"
    CONTRACT_BILLING_RUN = "contract_billing_run"
    DAILY_DIGEST = "daily_digest"


class AutomationRunStatus(str, enum.Enum):
    """Automation run status."""
    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"


class Automation(Base, UUIDMixin, TimestampMixin):
    """A scheduled job definition."""

    __tablename__ = "automations"

    organization_id = Column(String(36), ForeignKey("organizations.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    type = Column(String(40), nullable=False, index=True)
    is_enabled = Column(Boolean, nullable=False, default=True)
    schedule = Column(JSON, nullable=True)
    parameters = Column(JSON, nullable=True)
    last_run_at = Column(DateTime(timezone=True), nullable=True)
    next_run_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("idx_automations_org_enabled_next_run", "organization_id", "is_enabled", "next_run_at"),
    )

    def __repr__(self):
        return f"<Automation(id={self.id}, name='{self.name}', type={self.type})>"


class AutomationRun(Base, UUIDMixin):
    """One execution of an automation."""

    __tablename__ = "automation_runs"

    automation_id = Column(String(36), ForeignKey("automations.id"), nullable=False, index=True)
    organization_id = Column(String(36), ForeignKey("organizations.id"), nullable=False, index=True)
    status = Column(String(20), nullable=False, default=AutomationRunStatus.RUNNING.value)
    started_at = Column(DateTime(timezone=True), nullable=False, index=True)
    finished_at = Column(DateTime(timezone=True), nullable=True)
    summary = Column(Text, nullable=True)
    error = Column(JSON, nullable=True)

    def __repr__(self):
        return f"<AutomationRun(id={self.id}, status={self.status})>"
