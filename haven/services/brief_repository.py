"""
Read-only, organisation-scoped data access for the daily brief.

Every query opens its own short-lived session so independent reads can run
concurrently. Rows are converted into frozen records at this boundary; money
goes through ``safe_decimal`` and timestamps come back as UTC.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlalchemy import and_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker

from haven.core.exceptions import DataSourceException
from haven.core.logging import get_logger
from haven.core.money import ZERO, safe_decimal
from haven.models import (
    Automation,
    AutomationRun,
    AutomationRunStatus,
    AutomationType,
    Claim,
    ContractStatus,
    ExpenseStatus,
    FundingContract,
    House,
    HouseExpense,
    Organization,
    Resident,
    Transaction,
    TransactionStatus,
    User,
    UserRole,
    UserStatus,
)
from haven.services.brief_windows import DateWindow, ensure_utc

logger = get_logger(__name__)

EXCLUDED_INCOME_STATUSES = frozenset({TransactionStatus.REJECTED.value, TransactionStatus.CANCELLED.value})
EXCLUDED_EXPENSE_STATUSES = frozenset({ExpenseStatus.CANCELLED.value})
OUTLOOK_AUTOMATION_TYPES = (
    AutomationType.RECURRING_TRANSACTION.value,
    AutomationType.CONTRACT_BILLING_RUN.value,
)


def house_label(descriptor: Optional[str], address1: Optional[str], suburb: Optional[str]) -> str:
    """Display label: descriptor, then address, then suburb."""
    return descriptor or address1 or suburb or "Unknown"


def person_name(first_name: Optional[str], last_name: Optional[str]) -> str:
    name = f"{first_name or ''} {last_name or ''}".strip()
    return name or "Unknown"


@dataclass(frozen=True)
class OrganizationRecord:
    id: str
    name: str
    timezone: Optional[str] = None


@dataclass(frozen=True)
class HouseRecord:
    id: str
    label: str
    bedroom_count: Optional[int]
    status: str


@dataclass(frozen=True)
class ResidentRecord:
    id: str
    house_id: Optional[str]
    status: str


@dataclass(frozen=True)
class IncomeRecord:
    resident_id: str
    amount: Decimal
    status: str


@dataclass(frozen=True)
class ExpenseRecord:
    house_id: Optional[str]
    amount: Decimal
    scope: Optional[str]
    category: Optional[str]
    status: str
    source: Optional[str]


@dataclass(frozen=True)
class AutomationRecord:
    id: str
    name: str
    type: str
    next_run_at: Optional[datetime]
    parameters: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ExpenseTemplate:
    amount: Decimal
    category: Optional[str]
    scope: Optional[str]
    house_id: Optional[str]


@dataclass(frozen=True)
class TransactionTemplate:
    amount: Decimal
    description: Optional[str]


@dataclass(frozen=True)
class ExpiringContractRecord:
    resident_name: str
    contract_type: Optional[str]
    end_date: date


@dataclass(frozen=True)
class FailedRunRecord:
    automation_name: str
    started_at: datetime
    finished_at: Optional[datetime]
    error: Any


@dataclass(frozen=True)
class BalanceRecord:
    resident_name: str
    original_amount: Decimal
    current_balance: Decimal


@dataclass(frozen=True)
class ClaimRecord:
    status: str
    total_amount: Decimal


@dataclass(frozen=True)
class DigestScheduleRecord:
    """An enabled daily_digest automation and its organisation's timezone."""
    organization_id: str
    organization_timezone: Optional[str]
    schedule: Dict[str, Any] = field(default_factory=dict)
    parameters: Dict[str, Any] = field(default_factory=dict)


class BriefRepository:
    """Organisation-scoped read interface over the relational store."""

    def __init__(self, session_factory: async_sessionmaker):
        self.session_factory = session_factory

    async def _fetch_all(self, stmt, operation: str) -> List[Any]:
        try:
            async with self.session_factory() as session:
                result = await session.execute(stmt)
                return list(result.all())
        except SQLAlchemyError as e:
            logger.error(f"Data source query failed ({operation}): {e}")
            raise DataSourceException(
                f"Data source query failed: {operation}",
                details={"operation": operation, "error": str(e)},
            ) from e

    async def get_organization(self, organization_id: str) -> Optional[OrganizationRecord]:
        rows = await self._fetch_all(
            select(Organization.id, Organization.name, Organization.timezone)
            .where(Organization.id == organization_id),
            "organization",
        )
        if not rows:
            return None
        row = rows[0]
        return OrganizationRecord(id=row.id, name=row.name, timezone=row.timezone)

    async def list_houses(self, organization_id: str) -> List[HouseRecord]:
        rows = await self._fetch_all(
            select(
                House.id, House.descriptor, House.address1, House.suburb,
                House.bedroom_count, House.status,
            )
            .where(House.organization_id == organization_id)
            .order_by(House.id),
            "houses",
        )
        return [
            HouseRecord(
                id=row.id,
                label=house_label(row.descriptor, row.address1, row.suburb),
                bedroom_count=row.bedroom_count,
                status=row.status,
            )
            for row in rows
        ]

    async def list_residents(self, organization_id: str) -> List[ResidentRecord]:
        rows = await self._fetch_all(
            select(Resident.id, Resident.house_id, Resident.status)
            .where(Resident.organization_id == organization_id)
            .order_by(Resident.id),
            "residents",
        )
        return [ResidentRecord(id=row.id, house_id=row.house_id, status=row.status) for row in rows]

    async def fetch_income(
        self,
        resident_ids: Sequence[str],
        bounds: Tuple[datetime, datetime],
    ) -> List[IncomeRecord]:
        """Billing transactions for a batch of residents in a half-open UTC range."""
        if not resident_ids:
            return []
        start, end = bounds
        rows = await self._fetch_all(
            select(Transaction.resident_id, Transaction.amount, Transaction.status)
            .where(
                and_(
                    Transaction.resident_id.in_(list(resident_ids)),
                    Transaction.occurred_at >= start,
                    Transaction.occurred_at < end,
                    Transaction.status.notin_(sorted(EXCLUDED_INCOME_STATUSES)),
                )
            )
            .order_by(Transaction.occurred_at, Transaction.id),
            "transactions",
        )
        return [
            IncomeRecord(resident_id=row.resident_id, amount=safe_decimal(row.amount), status=row.status)
            for row in rows
        ]

    async def fetch_expenses(self, organization_id: str, window: DateWindow) -> List[ExpenseRecord]:
        rows = await self._fetch_all(
            select(
                HouseExpense.house_id, HouseExpense.amount, HouseExpense.scope,
                HouseExpense.category, HouseExpense.status, HouseExpense.source,
            )
            .where(
                and_(
                    HouseExpense.organization_id == organization_id,
                    HouseExpense.occurred_at >= window.start,
                    HouseExpense.occurred_at < window.end_exclusive,
                    HouseExpense.status.notin_(sorted(EXCLUDED_EXPENSE_STATUSES)),
                )
            )
            .order_by(HouseExpense.occurred_at, HouseExpense.id),
            "house_expenses",
        )
        return [
            ExpenseRecord(
                house_id=row.house_id,
                amount=safe_decimal(row.amount),
                scope=row.scope,
                category=row.category,
                status=row.status,
                source=row.source,
            )
            for row in rows
        ]

    async def list_upcoming_automations(
        self,
        organization_id: str,
        bounds: Tuple[datetime, datetime],
        limit: int = 20,
    ) -> List[AutomationRecord]:
        start, end = bounds
        rows = await self._fetch_all(
            select(
                Automation.id, Automation.name, Automation.type,
                Automation.parameters, Automation.next_run_at,
            )
            .where(
                and_(
                    Automation.organization_id == organization_id,
                    Automation.is_enabled.is_(True),
                    Automation.type.in_(OUTLOOK_AUTOMATION_TYPES),
                    Automation.next_run_at >= start,
                    Automation.next_run_at < end,
                )
            )
            .order_by(Automation.next_run_at.asc(), Automation.id)
            .limit(limit),
            "automations",
        )
        return [
            AutomationRecord(
                id=row.id,
                name=row.name,
                type=row.type,
                next_run_at=ensure_utc(row.next_run_at) if row.next_run_at else None,
                parameters=row.parameters if isinstance(row.parameters, dict) else {},
            )
            for row in rows
        ]

    async def get_expense_template(self, organization_id: str, expense_id: str) -> Optional[ExpenseTemplate]:
        rows = await self._fetch_all(
            select(HouseExpense.amount, HouseExpense.category, HouseExpense.scope, HouseExpense.house_id)
            .where(
                and_(
                    HouseExpense.id == expense_id,
                    HouseExpense.organization_id == organization_id,
                )
            ),
            "expense_template",
        )
        if not rows:
            return None
        row = rows[0]
        return ExpenseTemplate(
            amount=safe_decimal(row.amount),
            category=row.category,
            scope=row.scope,
            house_id=row.house_id,
        )

    async def get_transaction_template(
        self, organization_id: str, transaction_id: str
    ) -> Optional[TransactionTemplate]:
        rows = await self._fetch_all(
            select(Transaction.amount, Transaction.description)
            .join(Resident, Resident.id == Transaction.resident_id)
            .where(
                and_(
                    Transaction.id == transaction_id,
                    Resident.organization_id == organization_id,
                )
            ),
            "transaction_template",
        )
        if not rows:
            return None
        row = rows[0]
        return TransactionTemplate(amount=safe_decimal(row.amount), description=row.description)

    async def sum_auto_billing_daily_cost(self, organization_id: str) -> Decimal:
        """Daily support-item cost across Active contracts with automatic billing."""
        rows = await self._fetch_all(
            select(FundingContract.daily_support_item_cost)
            .where(
                and_(
                    FundingContract.organization_id == organization_id,
                    FundingContract.auto_billing_enabled.is_(True),
                    FundingContract.contract_status == ContractStatus.ACTIVE.value,
                )
            ),
            "auto_billing_contracts",
        )
        return sum(
            (safe_decimal(row.daily_support_item_cost, "daily_support_item_cost") for row in rows),
            ZERO,
        )

    async def list_expiring_contracts(
        self, organization_id: str, window: DateWindow, limit: int = 10
    ) -> List[ExpiringContractRecord]:
        rows = await self._fetch_all(
            select(
                FundingContract.type, FundingContract.end_date,
                Resident.first_name, Resident.last_name,
            )
            .join(Resident, Resident.id == FundingContract.resident_id)
            .where(
                and_(
                    FundingContract.organization_id == organization_id,
                    FundingContract.contract_status == ContractStatus.ACTIVE.value,
                    FundingContract.end_date.isnot(None),
                    FundingContract.end_date >= window.start,
                    FundingContract.end_date < window.end_exclusive,
                )
            )
            .order_by(FundingContract.end_date.asc(), FundingContract.id)
            .limit(limit),
            "expiring_contracts",
        )
        return [
            ExpiringContractRecord(
                resident_name=person_name(row.first_name, row.last_name),
                contract_type=row.type,
                end_date=row.end_date,
            )
            for row in rows
        ]

    async def list_failed_runs(
        self, organization_id: str, since: datetime, limit: int = 10
    ) -> List[FailedRunRecord]:
        rows = await self._fetch_all(
            select(
                Automation.name, AutomationRun.started_at,
                AutomationRun.finished_at, AutomationRun.error,
            )
            .join(Automation, Automation.id == AutomationRun.automation_id)
            .where(
                and_(
                    AutomationRun.organization_id == organization_id,
                    AutomationRun.status == AutomationRunStatus.FAILED.value,
                    AutomationRun.started_at >= since,
                )
            )
            .order_by(AutomationRun.started_at.desc(), AutomationRun.id)
            .limit(limit),
            "failed_runs",
        )
        return [
            FailedRunRecord(
                automation_name=row.name or "Unknown",
                started_at=ensure_utc(row.started_at),
                finished_at=ensure_utc(row.finished_at) if row.finished_at else None,
                error=row.error,
            )
            for row in rows
        ]

    async def list_low_balance_candidates(self, organization_id: str, limit: int = 50) -> List[BalanceRecord]:
        rows = await self._fetch_all(
            select(
                FundingContract.original_amount, FundingContract.current_balance,
                Resident.first_name, Resident.last_name,
            )
            .join(Resident, Resident.id == FundingContract.resident_id)
            .where(
                and_(
                    FundingContract.organization_id == organization_id,
                    FundingContract.contract_status == ContractStatus.ACTIVE.value,
                    FundingContract.original_amount > 0,
                )
            )
            .order_by(FundingContract.current_balance.asc(), FundingContract.id)
            .limit(limit),
            "low_balance_contracts",
        )
        return [
            BalanceRecord(
                resident_name=person_name(row.first_name, row.last_name),
                original_amount=safe_decimal(row.original_amount, "original_amount"),
                current_balance=safe_decimal(row.current_balance, "current_balance"),
            )
            for row in rows
        ]

    async def list_claims(self, organization_id: str, statuses: Sequence[str]) -> List[ClaimRecord]:
        rows = await self._fetch_all(
            select(Claim.status, Claim.total_amount)
            .where(
                and_(
                    Claim.organization_id == organization_id,
                    Claim.status.in_(list(statuses)),
                )
            ),
            "claims",
        )
        return [
            ClaimRecord(status=row.status, total_amount=safe_decimal(row.total_amount, "total_amount"))
            for row in rows
        ]

    async def list_admin_emails(self, organization_id: str) -> List[str]:
        rows = await self._fetch_all(
            select(User.email)
            .where(
                and_(
                    User.organization_id == organization_id,
                    User.role == UserRole.ADMIN.value,
                    User.status == UserStatus.ACTIVE.value,
                )
            )
            .order_by(User.email),
            "admin_users",
        )
        return [row.email for row in rows if row.email]

    async def list_daily_digest_schedules(self, now: datetime) -> List[DigestScheduleRecord]:
        """Enabled daily_digest automations due at `now`, one per organisation."""
        rows = await self._fetch_all(
            select(
                Automation.organization_id, Automation.schedule,
                Automation.parameters, Organization.timezone,
            )
            .join(Organization, Organization.id == Automation.organization_id)
            .where(
                and_(
                    Automation.type == AutomationType.DAILY_DIGEST.value,
                    Automation.is_enabled.is_(True),
                    Automation.next_run_at <= now,
                )
            )
            .order_by(Automation.organization_id, Automation.next_run_at, Automation.created_at),
            "daily_digest_automations",
        )
        schedules: Dict[str, DigestScheduleRecord] = {}
        for row in rows:
            if row.organization_id in schedules:
                continue
            schedules[row.organization_id] = DigestScheduleRecord(
                organization_id=row.organization_id,
                organization_timezone=row.timezone,
                schedule=row.schedule if isinstance(row.schedule, dict) else {},
                parameters=row.parameters if isinstance(row.parameters, dict) else {},
            )
        return list(schedules.values())


__all__ = [
    "BriefRepository",
    "EXCLUDED_INCOME_STATUSES",
    "EXCLUDED_EXPENSE_STATUSES",
    "house_label",
    "person_name",
]
