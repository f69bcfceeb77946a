"""
Daily brief schemas: the engine configuration and the immutable snapshot it produces.
"""

from decimal import Decimal
from enum import Enum
from typing import Annotated, Any, Dict, List, Optional, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer, field_validator

from haven.core.config import settings
from haven.core.money import to_cents


def _money_to_float(value: Decimal) -> float:
    return float(to_cents(value))


# Exact Decimal in-process, cents-rounded number on the wire
Money = Annotated[Decimal, PlainSerializer(_money_to_float, return_type=float, when_used="json")]


class BriefConfig(BaseModel):
    """Per-invocation configuration for the daily brief engine."""
    model_config = ConfigDict(frozen=True)

    timezone: str = Field(
        default_factory=lambda: settings.DAILY_BRIEF_DEFAULT_TIMEZONE,
        description="IANA timezone of the organisation",
    )
    lookback_days: int = Field(
        default_factory=lambda: settings.DAILY_BRIEF_LOOKBACK_DAYS,
        ge=1,
        description="How many local days back 'yesterday' starts",
    )
    forward_days: int = Field(
        default_factory=lambda: settings.DAILY_BRIEF_FORWARD_DAYS,
        ge=1,
        description="Length of the outlook window in days",
    )
    recipient_override: Optional[Tuple[str, ...]] = Field(
        None, description="Explicit recipient emails; admins are used when unset"
    )

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        """Reject unknown IANA zone names."""
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"Unknown timezone: {v}")
        return v

    @field_validator("recipient_override", mode="before")
    @classmethod
    def drop_empty_recipients(cls, v):
        """Drop empty entries from an explicit recipient list."""
        if v is None:
            return v
        return tuple(email for email in v if email)


class TrendDirection(str, Enum):
    """Direction of the week-over-week net change."""
    UP = "up"
    DOWN = "down"
    FLAT = "flat"


class _Snapshot(BaseModel):
    model_config = ConfigDict(frozen=True)


class YesterdaySummary(_Snapshot):
    """Financial result for the lookback window."""
    income: Money
    property_costs: Money
    org_costs: Money
    net: Money
    transaction_count: int
    expense_count: int


class ClientBilling(_Snapshot):
    """Who was billed in the lookback window."""
    billed_count: int = Field(..., description="Distinct residents billed")
    houses_with_billing: int = Field(..., description="Distinct houses with billing")
    total_billed: Money


class OccupancySummary(_Snapshot):
    """Bed capacity against active occupancy."""
    total_houses: int
    total_bedrooms: int
    occupied_bedrooms: int
    vacant_bedrooms: int
    occupancy_percentage: Optional[int] = Field(
        None, description="Omitted when there are no bedrooms"
    )


class RecurringInvoices(_Snapshot):
    """Automation-generated expenses in the lookback window."""
    count: int
    total: Money
    description: str = Field(..., description="Most common category, e.g. 'rent'")


class TrendSummary(_Snapshot):
    """Last 7 days against the prior 7 days."""
    last_7_days_net: Money
    prior_7_days_net: Money
    direction: TrendDirection
    change_amount: Money


class PropertyHighlight(_Snapshot):
    """Per-house result for the lookback window."""
    property_id: str
    property_name: str
    income: Money
    expenses: Money
    net: Money


class UpcomingItem(_Snapshot):
    """One projected automation occurrence."""
    date: str
    name: str
    category: str
    property: Optional[str] = None
    amount: Money


class OutlookSummary(_Snapshot):
    """Expected income and costs for the forward window."""
    expected_income: Money
    expected_property_costs: Money
    expected_org_costs: Money
    projected_net: Money
    upcoming_items: Tuple[UpcomingItem, ...] = ()


class ClaimsPipeline(_Snapshot):
    """Draft and in-flight claims."""
    draft_amount: Money
    draft_count: int
    submitted_amount: Money
    submitted_count: int


class ExpiringContractAlert(_Snapshot):
    resident_name: str
    contract_type: str
    end_date: str
    days_remaining: int


class FailedAutomationAlert(_Snapshot):
    automation_name: str
    failed_at: str
    error: str


class LowBalanceAlert(_Snapshot):
    resident_name: str
    balance: Money
    original_amount: Money
    percent_remaining: int


class BriefAlerts(_Snapshot):
    """Risk scans."""
    expiring_contracts: Tuple[ExpiringContractAlert, ...] = ()
    failed_automations: Tuple[FailedAutomationAlert, ...] = ()
    low_balance_contracts: Tuple[LowBalanceAlert, ...] = ()


class DailyBriefData(_Snapshot):
    """Immutable daily brief snapshot handed to rendering and delivery."""
    organization_id: str
    organization_name: str
    timezone: str
    today_date: str = Field(..., description="Send date, e.g. 'Monday 24 February 2026'")
    report_date: str = Field(..., description="Data date, e.g. 'Sunday 23 February 2026'")
    base_url: str
    windows: Dict[str, str] = Field(default_factory=dict, description="Resolved local date boundaries")

    yesterday: YesterdaySummary
    clients: ClientBilling
    occupancy: OccupancySummary
    recurring_invoices_yesterday: RecurringInvoices
    trend: TrendSummary
    property_highlights: Tuple[PropertyHighlight, ...] = ()
    outlook: OutlookSummary
    claims: ClaimsPipeline
    alerts: BriefAlerts
    admin_emails: Tuple[str, ...] = ()

    @property
    def recipient_count(self) -> int:
        return len(self.admin_emails)

    @property
    def has_recipients(self) -> bool:
        return bool(self.admin_emails)

    def to_payload(self) -> Dict[str, Any]:
        """JSON-safe representation for the rendering and delivery steps."""
        return self.model_dump(mode="json")


__all__: List[str] = [
    "BriefConfig",
    "TrendDirection",
    "YesterdaySummary",
    "ClientBilling",
    "OccupancySummary",
    "RecurringInvoices",
    "TrendSummary",
    "PropertyHighlight",
    "UpcomingItem",
    "OutlookSummary",
    "ClaimsPipeline",
    "ExpiringContractAlert",
    "FailedAutomationAlert",
    "LowBalanceAlert",
    "BriefAlerts",
    "DailyBriefData",
]
