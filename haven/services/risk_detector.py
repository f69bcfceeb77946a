"""
Operational alerts: expiring contracts, failed automation runs and contracts
running low on funds.

Each scan is independent. A scan that fails or times out yields no alerts and
a warning; it never takes the brief down with it.
"""

import asyncio
import math
from datetime import timedelta
from decimal import Decimal
from typing import Any, Awaitable, Callable, List, Optional, Sequence, TypeVar

from haven.api.schemas.brief import (
    BriefAlerts,
    ExpiringContractAlert,
    FailedAutomationAlert,
    LowBalanceAlert,
)
from haven.core.config import settings
from haven.core.logging import get_logger
from haven.core.money import round_half_up
from haven.services.brief_repository import (
    BalanceRecord,
    BriefRepository,
    ExpiringContractRecord,
    FailedRunRecord,
)
from haven.services.brief_windows import (
    NO_DATE_LABEL,
    BriefWindows,
    format_clock_time,
    format_short_date,
)

logger = get_logger(__name__)

T = TypeVar("T")

MAX_EXPIRING = 10
MAX_FAILED_RUNS = 10
MAX_LOW_BALANCE = 10
LOW_BALANCE_CANDIDATES = 50
LOW_BALANCE_THRESHOLD = Decimal("20")
FAILED_RUN_LOOKBACK = timedelta(hours=24)

DEFAULT_CONTRACT_TYPE = "Funding"
UNKNOWN_ERROR = "Unknown error"


def error_text(error: Any) -> str:
    """Readable error from a run's stored error payload."""
    if isinstance(error, str):
        return error or UNKNOWN_ERROR
    if isinstance(error, dict) and error.get("message"):
        return str(error["message"])
    return UNKNOWN_ERROR


def days_until(windows: BriefWindows, record: ExpiringContractRecord) -> int:
    """Whole days, rounded up, from now to the local start of the end date."""
    remaining = windows.local_midnight(record.end_date) - windows.now
    return math.ceil(remaining / timedelta(days=1))


def remaining_percentage(record: BalanceRecord) -> Optional[Decimal]:
    if record.original_amount <= 0:
        return None
    return record.current_balance / record.original_amount * Decimal("100")


def select_low_balance(records: Sequence[BalanceRecord]) -> List[LowBalanceAlert]:
    """
    Keep contracts with between 0% and 20% of funds remaining.

    The threshold is applied to the unrounded percentage; only the displayed
    value is rounded. Candidates arrive sorted by absolute balance, so the cap
    keeps the smallest balances rather than the smallest percentages.
    """
    alerts: List[LowBalanceAlert] = []
    for record in records:
        pct = remaining_percentage(record)
        if pct is None or not (0 <= pct < LOW_BALANCE_THRESHOLD):
            continue
        alerts.append(
            LowBalanceAlert(
                resident_name=record.resident_name,
                balance=record.current_balance,
                original_amount=record.original_amount,
                percent_remaining=round_half_up(pct),
            )
        )
    return alerts[:MAX_LOW_BALANCE]


def expiring_alerts(windows: BriefWindows, records: Sequence[ExpiringContractRecord]) -> List[ExpiringContractAlert]:
    return [
        ExpiringContractAlert(
            resident_name=record.resident_name,
            contract_type=record.contract_type or DEFAULT_CONTRACT_TYPE,
            end_date=format_short_date(record.end_date),
            days_remaining=days_until(windows, record),
        )
        for record in records[:MAX_EXPIRING]
    ]


def failed_run_alerts(windows: BriefWindows, records: Sequence[FailedRunRecord]) -> List[FailedAutomationAlert]:
    return [
        FailedAutomationAlert(
            automation_name=record.automation_name or "Unknown",
            failed_at=(
                format_clock_time(windows.to_local(record.finished_at))
                if record.finished_at else NO_DATE_LABEL
            ),
            error=error_text(record.error),
        )
        for record in records[:MAX_FAILED_RUNS]
    ]


class RiskDetector:
    """Runs the three risk scans concurrently, each under its own timeout."""

    def __init__(
        self,
        repository: BriefRepository,
        organization_id: str,
        windows: BriefWindows,
        timeout: Optional[float] = None,
    ):
        self.repository = repository
        self.organization_id = organization_id
        self.windows = windows
        self.timeout = timeout or settings.BRIEF_SECTION_TIMEOUT_SECONDS

    async def detect(self) -> BriefAlerts:
        expiring, failed, low_balance = await asyncio.gather(
            self._scan("expiring_contracts", self.scan_expiring_contracts),
            self._scan("failed_automations", self.scan_failed_runs),
            self._scan("low_balance_contracts", self.scan_low_balance),
        )
        logger.info(
            f"Alerts for {self.organization_id}: {len(expiring)} expiring, "
            f"{len(failed)} failed runs, {len(low_balance)} low balance"
        )
        return BriefAlerts(
            expiring_contracts=tuple(expiring),
            failed_automations=tuple(failed),
            low_balance_contracts=tuple(low_balance),
        )

    async def _scan(self, name: str, scan: Callable[[], Awaitable[List[T]]]) -> List[T]:
        try:
            return await asyncio.wait_for(scan(), timeout=self.timeout)
        except Exception as e:
            logger.warning(f"Risk scan {name} failed for {self.organization_id}: {e!r}")
            return []

    async def scan_expiring_contracts(self) -> List[ExpiringContractAlert]:
        records = await self.repository.list_expiring_contracts(
            self.organization_id, self.windows.expiry, limit=MAX_EXPIRING
        )
        return expiring_alerts(self.windows, records)

    async def scan_failed_runs(self) -> List[FailedAutomationAlert]:
        records = await self.repository.list_failed_runs(
            self.organization_id, self.windows.now - FAILED_RUN_LOOKBACK, limit=MAX_FAILED_RUNS
        )
        return failed_run_alerts(self.windows, records)

    async def scan_low_balance(self) -> List[LowBalanceAlert]:
        records = await self.repository.list_low_balance_candidates(
            self.organization_id, limit=LOW_BALANCE_CANDIDATES
        )
        return select_low_balance(records)
