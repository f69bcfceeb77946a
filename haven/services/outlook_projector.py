"""
Forward-looking income and costs from scheduled automations.

Every part of the outlook is best effort: a listing, template or billing
lookup that fails or times out contributes nothing and is logged, so the rest
of the brief still goes out.
"""

import asyncio
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, List, Optional

from haven.api.schemas.brief import OutlookSummary, UpcomingItem
from haven.core.config import settings
from haven.core.logging import get_logger
from haven.core.money import ZERO
from haven.models import AutomationType, ExpenseScope
from haven.services.brief_repository import AutomationRecord, BriefRepository
from haven.services.brief_windows import NO_DATE_LABEL, BriefWindows, format_day_month

logger = get_logger(__name__)

MAX_OUTLOOK_AUTOMATIONS = 20
MAX_UPCOMING_ITEMS = 5

UNRESOLVED_CATEGORY = "Recurring"
EXPENSE_CATEGORY = "Expense"
INCOME_CATEGORY = "Income"
BILLING_CATEGORY = "Contract Billing"

INCOME = "income"
PROPERTY = "property"
ORGANISATION = "organisation"


@dataclass(frozen=True)
class Projection:
    """Resolved amount and bucket for one automation occurrence."""
    category: str
    amount: Decimal = ZERO
    bucket: Optional[str] = None
    property_name: Optional[str] = None


UNRESOLVED = Projection(category=UNRESOLVED_CATEGORY)


def empty_outlook() -> OutlookSummary:
    return OutlookSummary(
        expected_income=ZERO,
        expected_property_costs=ZERO,
        expected_org_costs=ZERO,
        projected_net=ZERO,
    )


class OutlookProjector:
    """Projects the next ``forward_days`` from enabled automations."""

    def __init__(
        self,
        repository: BriefRepository,
        organization_id: str,
        windows: BriefWindows,
        house_labels: Dict[str, str],
        timeout: Optional[float] = None,
    ):
        self.repository = repository
        self.organization_id = organization_id
        self.windows = windows
        self.house_labels = house_labels
        self.timeout = timeout or settings.BRIEF_SECTION_TIMEOUT_SECONDS

    async def project(self) -> OutlookSummary:
        try:
            automations = await asyncio.wait_for(
                self.repository.list_upcoming_automations(
                    self.organization_id,
                    self.windows.utc_bounds(self.windows.outlook),
                    limit=MAX_OUTLOOK_AUTOMATIONS,
                ),
                timeout=self.timeout,
            )
        except Exception as e:
            logger.warning(f"Outlook unavailable for {self.organization_id}: {e!r}")
            return empty_outlook()

        recurring = [a for a in automations if a.type == AutomationType.RECURRING_TRANSACTION.value]
        needs_billing = any(a.type == AutomationType.CONTRACT_BILLING_RUN.value for a in automations)

        billing_total, *resolved = await asyncio.gather(
            self._billing_total() if needs_billing else self._zero(),
            *(self._resolve_recurring(a) for a in recurring),
        )
        projections = {a.id: p for a, p in zip(recurring, resolved)}

        totals = {INCOME: ZERO, PROPERTY: ZERO, ORGANISATION: ZERO}
        items: List[UpcomingItem] = []

        for automation in automations:
            if automation.type == AutomationType.CONTRACT_BILLING_RUN.value:
                projection = Projection(category=BILLING_CATEGORY, amount=billing_total, bucket=INCOME)
            elif automation.type == AutomationType.RECURRING_TRANSACTION.value:
                projection = projections[automation.id]
            else:
                continue

            if projection.bucket:
                totals[projection.bucket] += projection.amount
            items.append(
                UpcomingItem(
                    date=self._date_label(automation),
                    name=automation.name,
                    category=projection.category,
                    property=projection.property_name,
                    amount=projection.amount,
                )
            )

        outlook = OutlookSummary(
            expected_income=totals[INCOME],
            expected_property_costs=totals[PROPERTY],
            expected_org_costs=totals[ORGANISATION],
            projected_net=totals[INCOME] - totals[PROPERTY] - totals[ORGANISATION],
            upcoming_items=tuple(items[:MAX_UPCOMING_ITEMS]),
        )
        logger.info(
            f"Outlook for {self.organization_id}: {len(items)} scheduled items, "
            f"projected net {outlook.projected_net}"
        )
        return outlook

    def _date_label(self, automation: AutomationRecord) -> str:
        if automation.next_run_at is None:
            return NO_DATE_LABEL
        return format_day_month(self.windows.to_local(automation.next_run_at).date())

    async def _zero(self) -> Decimal:
        return ZERO

    async def _billing_total(self) -> Decimal:
        """Daily cost of auto-billed contracts, read once per brief."""
        try:
            return await asyncio.wait_for(
                self.repository.sum_auto_billing_daily_cost(self.organization_id),
                timeout=self.timeout,
            )
        except Exception as e:
            logger.warning(f"Contract billing estimate unavailable for {self.organization_id}: {e!r}")
            return ZERO

    async def _resolve_recurring(self, automation: AutomationRecord) -> Projection:
        params = automation.parameters or {}
        expense_id = params.get("templateExpenseId")
        transaction_id = params.get("templateTransactionId")

        try:
            if expense_id:
                return await asyncio.wait_for(self._from_expense(str(expense_id)), timeout=self.timeout)
            if transaction_id:
                return await asyncio.wait_for(self._from_transaction(str(transaction_id)), timeout=self.timeout)
        except Exception as e:
            logger.warning(f"Template lookup failed for automation {automation.id}: {e!r}")
            return UNRESOLVED

        logger.warning(f"Automation {automation.id} has no template to project from")
        return UNRESOLVED

    async def _from_expense(self, expense_id: str) -> Projection:
        template = await self.repository.get_expense_template(self.organization_id, expense_id)
        if template is None:
            logger.warning(f"Expense template {expense_id} not found")
            return UNRESOLVED
        if template.scope == ExpenseScope.ORGANISATION.value:
            return Projection(
                category=template.category or EXPENSE_CATEGORY,
                amount=template.amount,
                bucket=ORGANISATION,
            )
        return Projection(
            category=template.category or EXPENSE_CATEGORY,
            amount=template.amount,
            bucket=PROPERTY,
            property_name=self.house_labels.get(template.house_id) if template.house_id else None,
        )

    async def _from_transaction(self, transaction_id: str) -> Projection:
        template = await self.repository.get_transaction_template(self.organization_id, transaction_id)
        if template is None:
            logger.warning(f"Transaction template {transaction_id} not found")
            return UNRESOLVED
        return Projection(category=INCOME_CATEGORY, amount=template.amount, bucket=INCOME)
