"""
Income and expense totals for a window of local days.

Income is read per resident in fixed-size batches that run concurrently.
Expenses are read once per organisation. Both exclude records whose status
means the money never moved.
"""

import asyncio
from collections import Counter
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, FrozenSet, Iterator, List, Optional, Sequence

from haven.core.config import settings
from haven.core.exceptions import DataSourceException
from haven.core.logging import get_logger
from haven.core.money import ZERO
from haven.models import ExpenseScope, RecordSource
from haven.services.brief_repository import (
    EXCLUDED_EXPENSE_STATUSES,
    EXCLUDED_INCOME_STATUSES,
    BriefRepository,
    ExpenseRecord,
    IncomeRecord,
)
from haven.services.brief_windows import BriefWindows, DateWindow
from haven.services.reference_data_service import ReferenceData

logger = get_logger(__name__)

DEFAULT_RECURRING_LABEL = "expense"
UNCATEGORISED = "other"


def chunked(items: Sequence[str], size: int) -> Iterator[List[str]]:
    """Yield consecutive slices of at most ``size`` items."""
    if size < 1:
        raise ValueError("Batch size must be at least 1")
    for i in range(0, len(items), size):
        yield list(items[i:i + size])


@dataclass(frozen=True)
class FinancialSummary:
    """Totals for one window."""
    income: Decimal = ZERO
    property_costs: Decimal = ZERO
    org_costs: Decimal = ZERO
    transaction_count: int = 0
    expense_count: int = 0
    income_by_house: Dict[str, Decimal] = field(default_factory=dict)
    expense_by_house: Dict[str, Decimal] = field(default_factory=dict)
    billed_residents: FrozenSet[str] = frozenset()
    billed_houses: FrozenSet[str] = frozenset()
    recurring_count: int = 0
    recurring_total: Decimal = ZERO
    recurring_category: str = DEFAULT_RECURRING_LABEL

    @property
    def net(self) -> Decimal:
        return self.income - self.property_costs - self.org_costs


def summarize(
    income: Sequence[IncomeRecord],
    expenses: Sequence[ExpenseRecord],
    resident_houses: Dict[str, str],
) -> FinancialSummary:
    """Fold income and expense records into a FinancialSummary."""
    income_total = ZERO
    transaction_count = 0
    income_by_house: Dict[str, Decimal] = {}
    billed_residents = set()
    billed_houses = set()

    for record in income:
        if record.status in EXCLUDED_INCOME_STATUSES:
            continue
        income_total += record.amount
        transaction_count += 1
        billed_residents.add(record.resident_id)
        house_id = resident_houses.get(record.resident_id)
        if house_id:
            income_by_house[house_id] = income_by_house.get(house_id, ZERO) + record.amount
            billed_houses.add(house_id)

    property_costs = ZERO
    org_costs = ZERO
    expense_count = 0
    expense_by_house: Dict[str, Decimal] = {}
    recurring_count = 0
    recurring_total = ZERO
    categories: Counter = Counter()

    for record in expenses:
        if record.status in EXCLUDED_EXPENSE_STATUSES:
            continue
        expense_count += 1
        if record.scope == ExpenseScope.ORGANISATION.value:
            org_costs += record.amount
        else:
            property_costs += record.amount
            if record.house_id:
                expense_by_house[record.house_id] = expense_by_house.get(record.house_id, ZERO) + record.amount

        if record.source == RecordSource.AUTOMATION.value:
            recurring_count += 1
            recurring_total += record.amount
            categories[record.category or UNCATEGORISED] += 1

    # most_common keeps first-seen order among equal counts
    top_category = categories.most_common(1)[0][0] if categories else DEFAULT_RECURRING_LABEL

    return FinancialSummary(
        income=income_total,
        property_costs=property_costs,
        org_costs=org_costs,
        transaction_count=transaction_count,
        expense_count=expense_count,
        income_by_house=income_by_house,
        expense_by_house=expense_by_house,
        billed_residents=frozenset(billed_residents),
        billed_houses=frozenset(billed_houses),
        recurring_count=recurring_count,
        recurring_total=recurring_total,
        recurring_category=top_category,
    )


class FinancialAggregator:
    """Computes a FinancialSummary for any local date window."""

    def __init__(
        self,
        repository: BriefRepository,
        organization_id: str,
        windows: BriefWindows,
        reference: ReferenceData,
        batch_size: Optional[int] = None,
    ):
        self.repository = repository
        self.organization_id = organization_id
        self.windows = windows
        self.reference = reference
        self.batch_size = batch_size or settings.INCOME_BATCH_SIZE

    async def fetch_income(self, window: DateWindow) -> List[IncomeRecord]:
        """
        Read income for every resident, one query per batch.

        All batches are awaited before any failure is reported so the caller
        never sees a partial total.
        """
        bounds = self.windows.utc_bounds(window)
        batches = list(chunked(self.reference.resident_ids, self.batch_size))
        if not batches:
            return []

        results = await asyncio.gather(
            *(self.repository.fetch_income(batch, bounds) for batch in batches),
            return_exceptions=True,
        )

        failures = [r for r in results if isinstance(r, BaseException)]
        if failures:
            logger.error(
                f"{len(failures)} of {len(batches)} income batches failed "
                f"for {self.organization_id}"
            )
            raise DataSourceException(
                "Income could not be read for every resident batch",
                details={
                    "organization_id": self.organization_id,
                    "failed_batches": len(failures),
                    "total_batches": len(batches),
                    "error": str(failures[0]),
                },
            ) from failures[0]

        return [record for batch in results for record in batch]

    async def aggregate(self, window: DateWindow) -> FinancialSummary:
        income, expenses = await asyncio.gather(
            self.fetch_income(window),
            self.repository.fetch_expenses(self.organization_id, window),
        )
        summary = summarize(income, expenses, self.reference.resident_houses)
        logger.debug(
            f"Aggregated {window.start}..{window.end_exclusive} for {self.organization_id}: "
            f"{summary.transaction_count} transactions, {summary.expense_count} expenses"
        )
        return summary
