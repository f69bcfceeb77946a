"""
Tests for income and expense aggregation.
"""

from datetime import datetime, timezone
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from haven.core.exceptions import DataSourceException
from haven.services.brief_repository import ExpenseRecord, IncomeRecord, ResidentRecord
from haven.services.brief_windows import resolve_windows
from haven.services.financial_aggregator import FinancialAggregator, chunked, summarize
from haven.services.reference_data_service import build_reference_data


def income(resident_id, amount, status="paid"):
    return IncomeRecord(resident_id=resident_id, amount=Decimal(amount), status=status)


def expense(amount, scope="property", house_id=None, category=None, source="manual", status="paid"):
    return ExpenseRecord(
        house_id=house_id,
        amount=Decimal(amount),
        scope=scope,
        category=category,
        status=status,
        source=source,
    )


@pytest.fixture
def windows():
    return resolve_windows("UTC", now=datetime(2026, 2, 24, 9, 0, tzinfo=timezone.utc))


def make_reference(resident_count):
    residents = [ResidentRecord(id=f"r{i:03d}", house_id=None, status="Active") for i in range(resident_count)]
    return build_reference_data([], residents)


class TestSummarize:
    """Test folding records into totals."""

    def test_net_identity(self):
        summary = summarize(
            [income("r1", "500.00"), income("r2", "250.00")],
            [expense("120.00", house_id="h1"), expense("80.00", scope="organisation")],
            {"r1": "h1"},
        )

        assert summary.income == Decimal("750.00")
        assert summary.property_costs == Decimal("120.00")
        assert summary.org_costs == Decimal("80.00")
        assert summary.net == summary.income - summary.property_costs - summary.org_costs
        assert summary.transaction_count == 2
        assert summary.expense_count == 2

    @pytest.mark.parametrize("status", ["rejected", "cancelled"])
    def test_excluded_income_changes_total_by_its_amount(self, status):
        base = [income("r1", "500.00"), income("r2", "75.50")]
        with_excluded = base + [income("r3", "42.25", status=status)]

        included = summarize(base + [income("r3", "42.25")], [], {})
        excluded = summarize(with_excluded, [], {})

        assert included.income - excluded.income == Decimal("42.25")
        assert excluded.income == summarize(base, [], {}).income

    def test_cancelled_expense_is_excluded(self):
        summary = summarize([], [expense("99.00", status="cancelled"), expense("10.00")], {})

        assert summary.property_costs == Decimal("10.00")
        assert summary.expense_count == 1

    def test_house_buckets(self):
        summary = summarize(
            [income("r1", "300"), income("r2", "200"), income("r3", "50")],
            [expense("120", house_id="h1"), expense("30"), expense("80", scope="organisation", house_id="h2")],
            {"r1": "h1", "r2": "h1"},
        )

        assert summary.income_by_house == {"h1": Decimal("500")}
        # Organisation-scoped costs never land in a house bucket
        assert summary.expense_by_house == {"h1": Decimal("120")}
        assert summary.billed_residents == frozenset({"r1", "r2", "r3"})
        assert summary.billed_houses == frozenset({"h1"})

    def test_recurring_expenses(self):
        summary = summarize(
            [],
            [
                expense("400", category="rent", source="automation"),
                expense("60", category="utilities", source="automation"),
                expense("420", category="rent", source="automation"),
                expense("15", category="rent"),
            ],
            {},
        )

        assert summary.recurring_count == 3
        assert summary.recurring_total == Decimal("880")
        assert summary.recurring_category == "rent"

    def test_recurring_category_tie_keeps_first_seen(self):
        summary = summarize(
            [],
            [
                expense("60", category="utilities", source="automation"),
                expense("400", category="rent", source="automation"),
            ],
            {},
        )
        assert summary.recurring_category == "utilities"

    def test_recurring_defaults(self):
        assert summarize([], [], {}).recurring_category == "expense"
        uncategorised = summarize([], [expense("5", source="automation")], {})
        assert uncategorised.recurring_category == "other"

    def test_empty(self):
        summary = summarize([], [], {})
        assert summary.net == Decimal("0")
        assert summary.transaction_count == 0


class TestChunked:
    def test_batches(self):
        batches = list(chunked([str(i) for i in range(250)], 100))
        assert [len(b) for b in batches] == [100, 100, 50]

    def test_empty(self):
        assert list(chunked([], 100)) == []

    def test_invalid_size(self):
        with pytest.raises(ValueError):
            list(chunked(["a"], 0))


class TestFinancialAggregator:
    """Test batched income reads."""

    @pytest.mark.asyncio
    async def test_250_residents_issue_three_batches(self, windows):
        repository = MagicMock()

        async def fetch_income(resident_ids, bounds):
            return [income(rid, "10.00") for rid in resident_ids]

        repository.fetch_income = AsyncMock(side_effect=fetch_income)
        repository.fetch_expenses = AsyncMock(return_value=[])

        aggregator = FinancialAggregator(repository, "org-1", windows, make_reference(250), batch_size=100)
        summary = await aggregator.aggregate(windows.yesterday)

        assert repository.fetch_income.await_count == 3
        sizes = [len(call.args[0]) for call in repository.fetch_income.await_args_list]
        assert sizes == [100, 100, 50]
        assert summary.income == Decimal("2500.00")
        assert summary.transaction_count == 250

        # Every resident appears in exactly one batch
        seen = [rid for call in repository.fetch_income.await_args_list for rid in call.args[0]]
        assert sorted(seen) == sorted(make_reference(250).resident_ids)

    @pytest.mark.asyncio
    async def test_batches_use_utc_bounds_of_window(self, windows):
        repository = MagicMock()
        repository.fetch_income = AsyncMock(return_value=[])
        repository.fetch_expenses = AsyncMock(return_value=[])

        aggregator = FinancialAggregator(repository, "org-1", windows, make_reference(1))
        await aggregator.aggregate(windows.yesterday)

        _, bounds = repository.fetch_income.await_args.args
        assert bounds == (
            datetime(2026, 2, 23, tzinfo=timezone.utc),
            datetime(2026, 2, 24, tzinfo=timezone.utc),
        )
        repository.fetch_expenses.assert_awaited_once_with("org-1", windows.yesterday)

    @pytest.mark.asyncio
    async def test_no_residents_skips_income_reads(self, windows):
        repository = MagicMock()
        repository.fetch_income = AsyncMock(return_value=[])
        repository.fetch_expenses = AsyncMock(return_value=[expense("80", scope="organisation")])

        aggregator = FinancialAggregator(repository, "org-1", windows, make_reference(0))
        summary = await aggregator.aggregate(windows.yesterday)

        repository.fetch_income.assert_not_awaited()
        assert summary.net == Decimal("-80")

    @pytest.mark.asyncio
    async def test_failed_batch_fails_aggregation_after_all_settle(self, windows):
        repository = MagicMock()
        calls = []

        async def fetch_income(resident_ids, bounds):
            calls.append(len(resident_ids))
            if len(calls) == 2:
                raise DataSourceException("connection reset")
            return [income(rid, "10.00") for rid in resident_ids]

        repository.fetch_income = AsyncMock(side_effect=fetch_income)
        repository.fetch_expenses = AsyncMock(return_value=[])

        aggregator = FinancialAggregator(repository, "org-1", windows, make_reference(250), batch_size=100)

        with pytest.raises(DataSourceException) as exc_info:
            await aggregator.aggregate(windows.yesterday)

        assert len(calls) == 3
        assert exc_info.value.details["failed_batches"] == 1
        assert exc_info.value.details["total_batches"] == 3
