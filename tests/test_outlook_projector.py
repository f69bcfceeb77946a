"""
Tests for the forward outlook.
"""

import asyncio
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from haven.core.exceptions import DataSourceException
from haven.services.brief_repository import AutomationRecord, ExpenseTemplate, TransactionTemplate
from haven.services.brief_windows import resolve_windows
from haven.services.outlook_projector import OutlookProjector

NOW = datetime(2026, 2, 24, 9, 0, tzinfo=timezone.utc)


def automation(automation_id, type="recurring_transaction", days_ahead=1, **parameters):
    return AutomationRecord(
        id=automation_id,
        name=f"Automation {automation_id}",
        type=type,
        next_run_at=NOW + timedelta(days=days_ahead),
        parameters=parameters,
    )


@pytest.fixture
def windows():
    return resolve_windows("UTC", now=NOW)


@pytest.fixture
def repository():
    repo = MagicMock()
    repo.list_upcoming_automations = AsyncMock(return_value=[])
    repo.get_expense_template = AsyncMock(return_value=None)
    repo.get_transaction_template = AsyncMock(return_value=None)
    repo.sum_auto_billing_daily_cost = AsyncMock(return_value=Decimal("0"))
    return repo


def projector(repository, windows, timeout=5.0):
    return OutlookProjector(repository, "org-1", windows, {"h1": "Elm House"}, timeout=timeout)


class TestOutlookProjector:
    """Test projection of scheduled automations."""

    @pytest.mark.asyncio
    async def test_expense_and_income_templates(self, repository, windows):
        repository.list_upcoming_automations.return_value = [
            automation("a1", templateExpenseId="e1"),
            automation("a2", days_ahead=2, templateExpenseId="e2"),
            automation("a3", days_ahead=3, templateTransactionId="t1"),
        ]

        async def expense_template(org_id, expense_id):
            return {
                "e1": ExpenseTemplate(amount=Decimal("400"), category="rent", scope="property", house_id="h1"),
                "e2": ExpenseTemplate(amount=Decimal("90"), category=None, scope="organisation", house_id=None),
            }[expense_id]

        repository.get_expense_template.side_effect = expense_template
        repository.get_transaction_template.return_value = TransactionTemplate(
            amount=Decimal("1500"), description="Weekly SIL"
        )

        outlook = await projector(repository, windows).project()

        assert outlook.expected_income == Decimal("1500")
        assert outlook.expected_property_costs == Decimal("400")
        assert outlook.expected_org_costs == Decimal("90")
        assert outlook.projected_net == Decimal("1010")

        first, second, third = outlook.upcoming_items
        assert (first.category, first.property, first.date) == ("rent", "Elm House", "25 Feb")
        assert (second.category, second.property) == ("Expense", None)
        assert third.category == "Income"

    @pytest.mark.asyncio
    async def test_expense_template_checked_first(self, repository, windows):
        repository.list_upcoming_automations.return_value = [
            automation("a1", templateExpenseId="e1", templateTransactionId="t1"),
        ]
        repository.get_expense_template.return_value = ExpenseTemplate(
            amount=Decimal("10"), category="cleaning", scope="property", house_id=None
        )

        await projector(repository, windows).project()

        repository.get_expense_template.assert_awaited_once_with("org-1", "e1")
        repository.get_transaction_template.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_billing_sum_computed_once(self, repository, windows):
        repository.list_upcoming_automations.return_value = [
            automation("b1", type="contract_billing_run", days_ahead=1),
            automation("b2", type="contract_billing_run", days_ahead=2),
        ]
        repository.sum_auto_billing_daily_cost.return_value = Decimal("350.50")

        outlook = await projector(repository, windows).project()

        repository.sum_auto_billing_daily_cost.assert_awaited_once()
        assert outlook.expected_income == Decimal("701.00")
        assert [item.category for item in outlook.upcoming_items] == ["Contract Billing", "Contract Billing"]

    @pytest.mark.asyncio
    async def test_unresolved_templates_are_zero_recurring_items(self, repository, windows):
        repository.list_upcoming_automations.return_value = [
            automation("a1", templateExpenseId="missing"),
            automation("a2", templateTransactionId="broken"),
            automation("a3"),
        ]
        repository.get_transaction_template.side_effect = DataSourceException("lookup failed")

        outlook = await projector(repository, windows).project()

        assert len(outlook.upcoming_items) == 3
        for item in outlook.upcoming_items:
            assert item.category == "Recurring"
            assert item.amount == Decimal("0")
        assert outlook.projected_net == Decimal("0")

    @pytest.mark.asyncio
    async def test_slow_template_times_out(self, repository, windows):
        repository.list_upcoming_automations.return_value = [automation("a1", templateTransactionId="t1")]

        async def slow(*args):
            await asyncio.sleep(1)
            return TransactionTemplate(amount=Decimal("99"), description=None)

        repository.get_transaction_template.side_effect = slow

        outlook = await projector(repository, windows, timeout=0.01).project()

        assert outlook.upcoming_items[0].category == "Recurring"
        assert outlook.expected_income == Decimal("0")

    @pytest.mark.asyncio
    async def test_only_five_items_but_all_totals(self, repository, windows):
        repository.list_upcoming_automations.return_value = [
            automation(f"a{i}", days_ahead=1, templateTransactionId=f"t{i}") for i in range(7)
        ]
        repository.get_transaction_template.return_value = TransactionTemplate(
            amount=Decimal("100"), description=None
        )

        outlook = await projector(repository, windows).project()

        assert len(outlook.upcoming_items) == 5
        assert [item.name for item in outlook.upcoming_items] == [f"Automation a{i}" for i in range(5)]
        assert outlook.expected_income == Decimal("700")

    @pytest.mark.asyncio
    async def test_listing_failure_gives_empty_outlook(self, repository, windows):
        repository.list_upcoming_automations.side_effect = DataSourceException("down")

        outlook = await projector(repository, windows).project()

        assert outlook.upcoming_items == ()
        assert outlook.projected_net == Decimal("0")
        assert outlook.expected_income == Decimal("0")

    @pytest.mark.asyncio
    async def test_listing_uses_outlook_window(self, repository, windows):
        await projector(repository, windows).project()

        args, kwargs = repository.list_upcoming_automations.await_args
        assert args[0] == "org-1"
        assert args[1] == (
            datetime(2026, 2, 24, tzinfo=timezone.utc),
            datetime(2026, 3, 4, tzinfo=timezone.utc),
        )
        assert kwargs["limit"] == 20
