"""
Test data factories for the Haven daily brief.

This module provides Factory Boy factories that build ORM rows for the
organisation-scoped tables the brief reads.
"""

from .organization_factory import AdminUserFactory, OrganizationFactory, UserFactory
from .property_factory import HouseFactory, ResidentFactory
from .finance_factory import (
    ClaimFactory,
    FundingContractFactory,
    HouseExpenseFactory,
    TransactionFactory,
)
from .automation_factory import AutomationFactory, AutomationRunFactory

__all__ = [
    "OrganizationFactory",
    "UserFactory",
    "AdminUserFactory",
    "HouseFactory",
    "ResidentFactory",
    "TransactionFactory",
    "HouseExpenseFactory",
    "FundingContractFactory",
    "ClaimFactory",
    "AutomationFactory",
    "AutomationRunFactory",
]
