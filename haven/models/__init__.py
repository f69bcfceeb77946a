"""
Database models read by the Haven daily brief engine.
"""

from .organization import Organization, User, UserRole, UserStatus
from .property import House, HouseStatus, Resident, ResidentStatus
from .finance import (
    Claim,
    ClaimStatus,
    ContractStatus,
    ExpenseScope,
    ExpenseStatus,
    FundingContract,
    HouseExpense,
    RecordSource,
    Transaction,
    TransactionStatus,
)
from .automation import Automation, AutomationRun, AutomationRunStatus, AutomationType

__all__ = [
    "Organization",
    "User",
    "UserRole",
    "UserStatus",
    "House",
    "HouseStatus",
    "Resident",
    "ResidentStatus",
    "Claim",
    "ClaimStatus",
    "ContractStatus",
    "ExpenseScope",
    "ExpenseStatus",
    "FundingContract",
    "HouseExpense",
    "RecordSource",
    "Transaction",
    "TransactionStatus",
    "Automation",
    "AutomationRun",
    "AutomationRunStatus",
    "AutomationType",
]
