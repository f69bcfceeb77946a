"""
Daily brief services for the Haven system.
"""

from .brief_repository import BriefRepository
from .daily_brief_service import DailyBriefService, aggregate_daily_brief
from .financial_aggregator import FinancialAggregator, FinancialSummary
from .outlook_projector import OutlookProjector
from .risk_detector import RiskDetector

__all__ = [
    "BriefRepository",
    "DailyBriefService",
    "aggregate_daily_brief",
    "FinancialAggregator",
    "FinancialSummary",
    "OutlookProjector",
    "RiskDetector",
]
