"""
API schemas for the Haven daily brief.
"""

from .brief import BriefConfig, DailyBriefData, TrendDirection

__all__ = ["BriefConfig", "DailyBriefData", "TrendDirection"]
