"""
Week-over-week net trend.
"""

import asyncio
from decimal import Decimal

from haven.api.schemas.brief import TrendDirection, TrendSummary
from haven.core.logging import get_logger
from haven.services.financial_aggregator import FinancialAggregator

logger = get_logger(__name__)

# Changes within this band either side of zero read as flat
TREND_DEADBAND = Decimal("50")


def classify_trend(change: Decimal) -> TrendDirection:
    if change > TREND_DEADBAND:
        return TrendDirection.UP
    if change < -TREND_DEADBAND:
        return TrendDirection.DOWN
    return TrendDirection.FLAT


def build_trend(last_net: Decimal, prior_net: Decimal) -> TrendSummary:
    change = last_net - prior_net
    return TrendSummary(
        last_7_days_net=last_net,
        prior_7_days_net=prior_net,
        direction=classify_trend(change),
        change_amount=change,
    )


class TrendAnalyzer:
    """Compares the last seven local days with the seven before them."""

    def __init__(self, aggregator: FinancialAggregator):
        self.aggregator = aggregator

    async def analyze(self) -> TrendSummary:
        windows = self.aggregator.windows
        last, prior = await asyncio.gather(
            self.aggregator.aggregate(windows.last_seven_days),
            self.aggregator.aggregate(windows.prior_seven_days),
        )
        trend = build_trend(last.net, prior.net)
        logger.info(
            f"Trend for {self.aggregator.organization_id}: {trend.direction.value} "
            f"({trend.change_amount})"
        )
        return trend
