"""
Daily brief orchestration.

Builds one organisation's ``DailyBriefData`` snapshot: yesterday's financials,
occupancy, the week-over-week trend, the forward outlook, the claims pipeline,
risk alerts and the recipient list. Independent reads run concurrently; only
the reads that depend on houses and residents wait for them.

Sections fall into two groups. Organisation lookup, reference data,
financial windows and recipients are critical and fail the whole brief.
Outlook, claims and risk scans degrade to empty values with a warning.
"""

import asyncio
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy.ext.asyncio import async_sessionmaker

from haven.api.schemas.brief import (
    BriefConfig,
    ClientBilling,
    DailyBriefData,
    PropertyHighlight,
    RecurringInvoices,
    YesterdaySummary,
)
from haven.core.config import settings
from haven.core.exceptions import BriefGenerationException, HavenException
from haven.core.logging import get_logger
from haven.core.money import ZERO
from haven.db.session import AsyncSessionLocal
from haven.services.brief_repository import BriefRepository
from haven.services.brief_windows import BriefWindows, format_long_date, resolve_windows
from haven.services.claims_pipeline import ClaimsPipelineService
from haven.services.financial_aggregator import FinancialAggregator, FinancialSummary
from haven.services.occupancy_calculator import occupancy_from_reference
from haven.services.outlook_projector import OutlookProjector
from haven.services.reference_data_service import ReferenceDataService
from haven.services.risk_detector import RiskDetector
from haven.services.trend_analyzer import TrendAnalyzer

logger = get_logger(__name__)

DEFAULT_ORGANIZATION_NAME = "Your Organisation"
MAX_POSITIVE_HIGHLIGHTS = 3


def resolve_recipients(config: BriefConfig, admin_emails: Sequence[str]) -> List[str]:
    """An explicit override wins, even when empty; otherwise active admins."""
    if config.recipient_override is not None:
        return list(config.recipient_override)
    return [email for email in admin_emails if email]


def build_property_highlights(
    summary: FinancialSummary,
    house_labels: Dict[str, str],
) -> List[PropertyHighlight]:
    """Every loss-making house, worst first, then the three best performers."""
    house_ids = list(dict.fromkeys([*summary.income_by_house, *summary.expense_by_house]))
    highlights = []
    for house_id in house_ids:
        income = summary.income_by_house.get(house_id, ZERO)
        expenses = summary.expense_by_house.get(house_id, ZERO)
        highlights.append(
            PropertyHighlight(
                property_id=house_id,
                property_name=house_labels.get(house_id, "Unknown"),
                income=income,
                expenses=expenses,
                net=income - expenses,
            )
        )

    negative = sorted((h for h in highlights if h.net < 0), key=lambda h: (h.net, h.property_id))
    positive = sorted((h for h in highlights if h.net >= 0), key=lambda h: (-h.net, h.property_id))
    return negative + positive[:MAX_POSITIVE_HIGHLIGHTS]


class DailyBriefService:
    """
    Aggregates the daily brief for one organisation.

    The service holds no per-organisation state; each call to
    ``aggregate_daily_brief`` resolves its own windows and reads.
    """

    def __init__(
        self,
        repository: Optional[BriefRepository] = None,
        session_factory: Optional[async_sessionmaker] = None,
        section_timeout: Optional[float] = None,
    ):
        self.repository = repository or BriefRepository(session_factory or AsyncSessionLocal)
        self.section_timeout = section_timeout or settings.BRIEF_SECTION_TIMEOUT_SECONDS

    async def aggregate_daily_brief(
        self,
        organization_id: str,
        config: Optional[BriefConfig] = None,
        now: Optional[datetime] = None,
    ) -> DailyBriefData:
        """
        Build the daily brief snapshot.

        Args:
            organization_id: Organisation to report on
            config: Timezone, window sizes and recipient override
            now: Reference instant; defaults to the wall clock

        Returns:
            DailyBriefData: Immutable snapshot ready for rendering

        Raises:
            ConfigurationException: If the timezone or windows are invalid
            BriefGenerationException: If a critical section could not be read
        """
        config = config or BriefConfig()
        windows = resolve_windows(
            config.timezone,
            now=now,
            lookback_days=config.lookback_days,
            forward_days=config.forward_days,
        )

        logger.info(
            f"Generating daily brief for {organization_id} "
            f"(today={windows.today}, tz={config.timezone})"
        )

        results = await asyncio.gather(
            self._financial_sections(organization_id, windows),
            self.repository.get_organization(organization_id),
            self._admin_emails(organization_id, config),
            ClaimsPipelineService(self.repository, organization_id, self.section_timeout).summarize(),
            RiskDetector(self.repository, organization_id, windows, self.section_timeout).detect(),
            return_exceptions=True,
        )

        failure = next((r for r in results if isinstance(r, BaseException)), None)
        if failure is not None:
            logger.error(f"Daily brief failed for {organization_id}: {failure}")
            if isinstance(failure, HavenException):
                details = {**failure.details, "organization_id": organization_id}
            else:
                details = {"organization_id": organization_id, "error": str(failure)}
            raise BriefGenerationException(
                f"Failed to generate daily brief for organization {organization_id}",
                details=details,
            ) from failure

        (reference, yesterday, trend, outlook), organization, admin_emails, claims, alerts = results

        recipients = resolve_recipients(config, admin_emails)
        if not recipients:
            logger.warning(f"Daily brief for {organization_id} has no recipients")

        brief = DailyBriefData(
            organization_id=organization_id,
            organization_name=(organization.name if organization and organization.name else DEFAULT_ORGANIZATION_NAME),
            timezone=config.timezone,
            today_date=format_long_date(windows.today),
            report_date=format_long_date(windows.yesterday_end),
            base_url=settings.SITE_URL,
            windows=windows.as_strings(),
            yesterday=YesterdaySummary(
                income=yesterday.income,
                property_costs=yesterday.property_costs,
                org_costs=yesterday.org_costs,
                net=yesterday.net,
                transaction_count=yesterday.transaction_count,
                expense_count=yesterday.expense_count,
            ),
            clients=ClientBilling(
                billed_count=len(yesterday.billed_residents),
                houses_with_billing=len(yesterday.billed_houses),
                total_billed=yesterday.income,
            ),
            occupancy=occupancy_from_reference(reference),
            recurring_invoices_yesterday=RecurringInvoices(
                count=yesterday.recurring_count,
                total=yesterday.recurring_total,
                description=yesterday.recurring_category,
            ),
            trend=trend,
            property_highlights=tuple(build_property_highlights(yesterday, reference.house_labels)),
            outlook=outlook,
            claims=claims,
            alerts=alerts,
            admin_emails=tuple(recipients),
        )

        logger.info(
            f"Daily brief ready for {organization_id}: net {brief.yesterday.net}, "
            f"{brief.recipient_count} recipients"
        )
        return brief

    async def _financial_sections(self, organization_id: str, windows: BriefWindows) -> Any:
        reference = await ReferenceDataService(self.repository).load(organization_id)
        aggregator = FinancialAggregator(self.repository, organization_id, windows, reference)
        outlook = OutlookProjector(
            self.repository, organization_id, windows, reference.house_labels, self.section_timeout
        )
        yesterday, trend, projected = await asyncio.gather(
            aggregator.aggregate(windows.yesterday),
            TrendAnalyzer(aggregator).analyze(),
            outlook.project(),
        )
        return reference, yesterday, trend, projected

    async def _admin_emails(self, organization_id: str, config: BriefConfig) -> List[str]:
        if config.recipient_override is not None:
            return []
        return await self.repository.list_admin_emails(organization_id)


async def aggregate_daily_brief(
    organization_id: str,
    config: Optional[BriefConfig] = None,
    now: Optional[datetime] = None,
) -> DailyBriefData:
    """Build a brief using the default session factory."""
    return await DailyBriefService().aggregate_daily_brief(organization_id, config, now)
