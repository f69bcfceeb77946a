"""
Draft and in-flight claim totals.
"""

import asyncio
from typing import Optional, Sequence

from haven.api.schemas.brief import ClaimsPipeline
from haven.core.config import settings
from haven.core.logging import get_logger
from haven.core.money import ZERO
from haven.models import ClaimStatus
from haven.services.brief_repository import BriefRepository, ClaimRecord

logger = get_logger(__name__)

DRAFT_STATUSES = (ClaimStatus.DRAFT.value,)
IN_FLIGHT_STATUSES = (
    ClaimStatus.SUBMITTED.value,
    ClaimStatus.IN_PROGRESS.value,
    ClaimStatus.PROCESSED.value,
    ClaimStatus.AUTO_PROCESSED.value,
)


def empty_pipeline() -> ClaimsPipeline:
    return ClaimsPipeline(draft_amount=ZERO, draft_count=0, submitted_amount=ZERO, submitted_count=0)


def summarize_claims(claims: Sequence[ClaimRecord]) -> ClaimsPipeline:
    drafts = [c for c in claims if c.status in DRAFT_STATUSES]
    in_flight = [c for c in claims if c.status in IN_FLIGHT_STATUSES]
    return ClaimsPipeline(
        draft_amount=sum((c.total_amount for c in drafts), ZERO),
        draft_count=len(drafts),
        submitted_amount=sum((c.total_amount for c in in_flight), ZERO),
        submitted_count=len(in_flight),
    )


class ClaimsPipelineService:
    def __init__(self, repository: BriefRepository, organization_id: str, timeout: Optional[float] = None):
        self.repository = repository
        self.organization_id = organization_id
        self.timeout = timeout or settings.BRIEF_SECTION_TIMEOUT_SECONDS

    async def summarize(self) -> ClaimsPipeline:
        try:
            claims = await asyncio.wait_for(
                self.repository.list_claims(self.organization_id, DRAFT_STATUSES + IN_FLIGHT_STATUSES),
                timeout=self.timeout,
            )
        except Exception as e:
            logger.warning(f"Claims pipeline unavailable for {self.organization_id}: {e!r}")
            return empty_pipeline()
        return summarize_claims(claims)
