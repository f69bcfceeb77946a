"""
Houses and residents for one organisation, plus the lookups built from them.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List

from haven.core.logging import get_logger
from haven.models import HouseStatus, ResidentStatus
from haven.services.brief_repository import BriefRepository, HouseRecord, ResidentRecord

logger = get_logger(__name__)


@dataclass(frozen=True)
class ReferenceData:
    """Per-invocation lookups derived from houses and residents."""
    houses: List[HouseRecord] = field(default_factory=list)
    residents: List[ResidentRecord] = field(default_factory=list)
    house_labels: Dict[str, str] = field(default_factory=dict)
    resident_houses: Dict[str, str] = field(default_factory=dict)
    active_house_ids: FrozenSet[str] = frozenset()
    total_bedrooms: int = 0
    occupied_bedrooms: int = 0

    @property
    def resident_ids(self) -> List[str]:
        return [resident.id for resident in self.residents]

    @property
    def total_houses(self) -> int:
        return len(self.active_house_ids)


def bedroom_capacity(house: HouseRecord) -> int:
    """Missing or zero bedroom counts still count as one bed."""
    return house.bedroom_count or 1


def build_reference_data(houses: List[HouseRecord], residents: List[ResidentRecord]) -> ReferenceData:
    active_houses = [h for h in houses if h.status == HouseStatus.ACTIVE.value]
    # Residents without a house occupy no bed
    occupied = sum(
        1 for r in residents
        if r.status == ResidentStatus.ACTIVE.value and r.house_id
    )

    return ReferenceData(
        houses=houses,
        residents=residents,
        house_labels={h.id: h.label for h in houses},
        resident_houses={r.id: r.house_id for r in residents if r.house_id},
        active_house_ids=frozenset(h.id for h in active_houses),
        total_bedrooms=sum(bedroom_capacity(h) for h in active_houses),
        occupied_bedrooms=occupied,
    )


class ReferenceDataService:
    """Loads the organisation's houses and residents concurrently."""

    def __init__(self, repository: BriefRepository):
        self.repository = repository

    async def load(self, organization_id: str) -> ReferenceData:
        houses, residents = await asyncio.gather(
            self.repository.list_houses(organization_id),
            self.repository.list_residents(organization_id),
        )
        reference = build_reference_data(houses, residents)
        logger.info(
            f"Loaded reference data for {organization_id}: "
            f"{len(houses)} houses, {len(residents)} residents"
        )
        return reference
