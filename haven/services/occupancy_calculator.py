"""
Bed occupancy from the organisation's reference data.
"""

from decimal import Decimal

from haven.api.schemas.brief import OccupancySummary
from haven.core.money import percentage, round_half_up
from haven.services.reference_data_service import ReferenceData


def calculate_occupancy(total_houses: int, total_bedrooms: int, occupied_bedrooms: int) -> OccupancySummary:
    """
    Vacancy never goes negative, and there is no percentage without beds.

    Stale data can leave more active residents than beds; the percentage is
    reported as-is in that case.
    """
    pct = percentage(Decimal(occupied_bedrooms), Decimal(total_bedrooms))
    return OccupancySummary(
        total_houses=total_houses,
        total_bedrooms=total_bedrooms,
        occupied_bedrooms=occupied_bedrooms,
        vacant_bedrooms=max(0, total_bedrooms - occupied_bedrooms),
        occupancy_percentage=round_half_up(pct) if pct is not None else None,
    )


def occupancy_from_reference(reference: ReferenceData) -> OccupancySummary:
    return calculate_occupancy(
        reference.total_houses,
        reference.total_bedrooms,
        reference.occupied_bedrooms,
    )
