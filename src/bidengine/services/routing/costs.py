"""Weekly operating cost of running the trips a service requires."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence

from ...config import settings
from ...models.domain import RouteCostBreakdown, StreamType, TripRequirement


@dataclass(slots=True, frozen=True)
class CostRates:
    """Unit costs for route operation.

    Disposal fees are charged per ton for trash and yard waste. Recycling is sold,
    so it is carried as a separate revenue rate rather than a negative fee.
    """

    fuel_per_mile: float = 0.80
    labor_per_hour: float = 45.0
    maintenance_per_mile: float = 0.12
    disposal_fee_per_ton: dict[StreamType, float] = field(
        default_factory=lambda: {StreamType.TRASH: 82.50, StreamType.YARD_WASTE: 82.50 * 0.55}
    )
    revenue_per_ton: dict[StreamType, float] = field(
        default_factory=lambda: {StreamType.RECYCLING: 15.0}
    )

    @classmethod
    def from_settings(cls) -> "CostRates":
        trash_rate = settings.trash_disposal_per_ton
        return cls(
            fuel_per_mile=settings.fuel_cost_per_mile,
            labor_per_hour=settings.labor_cost_per_hour,
            maintenance_per_mile=settings.maintenance_cost_per_mile,
            disposal_fee_per_ton={
                StreamType.TRASH: trash_rate,
                StreamType.YARD_WASTE: trash_rate * settings.yard_waste_disposal_factor,
            },
            revenue_per_ton={StreamType.RECYCLING: settings.recycling_revenue_per_ton},
        )


def calculate_disposal(
    requirements: Sequence[TripRequirement], rates: CostRates
) -> tuple[float, float]:
    """Return (disposal fees, recycling revenue) for the weekly tonnage."""

    fees = 0.0
    revenue = 0.0
    for item in requirements:
        fees += item.weekly_weight * rates.disposal_fee_per_ton.get(item.stream_type, 0.0)
        revenue += item.weekly_weight * rates.revenue_per_ton.get(item.stream_type, 0.0)
    return fees, revenue


def calculate_route_costs(
    requirements: Sequence[TripRequirement],
    drive_distance_miles: float,
    drive_duration_minutes: float,
    rates: CostRates | None = None,
) -> RouteCostBreakdown:
    """Estimate weekly fuel, labor, maintenance and disposal costs.

    Every trip is a round trip between the yard and the service area, so distance
    and drive time are doubled per trip. Labor covers drive and service time.
    """

    rates = rates or CostRates.from_settings()
    trips = sum(item.trips_needed for item in requirements)
    round_trip_miles = drive_distance_miles * trips * 2

    total_drive_minutes = drive_duration_minutes * trips * 2
    total_service_minutes = sum(item.truck_hours for item in requirements) * 60
    total_hours = (total_drive_minutes + total_service_minutes) / 60

    fees, revenue = calculate_disposal(requirements, rates)

    return RouteCostBreakdown(
        fuel_cost=round_trip_miles * rates.fuel_per_mile,
        labor_cost=total_hours * rates.labor_per_hour,
        maintenance_cost=round_trip_miles * rates.maintenance_per_mile,
        disposal_fees=fees,
        recycling_revenue=revenue,
        total_drive_minutes=total_drive_minutes,
        total_service_minutes=total_service_minutes,
    )
