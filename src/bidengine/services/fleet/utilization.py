"""Aggregate stream trip requirements against the fleet's available hours."""

from __future__ import annotations

import logging
import math
from typing import Optional, Sequence

from ...config import settings
from ...models.domain import FleetAnalysisResult, FleetUtilization, ServiceStream
from .trips import calculate_trip_requirement
from .trucks import TruckFleetModel

HIGH_UTILIZATION_PERCENT = 85.0
SURPLUS_CAPACITY_HOURS = 20.0

logger = logging.getLogger(__name__)


def committed_hours_for(
    fleet: TruckFleetModel,
    utilization: Optional[FleetUtilization],
    default_fraction: float,
) -> float:
    if utilization is None:
        return fleet.available_hours_per_week * default_fraction
    return utilization.hours_per_truck_committed * utilization.current_trucks * fleet.working_days_per_week


def analyze_fleet_requirements(
    homes: int,
    streams: Sequence[ServiceStream],
    fleet: TruckFleetModel,
    utilization: Optional[FleetUtilization] = None,
    *,
    capacity_buffer: Optional[float] = None,
    default_committed_fraction: Optional[float] = None,
    truck_monthly_cost: Optional[float] = None,
) -> FleetAnalysisResult:
    """Decide whether the fleet can absorb the new service and how many trucks it lacks.

    ``capacity_buffer`` caps the share of available hours that may be scheduled;
    additional trucks are needed exactly when committed plus new hours exceed it.
    """

    buffer = capacity_buffer if capacity_buffer is not None else settings.fleet_capacity_buffer
    fraction = (
        default_committed_fraction
        if default_committed_fraction is not None
        else settings.default_committed_fraction
    )
    truck_cost = truck_monthly_cost if truck_monthly_cost is not None else settings.additional_truck_monthly_cost

    requirements = [calculate_trip_requirement(homes, stream, fleet.spec) for stream in streams]
    required = [item for item in requirements if item.trips_needed > 0]

    total_trips = sum(item.trips_needed for item in required)
    total_hours = sum(item.truck_hours for item in required)
    available = fleet.available_hours_per_week
    committed = committed_hours_for(fleet, utilization, fraction)
    total_load = committed + total_hours

    load_percent = total_load / available * 100
    buffered_load_percent = total_load / (available * buffer) * 100

    additional_trucks = 0
    if buffered_load_percent > 100:
        shortfall = total_load - available * buffer
        additional_trucks = max(1, math.ceil(shortfall / fleet.weekly_hours_per_truck))

    constraints: list[str] = []
    recommendations: list[str] = []

    if load_percent > HIGH_UTILIZATION_PERCENT:
        constraints.append(f"High fleet utilization ({load_percent:.1f}% of available hours)")
    if additional_trucks > 0:
        noun = "truck" if additional_trucks == 1 else "trucks"
        constraints.append(f"Requires {additional_trucks} additional {noun}")
        recommendations.append(
            f"Consider adding {additional_trucks} {noun} at ${truck_cost:,.0f}/month each"
        )
    if len(required) > 1:
        constraints.append("Separate trucks required for different waste streams")
    if total_trips > fleet.truck_count:
        recommendations.append("Optimize routes to reduce trip count")

    spare_hours = available * buffer - total_load
    if additional_trucks == 0 and spare_hours > SURPLUS_CAPACITY_HOURS:
        recommendations.append(
            f"Surplus capacity of {spare_hours:.1f} hours/week available for additional contracts"
        )

    logger.debug(
        f"Fleet analysis: {total_trips} trips, {total_hours:.1f}h needed, "
        f"load {load_percent:.1f}%, additional trucks {additional_trucks}"
    )

    return FleetAnalysisResult(
        required_trips=required,
        total_trips_needed=total_trips,
        total_hours_needed=total_hours,
        available_hours=available,
        committed_hours=committed,
        fleet_load_percent=load_percent,
        buffered_load_percent=buffered_load_percent,
        additional_trucks_needed=additional_trucks,
        can_service_with_current_fleet=additional_trucks == 0,
        constraints=constraints,
        recommendations=recommendations,
    )
