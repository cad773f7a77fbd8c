"""Convert a waste stream into weekly volume, weight and truck trips."""

from __future__ import annotations

import math

from ...models.domain import LimitingFactor, ServiceStream, TripRequirement, TruckSpec

POUNDS_PER_TON = 2000.0


def calculate_trip_requirement(homes: int, stream: ServiceStream, truck_spec: TruckSpec) -> TripRequirement:
    """Work out how many weekly trips a stream needs and which constraint binds.

    Volume is compared against the compacted truck capacity and weight against the
    payload limit; the larger trip count wins. A stream with no homes or no pickups
    yields zero trips and zero hours.
    """

    frequency = stream.frequency_per_week
    if homes <= 0 or frequency <= 0:
        return TripRequirement(
            stream_type=stream.type,
            weekly_volume=0.0,
            weekly_weight=0.0,
            volume_trips=0,
            weight_trips=0,
            trips_needed=0,
            truck_hours=0.0,
            limiting_factor=LimitingFactor.NONE,
            reason="No service required",
        )

    weekly_volume = homes * stream.volume_per_unit_per_week * frequency
    weekly_weight = homes * stream.weight_per_unit_per_week * frequency / POUNDS_PER_TON

    volume_trips = math.ceil(weekly_volume / truck_spec.effective_capacity)
    weight_trips = math.ceil(weekly_weight / truck_spec.max_payload_tons)
    trips_needed = max(volume_trips, weight_trips, 1)

    if volume_trips > weight_trips:
        limiting_factor = LimitingFactor.VOLUME
        reason = f"Volume limited: {weekly_volume:.1f} cy requires {trips_needed} trips"
    elif weight_trips > volume_trips:
        limiting_factor = LimitingFactor.WEIGHT
        reason = f"Weight limited: {weekly_weight:.1f} tons requires {trips_needed} trips"
    else:
        limiting_factor = LimitingFactor.BALANCED
        reason = f"Balanced load: {trips_needed} trips"

    service_hours_per_trip = (homes / trips_needed) * truck_spec.avg_stop_time_minutes / 60
    truck_hours = trips_needed * (service_hours_per_trip + truck_spec.fixed_overhead_hours_per_trip)

    return TripRequirement(
        stream_type=stream.type,
        weekly_volume=weekly_volume,
        weekly_weight=weekly_weight,
        volume_trips=volume_trips,
        weight_trips=weight_trips,
        trips_needed=trips_needed,
        truck_hours=truck_hours,
        limiting_factor=limiting_factor,
        reason=reason,
    )
