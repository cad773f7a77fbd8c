"""Truck specification, fleet size, and per-stream generation rates."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from ...config import settings
from ...models.domain import ServiceStream, StreamRequest, StreamType, TruckSpec

DEFAULT_TRUCK_SPEC = TruckSpec()

# (cubic yards, pounds) generated per home per pickup
GENERATION_RATES: dict[StreamType, tuple[float, float]] = {
    StreamType.TRASH: (0.8, 35.0),
    StreamType.RECYCLING: (0.4, 15.0),
    StreamType.YARD_WASTE: (0.6, 25.0),
}


@dataclass(slots=True, frozen=True)
class TruckFleetModel:
    """Vehicle specification plus the size and schedule of the fleet."""

    spec: TruckSpec = field(default_factory=TruckSpec)
    truck_count: int = 3
    working_days_per_week: int = 5

    def __post_init__(self) -> None:
        if self.truck_count < 1:
            raise ValueError("Fleet must have at least one truck.")
        if not 1 <= self.working_days_per_week <= 7:
            raise ValueError("Working days per week must be between 1 and 7.")

    @classmethod
    def from_settings(cls) -> "TruckFleetModel":
        return cls(
            spec=DEFAULT_TRUCK_SPEC,
            truck_count=settings.fleet_truck_count,
            working_days_per_week=settings.working_days_per_week,
        )

    @property
    def weekly_hours_per_truck(self) -> float:
        return self.spec.max_route_hours_per_day * self.working_days_per_week

    @property
    def available_hours_per_week(self) -> float:
        return self.truck_count * self.weekly_hours_per_truck


def build_stream(stream_type: StreamType, frequency_per_week: float) -> ServiceStream:
    volume, weight = GENERATION_RATES[stream_type]
    return ServiceStream(
        type=stream_type,
        volume_per_unit_per_week=volume,
        weight_per_unit_per_week=weight,
        frequency_per_week=frequency_per_week,
    )


def build_streams(requests: Iterable[StreamRequest]) -> list[ServiceStream]:
    return [build_stream(item.type, item.frequency_per_week) for item in requests]
