"""Depot location and service-zone polygons."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional

from ..config import settings
from ..models.domain import Location
from ..services.geospatial import point_in_polygon


@dataclass(slots=True, frozen=True)
class ServiceZone:
    name: str
    coordinates: tuple[tuple[float, float], ...]  # (lat, lon)


SERVICE_ZONES: tuple[ServiceZone, ...] = (
    ServiceZone(
        name="Dunn Loring Zone",
        coordinates=(
            (38.896546, -77.2392687),
            (38.8820488, -77.2488818),
            (38.8764362, -77.2277674),
            (38.8899992, -77.2169528),
            (38.896546, -77.2392687),
        ),
    ),
    ServiceZone(
        name="Polo Fields Zone",
        coordinates=(
            (38.9504015, -77.3910159),
            (38.9448277, -77.3929041),
            (38.940355, -77.3847502),
            (38.9432923, -77.3810595),
            (38.9453617, -77.3792564),
            (38.9485993, -77.3771972),
            (38.9507021, -77.3825615),
            (38.9504015, -77.3910159),
        ),
    ),
)


def depot_location() -> Location:
    return Location(
        address=settings.depot_name,
        latitude=settings.depot_latitude,
        longitude=settings.depot_longitude,
    )


def active_service_zones() -> tuple[ServiceZone, ...]:
    names = {name.lower() for name in settings.service_zone_names}
    if not names:
        return SERVICE_ZONES
    return tuple(zone for zone in SERVICE_ZONES if zone.name.lower() in names)


def find_service_zone(location: Location, zones: Optional[Iterable[ServiceZone]] = None) -> Optional[ServiceZone]:
    """Return the first service zone containing the location, if any."""

    if not location.has_coordinates:
        return None
    for zone in zones if zones is not None else active_service_zones():
        if point_in_polygon(location.latitude, location.longitude, zone.coordinates):
            return zone
    return None
