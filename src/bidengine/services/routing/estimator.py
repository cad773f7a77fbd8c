"""Route lookups with timeout, straight-line fallback and nearest-customer search."""

from __future__ import annotations

import asyncio
import logging
import math
from typing import Optional, Protocol, Sequence

from ...config import settings
from ...models.domain import ActiveCustomer, Location, RouteEstimate, RouteSource
from ..cache import TTLCache, make_cache_key
from ..geospatial import haversine_miles

logger = logging.getLogger(__name__)


class RouteEstimator(Protocol):
    async def estimate_route(self, origin: Location, destination: Location) -> RouteEstimate:
        ...


def straight_line_estimate(
    origin: Location,
    destination: Location,
    *,
    road_factor: Optional[float] = None,
    average_speed_mph: Optional[float] = None,
) -> RouteEstimate:
    """Approximate drive distance from Haversine distance with a road factor.

    Falls back to fixed distance/duration constants when either end has no coordinates.
    """

    if not origin.has_coordinates or not destination.has_coordinates:
        return RouteEstimate(
            distance_miles=settings.fallback_distance_miles,
            duration_minutes=settings.fallback_duration_minutes,
            source=RouteSource.FALLBACK,
        )
    factor = road_factor if road_factor is not None else settings.road_factor
    speed = average_speed_mph if average_speed_mph is not None else settings.average_speed_mph
    straight = haversine_miles(origin.latitude, origin.longitude, destination.latitude, destination.longitude)
    distance = straight * factor
    return RouteEstimate(
        distance_miles=distance,
        duration_minutes=distance / speed * 60,
        source=RouteSource.HAVERSINE,
    )


def find_nearest_customer(
    location: Location, customers: Sequence[ActiveCustomer]
) -> Optional[tuple[ActiveCustomer, float]]:
    """Return the closest active customer and its straight-line distance in miles."""

    if not location.has_coordinates or not customers:
        return None
    best: Optional[tuple[ActiveCustomer, float]] = None
    for customer in customers:
        distance = haversine_miles(location.latitude, location.longitude, customer.latitude, customer.longitude)
        if best is None or distance < best[1] or (distance == best[1] and customer.customer_id < best[0].customer_id):
            best = (customer, distance)
    return best


def customers_within(
    location: Location, customers: Sequence[ActiveCustomer], radius_miles: float
) -> list[ActiveCustomer]:
    if not location.has_coordinates:
        return []
    return [
        customer
        for customer in customers
        if haversine_miles(location.latitude, location.longitude, customer.latitude, customer.longitude)
        <= radius_miles
    ]


async def estimate_route_with_fallback(
    estimator: Optional[RouteEstimator],
    origin: Location,
    destination: Location,
    *,
    timeout: Optional[float] = None,
    cache: Optional[TTLCache] = None,
) -> RouteEstimate:
    """Ask the route collaborator, bounded by a timeout, falling back to a straight-line estimate.

    Collaborator failures never propagate; they are logged and replaced by the fallback.
    Only collaborator answers are cached.
    """

    key = make_cache_key("route", origin, destination)
    if cache is not None:
        cached = cache.get(key)
        if cached is not None:
            return cached

    if estimator is None:
        return straight_line_estimate(origin, destination)

    limit = timeout if timeout is not None else settings.route_timeout_seconds
    try:
        estimate = await asyncio.wait_for(estimator.estimate_route(origin, destination), timeout=limit)
    except asyncio.TimeoutError:
        logger.warning(f"Route lookup timed out after {limit:.1f}s, using straight-line estimate")
        return straight_line_estimate(origin, destination)
    except Exception as exc:
        logger.warning(f"Route lookup failed ({exc}), using straight-line estimate")
        return straight_line_estimate(origin, destination)

    values = (estimate.distance_miles, estimate.duration_minutes)
    if not all(math.isfinite(value) and value >= 0 for value in values):
        logger.warning("Route collaborator returned invalid values, using straight-line estimate")
        return straight_line_estimate(origin, destination)

    if cache is not None:
        cache.set(key, estimate)
    return estimate
