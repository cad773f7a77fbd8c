import asyncio

import httpx
import pytest

from src.bidengine.errors import CollaboratorUnavailable
from src.bidengine.models.domain import ActiveCustomer, Location, RouteEstimate, RouteSource
from src.bidengine.services.cache import TTLCache
from src.bidengine.services.geospatial import haversine_miles
from src.bidengine.services.routing.estimator import (
    customers_within,
    estimate_route_with_fallback,
    find_nearest_customer,
    straight_line_estimate,
)
from src.bidengine.services.routing.osrm_client import OSRMRouteClient

ORIGIN = Location(address="Prospect", latitude=38.95, longitude=-77.30)
DESTINATION = Location(address="Customer", latitude=38.99, longitude=-77.25)


class CountingRoute:
    def __init__(self, estimate: RouteEstimate):
        self.estimate = estimate
        self.calls = 0

    async def estimate_route(self, origin, destination):
        self.calls += 1
        return self.estimate


class SlowRoute:
    async def estimate_route(self, origin, destination):
        await asyncio.sleep(1.0)
        return RouteEstimate(1.0, 1.0)


class FailingRoute:
    async def estimate_route(self, origin, destination):
        raise CollaboratorUnavailable("osrm", "connection refused")


def test_straight_line_estimate_applies_road_factor_and_speed():
    estimate = straight_line_estimate(ORIGIN, DESTINATION, road_factor=1.3, average_speed_mph=35.0)
    straight = haversine_miles(38.95, -77.30, 38.99, -77.25)

    assert estimate.source is RouteSource.HAVERSINE
    assert estimate.distance_miles == pytest.approx(straight * 1.3)
    assert estimate.duration_minutes == pytest.approx(straight * 1.3 / 35.0 * 60)


def test_straight_line_estimate_without_coordinates_uses_constants():
    estimate = straight_line_estimate(Location(address="Somewhere"), DESTINATION)

    assert estimate.source is RouteSource.FALLBACK
    assert estimate.distance_miles == pytest.approx(15.0)
    assert estimate.duration_minutes == pytest.approx(25.0)


def test_find_nearest_customer():
    customers = [
        ActiveCustomer("FAR", "far", 39.5, -77.9, 100),
        ActiveCustomer("NEAR", "near", 38.951, -77.301, 80),
    ]

    nearest = find_nearest_customer(ORIGIN, customers)

    assert nearest is not None
    assert nearest[0].customer_id == "NEAR"
    assert nearest[1] < 1.0
    assert [c.customer_id for c in customers_within(ORIGIN, customers, 1.0)] == ["NEAR"]
    assert find_nearest_customer(ORIGIN, []) is None


@pytest.mark.asyncio
async def test_collaborator_answer_is_used_and_cached():
    route = CountingRoute(RouteEstimate(distance_miles=6.0, duration_minutes=10.0))
    cache = TTLCache()

    first = await estimate_route_with_fallback(route, ORIGIN, DESTINATION, timeout=1.0, cache=cache)
    second = await estimate_route_with_fallback(route, ORIGIN, DESTINATION, timeout=1.0, cache=cache)

    assert first == second == RouteEstimate(6.0, 10.0)
    assert route.calls == 1


@pytest.mark.asyncio
async def test_timeout_falls_back_to_straight_line():
    estimate = await estimate_route_with_fallback(SlowRoute(), ORIGIN, DESTINATION, timeout=0.05)

    assert estimate.source is RouteSource.HAVERSINE


@pytest.mark.asyncio
async def test_collaborator_error_falls_back_and_is_not_cached():
    cache = TTLCache()

    estimate = await estimate_route_with_fallback(FailingRoute(), ORIGIN, DESTINATION, timeout=1.0, cache=cache)

    assert estimate.source is RouteSource.HAVERSINE
    assert len(cache) == 0


@pytest.mark.asyncio
async def test_invalid_collaborator_values_fall_back():
    route = CountingRoute(RouteEstimate(distance_miles=float("nan"), duration_minutes=10.0))

    estimate = await estimate_route_with_fallback(route, ORIGIN, DESTINATION, timeout=1.0)

    assert estimate.source is RouteSource.HAVERSINE


@pytest.mark.asyncio
async def test_osrm_client_parses_route_response():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        return httpx.Response(200, json={"code": "Ok", "routes": [{"distance": 16093.44, "duration": 600.0}]})

    client = OSRMRouteClient(base_url="http://osrm.test", profile="driving", transport=httpx.MockTransport(handler))

    estimate = await client.estimate_route(ORIGIN, DESTINATION)

    assert seen["path"] == "/route/v1/driving/-77.3,38.95;-77.25,38.99"
    assert estimate.distance_miles == pytest.approx(10.0)
    assert estimate.duration_minutes == pytest.approx(10.0)
    assert estimate.source is RouteSource.COLLABORATOR


@pytest.mark.asyncio
async def test_osrm_client_retries_server_errors_then_gives_up():
    calls = {"count": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        calls["count"] += 1
        return httpx.Response(503)

    client = OSRMRouteClient(
        base_url="http://osrm.test",
        max_retries=2,
        backoff_seconds=0.0,
        transport=httpx.MockTransport(handler),
    )

    with pytest.raises(CollaboratorUnavailable):
        await client.estimate_route(ORIGIN, DESTINATION)
    assert calls["count"] == 3


@pytest.mark.asyncio
async def test_osrm_client_reports_missing_route():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"code": "NoRoute", "routes": []})

    client = OSRMRouteClient(base_url="http://osrm.test", transport=httpx.MockTransport(handler))

    with pytest.raises(CollaboratorUnavailable):
        await client.estimate_route(ORIGIN, DESTINATION)


def test_osrm_client_requires_base_url(monkeypatch):
    from src.bidengine.services.routing import osrm_client

    monkeypatch.setattr(osrm_client.settings, "osrm_base_url", None)
    with pytest.raises(ValueError):
        OSRMRouteClient()
