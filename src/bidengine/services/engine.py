"""Bid evaluation entry point: fan out collaborator lookups, then price and recommend."""

from __future__ import annotations

import asyncio
import inspect
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Mapping, Optional, Sequence, Union

from ..config import settings
from ..data.customers_repository import load_active_customers, load_historical_profiles
from ..data.facilities import depot_location, find_service_zone
from ..models.domain import (
    ActiveCustomer,
    CustomerProfile,
    EvaluationResult,
    FleetUtilization,
    Location,
    RouteEstimate,
    ServiceRequest,
)
from ..schemas.requests import parse_fleet_utilization, parse_service_request, validate_service_request
from .cache import TTLCache, make_cache_key
from .fleet.trucks import TruckFleetModel, build_streams
from .fleet.utilization import analyze_fleet_requirements
from .pricing.config import PricingEngineConfig, load_pricing_config
from .pricing.tiered import apply_modifiers, calculate_tiered_pricing
from .pricing.unit_pricing import calculate_unit_pricing
from .recommendation.synthesizer import (
    DEFAULT_SCORE_BANDS,
    ScoreBands,
    SynthesisInputs,
    synthesize_recommendation,
)
from .routing.costs import CostRates, calculate_route_costs
from .routing.estimator import RouteEstimator, estimate_route_with_fallback, find_nearest_customer
from .routing.osrm_client import OSRMRouteClient
from .similarity.scorer import generate_pricing_insight

Loader = Callable[[], Union[Sequence[Any], Awaitable[Sequence[Any]]]]

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class RouteContext:
    estimate: RouteEstimate
    nearest: Optional[ActiveCustomer]
    in_service_zone: bool


def default_route_estimator() -> Optional[RouteEstimator]:
    if not settings.osrm_base_url:
        return None
    return OSRMRouteClient()


async def _call_loader(loader: Loader, timeout: float, name: str) -> tuple:
    """Run a sync or async loader under a timeout; failures yield an empty result."""

    async def _load() -> tuple:
        if inspect.iscoroutinefunction(loader):
            result = loader()
        else:
            result = await asyncio.to_thread(loader)
        if inspect.isawaitable(result):
            result = await result
        return tuple(result or ())

    try:
        return await asyncio.wait_for(_load(), timeout=timeout)
    except asyncio.TimeoutError:
        logger.warning(f"{name} timed out after {timeout:.1f}s, continuing without it")
        return tuple()
    except Exception as exc:
        logger.warning(f"{name} unavailable ({exc}), continuing without it")
        return tuple()


class BidEngine:
    """Evaluates service requests against fleet capacity, cost and pricing policy.

    Collaborators and the cache are injected; each evaluation builds its own results.
    """

    def __init__(
        self,
        pricing_config: Optional[PricingEngineConfig] = None,
        *,
        fleet: Optional[TruckFleetModel] = None,
        cost_rates: Optional[CostRates] = None,
        route_estimator: Optional[RouteEstimator] = None,
        active_customers_loader: Optional[Loader] = None,
        historical_profiles_loader: Optional[Loader] = None,
        cache: Optional[TTLCache] = None,
        score_bands: ScoreBands = DEFAULT_SCORE_BANDS,
        route_timeout: Optional[float] = None,
        loader_timeout: Optional[float] = None,
    ) -> None:
        self.pricing_config = pricing_config or load_pricing_config()
        self.fleet = fleet or TruckFleetModel.from_settings()
        self.cost_rates = cost_rates or CostRates.from_settings()
        self.route_estimator = route_estimator if route_estimator is not None else default_route_estimator()
        self.active_customers_loader = active_customers_loader or load_active_customers
        self.historical_profiles_loader = historical_profiles_loader or load_historical_profiles
        self.cache = cache if cache is not None else TTLCache(settings.cache_ttl_seconds, settings.cache_max_entries)
        self.score_bands = score_bands
        self.route_timeout = route_timeout if route_timeout is not None else settings.route_timeout_seconds
        self.loader_timeout = (
            loader_timeout if loader_timeout is not None else settings.loader_timeout_seconds
        )

    async def _locate_route(self, location: Location) -> RouteContext:
        customers: Sequence[ActiveCustomer] = await _call_loader(
            self.active_customers_loader, self.loader_timeout, "Active customer lookup"
        )
        nearest = find_nearest_customer(location, customers)
        destination = (
            Location(
                address=nearest[0].address,
                latitude=nearest[0].latitude,
                longitude=nearest[0].longitude,
            )
            if nearest is not None
            else depot_location()
        )
        estimate = await estimate_route_with_fallback(
            self.route_estimator,
            location,
            destination,
            timeout=self.route_timeout,
            cache=self.cache,
        )
        return RouteContext(
            estimate=estimate,
            nearest=nearest[0] if nearest is not None else None,
            in_service_zone=find_service_zone(location) is not None,
        )

    async def _load_profiles(self) -> tuple[CustomerProfile, ...]:
        return await _call_loader(self.historical_profiles_loader, self.loader_timeout, "Historical profile load")

    async def evaluate(
        self,
        request: Union[ServiceRequest, Mapping[str, Any]],
        utilization: Union[FleetUtilization, Mapping[str, Any], None] = None,
    ) -> EvaluationResult:
        """Evaluate one service request and return the recommendation with its inputs.

        Both the request and the fleet snapshot are validated before any lookup;
        bad input raises ``InputValidationError``.
        """

        if isinstance(request, ServiceRequest):
            request = validate_service_request(request)
        else:
            request = parse_service_request(request)
        utilization = parse_fleet_utilization(utilization)

        streams = build_streams(request.streams)
        fleet_analysis = analyze_fleet_requirements(request.homes, streams, self.fleet, utilization)

        route, profiles = await asyncio.gather(self._locate_route(request.location), self._load_profiles())

        has_nearby_route = route.in_service_zone or (
            route.nearest is not None and route.estimate.duration_minutes <= settings.nearby_route_max_minutes
        )

        route_costs = self.cache.get_or_compute(
            make_cache_key(
                "route_costs",
                fleet_analysis.required_trips,
                route.estimate.distance_miles,
                route.estimate.duration_minutes,
                self.cost_rates,
            ),
            lambda: calculate_route_costs(
                fleet_analysis.required_trips,
                route.estimate.distance_miles,
                route.estimate.duration_minutes,
                self.cost_rates,
            ),
        )

        insight = generate_pricing_insight(request, profiles)
        pricing = calculate_unit_pricing(request, self.pricing_config, self.cache)
        tiered = calculate_tiered_pricing(
            request.homes, len(request.streams), fleet_analysis, has_nearby_route, insight
        )
        quoted_price, _ = apply_modifiers(pricing.average_price_per_unit, tiered.modifiers)
        units = sum(item.unit_count for item in pricing.unit_type_pricing)
        monthly_revenue = quoted_price * units
        monthly_cost = (
            route_costs.total_route_cost * settings.weeks_per_month
            + fleet_analysis.additional_trucks_needed * settings.additional_truck_monthly_cost
        )

        recommendation = synthesize_recommendation(
            SynthesisInputs(
                fleet_analysis=fleet_analysis,
                pricing=pricing,
                route_estimate=route.estimate,
                monthly_revenue=monthly_revenue,
                monthly_cost=monthly_cost,
                insight=insight,
            ),
            self.score_bands,
        )
        logger.info(
            f"Evaluated {request.homes}-home request: {recommendation.recommendation_type.value}, "
            f"score {recommendation.serviceability_score}, margin {recommendation.profit_margin_percent:.1f}%"
        )

        return EvaluationResult(
            recommendation=recommendation,
            fleet_analysis=fleet_analysis,
            pricing=pricing,
            tiered_pricing=tiered,
            route_estimate=route.estimate,
            route_costs=route_costs,
            pricing_insight=insight,
            has_nearby_route=has_nearby_route,
            quoted_price_per_unit=quoted_price,
        )

    def evaluate_sync(
        self,
        request: Union[ServiceRequest, Mapping[str, Any]],
        utilization: Union[FleetUtilization, Mapping[str, Any], None] = None,
    ) -> EvaluationResult:
        return asyncio.run(self.evaluate(request, utilization))
