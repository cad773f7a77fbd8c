"""Domain models for service requests, fleet analysis and pricing results."""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from .risk import RiskFlag


class StreamType(str, Enum):
    TRASH = "trash"
    RECYCLING = "recycling"
    YARD_WASTE = "yard_waste"


class UnitType(str, Enum):
    SINGLE_FAMILY = "single_family"
    TOWNHOME = "townhome"
    CONDO = "condo"
    MIXED_RESIDENTIAL = "mixed_residential"
    UNKNOWN = "unknown"


class Confidence(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class LimitingFactor(str, Enum):
    VOLUME = "volume"
    WEIGHT = "weight"
    BALANCED = "balanced"
    NONE = "none"


class RecommendationType(str, Enum):
    BID = "bid"
    BID_WITH_CONDITIONS = "bid-with-conditions"
    DO_NOT_BID = "do-not-bid"


class RouteSource(str, Enum):
    COLLABORATOR = "collaborator"
    HAVERSINE = "haversine"
    FALLBACK = "fallback"


class MarketPosition(str, Enum):
    BELOW = "below"
    COMPETITIVE = "competitive"
    PREMIUM = "premium"


class Proximity(str, Enum):
    CLOSE = "close"
    MODERATE = "moderate"
    FAR = "far"


@dataclass(slots=True, frozen=True)
class TruckSpec:
    """Static specification shared by every truck in the fleet."""

    capacity_cubic_yards: float = 25.0
    compaction_ratio: float = 6.0
    max_payload_tons: float = 18.0
    max_route_hours_per_day: float = 12.5
    avg_stop_time_minutes: float = 2.5
    fixed_overhead_hours_per_trip: float = 1.5

    @property
    def effective_capacity(self) -> float:
        return self.capacity_cubic_yards * self.compaction_ratio


@dataclass(slots=True, frozen=True)
class ServiceStream:
    """Per-home generation rates for one waste stream at a pickup frequency."""

    type: StreamType
    volume_per_unit_per_week: float
    weight_per_unit_per_week: float
    frequency_per_week: float


@dataclass(slots=True, frozen=True)
class StreamRequest:
    type: StreamType
    frequency_per_week: float


@dataclass(slots=True, frozen=True)
class Location:
    address: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None


@dataclass(slots=True, frozen=True)
class UnitBreakdown:
    single_family: int = 0
    townhome: int = 0
    condo: int = 0

    @property
    def total(self) -> int:
        return self.single_family + self.townhome + self.condo


@dataclass(slots=True, frozen=True)
class ServiceRequest:
    """Fully typed service request. Build instances with ``parse_service_request``."""

    homes: int
    unit_type: UnitType
    streams: tuple[StreamRequest, ...]
    location: Location = field(default_factory=Location)
    unit_breakdown: Optional[UnitBreakdown] = None
    is_walkout: bool = False
    is_gated: bool = False
    has_special_containers: bool = False
    special_requirements: tuple[str, ...] = ()
    community_type: Optional[str] = None
    access_type: Optional[str] = None


@dataclass(slots=True)
class TripRequirement:
    stream_type: StreamType
    weekly_volume: float
    weekly_weight: float
    volume_trips: int
    weight_trips: int
    trips_needed: int
    truck_hours: float
    limiting_factor: LimitingFactor
    reason: str


@dataclass(slots=True, frozen=True)
class FleetUtilization:
    """Caller-supplied snapshot of load already committed to the fleet."""

    current_trucks: int
    hours_per_truck_committed: float
    stops_per_truck: int = 0
    utilization_percent: float = 0.0

    def __post_init__(self) -> None:
        for name in ("current_trucks", "hours_per_truck_committed", "stops_per_truck", "utilization_percent"):
            value = getattr(self, name)
            if not math.isfinite(value) or value < 0:
                raise ValueError(f"{name} must be a finite, non-negative number, got {value!r}")

    @classmethod
    def from_utilization_percent(
        cls, current_trucks: int, utilization_percent: float, truck_spec: TruckSpec
    ) -> "FleetUtilization":
        hours = truck_spec.max_route_hours_per_day * utilization_percent / 100
        return cls(
            current_trucks=current_trucks,
            hours_per_truck_committed=hours,
            utilization_percent=utilization_percent,
        )


@dataclass(slots=True)
class FleetAnalysisResult:
    required_trips: list[TripRequirement]
    total_trips_needed: int
    total_hours_needed: float
    available_hours: float
    committed_hours: float
    fleet_load_percent: float
    buffered_load_percent: float
    additional_trucks_needed: int
    can_service_with_current_fleet: bool
    constraints: list[str] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)


@dataclass(slots=True, frozen=True)
class CustomerProfile:
    """Historical customer used as a pricing reference."""

    customer_id: str
    community_type: str
    homes: int
    bin_type: str
    monthly_cost_per_unit: float
    labor_hours_per_hundred_homes: float
    avg_disposal_weight: float
    access_type: Optional[str] = None
    special_instructions: tuple[str, ...] = ()


@dataclass(slots=True, frozen=True)
class ActiveCustomer:
    customer_id: str
    address: Optional[str]
    latitude: float
    longitude: float
    homes: int = 0


@dataclass(slots=True)
class SimilarityScore:
    customer_id: str
    score: float
    match_factors: list[str]
    profile: CustomerProfile


@dataclass(slots=True)
class PricingInsight:
    suggested_price_per_home: float
    estimated_labor_hours: float
    estimated_disposal_weight: float
    confidence: Confidence
    reasoning: list[str]
    matches: list[SimilarityScore]


@dataclass(slots=True)
class UnitTypePricing:
    unit_type: UnitType
    unit_count: int
    base_price: float
    walkout_premium: float = 0.0
    gated_premium: float = 0.0
    special_container_premium: float = 0.0
    containers_needed: int = 0
    risk_flags: list[RiskFlag] = field(default_factory=list)

    @property
    def final_price_per_unit(self) -> float:
        return self.base_price + self.walkout_premium + self.gated_premium + self.special_container_premium

    @property
    def monthly_revenue(self) -> float:
        return self.final_price_per_unit * self.unit_count


@dataclass(slots=True, frozen=True)
class AddOnsApplied:
    walkout: bool = False
    gated: bool = False
    special_containers: bool = False


@dataclass(slots=True, frozen=True)
class BenchmarkValidation:
    is_within_benchmark: bool
    benchmark_price: float
    variance_percent: float
    message: str


@dataclass(slots=True)
class PricingBreakdown:
    unit_type_pricing: list[UnitTypePricing]
    total_monthly_revenue: float
    average_price_per_unit: float
    add_ons_applied: AddOnsApplied
    margin_percent: float
    benchmark_validation: BenchmarkValidation
    confidence: Confidence
    confidence_score: int
    risk_flags: list[RiskFlag]
    warnings: list[str]


@dataclass(slots=True, frozen=True)
class RouteEstimate:
    distance_miles: float
    duration_minutes: float
    source: RouteSource = RouteSource.COLLABORATOR


@dataclass(slots=True)
class RouteCostBreakdown:
    fuel_cost: float
    labor_cost: float
    maintenance_cost: float
    disposal_fees: float
    recycling_revenue: float
    total_drive_minutes: float
    total_service_minutes: float

    @property
    def disposal_cost(self) -> float:
        return self.disposal_fees - self.recycling_revenue

    @property
    def total_route_cost(self) -> float:
        return self.fuel_cost + self.labor_cost + self.maintenance_cost + self.disposal_cost


@dataclass(slots=True, frozen=True)
class PricingModifiers:
    complexity_multiplier: float = 1.0
    volume_discount: float = 0.0
    route_pairing_discount: float = 0.0
    truck_constraint_penalty: float = 0.0

    @property
    def factor(self) -> float:
        return (
            self.complexity_multiplier
            * (1 - self.volume_discount)
            * (1 - self.route_pairing_discount)
            * (1 + self.truck_constraint_penalty)
        )


@dataclass(slots=True)
class TieredPricingResult:
    base_price: float
    tier_label: str
    modifiers: PricingModifiers
    final_price: float
    breakdown: list[str]
    monthly_revenue: float


@dataclass(slots=True)
class RecommendationResult:
    should_bid: bool
    recommendation_type: RecommendationType
    confidence: Confidence
    serviceability_score: int
    reasoning: list[str]
    conditions: list[str]
    risk_flags: list[RiskFlag]
    profit_margin_percent: float
    monthly_profit: float
    monthly_revenue: float
    monthly_cost: float
    summary: str
    market_position: MarketPosition = MarketPosition.COMPETITIVE
    proximity: Proximity = Proximity.MODERATE
    competitive_advantages: list[str] = field(default_factory=list)
    market_risks: list[str] = field(default_factory=list)


@dataclass(slots=True)
class EvaluationResult:
    """Recommendation plus the intermediate results it was derived from."""

    recommendation: RecommendationResult
    fleet_analysis: FleetAnalysisResult
    pricing: PricingBreakdown
    tiered_pricing: TieredPricingResult
    route_estimate: RouteEstimate
    route_costs: RouteCostBreakdown
    pricing_insight: PricingInsight
    has_nearby_route: bool
    quoted_price_per_unit: float
