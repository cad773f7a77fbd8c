"""Unit-type base pricing, access premiums and market benchmark validation."""

from __future__ import annotations

import logging
import math
from typing import Optional, Sequence

from ...models.domain import (
    AddOnsApplied,
    BenchmarkValidation,
    Confidence,
    PricingBreakdown,
    ServiceRequest,
    UnitType,
    UnitTypePricing,
)
from ...models.risk import (
    BenchmarkExceeded,
    CondoContainerPricing,
    GatedAccessSurcharge,
    MixedResidentialEstimated,
    RearAlleyAccess,
    RiskFlag,
    SpecialContainerSurcharge,
    StrictServiceExpectations,
    UnknownUnitType,
    WalkoutPremiumApplied,
    dedupe_flags,
)
from ..cache import TTLCache, make_cache_key
from ..recommendation.synthesizer import calculate_margin
from .config import PricingEngineConfig

SINGLE_FAMILY_RATE = 37.03
TOWNHOME_RATE = 21.31
CONDO_TRASH_CONTAINER_RATE = 75.00
CONDO_RECYCLING_CONTAINER_RATE = 57.04
STANDARD_UNITS_PER_CONTAINER = 8

WALKOUT_PREMIUM_RATE = 0.33
GATED_SURCHARGE_PER_UNIT = 1.50
SPECIAL_CONTAINER_SURCHARGE_PER_UNIT = 1.00
MIXED_SINGLE_FAMILY_SHARE = 0.70

BENCHMARK_PRICES: dict[UnitType, float] = {
    UnitType.SINGLE_FAMILY: SINGLE_FAMILY_RATE,
    UnitType.TOWNHOME: TOWNHOME_RATE,
    UnitType.CONDO: (CONDO_TRASH_CONTAINER_RATE + CONDO_RECYCLING_CONTAINER_RATE) / STANDARD_UNITS_PER_CONTAINER,
}

WALKOUT_EVIDENCE = ("walk", "backdoor")
GATED_EVIDENCE = ("gate",)
REAR_ALLEY_TERMS = ("rear alley", "alley access")
STRICT_SERVICE_TERMS = ("zero tolerance", "oversight")

logger = logging.getLogger(__name__)


def _mentions(requirements: Sequence[str], terms: Sequence[str]) -> bool:
    text = " ".join(requirements).lower()
    return any(term in text for term in terms)


def condo_container_pricing(units: int, units_per_container: int) -> tuple[float, int]:
    """Return (per-unit base price, containers needed) for a condo community."""

    if units <= 0:
        return 0.0, 0
    containers = math.ceil(units / units_per_container)
    monthly = containers * CONDO_TRASH_CONTAINER_RATE + containers * CONDO_RECYCLING_CONTAINER_RATE
    return monthly / units, containers


def resolve_unit_buckets(request: ServiceRequest) -> tuple[list[tuple[UnitType, int]], list[RiskFlag]]:
    """Split the request's units into priceable unit types."""

    if request.unit_type is UnitType.MIXED_RESIDENTIAL:
        breakdown = request.unit_breakdown
        if breakdown is not None:
            buckets = [
                (UnitType.SINGLE_FAMILY, breakdown.single_family),
                (UnitType.TOWNHOME, breakdown.townhome),
                (UnitType.CONDO, breakdown.condo),
            ]
            return [(unit_type, count) for unit_type, count in buckets if count > 0], []
        single_family = math.floor(request.homes * MIXED_SINGLE_FAMILY_SHARE)
        townhome = request.homes - single_family
        buckets = [(UnitType.SINGLE_FAMILY, single_family), (UnitType.TOWNHOME, townhome)]
        return (
            [(unit_type, count) for unit_type, count in buckets if count > 0],
            [MixedResidentialEstimated(single_family=single_family, townhome=townhome)],
        )
    if request.unit_type is UnitType.UNKNOWN:
        return [(UnitType.SINGLE_FAMILY, request.homes)], [UnknownUnitType()]
    return [(request.unit_type, request.homes)], []


def price_unit_bucket(
    unit_type: UnitType, unit_count: int, request: ServiceRequest, config: PricingEngineConfig
) -> UnitTypePricing:
    flags: list[RiskFlag] = []
    containers = 0
    if unit_type is UnitType.CONDO:
        base, containers = condo_container_pricing(unit_count, config.units_per_container)
        flags.append(CondoContainerPricing(containers=containers, units=unit_count))
    elif unit_type is UnitType.TOWNHOME:
        base = TOWNHOME_RATE
    else:
        base = SINGLE_FAMILY_RATE

    pricing = UnitTypePricing(unit_type=unit_type, unit_count=unit_count, base_price=base, containers_needed=containers)
    if request.is_walkout:
        pricing.walkout_premium = base * WALKOUT_PREMIUM_RATE
        flags.append(WalkoutPremiumApplied(percent=WALKOUT_PREMIUM_RATE * 100))
    if request.is_gated:
        pricing.gated_premium = GATED_SURCHARGE_PER_UNIT
        flags.append(GatedAccessSurcharge(amount_per_unit=GATED_SURCHARGE_PER_UNIT))
    if request.has_special_containers:
        pricing.special_container_premium = SPECIAL_CONTAINER_SURCHARGE_PER_UNIT
        flags.append(SpecialContainerSurcharge(amount_per_unit=SPECIAL_CONTAINER_SURCHARGE_PER_UNIT))
    pricing.risk_flags = flags
    return pricing


def validate_benchmark(price: float, benchmark: float, tolerance: float) -> BenchmarkValidation:
    """Compare a per-unit price to its benchmark.

    A deviation of exactly the tolerance counts as outside the benchmark.
    """

    if benchmark <= 0:
        return BenchmarkValidation(
            is_within_benchmark=False,
            benchmark_price=0.0,
            variance_percent=0.0,
            message="No market benchmark available",
        )
    variance = round((price - benchmark) / benchmark * 100, 6)
    limit = round(tolerance * 100, 6)
    within = abs(variance) < limit
    if within:
        message = f"Price ${price:.2f} is within {limit:.0f}% of benchmark ${benchmark:.2f} ({variance:+.1f}%)"
    else:
        direction = "above" if variance > 0 else "below"
        message = f"Price ${price:.2f} is {abs(variance):.1f}% {direction} benchmark ${benchmark:.2f}"
    return BenchmarkValidation(
        is_within_benchmark=within,
        benchmark_price=benchmark,
        variance_percent=variance,
        message=message,
    )


def detect_requirement_flags(requirements: Sequence[str]) -> list[RiskFlag]:
    flags: list[RiskFlag] = []
    if _mentions(requirements, REAR_ALLEY_TERMS):
        flags.append(RearAlleyAccess())
    if _mentions(requirements, STRICT_SERVICE_TERMS):
        flags.append(StrictServiceExpectations())
    return flags


def score_confidence(
    request: ServiceRequest, variance_percent: float, flag_count: int
) -> int:
    score = 100
    if request.unit_type is UnitType.UNKNOWN:
        score -= 20
    if request.unit_type is UnitType.MIXED_RESIDENTIAL and request.unit_breakdown is None:
        score -= 15

    deviation = abs(variance_percent)
    if deviation > 15:
        score -= 25
    elif deviation > 10:
        score -= 10

    if flag_count > 3:
        score -= 20
    elif flag_count > 1:
        score -= 10

    # Premiums need corroboration in the written requirements.
    if request.is_walkout and not _mentions(request.special_requirements, WALKOUT_EVIDENCE):
        score -= 15
    if request.is_gated and not _mentions(request.special_requirements, GATED_EVIDENCE):
        score -= 10
    return max(0, score)


def confidence_level(score: int) -> Confidence:
    if score >= 80:
        return Confidence.HIGH
    if score >= 60:
        return Confidence.MEDIUM
    return Confidence.LOW


def _compute_unit_pricing(request: ServiceRequest, config: PricingEngineConfig) -> PricingBreakdown:
    buckets, request_flags = resolve_unit_buckets(request)
    unit_pricing = [price_unit_bucket(unit_type, count, request, config) for unit_type, count in buckets]

    total_units = sum(item.unit_count for item in unit_pricing)
    revenue = sum(item.monthly_revenue for item in unit_pricing)
    average_price = revenue / total_units if total_units else 0.0
    benchmark = (
        sum(BENCHMARK_PRICES[item.unit_type] * item.unit_count for item in unit_pricing) / total_units
        if total_units
        else 0.0
    )
    validation = validate_benchmark(average_price, benchmark, config.benchmark_tolerance)

    flags: list[RiskFlag] = list(request_flags)
    for item in unit_pricing:
        flags.extend(item.risk_flags)
    flags.extend(detect_requirement_flags(request.special_requirements))
    if not validation.is_within_benchmark and benchmark > 0:
        flags.append(BenchmarkExceeded(variance_percent=validation.variance_percent))
    flags = dedupe_flags(flags)

    confidence_score = score_confidence(request, validation.variance_percent, len(flags))
    margin = calculate_margin(revenue, total_units * config.placeholder_cost_per_unit)

    warnings: list[str] = []
    if request.is_walkout and not _mentions(request.special_requirements, WALKOUT_EVIDENCE):
        warnings.append("Walk-out service flagged but not mentioned in requirements")
    if abs(validation.variance_percent) > 10:
        warnings.append(f"Price variance of {validation.variance_percent:+.1f}% from market benchmark")
    if margin < config.target_margin * 100:
        warnings.append(f"Estimated margin {margin:.1f}% is below target {config.target_margin * 100:.0f}%")
    elif margin > config.max_margin * 100:
        warnings.append(
            f"Estimated margin {margin:.1f}% exceeds maximum {config.max_margin * 100:.0f}% - price may be uncompetitive"
        )

    return PricingBreakdown(
        unit_type_pricing=unit_pricing,
        total_monthly_revenue=revenue,
        average_price_per_unit=average_price,
        add_ons_applied=AddOnsApplied(
            walkout=request.is_walkout,
            gated=request.is_gated,
            special_containers=request.has_special_containers,
        ),
        margin_percent=margin,
        benchmark_validation=validation,
        confidence=confidence_level(confidence_score),
        confidence_score=confidence_score,
        risk_flags=flags,
        warnings=warnings,
    )


def calculate_unit_pricing(
    request: ServiceRequest,
    config: PricingEngineConfig,
    cache: Optional[TTLCache] = None,
) -> PricingBreakdown:
    """Price the request by unit type, apply premiums and validate against benchmarks."""

    if cache is None:
        return _compute_unit_pricing(request, config)
    key = make_cache_key(
        "unit_pricing",
        request.unit_type,
        request.homes,
        request.unit_breakdown,
        (request.is_walkout, request.is_gated, request.has_special_containers),
        request.special_requirements,
        config.model_dump(),
    )
    return cache.get_or_compute(key, lambda: _compute_unit_pricing(request, config))
