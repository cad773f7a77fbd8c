"""Score a prospective service against historical customers to anchor pricing."""

from __future__ import annotations

import logging
import statistics
from dataclasses import dataclass
from typing import Optional, Sequence

from ...models.domain import (
    Confidence,
    CustomerProfile,
    PricingInsight,
    ServiceRequest,
    SimilarityScore,
)

COMMUNITY_MATCH_POINTS = 40.0
HOME_COUNT_POINTS = 30.0
ACCESS_MATCH_POINTS = 20.0
STANDARD_COMPLEXITY_POINTS = 10.0
SIMILAR_HOME_COUNT_RATIO = 0.8
MIN_QUALIFYING_SCORE = 60.0
MAX_MATCHES = 3

DEFAULT_PRICE_PER_HOME = 27.50
DEFAULT_LABOR_HOURS_PER_HUNDRED = 4.0
DEFAULT_DISPOSAL_WEIGHT = 2.0
FALLBACK_REASON = "No similar customers found - using default pricing"

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class MarketBenchmarks:
    average_price: float
    median_price: float
    min_price: float
    max_price: float
    sample_size: int


@dataclass(slots=True)
class OperationalBenchmarks:
    average_labor_hours_per_hundred: float
    average_disposal_weight: float
    efficiency: float


def _access_matches(request: ServiceRequest, profile: CustomerProfile) -> bool:
    access = (request.access_type or "").lower()
    if not access:
        return False
    if profile.access_type and profile.access_type.lower() == access:
        return True
    return access == "curbside" and profile.bin_type == "96_gallon"


def score_profile(request: ServiceRequest, profile: CustomerProfile) -> SimilarityScore:
    score = 0.0
    factors: list[str] = []

    if request.community_type and request.community_type.lower() == profile.community_type.lower():
        score += COMMUNITY_MATCH_POINTS
        factors.append("Same community type")

    largest = max(request.homes, profile.homes)
    home_similarity = 1 - abs(request.homes - profile.homes) / largest if largest > 0 else 0.0
    score += home_similarity * HOME_COUNT_POINTS
    if home_similarity > SIMILAR_HOME_COUNT_RATIO:
        factors.append("Similar home count")

    if _access_matches(request, profile):
        score += ACCESS_MATCH_POINTS
        factors.append("Compatible access type")

    if len(request.streams) <= 2:
        score += STANDARD_COMPLEXITY_POINTS
        factors.append("Standard service complexity")

    return SimilarityScore(
        customer_id=profile.customer_id,
        score=min(100.0, max(0.0, score)),
        match_factors=factors,
        profile=profile,
    )


def find_similar_customers(
    request: ServiceRequest, profiles: Sequence[CustomerProfile]
) -> list[SimilarityScore]:
    """Return up to three qualifying matches ranked by descending score."""

    scored = [score_profile(request, profile) for profile in profiles]
    qualifying = [item for item in scored if item.score > MIN_QUALIFYING_SCORE]
    qualifying.sort(key=lambda item: (-item.score, item.customer_id))
    return qualifying[:MAX_MATCHES]


def _confidence_for(match_count: int) -> Confidence:
    if match_count >= 3:
        return Confidence.HIGH
    if match_count == 2:
        return Confidence.MEDIUM
    return Confidence.LOW


def generate_pricing_insight(
    request: ServiceRequest, profiles: Sequence[CustomerProfile]
) -> PricingInsight:
    """Blend the closest historical customers into a price, labor and disposal estimate."""

    matches = find_similar_customers(request, profiles)
    if not matches:
        logger.debug(f"No similar customers among {len(profiles)} profiles")
        return PricingInsight(
            suggested_price_per_home=DEFAULT_PRICE_PER_HOME,
            estimated_labor_hours=DEFAULT_LABOR_HOURS_PER_HUNDRED * request.homes / 100,
            estimated_disposal_weight=DEFAULT_DISPOSAL_WEIGHT,
            confidence=Confidence.LOW,
            reasoning=[FALLBACK_REASON],
            matches=[],
        )

    total_weight = sum(item.score for item in matches)
    price = sum(item.profile.monthly_cost_per_unit * item.score for item in matches) / total_weight
    labor_per_hundred = (
        sum(item.profile.labor_hours_per_hundred_homes * item.score for item in matches) / total_weight
    )
    disposal = sum(item.profile.avg_disposal_weight * item.score for item in matches) / total_weight

    noun = "customer" if len(matches) == 1 else "customers"
    reasoning = [
        f"Based on {len(matches)} similar {noun}",
        f"Average match score: {total_weight / len(matches):.1f}%",
    ]
    for item in matches[:2]:
        profile = item.profile
        reasoning.append(
            f"{profile.customer_id} ({profile.community_type}, {profile.homes} homes): "
            f"${profile.monthly_cost_per_unit:.2f}/unit, {item.score:.1f}% match"
        )

    return PricingInsight(
        suggested_price_per_home=price,
        estimated_labor_hours=labor_per_hundred * request.homes / 100,
        estimated_disposal_weight=disposal,
        confidence=_confidence_for(len(matches)),
        reasoning=reasoning,
        matches=matches,
    )


def market_benchmarks(profiles: Sequence[CustomerProfile], community_type: Optional[str] = None) -> Optional[MarketBenchmarks]:
    """Price statistics across the reference set, optionally for one community type."""

    selected = [
        profile
        for profile in profiles
        if community_type is None or profile.community_type.lower() == community_type.lower()
    ]
    if not selected:
        return None
    prices = [profile.monthly_cost_per_unit for profile in selected]
    return MarketBenchmarks(
        average_price=statistics.fmean(prices),
        median_price=statistics.median(prices),
        min_price=min(prices),
        max_price=max(prices),
        sample_size=len(prices),
    )


def operational_benchmarks(profiles: Sequence[CustomerProfile]) -> Optional[OperationalBenchmarks]:
    if not profiles:
        return None
    labor = statistics.fmean(profile.labor_hours_per_hundred_homes for profile in profiles)
    disposal = statistics.fmean(profile.avg_disposal_weight for profile in profiles)
    return OperationalBenchmarks(
        average_labor_hours_per_hundred=labor,
        average_disposal_weight=disposal,
        efficiency=100 / labor if labor > 0 else 0.0,
    )
